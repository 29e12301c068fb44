import pytest

from navigation.guidance.directions import (
    DirectionsError,
    StaticDirectionsService,
    format_distance,
    parse_directions_leg,
    straight_route,
)
from navigation.guidance.models import Lane, LatLng, Maneuver, Route, strip_html

LEG = {
    "distance": {"value": 1830},
    "duration": {"value": 240},
    "steps": [
        {
            "html_instructions": "Head <b>north</b> on <b>Bay St</b>",
            "end_location": {"lat": 43.6561, "lng": -79.3832},
            "distance": {"text": "350 m"},
        },
        {
            "html_instructions": "Turn <b>right</b> onto Dundas&nbsp;St",
            "maneuver": "turn-right",
            "end_location": {"lat": 43.6561, "lng": -79.3755},
            "distance": {"text": "0.6 km"},
            "lanes": [{"direction": "left", "active": False}, {"direction": "right", "active": True}],
        },
        {
            "html_instructions": "Destination will be on the left",
            "maneuver": "some-new-maneuver",
            "end_location": {"lat": 43.6590, "lng": -79.3722},
        },
    ],
}


def test_parse_leg():
    route = parse_directions_leg(LEG)
    assert [s.instruction for s in route.steps] == [
        "Head north on Bay St",
        "Turn right onto Dundas St",
        "Destination will be on the left",
    ]
    assert [s.maneuver for s in route.steps] == [Maneuver.UNKNOWN, Maneuver.TURN_RIGHT, Maneuver.UNKNOWN]
    assert route.steps[1].endpoint == LatLng(43.6561, -79.3755)
    assert route.steps[1].lanes == (Lane("left", False), Lane("right", True))
    assert route.steps[2].distance_label == ""
    assert route.total_distance_m == 1830.0
    assert route.total_duration_s == 240.0
    assert not route.has_geometry


def test_parse_leg_with_geometry_and_no_totals():
    poly = [LatLng(0.0, 0.0), LatLng(0.0, 0.01)]
    leg = {"steps": LEG["steps"][:1]}
    route = parse_directions_leg(leg, poly)
    assert route.has_geometry
    assert route.total_distance_m == pytest.approx(1_111.95, abs=0.1)
    assert route.total_duration_s == 0.0


@pytest.mark.parametrize(
    "leg,status",
    [
        ({}, "INVALID_RESPONSE"),
        ({"steps": [{"html_instructions": "x"}]}, "INVALID_RESPONSE"),
        ({"steps": []}, "ZERO_RESULTS"),
    ],
)
def test_parse_leg_errors(leg, status):
    with pytest.raises(DirectionsError) as exc:
        parse_directions_leg(leg)
    assert exc.value.status == status


def test_strip_html():
    assert strip_html("<div style='x'>Keep <b>left</b></div>") == "Keep left"
    assert strip_html(None) == ""


@pytest.mark.parametrize(
    "meters,label",
    [(0.0, "10 m"), (44.0, "40 m"), (125.0, "120 m"), (949.0, "950 m"), (950.0, "0.9 km"), (2_449.0, "2.4 km")],
)
def test_format_distance(meters, label):
    assert format_distance(meters) == label


def test_static_service_queue_then_default():
    a = Route(polyline=(), steps=())
    b = Route(polyline=(), steps=(), total_distance_m=1.0)
    service = StaticDirectionsService(default=b, responses=[a, DirectionsError("NOT_FOUND")])
    o, d = LatLng(0.0, 0.0), LatLng(1.0, 1.0)

    assert service.route(o, d) is a
    with pytest.raises(DirectionsError):
        service.route(o, d)
    assert service.route(o, d) is b
    assert len(service.requests) == 3


def test_static_service_without_answer():
    with pytest.raises(DirectionsError) as exc:
        StaticDirectionsService().route(LatLng(0.0, 0.0), LatLng(1.0, 1.0))
    assert exc.value.status == "ZERO_RESULTS"


def test_straight_route():
    pts = [LatLng(0.0, 0.0), LatLng(0.0, 0.01), LatLng(0.01, 0.01)]
    route = straight_route(pts, {1: "Turn left"})
    assert [s.instruction for s in route.steps] == ["Turn left", "Arrive at destination"]
    assert route.steps[-1].endpoint == pts[-1]
    assert route.steps[0].distance_label == "1.1 km"
    assert route.polyline == tuple(pts)
    assert route.total_distance_m == pytest.approx(2_223.9, abs=0.5)
