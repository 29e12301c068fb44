import pytest

from conftest import east, make_route, ORIGIN
from navigation.guidance.geo_utils import bearing_deg, distance_m
from navigation.guidance.models import LatLng
from navigation.guidance.nav_config import NavConfig
from navigation.guidance.viewpoint import camera_settings, compute_viewport, forward_bias_meters


@pytest.mark.parametrize(
    "speed_kmh,expected",
    [
        (0.0, (18.0, 0.0)),
        (2.9, (18.0, 0.0)),
        (3.0, (17.5, 45.0)),
        (29.9, (17.5, 45.0)),
        (30.0, (17.0, 45.0)),
        (59.9, (17.0, 45.0)),
        (60.0, (16.5, 60.0)),
        (89.9, (16.5, 60.0)),
        (90.0, (16.0, 60.0)),
        (130.0, (16.0, 60.0)),
    ],
)
def test_guiding_camera_bands(speed_kmh, expected):
    assert camera_settings(speed_kmh, is_guiding=True) == expected


def test_free_follow_camera():
    assert camera_settings(0.0, is_guiding=False) == (17.0, 0.0)
    assert camera_settings(50.0, is_guiding=False) == (16.5, 45.0)


def test_zoom_never_increases_with_speed():
    zooms = [camera_settings(v)[0] for v in range(0, 150, 5)]
    assert zooms == sorted(zooms, reverse=True)


def test_forward_bias():
    assert forward_bias_meters(0.0, 18.0) == 0.0
    assert forward_bias_meters(2.0, 18.0) == 0.0          # 0.56 m/s
    # 36 km/h = 10 m/s -> 20 m at zoom 17
    assert forward_bias_meters(36.0, 17.0) == pytest.approx(20.0)
    assert forward_bias_meters(36.0, 16.0) == pytest.approx(40.0)
    # capped at 150 m before zoom scaling
    assert forward_bias_meters(360.0, 17.0) == pytest.approx(150.0)


def test_forward_bias_respects_config():
    cfg = NavConfig(bias_lookahead_s=1.0, max_bias_m=5.0)
    assert forward_bias_meters(36.0, 17.0, cfg) == pytest.approx(5.0)


def test_viewport_when_stopped_is_centred_on_vehicle():
    p = LatLng(43.65, -79.38)
    vp = compute_viewport(p, 120.0, 0.0, is_guiding=True)
    assert vp.center == p
    assert (vp.zoom, vp.pitch_deg, vp.heading_deg) == (18.0, 0.0, 120.0)


def test_viewport_leads_the_vehicle():
    p = LatLng(43.65, -79.38)
    vp = compute_viewport(p, 90.0, 20.0, is_guiding=True)   # 72 km/h
    assert (vp.zoom, vp.pitch_deg) == (16.5, 60.0)
    expected_bias = 40.0 * 2 ** 0.5
    assert distance_m(p, vp.center) == pytest.approx(expected_bias, rel=1e-3)
    assert bearing_deg(p, vp.center) == pytest.approx(90.0, abs=0.01)


def test_viewport_heading_falls_back_to_route_then_north():
    route = make_route()
    vp = compute_viewport(east(10.0), None, 0.0, True, route.polyline)
    assert vp.heading_deg == pytest.approx(90.0, abs=0.01)

    vp = compute_viewport(ORIGIN, None, 10.0, False)
    assert vp.heading_deg == 0.0
    assert vp.center.lat > ORIGIN.lat
