# directions.py
# Contract for the external directions/routing service, a canned
# implementation for simulation and tests, and a parser for
# directions-style leg payloads.

import logging
from typing import Dict, List, Optional, Protocol, Sequence, Tuple, Union

from .geo_utils import polyline_length_m
from .models import Lane, LatLng, Maneuver, Route, Step, strip_html

logger = logging.getLogger(__name__)


class DirectionsError(Exception):
    """Any non-success answer from the routing service."""

    def __init__(self, status: str, message: Optional[str] = None) -> None:
        self.status = status
        super().__init__(message or status)


class DirectionsService(Protocol):
    def route(self, origin: LatLng, destination: LatLng) -> Route:
        """Return a route or raise DirectionsError."""
        ...


# ---------------------------------------------------------------------------
# Payload parsing
# ---------------------------------------------------------------------------

def format_distance(meters: float) -> str:
    """Short distance label: '120 m' below ~1 km, '2.4 km' above."""
    if meters < 950:
        return f"{max(10, round(meters / 10) * 10)} m"
    return f"{meters / 1000:.1f} km"


def _parse_lanes(raw: Optional[Sequence[dict]]) -> Tuple[Lane, ...]:
    return tuple(
        Lane(direction=ln.get("direction") or "through", active=bool(ln.get("active")))
        for ln in (raw or [])
    )


def _parse_step(st: dict) -> Step:
    end = st.get("end_location") or {}
    return Step(
        instruction=strip_html(st.get("html_instructions", "")),
        maneuver=Maneuver.parse(st.get("maneuver")),
        endpoint=LatLng(float(end["lat"]), float(end["lng"])),
        distance_label=(st.get("distance") or {}).get("text", ""),
        lanes=_parse_lanes(st.get("lanes")),
    )


def parse_directions_leg(leg: dict, polyline: Sequence[LatLng] = ()) -> Route:
    """
    Build a Route from a directions-style leg.

    Args:
        leg:      {"steps": [...], "distance": {"value"}, "duration": {"value"}}.
        polyline: Decoded route geometry, if the caller has it.

    Raises:
        DirectionsError: when the leg is missing steps or step endpoints.
    """
    try:
        steps = tuple(_parse_step(st) for st in leg["steps"])
    except (KeyError, TypeError, ValueError) as e:
        raise DirectionsError("INVALID_RESPONSE", f"Malformed directions leg: {e}") from e
    if not steps:
        raise DirectionsError("ZERO_RESULTS", "Directions returned no steps.")

    poly = tuple(polyline)
    distance = (leg.get("distance") or {}).get("value")
    duration = (leg.get("duration") or {}).get("value")
    return Route(
        polyline=poly,
        steps=steps,
        total_distance_m=float(distance) if distance is not None else polyline_length_m(poly),
        total_duration_s=float(duration or 0.0),
    )


# ---------------------------------------------------------------------------
# Canned service
# ---------------------------------------------------------------------------

class StaticDirectionsService:
    """
    Answers from a queue of prepared responses, then from a default route.

    Each queued item is either a Route or a DirectionsError to raise.
    Every request is recorded in `requests`.
    """

    def __init__(self, default: Optional[Route] = None, responses: Optional[List[Union[Route, DirectionsError]]] = None) -> None:
        self.default = default
        self.responses: List[Union[Route, DirectionsError]] = list(responses or [])
        self.requests: List[Tuple[LatLng, LatLng]] = []

    def route(self, origin: LatLng, destination: LatLng) -> Route:
        self.requests.append((origin, destination))
        answer = self.responses.pop(0) if self.responses else self.default
        if answer is None:
            raise DirectionsError("ZERO_RESULTS", "No route available.")
        if isinstance(answer, DirectionsError):
            raise answer
        return answer


def straight_route(waypoints: Sequence[LatLng], instructions: Optional[Dict[int, str]] = None) -> Route:
    """
    Route through `waypoints` with one step per waypoint after the first.
    Handy for simulations; instructions default to 'Continue to waypoint N'.
    """
    instructions = instructions or {}
    steps = []
    for i in range(1, len(waypoints)):
        seg = polyline_length_m(waypoints[i - 1:i + 1])
        last = i == len(waypoints) - 1
        steps.append(Step(
            instruction=instructions.get(i, "Arrive at destination" if last else f"Continue to waypoint {i}"),
            maneuver=Maneuver.STRAIGHT,
            endpoint=waypoints[i],
            distance_label=format_distance(seg),
        ))
    return Route(
        polyline=tuple(waypoints),
        steps=tuple(steps),
        total_distance_m=polyline_length_m(waypoints),
    )
