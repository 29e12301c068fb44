import pytest

from navigation.guidance.geo_utils import forward_project
from navigation.guidance.models import LatLng, Maneuver, Route, Step
from navigation.guidance.navigator import NavigationListener

ORIGIN = LatLng(0.0, 0.0)


def east(meters: float, north: float = 0.0) -> LatLng:
    """Point `meters` east of the origin along the equator, optionally offset north."""
    p = forward_project(ORIGIN, 90.0, meters)
    return forward_project(p, 0.0, north) if north else p


class Recorder(NavigationListener):
    """Collects every presentation event in order."""

    def __init__(self) -> None:
        self.events = []

    def names(self):
        return [name for name, _ in self.events]

    def of(self, name):
        return [payload for n, payload in self.events if n == name]

    def position_updated(self, position, heading_deg):
        self.events.append(("position_updated", (position, heading_deg)))

    def viewport_updated(self, viewport):
        self.events.append(("viewport_updated", viewport))

    def step_advanced(self, step_index, step):
        self.events.append(("step_advanced", (step_index, step)))

    def announce(self, text):
        self.events.append(("announce", text))

    def arrived(self):
        self.events.append(("arrived", None))

    def off_route(self):
        self.events.append(("off_route", None))

    def rerouted(self, route):
        self.events.append(("rerouted", route))

    def reroute_failed(self, message):
        self.events.append(("reroute_failed", message))

    def peers_updated(self, peers):
        self.events.append(("peers_updated", peers))


def make_route(step_ends_m=(1000.0, 2000.0, 3000.0), with_geometry=True) -> Route:
    """Straight eastbound route along the equator with a step ending at each distance."""
    ends = [east(m) for m in step_ends_m]
    steps = tuple(
        Step(
            instruction=f"Step {i}",
            maneuver=Maneuver.STRAIGHT,
            endpoint=end,
            distance_label=f"{int(m)} m",
        )
        for i, (m, end) in enumerate(zip(step_ends_m, ends))
    )
    polyline = (ORIGIN,) + tuple(ends) if with_geometry else ()
    return Route(polyline=polyline, steps=steps, total_distance_m=step_ends_m[-1])


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def route():
    return make_route()
