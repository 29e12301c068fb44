# main.py
# Entry point: simulates a drive feeding fixes into NavigationEngine.
# In production, replace SimLocationPlayer with the real positioning sensor
# and call engine.tick() from the UI frame timer.
#
#   python -m navigation.guidance.main              # synthetic drive
#   python -m navigation.guidance.main trace.csv    # recorded drive
#   python -m navigation.guidance.main --speak      # voice announcements

import argparse
import logging
from typing import List, Optional

from navigation.guidance.directions import StaticDirectionsService, straight_route
from navigation.guidance.models import GuidanceStatus, LatLng, RawFix, Route, Step, ViewportParams
from navigation.guidance.nav_config import NavConfig
from navigation.guidance.navigator import NavigationEngine, NavigationListener
from navigation.guidance.simulator import SimLocationPlayer, densify, load_trace_csv
from voice.announcer import Announcer

# ------------------------------------------------------------------
# Logging setup: configure once here, all modules inherit
# ------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)

# ------------------------------------------------------------------
# Config: tweak thresholds or paths here, not inside the modules
# ------------------------------------------------------------------
config = NavConfig(
    step_arrival_m=50.0,
    off_route_threshold_m=80.0,
    log_dir="logs",
)

# ------------------------------------------------------------------
# Simulation route (downtown Toronto, a few blocks)
# ------------------------------------------------------------------
WAYPOINTS = [
    LatLng(43.6532, -79.3832),   # Start
    LatLng(43.6561, -79.3802),   # Turn right
    LatLng(43.6545, -79.3755),   # Turn left
    LatLng(43.6590, -79.3722),   # Destination
]
INSTRUCTIONS = {
    1: "Turn right onto Dundas Street",
    2: "Turn left onto Church Street",
    3: "Arrive at destination",
}


class ConsoleListener(NavigationListener):
    """Prints guidance events; optionally speaks announcements."""

    def __init__(self, announcer=None) -> None:
        self.announcer = announcer
        self.last_viewport: Optional[ViewportParams] = None

    def viewport_updated(self, viewport: ViewportParams) -> None:
        self.last_viewport = viewport

    def step_advanced(self, step_index: int, step: Step) -> None:
        print(f"  -> step {step_index}: {step.instruction} ({step.distance_label})")

    def announce(self, text: str) -> None:
        print(f"  [say] {text}")
        if self.announcer:
            self.announcer.say(text)

    def arrived(self) -> None:
        print("  Destination reached.")

    def off_route(self) -> None:
        print("  Off route, recalculating...")

    def rerouted(self, route: Route) -> None:
        print(f"  New route: {len(route.steps)} steps.")


def _fixes(trace: Optional[str]) -> List[RawFix]:
    if trace:
        return load_trace_csv(trace)
    player = SimLocationPlayer(densify(WAYPOINTS, spacing_m=12.0), interval_ms=1000, jitter_m=3.0, seed=7)
    return list(player.fixes(start_ms=0))


def main() -> None:
    parser = argparse.ArgumentParser(description="Replay a drive through the guidance engine.")
    parser.add_argument("trace", nargs="?", help="CSV with lat, lon, timestamp_ms[, speed_mps, heading_deg]")
    parser.add_argument("--speak", action="store_true", help="Speak announcements")
    args = parser.parse_args()

    announcer = Announcer() if args.speak else None

    route = straight_route(WAYPOINTS, INSTRUCTIONS)
    listener = ConsoleListener(announcer)
    engine = NavigationEngine(StaticDirectionsService(default=route), listener, config=config)

    fixes = _fixes(args.trace)
    if not fixes:
        print("[Main] No fixes to replay.")
        return

    # 1. Request a route from the first fix to the final waypoint
    success, msg = engine.start_guidance(fixes[0].position, WAYPOINTS[-1])
    print(f"[Main] {msg}")
    if not success:
        return

    print("\n--- Fix Loop Active ---")

    # 2. Fix loop with extrapolation ticks in between
    for fix, nxt in zip(fixes, fixes[1:] + [None]):
        result = engine.on_fix(fix)
        print(f"  GPS ({fix.lat:.5f}, {fix.lon:.5f}) -> [{result.status.name}] {result.message}")

        end_ms = nxt.timestamp_ms if nxt else fix.timestamp_ms
        for now_ms in range(fix.timestamp_ms + config.tick_interval_ms, end_ms, config.tick_interval_ms):
            engine.tick(now_ms)

        if result.status is GuidanceStatus.ARRIVED:
            break

    vp = listener.last_viewport
    if vp:
        print(f"\n[Main] Final camera: zoom {vp.zoom}, pitch {vp.pitch_deg}, heading {vp.heading_deg:.0f}")

    engine.stop_guidance()
    if announcer:
        announcer.wait()
        announcer.close()
    print("\n--- Session complete ---")
    print(f"    Log files written to: {config.log_dir}/")


if __name__ == "__main__":
    main()
