# route_tracker.py
# State machine that tracks the vehicle against an active route.
# Call load_route() once, then check_progress() on every smoothed fix.

import logging
from typing import Optional

from .geo_utils import distance_m, project_point_to_polyline
from .models import (
    GuidanceStatus,
    LatLng,
    ProgressResult,
    RerouteRequest,
    Route,
    Step,
)
from .nav_config import NavConfig

logger = logging.getLogger(__name__)


class GuidanceListener:
    """Receives guidance events. Override the ones you care about."""

    def step_advanced(self, step_index: int, step: Step) -> None:
        pass

    def announce(self, text: str) -> None:
        pass

    def arrived(self) -> None:
        pass

    def off_route(self) -> None:
        pass

    def rerouted(self, route: Route) -> None:
        pass

    def reroute_failed(self, message: str) -> None:
        pass


class RouteTracker:
    """
    Stateful progress tracker for a single guidance session.

    Status goes IDLE -> GUIDING -> ARRIVED; stop() or a new route returns it
    to the start. The step index only moves forward until the route is
    replaced.

    Off-route handling issues at most one RerouteRequest per excursion off
    the route. The request is returned in the ProgressResult and the caller
    reports back through complete_reroute() / fail_reroute(); answers for a
    session or request that has since been replaced are dropped.

    Usage:
        tracker = RouteTracker(config, listener)
        tracker.load_route(route, destination)

        # Inside the fix loop:
        result = tracker.check_progress(position, speed_mps, timestamp_ms)
        if result.reroute:
            ...
    """

    def __init__(self, config: Optional[NavConfig] = None, listener: Optional[GuidanceListener] = None) -> None:
        self.config = config or NavConfig()
        self.listener = listener or GuidanceListener()
        self._next_request_id: int = 1
        self._reset()

    def _reset(self) -> None:
        self._route: Optional[Route] = None
        self._destination: Optional[LatLng] = None
        self._status: GuidanceStatus = GuidanceStatus.IDLE
        self._step_index: int = 0
        self._last_announced: int = -1
        self._off_route: bool = False
        self._needs_reroute: bool = False
        self._pending_request: Optional[RerouteRequest] = None
        self._last_request_ms: Optional[int] = None

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def load_route(self, route: Route, destination: Optional[LatLng] = None) -> None:
        """Start guiding along a new route. Any in-flight reroute becomes stale."""
        if not route.steps:
            raise ValueError("Cannot guide along a route without steps.")
        self._reset()
        self._route = route
        self._destination = destination or route.steps[-1].endpoint
        self._status = GuidanceStatus.GUIDING
        if not route.has_geometry:
            logger.info("Route has no polyline; snapping and off-route checks disabled.")

    def stop(self) -> None:
        """End guidance. Safe to call when already idle."""
        if self._status is not GuidanceStatus.IDLE:
            logger.info("Guidance stopped.")
        self._reset()

    # ------------------------------------------------------------------
    # Read-only properties
    # ------------------------------------------------------------------

    @property
    def status(self) -> GuidanceStatus:
        return self._status

    @property
    def is_active(self) -> bool:
        return self._status is GuidanceStatus.GUIDING

    @property
    def route(self) -> Optional[Route]:
        return self._route

    @property
    def destination(self) -> Optional[LatLng]:
        return self._destination

    @property
    def step_index(self) -> int:
        return self._step_index

    @property
    def current_step(self) -> Optional[Step]:
        if self._route and 0 <= self._step_index < len(self._route.steps):
            return self._route.steps[self._step_index]
        return None

    @property
    def remaining_steps(self) -> int:
        if not self._route:
            return 0
        return max(0, len(self._route.steps) - self._step_index)

    @property
    def is_off_route(self) -> bool:
        return self._off_route

    @property
    def reroute_in_flight(self) -> bool:
        return self._pending_request is not None

    # ------------------------------------------------------------------
    # Core method: call on every fix
    # ------------------------------------------------------------------

    def check_progress(
        self,
        position: LatLng,
        speed_mps: Optional[float] = None,
        timestamp_ms: int = 0,
    ) -> ProgressResult:
        """
        Compare the current position to the active route.

        Args:
            position:     Smoothed, unsnapped position.
            speed_mps:    Current speed; None counts as stopped.
            timestamp_ms: Fix time, used for the reroute cooldown.

        Returns:
            ProgressResult with status, message, and contextual data.
        """
        if self._status is GuidanceStatus.IDLE:
            return ProgressResult(
                status=GuidanceStatus.IDLE,
                message="Navigation is not active.",
            )
        if self._status is GuidanceStatus.ARRIVED:
            return ProgressResult(
                status=GuidanceStatus.ARRIVED,
                message="You have reached your destination.",
                distance_to_next=0.0,
            )

        route = self._route
        projection = project_point_to_polyline(position, route.polyline)
        snapped = projection.snapped if route.has_geometry else position

        step = route.steps[self._step_index]
        dist = distance_m(snapped, step.endpoint)

        # 1. Pre-announcement, once per step
        threshold = self.config.pre_announce_m(speed_mps or 0.0)
        if dist < threshold and self._step_index != self._last_announced:
            self._last_announced = self._step_index
            logger.info(f"Announcing step {self._step_index}: {step.instruction}")
            self.listener.announce(step.instruction)

        # 2. Step reached
        if dist < self.config.step_arrival_m:
            if self._step_index < len(route.steps) - 1:
                self._step_index += 1
                next_step = route.steps[self._step_index]
                logger.info(f"Advanced to step {self._step_index}/{len(route.steps) - 1}.")
                self.listener.step_advanced(self._step_index, next_step)
                result = ProgressResult(
                    status=GuidanceStatus.GUIDING,
                    message=next_step.instruction,
                    distance_to_next=distance_m(snapped, next_step.endpoint),
                    current_step=next_step,
                    snapped=snapped,
                    off_route_m=projection.distance_m,
                )
            else:
                self._arrive()
                return ProgressResult(
                    status=GuidanceStatus.ARRIVED,
                    message="You have reached your destination.",
                    distance_to_next=dist,
                    current_step=step,
                    snapped=snapped,
                    off_route_m=projection.distance_m,
                )
        else:
            result = ProgressResult(
                status=GuidanceStatus.GUIDING,
                message=f"{int(dist)} m to next step. ({step.maneuver.value})",
                distance_to_next=dist,
                current_step=step,
                snapped=snapped,
                off_route_m=projection.distance_m,
            )

        # 3. Off-route, measured from the unsnapped position
        result.reroute = self._check_off_route(position, projection.distance_m, timestamp_ms)
        return result

    def _arrive(self) -> None:
        self._status = GuidanceStatus.ARRIVED
        self._pending_request = None
        self._needs_reroute = False
        self._off_route = False
        logger.info("Destination reached.")
        self.listener.arrived()

    def _check_off_route(self, position: LatLng, off_m: float, timestamp_ms: int) -> Optional[RerouteRequest]:
        if not self._route.has_geometry or off_m <= self.config.off_route_threshold_m:
            if self._off_route:
                logger.info("Back on route.")
            self._off_route = False
            self._needs_reroute = False
            return None

        if not self._off_route:
            self._off_route = True
            self._needs_reroute = True
            logger.warning(f"Off route by {off_m:.0f} m.")
            self.listener.off_route()

        if not self._needs_reroute or self._pending_request is not None:
            return None
        if (
            self._last_request_ms is not None
            and timestamp_ms - self._last_request_ms < self.config.reroute_cooldown_ms
        ):
            return None

        request = RerouteRequest(
            request_id=self._next_request_id,
            origin=position,
            destination=self._destination,
        )
        self._next_request_id += 1
        self._pending_request = request
        self._needs_reroute = False
        self._last_request_ms = timestamp_ms
        logger.info(f"Requesting reroute #{request.request_id} from {position}.")
        return request

    # ------------------------------------------------------------------
    # Reroute completion
    # ------------------------------------------------------------------

    def _is_current(self, request_id: int) -> bool:
        pending = self._pending_request
        if pending is None or pending.request_id != request_id:
            logger.warning(f"Discarding stale reroute response #{request_id}.")
            return False
        return True

    def complete_reroute(self, request_id: int, route: Route) -> bool:
        """
        Apply a successful reroute.

        Returns:
            True if the route was replaced, False if the response was stale
            or unusable.
        """
        if not self._is_current(request_id):
            return False
        if not route.steps:
            self.fail_reroute(request_id, "Directions returned no steps.")
            return False

        self._pending_request = None
        self._route = route
        self._step_index = 0
        self._last_announced = -1
        self._off_route = False
        self._needs_reroute = False
        logger.info(f"Rerouted: {len(route.steps)} steps.")
        self.listener.rerouted(route)
        return True

    def fail_reroute(self, request_id: int, message: str) -> bool:
        """
        Record a failed reroute. The stale route stays active and a retry is
        made on a later off-route fix once the cooldown has passed.
        """
        if not self._is_current(request_id):
            return False
        self._pending_request = None
        self._needs_reroute = self._off_route
        logger.warning(f"Reroute #{request_id} failed: {message}")
        self.listener.reroute_failed(message)
        return True
