# navigator.py
# Public entry point for the guidance engine.
# Owns no business logic: wires smoother, tracker and camera policy together
# and forwards everything to the presentation listener.

import logging
from typing import Callable, List, Optional, Tuple

from .directions import DirectionsError, DirectionsService
from .geo_utils import project_point_to_polyline
from .models import (
    GuidanceStatus,
    LatLng,
    PeerPosition,
    ProgressResult,
    RawFix,
    RerouteRequest,
    Route,
    ViewportParams,
)
from .nav_config import NavConfig
from .nav_logger import NavLogger
from .peers import PeerRegistry
from .route_tracker import GuidanceListener, RouteTracker
from .smoother import PositionSmoother
from .viewpoint import compute_viewport

logger = logging.getLogger(__name__)


class NavigationListener(GuidanceListener):
    """Presentation-layer events. All methods default to no-ops."""

    def position_updated(self, position: LatLng, heading_deg: Optional[float]) -> None:
        pass

    def viewport_updated(self, viewport: ViewportParams) -> None:
        pass

    def peers_updated(self, peers: List[PeerPosition]) -> None:
        pass


class NavigationEngine:
    """
    High-level guidance facade.

    Typical lifecycle:
        engine = NavigationEngine(directions, listener)
        engine.start_guidance(LatLng(43.65, -79.38), LatLng(43.70, -79.40))

        # Sensor callback:
        engine.on_fix(RawFix.from_sensor(lat, lon, ts, speed, heading))

        # Every config.tick_interval_ms:
        engine.tick(now_ms)

    Everything runs on the caller's thread. The only blocking call is the
    directions request made when starting or rerouting.

    Args:
        directions: Routing service used for the initial route and reroutes.
        listener:   Presentation listener; defaults to a no-op listener.
        config:     Optional NavConfig; defaults to NavConfig().
        nav_logger: Optional NavLogger; one writing to config.log_dir by default.
        self_id:    Our own id on the realtime channel, to ignore echoes.
    """

    def __init__(
        self,
        directions: DirectionsService,
        listener: Optional[NavigationListener] = None,
        config: Optional[NavConfig] = None,
        nav_logger: Optional[NavLogger] = None,
        self_id: Optional[str] = None,
    ) -> None:
        self.config = config or NavConfig()
        self.listener = listener or NavigationListener()
        self._directions = directions

        # Specialist modules
        self._tracker = RouteTracker(self.config, self.listener)
        self._smoother = PositionSmoother(self._on_smoothed, self.config)
        self._logger = nav_logger or NavLogger(self.config)
        self._peers = PeerRegistry(self_id)

        self._release_sensor: Optional[Callable[[], None]] = None
        self._last_viewport: Optional[ViewportParams] = None

    # ------------------------------------------------------------------
    # Navigation control
    # ------------------------------------------------------------------

    def attach_sensor(self, release: Callable[[], None]) -> None:
        """Register the callable that unsubscribes from the positioning sensor."""
        self._release_sensor = release

    def start_guidance(self, origin: LatLng, destination: LatLng) -> Tuple[bool, str]:
        """
        Request a route and begin guiding.

        Returns:
            (success, message)
        """
        logger.info(f"Requesting route: {origin} -> {destination}")
        try:
            route = self._directions.route(origin, destination)
        except DirectionsError as e:
            logger.warning(f"Route request failed: {e}")
            return False, f"No route available: {e}"
        except Exception as e:
            logger.exception("Directions service raised while requesting a route.")
            return False, f"No route available: {e}"

        if not route.steps:
            logger.warning("Route request returned no steps.")
            return False, "No route available: no steps."

        self._begin(route, destination)
        self._logger.save_route(route, destination, origin)
        return True, f"Route ready. {len(route.steps)} steps."

    def resume_cached_route(self) -> Tuple[bool, str]:
        """Resume guidance on the last cached route, e.g. after a restart offline."""
        cached = self._logger.load_route()
        if cached is None:
            return False, "No cached route."
        route, destination = cached
        if not route.steps:
            return False, "Cached route has no steps."
        self._begin(route, destination)
        return True, f"Resumed cached route. {len(route.steps)} steps."

    def _begin(self, route: Route, destination: LatLng) -> None:
        self._tracker.load_route(route, destination)
        first_instruction = route.steps[0].instruction
        logger.info(f"Route ready: {len(route.steps)} steps. First: {first_instruction}")
        self.listener.announce(f"Starting guidance. {first_instruction}")

    def stop_guidance(self) -> None:
        """
        Stop extrapolation, release the sensor and reset all state.
        Idempotent; every part runs even if an earlier one raises.
        """
        try:
            self._smoother.stop()
        finally:
            try:
                release, self._release_sensor = self._release_sensor, None
                if release is not None:
                    release()
            except Exception as e:
                logger.warning(f"Releasing sensor subscription failed: {e}")
            finally:
                self._tracker.stop()
                self._last_viewport = None

    # ------------------------------------------------------------------
    # Position input
    # ------------------------------------------------------------------

    def on_fix(self, fix: RawFix) -> ProgressResult:
        """
        Process one sensor fix: smooth, emit position/camera, then evaluate
        guidance and dispatch a reroute if one is due.
        """
        smoothed = self._smoother.update_position(fix)
        if smoothed is None:
            return ProgressResult(
                status=self._tracker.status,
                message="Fix dropped: invalid position.",
            )

        result = self._tracker.check_progress(smoothed, self._smoother.last_speed, fix.timestamp_ms)
        if result.status is not GuidanceStatus.IDLE:
            self._logger.log_event(result, smoothed)
        if result.reroute is not None:
            self._dispatch_reroute(result.reroute)
        return result

    def tick(self, now_ms: int) -> Optional[ViewportParams]:
        """Extrapolation step. Returns the new viewport, or None when idle."""
        if self._smoother.tick(now_ms) is None:
            return None
        return self._last_viewport

    def _on_smoothed(self, position: LatLng, heading_deg: Optional[float]) -> None:
        route = self._tracker.route
        guiding = self._tracker.is_active
        polyline = route.polyline if route is not None else ()

        display = position
        if guiding and route.has_geometry:
            display = project_point_to_polyline(position, polyline).snapped

        self.listener.position_updated(display, heading_deg)
        viewport = compute_viewport(
            display,
            heading_deg,
            self._smoother.last_speed,
            guiding,
            polyline if guiding else (),
            self.config,
        )
        self._last_viewport = viewport
        self.listener.viewport_updated(viewport)

    # ------------------------------------------------------------------
    # Rerouting
    # ------------------------------------------------------------------

    def _dispatch_reroute(self, request: RerouteRequest) -> None:
        try:
            route = self._directions.route(request.origin, request.destination)
        except DirectionsError as e:
            self._tracker.fail_reroute(request.request_id, str(e))
            return
        except Exception as e:
            logger.exception(f"Directions service raised during reroute #{request.request_id}.")
            self._tracker.fail_reroute(request.request_id, str(e) or type(e).__name__)
            return
        if self._tracker.complete_reroute(request.request_id, route):
            self._logger.save_route(route, request.destination, request.origin)

    # ------------------------------------------------------------------
    # Peers
    # ------------------------------------------------------------------

    def update_peer(self, peer: PeerPosition) -> None:
        if self._peers.upsert(peer):
            self.listener.peers_updated(self._peers.markers())

    def remove_peer(self, user_id: str) -> None:
        self._peers.remove(user_id)
        self.listener.peers_updated(self._peers.markers())

    # ------------------------------------------------------------------
    # Convenience read-only properties
    # ------------------------------------------------------------------

    @property
    def status(self) -> GuidanceStatus:
        return self._tracker.status

    @property
    def is_guiding(self) -> bool:
        return self._tracker.is_active

    @property
    def step_index(self) -> int:
        return self._tracker.step_index

    @property
    def remaining_steps(self) -> int:
        return self._tracker.remaining_steps

    @property
    def route(self) -> Optional[Route]:
        return self._tracker.route

    @property
    def smoother(self) -> PositionSmoother:
        return self._smoother

    @property
    def tracker(self) -> RouteTracker:
        return self._tracker

    @property
    def peers(self) -> List[PeerPosition]:
        return self._peers.markers()
