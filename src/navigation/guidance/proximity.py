# proximity.py
# Circular zone checks and the geofenced start/finish trigger used when a
# previously recorded drive is replayed.

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .geo_utils import distance_m, haversine_distance
from .models import LatLng
from .nav_config import NavConfig

logger = logging.getLogger(__name__)


class ZoneState(Enum):
    OUTSIDE = "outside"
    NEAR    = "near"       # inside near_factor * radius, for UI highlighting
    INSIDE  = "inside"


def within(a: LatLng, b: LatLng, radius_m: float) -> bool:
    return distance_m(a, b) <= radius_m


def classify_distance(dist_m: float, radius_m: float, near_factor: float = 2.0) -> ZoneState:
    if radius_m <= 0:
        raise ValueError(f"radius_m must be positive, got {radius_m}")
    if dist_m <= radius_m:
        return ZoneState.INSIDE
    if dist_m <= radius_m * near_factor:
        return ZoneState.NEAR
    return ZoneState.OUTSIDE


def zone_state(position: LatLng, center: LatLng, radius_m: float, near_factor: float = 2.0) -> ZoneState:
    """Where position sits relative to a circular zone around center."""
    return classify_distance(distance_m(position, center), radius_m, near_factor)


# ---------------------------------------------------------------------------
# Recording
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TrackPoint:
    lat: float
    lon: float
    ts_ms: int


@dataclass
class DriveRecording:
    """In-memory drive recording with summary statistics."""
    recording: bool = False
    start_time_ms: Optional[int] = None
    points: List[TrackPoint] = field(default_factory=list)

    def start(self, now_ms: int) -> bool:
        if self.recording:
            return False
        self.recording = True
        self.start_time_ms = now_ms
        self.points = []
        return True

    def stop(self) -> None:
        self.recording = False

    def add(self, point: TrackPoint) -> None:
        if self.recording:
            self.points.append(point)

    def reset(self) -> None:
        self.recording = False
        self.start_time_ms = None
        self.points = []

    def distance_km(self) -> float:
        pts = self.points
        return sum(
            haversine_distance(pts[i - 1].lat, pts[i - 1].lon, pts[i].lat, pts[i].lon)
            for i in range(1, len(pts))
        ) / 1000.0

    def duration_sec(self) -> int:
        if len(self.points) < 2:
            return 0
        return max(0, (self.points[-1].ts_ms - self.points[0].ts_ms) // 1000)

    def avg_kmh(self) -> float:
        sec = self.duration_sec()
        return self.distance_km() / (sec / 3600) if sec > 0 else 0.0

    def is_loop(self, threshold_m: float = 100.0) -> bool:
        """True when the drive ends close to where it started."""
        if len(self.points) < 2:
            return False
        first, last = self.points[0], self.points[-1]
        return haversine_distance(first.lat, first.lon, last.lat, last.lon) < threshold_m


# ---------------------------------------------------------------------------
# Geofenced replay
# ---------------------------------------------------------------------------

class TriggerEvent(Enum):
    NONE     = "none"
    STARTED  = "started"
    FINISHED = "finished"


class RouteReplayTrigger:
    """
    Auto start/stop for re-driving a recorded route.

    Entering the start zone while idle begins a recording; entering the
    finish zone after at least `min_points` recorded points ends it. A loop
    drive (start == finish) therefore does not finish the instant it starts.

    Args:
        start:     Start point of the recorded route.
        finish:    Finish point of the recorded route.
        config:    Radii and minimum point count.
        recording: Optional recording to fill; a fresh one by default.
    """

    def __init__(
        self,
        start: LatLng,
        finish: LatLng,
        config: Optional[NavConfig] = None,
        recording: Optional[DriveRecording] = None,
    ) -> None:
        self.config = config or NavConfig()
        self.start = start
        self.finish = finish
        self.recording = recording or DriveRecording()
        self.start_zone = ZoneState.OUTSIDE
        self.finish_zone = ZoneState.OUTSIDE
        self._finished = False

    @property
    def finished(self) -> bool:
        return self._finished

    def feed(self, position: LatLng, ts_ms: int) -> TriggerEvent:
        """Process one position. Returns the trigger event it caused, if any."""
        cfg = self.config
        self.start_zone = zone_state(position, self.start, cfg.replay_start_radius_m, cfg.near_factor)
        self.finish_zone = zone_state(position, self.finish, cfg.replay_finish_radius_m, cfg.near_factor)

        if self._finished:
            return TriggerEvent.NONE

        if not self.recording.recording:
            if self.start_zone is ZoneState.INSIDE:
                self.recording.start(ts_ms)
                self.recording.add(TrackPoint(position.lat, position.lon, ts_ms))
                logger.info("Replay started: entered start zone.")
                return TriggerEvent.STARTED
            return TriggerEvent.NONE

        self.recording.add(TrackPoint(position.lat, position.lon, ts_ms))
        if (
            self.finish_zone is ZoneState.INSIDE
            and len(self.recording.points) >= cfg.replay_min_points
        ):
            self.recording.stop()
            self._finished = True
            logger.info(
                f"Replay finished: {len(self.recording.points)} points, "
                f"{self.recording.distance_km():.2f} km."
            )
            return TriggerEvent.FINISHED
        return TriggerEvent.NONE

    def reset(self) -> None:
        self.recording.reset()
        self.start_zone = ZoneState.OUTSIDE
        self.finish_zone = ZoneState.OUTSIDE
        self._finished = False
