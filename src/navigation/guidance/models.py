# models.py
# Shared data structures and enums used across all modules.

import math
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


# ---------------------------------------------------------------------------
# Coordinate
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LatLng:
    """Immutable geographic coordinate in decimal degrees."""
    lat: float
    lon: float

    def is_finite(self) -> bool:
        return math.isfinite(self.lat) and math.isfinite(self.lon)

    def to_dict(self) -> dict:
        return {"lat": self.lat, "lon": self.lon}

    @staticmethod
    def from_dict(d: dict) -> "LatLng":
        return LatLng(float(d["lat"]), float(d["lon"]))


# ---------------------------------------------------------------------------
# Sensor input
# ---------------------------------------------------------------------------

def _finite_or_none(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    try:
        value = float(value)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


@dataclass(frozen=True)
class RawFix:
    """One reading from the positioning sensor. speed/heading None = unknown."""
    lat: float
    lon: float
    timestamp_ms: int
    speed_mps: Optional[float] = None
    heading_deg: Optional[float] = None

    @property
    def position(self) -> LatLng:
        return LatLng(self.lat, self.lon)

    @staticmethod
    def from_sensor(
        lat: float,
        lon: float,
        timestamp_ms: int,
        speed_mps: Optional[float] = None,
        heading_deg: Optional[float] = None,
    ) -> "RawFix":
        """
        Build a fix from raw sensor values.

        Non-finite or negative speed (some platforms report -1 for "no data")
        and non-finite heading become None. Latitude/longitude are kept as-is
        so the smoother can decide to drop the fix.
        """
        speed = _finite_or_none(speed_mps)
        if speed is not None and speed < 0:
            speed = None
        heading = _finite_or_none(heading_deg)
        if heading is not None:
            heading = heading % 360.0
        return RawFix(
            lat=float(lat),
            lon=float(lon),
            timestamp_ms=int(timestamp_ms),
            speed_mps=speed,
            heading_deg=heading,
        )


# ---------------------------------------------------------------------------
# Route / steps
# ---------------------------------------------------------------------------

class Maneuver(Enum):
    TURN_LEFT         = "turn-left"
    TURN_RIGHT        = "turn-right"
    TURN_SLIGHT_LEFT  = "turn-slight-left"
    TURN_SLIGHT_RIGHT = "turn-slight-right"
    TURN_SHARP_LEFT   = "turn-sharp-left"
    TURN_SHARP_RIGHT  = "turn-sharp-right"
    UTURN_LEFT        = "uturn-left"
    UTURN_RIGHT       = "uturn-right"
    MERGE             = "merge"
    ROUNDABOUT_LEFT   = "roundabout-left"
    ROUNDABOUT_RIGHT  = "roundabout-right"
    STRAIGHT          = "straight"
    RAMP_LEFT         = "ramp-left"
    RAMP_RIGHT        = "ramp-right"
    FORK_LEFT         = "fork-left"
    FORK_RIGHT        = "fork-right"
    KEEP_LEFT         = "keep-left"
    KEEP_RIGHT        = "keep-right"
    UNKNOWN           = "unknown"

    @staticmethod
    def parse(tag: Optional[str]) -> "Maneuver":
        try:
            return Maneuver(tag)
        except ValueError:
            return Maneuver.UNKNOWN


_TAG_RE = re.compile(r"<[^>]*>")


def strip_html(text: str) -> str:
    """Drop markup from a directions instruction."""
    return _TAG_RE.sub("", text or "").replace("&nbsp;", " ").strip()


@dataclass(frozen=True)
class Lane:
    direction: str               # "left" | "through" | "right"
    active: bool


@dataclass(frozen=True)
class Step:
    """A single maneuver in a route."""
    instruction: str
    maneuver: Maneuver
    endpoint: LatLng
    distance_label: str = ""
    lanes: Tuple[Lane, ...] = ()

    def to_dict(self) -> dict:
        return {
            "instruction": self.instruction,
            "maneuver": self.maneuver.value,
            "endpoint": self.endpoint.to_dict(),
            "distance_label": self.distance_label,
            "lanes": [{"direction": ln.direction, "active": ln.active} for ln in self.lanes],
        }

    @staticmethod
    def from_dict(d: dict) -> "Step":
        return Step(
            instruction=d["instruction"],
            maneuver=Maneuver.parse(d.get("maneuver")),
            endpoint=LatLng.from_dict(d["endpoint"]),
            distance_label=d.get("distance_label", ""),
            lanes=tuple(Lane(ln["direction"], bool(ln["active"])) for ln in d.get("lanes", [])),
        )


@dataclass(frozen=True)
class Route:
    """Polyline + steps. Replaced wholesale on reroute, never mutated."""
    polyline: Tuple[LatLng, ...]
    steps: Tuple[Step, ...]
    total_distance_m: float = 0.0
    total_duration_s: float = 0.0

    @property
    def has_geometry(self) -> bool:
        return len(self.polyline) >= 2

    def to_dict(self) -> dict:
        return {
            "polyline": [p.to_dict() for p in self.polyline],
            "steps": [s.to_dict() for s in self.steps],
            "total_distance_m": self.total_distance_m,
            "total_duration_s": self.total_duration_s,
        }

    @staticmethod
    def from_dict(d: dict) -> "Route":
        return Route(
            polyline=tuple(LatLng.from_dict(p) for p in d.get("polyline", [])),
            steps=tuple(Step.from_dict(s) for s in d["steps"]),
            total_distance_m=float(d.get("total_distance_m", 0.0)),
            total_duration_s=float(d.get("total_duration_s", 0.0)),
        )


# ---------------------------------------------------------------------------
# Geometry results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SegmentProjection:
    snapped: LatLng
    t: float                     # 0 at segment start, 1 at segment end
    distance_m: float            # planar approximation


@dataclass(frozen=True)
class PolylineProjection:
    snapped: LatLng
    segment_index: int           # -1 when there is no geometry
    distance_m: float            # inf when there is no geometry


# ---------------------------------------------------------------------------
# Navigation status
# ---------------------------------------------------------------------------

class GuidanceStatus(Enum):
    IDLE    = "idle"
    GUIDING = "guiding"
    ARRIVED = "arrived"


@dataclass(frozen=True)
class RerouteRequest:
    request_id: int
    origin: LatLng
    destination: LatLng


@dataclass
class ProgressResult:
    """Returned by RouteTracker.check_progress() on every position update."""
    status: GuidanceStatus
    message: str
    distance_to_next: Optional[float] = None   # metres
    current_step: Optional[Step] = None
    snapped: Optional[LatLng] = None
    off_route_m: Optional[float] = None
    reroute: Optional[RerouteRequest] = None


@dataclass(frozen=True)
class ViewportParams:
    """Camera parameters for the presentation layer. Recomputed every tick."""
    center: LatLng
    heading_deg: float
    pitch_deg: float
    zoom: float


# ---------------------------------------------------------------------------
# Peers
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PeerPosition:
    """Externally supplied convoy participant marker. Displayed as-is."""
    user_id: str
    lat: float
    lon: float
    speed_mps: Optional[float] = None
    heading_deg: Optional[float] = None
    updated_at: str = ""
    display_name: Optional[str] = None
    extra: dict = field(default_factory=dict, compare=False)
