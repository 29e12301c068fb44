# viewpoint.py
# Speed-adaptive camera parameters for the follow camera.
# Pure functions: the presentation layer applies the returned values.

from typing import Optional, Sequence, Tuple

from .geo_utils import forward_project, heading_along_polyline
from .models import LatLng, ViewportParams
from .nav_config import MPS_TO_KMH, NavConfig

_DEFAULT_CONFIG = NavConfig()

# Free-follow camera when no route is being guided
FOLLOW_ZOOM = 16.5
FOLLOW_PITCH = 45.0
FOLLOW_STOPPED_ZOOM = 17.0


def camera_settings(
    speed_kmh: float,
    is_guiding: bool = True,
    config: Optional[NavConfig] = None,
) -> Tuple[float, float]:
    """
    Zoom and pitch for the current speed.

    Args:
        speed_kmh:  Instantaneous speed in km/h.
        is_guiding: True while a route is being followed.
        config:     Speed band thresholds.

    Returns:
        (zoom, pitch_deg)
    """
    cfg = config or _DEFAULT_CONFIG

    if not is_guiding:
        if speed_kmh < cfg.stopped_kmh:
            return FOLLOW_STOPPED_ZOOM, 0.0
        return FOLLOW_ZOOM, FOLLOW_PITCH

    if speed_kmh < cfg.stopped_kmh:
        return 18.0, 0.0           # top-down while stopped
    elif speed_kmh < cfg.slow_kmh:
        return 17.5, 45.0
    elif speed_kmh < cfg.medium_kmh:
        return 17.0, 45.0
    elif speed_kmh < cfg.fast_kmh:
        return 16.5, 60.0
    return 16.0, 60.0


def forward_bias_meters(speed_kmh: float, zoom: float, config: Optional[NavConfig] = None) -> float:
    """
    How far ahead of the vehicle the camera centre is placed.

    Grows with speed (a fixed look-ahead time) and doubles per zoom level
    below the reference zoom so the on-screen offset stays comparable.
    Zero below the moving threshold.
    """
    cfg = config or _DEFAULT_CONFIG
    speed_mps = speed_kmh / MPS_TO_KMH
    if speed_mps < cfg.moving_speed_mps:
        return 0.0
    base = min(speed_mps * cfg.bias_lookahead_s, cfg.max_bias_m)
    return base * 2 ** (cfg.bias_reference_zoom - zoom)


def compute_viewport(
    position: LatLng,
    heading_deg: Optional[float],
    speed_mps: Optional[float],
    is_guiding: bool,
    polyline: Sequence[LatLng] = (),
    config: Optional[NavConfig] = None,
) -> ViewportParams:
    """
    Full camera state for one frame.

    Heading falls back to the direction of the route ahead when the sensor
    has none, and to north only when there is no route either.
    """
    cfg = config or _DEFAULT_CONFIG
    speed_kmh = (speed_mps or 0.0) * MPS_TO_KMH
    zoom, pitch = camera_settings(speed_kmh, is_guiding, cfg)

    heading = heading_deg
    if heading is None and len(polyline) > 1:
        heading = heading_along_polyline(polyline, position)
    if heading is None:
        heading = 0.0

    bias = forward_bias_meters(speed_kmh, zoom, cfg)
    center = forward_project(position, heading, bias) if bias > 0 else position
    return ViewportParams(center=center, heading_deg=heading, pitch_deg=pitch, zoom=zoom)
