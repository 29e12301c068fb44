# nav_config.py
# All tuneable constants in one place.
# Pass a NavConfig instance to every module that needs settings.

import os
from dataclasses import dataclass


# ---------------------------------------------------------------------------
# Unit helpers
# ---------------------------------------------------------------------------

MPS_TO_KMH: float = 3.6

EARTH_RADIUS_M: float = 6_371_000.0

# Local equirectangular scale (metres per degree)
METERS_PER_DEG_LON_EQUATOR: float = 111_320.0
METERS_PER_DEG_LAT: float = 110_574.0


# ---------------------------------------------------------------------------
# Main config
# ---------------------------------------------------------------------------

@dataclass
class NavConfig:
    # Smoothing: alpha is the weight kept on the previous smoothed position
    smoothing_fast_kmh: float = 50.0
    smoothing_medium_kmh: float = 20.0
    alpha_fast: float = 0.3
    alpha_medium: float = 0.5
    alpha_slow: float = 0.7

    # Dead reckoning
    tick_interval_ms: int = 50             # ~20 Hz
    min_extrapolation_speed_mps: float = 0.5
    max_extrapolation_s: float = 5.0       # stop predicting when the sensor goes quiet

    # Camera
    stopped_kmh: float = 3.0
    slow_kmh: float = 30.0
    medium_kmh: float = 60.0
    fast_kmh: float = 90.0
    moving_speed_mps: float = 0.8          # below this the camera is not biased
    bias_lookahead_s: float = 2.0
    max_bias_m: float = 150.0
    bias_reference_zoom: float = 17.0

    # Progress tracking
    step_arrival_m: float = 50.0
    off_route_threshold_m: float = 80.0
    reroute_cooldown_ms: int = 5_000       # minimum gap between reroute attempts

    # Proximity / geofenced replay
    near_factor: float = 2.0
    replay_start_radius_m: float = 30.0
    replay_finish_radius_m: float = 30.0
    replay_min_points: int = 10
    loop_threshold_m: float = 100.0

    # Logging
    log_dir: str = "."                     # directory for saved JSON files
    route_filename: str = "last_route.json"
    session_filename: str = "nav_session.jsonl"

    @property
    def route_filepath(self) -> str:
        return os.path.join(self.log_dir, self.route_filename)

    @property
    def session_filepath(self) -> str:
        return os.path.join(self.log_dir, self.session_filename)

    def smoothing_alpha(self, speed_kmh: float) -> float:
        """Inertia kept on the previous position for a given speed band."""
        if speed_kmh > self.smoothing_fast_kmh:
            return self.alpha_fast
        if speed_kmh > self.smoothing_medium_kmh:
            return self.alpha_medium
        return self.alpha_slow

    def pre_announce_m(self, speed_mps: float) -> float:
        """Speed-scaled distance at which a maneuver is announced."""
        if speed_mps >= 25:      # ~90 km/h
            return 500.0
        if speed_mps >= 15:      # ~54 km/h
            return 300.0
        if speed_mps >= 8:       # ~29 km/h
            return 200.0
        return 100.0
