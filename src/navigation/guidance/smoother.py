# smoother.py
# Speed-adaptive position smoothing plus dead reckoning between fixes.
# Feed update_position() from the sensor and call tick() every
# config.tick_interval_ms; both must run on the same thread.

import logging
from typing import Callable, Optional

from .geo_utils import forward_project
from .models import LatLng, RawFix
from .nav_config import MPS_TO_KMH, NavConfig

logger = logging.getLogger(__name__)

PositionObserver = Callable[[LatLng, Optional[float]], None]


class PositionSmoother:
    """
    Turns noisy fixes into a steady position/heading stream.

    Every fix is blended with the previous smoothed position (exponential
    smoothing on latitude and longitude independently, not a geodesic
    interpolation) and emitted immediately. Between fixes, tick() predicts
    the position forward from the last speed and heading.

    Usage:
        smoother = PositionSmoother(on_update, config)

        # Sensor callback:
        smoother.update_position(fix)

        # Scheduler, ~20 Hz:
        smoother.tick(now_ms)

    Args:
        on_update: Called with (position, heading_deg). Heading is None until
                   the sensor has reported one.
        config:    Optional NavConfig; defaults to NavConfig().
    """

    def __init__(self, on_update: PositionObserver, config: Optional[NavConfig] = None) -> None:
        self.config = config or NavConfig()
        self._on_update = on_update
        self._reset_state()

    def _reset_state(self) -> None:
        self._last_raw: Optional[LatLng] = None
        self._last_smoothed: Optional[LatLng] = None
        self._last_heading: Optional[float] = None
        self._last_speed: Optional[float] = None
        self._last_update_ms: Optional[int] = None
        self._extrapolating: bool = False

    # ------------------------------------------------------------------
    # Read-only properties
    # ------------------------------------------------------------------

    @property
    def last_smoothed(self) -> Optional[LatLng]:
        return self._last_smoothed

    @property
    def last_raw(self) -> Optional[LatLng]:
        return self._last_raw

    @property
    def last_heading(self) -> Optional[float]:
        return self._last_heading

    @property
    def last_speed(self) -> Optional[float]:
        return self._last_speed

    @property
    def extrapolation_active(self) -> bool:
        return self._extrapolating

    # ------------------------------------------------------------------
    # Fix path
    # ------------------------------------------------------------------

    def smooth(self, raw: LatLng, speed_mps: Optional[float]) -> LatLng:
        """Blend raw with the previous smoothed position (no state change)."""
        if self._last_smoothed is None:
            return raw
        alpha = self.config.smoothing_alpha((speed_mps or 0.0) * MPS_TO_KMH)
        prev = self._last_smoothed
        # an unchanged fix reproduces prev exactly
        return LatLng(
            prev.lat + (raw.lat - prev.lat) * (1 - alpha),
            prev.lon + (raw.lon - prev.lon) * (1 - alpha),
        )

    def update_position(self, fix: RawFix, now_ms: Optional[int] = None) -> Optional[LatLng]:
        """
        Consume one sensor fix.

        Args:
            fix:    Sensor fix. Speed and heading are re-sanitised, so
                    non-finite values count as unknown.
            now_ms: Receive time; defaults to the fix timestamp.

        Returns:
            The smoothed position, or None if the fix was dropped.
        """
        fix = RawFix.from_sensor(fix.lat, fix.lon, fix.timestamp_ms, fix.speed_mps, fix.heading_deg)
        raw = fix.position
        if not raw.is_finite():
            logger.warning(f"Dropping fix with non-finite position: {fix}")
            return None

        smoothed = self.smooth(raw, fix.speed_mps)
        heading = fix.heading_deg if fix.heading_deg is not None else self._last_heading

        self._last_raw = raw
        self._last_smoothed = smoothed
        self._last_heading = heading
        self._last_speed = fix.speed_mps
        self._last_update_ms = fix.timestamp_ms if now_ms is None else now_ms

        # Latency-critical: emit before re-arming prediction
        self._on_update(smoothed, heading)

        self._restart_extrapolation()
        return smoothed

    # ------------------------------------------------------------------
    # Dead reckoning
    # ------------------------------------------------------------------

    def _moving(self) -> bool:
        return (
            self._last_speed is not None
            and self._last_speed >= self.config.min_extrapolation_speed_mps
        )

    def _restart_extrapolation(self) -> None:
        # Re-anchored on every fix; stays off while stationary or headingless
        self._extrapolating = (
            self._last_smoothed is not None
            and self._last_heading is not None
            and self._moving()
        )

    def should_extrapolate(self, now_ms: int) -> bool:
        """Whether tick(now_ms) would emit a prediction."""
        if not self._extrapolating or self._last_update_ms is None:
            return False
        if not self._moving() or self._last_heading is None:
            return False
        elapsed_s = (now_ms - self._last_update_ms) / 1000.0
        return elapsed_s <= self.config.max_extrapolation_s

    def predict(self, now_ms: int) -> Optional[LatLng]:
        """Dead-reckoned position at now_ms, without emitting."""
        if self._last_smoothed is None or self._last_update_ms is None:
            return None
        if not self._moving() or self._last_heading is None:
            return self._last_smoothed
        dt = max(0.0, (now_ms - self._last_update_ms) / 1000.0)
        return forward_project(self._last_smoothed, self._last_heading, self._last_speed * dt)

    def tick(self, now_ms: int) -> Optional[LatLng]:
        """
        One extrapolation step.

        Returns:
            The predicted position (also sent to the observer), or None when
            the loop is idle. An idle loop stays off until the next fix.
        """
        if not self.should_extrapolate(now_ms):
            if self._extrapolating:
                logger.debug("Extrapolation stopped.")
            self._extrapolating = False
            return None

        predicted = self.predict(now_ms)
        self._on_update(predicted, self._last_heading)
        return predicted

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def stop(self) -> None:
        """Cancel extrapolation and forget all state. Safe to call repeatedly."""
        self._reset_state()
