# simulator.py
# Synthetic and recorded fix streams for driving the engine without a device.
#
# Usage:
#   player = SimLocationPlayer(route.polyline, interval_ms=500, jitter_m=3)
#   for fix in player.fixes(start_ms=0):
#       engine.on_fix(fix)
#
#   fixes = load_trace_csv("drive.csv")

import logging
import math
from typing import Iterator, List, Optional, Sequence

import numpy as np
import pandas as pd

from .geo_utils import bearing_deg, distance_m
from .models import LatLng, RawFix
from .nav_config import METERS_PER_DEG_LAT, METERS_PER_DEG_LON_EQUATOR

logger = logging.getLogger(__name__)

TRACE_COLUMNS = ("lat", "lon", "timestamp_ms")
OPTIONAL_TRACE_COLUMNS = ("speed_mps", "heading_deg")


class SimLocationPlayer:
    """
    Replays a polyline as a stream of fixes.

    Heading is the bearing from the previous waypoint; speed is the distance
    from the previous waypoint over the interval (unknown for the first fix).

    Args:
        route:       Waypoints to visit in order.
        interval_ms: Time between fixes.
        loop:        Start over after the last waypoint.
        jitter_m:    Uniform noise added to each fix, in metres.
        seed:        RNG seed for reproducible jitter.
    """

    def __init__(
        self,
        route: Sequence[LatLng],
        interval_ms: int = 800,
        loop: bool = False,
        jitter_m: float = 3.0,
        seed: Optional[int] = None,
    ) -> None:
        self.route = list(route)
        self.interval_ms = interval_ms
        self.loop = loop
        self.jitter_m = jitter_m
        self._rng = np.random.default_rng(seed)

    def _with_jitter(self, p: LatLng) -> LatLng:
        if not self.jitter_m:
            return p
        deg_lat = self.jitter_m / METERS_PER_DEG_LAT
        deg_lon = self.jitter_m / (METERS_PER_DEG_LON_EQUATOR * math.cos(math.radians(p.lat)))
        d_lat, d_lon = self._rng.uniform(-1.0, 1.0, size=2)
        return LatLng(p.lat + d_lat * deg_lat, p.lon + d_lon * deg_lon)

    def fixes(self, start_ms: int = 0, max_fixes: Optional[int] = None) -> Iterator[RawFix]:
        """Yield fixes; with loop=True, max_fixes bounds the stream."""
        if not self.route:
            return
        count = 0
        i = 0
        ts = start_ms
        dt_s = self.interval_ms / 1000.0
        while max_fixes is None or count < max_fixes:
            base = self.route[i]
            prev = self.route[i - 1] if i > 0 else None
            heading = bearing_deg(prev, base) if prev is not None and prev != base else None
            speed = distance_m(prev, base) / dt_s if prev is not None and dt_s > 0 else None
            p = self._with_jitter(base)
            yield RawFix(p.lat, p.lon, ts, speed_mps=speed, heading_deg=heading)

            count += 1
            ts += self.interval_ms
            i += 1
            if i >= len(self.route):
                if not self.loop:
                    return
                i = 0


def densify(polyline: Sequence[LatLng], spacing_m: float) -> List[LatLng]:
    """Insert points so consecutive points are at most spacing_m apart."""
    if len(polyline) < 2:
        return list(polyline)
    out: List[LatLng] = [polyline[0]]
    for a, b in zip(polyline[:-1], polyline[1:]):
        n = max(1, int(math.ceil(distance_m(a, b) / spacing_m)))
        for t in np.linspace(0.0, 1.0, n + 1)[1:]:
            out.append(LatLng(a.lat + (b.lat - a.lat) * t, a.lon + (b.lon - a.lon) * t))
    return out


def load_trace_csv(path: str) -> List[RawFix]:
    """
    Read a recorded drive.

    Expected columns: lat, lon, timestamp_ms; optional speed_mps, heading_deg.
    Rows with a missing position are skipped; missing speed/heading are
    treated as unknown.

    Raises:
        ValueError: when a required column is missing.
    """
    df = pd.read_csv(path)
    missing = [c for c in TRACE_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"{path}: missing columns {missing}")
    for col in OPTIONAL_TRACE_COLUMNS:
        if col not in df.columns:
            df[col] = np.nan

    before = len(df)
    df = df.dropna(subset=["lat", "lon", "timestamp_ms"]).sort_values("timestamp_ms")
    if len(df) < before:
        logger.warning(f"{path}: skipped {before - len(df)} rows without a position.")

    return [
        RawFix.from_sensor(row.lat, row.lon, int(row.timestamp_ms), row.speed_mps, row.heading_deg)
        for row in df.itertuples(index=False)
    ]


def save_trace_csv(fixes: Sequence[RawFix], path: str) -> None:
    pd.DataFrame(
        [
            {
                "lat": f.lat,
                "lon": f.lon,
                "timestamp_ms": f.timestamp_ms,
                "speed_mps": f.speed_mps,
                "heading_deg": f.heading_deg,
            }
            for f in fixes
        ],
        columns=list(TRACE_COLUMNS + OPTIONAL_TRACE_COLUMNS),
    ).to_csv(path, index=False)
