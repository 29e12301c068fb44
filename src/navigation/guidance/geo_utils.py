# geo_utils.py
# Pure mathematical / geographic helper functions.
# No side effects; only depends on models and constants.

import math
from typing import Sequence

import numpy as np

from .models import LatLng, PolylineProjection, SegmentProjection
from .nav_config import EARTH_RADIUS_M, METERS_PER_DEG_LAT, METERS_PER_DEG_LON_EQUATOR


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance between two points in metres.

    Args:
        lat1, lon1: Origin in decimal degrees.
        lat2, lon2: Destination in decimal degrees.

    Returns:
        Distance in metres.
    """
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def calculate_bearing(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Forward azimuth (bearing) from point 1 to point 2 in degrees [0, 360).

    Args:
        lat1, lon1: Origin in decimal degrees.
        lat2, lon2: Destination in decimal degrees.

    Returns:
        Bearing in degrees.
    """
    rlat1, rlon1 = math.radians(lat1), math.radians(lon1)
    rlat2, rlon2 = math.radians(lat2), math.radians(lon2)
    d_lon = rlon2 - rlon1
    y = math.sin(d_lon) * math.cos(rlat2)
    x = math.cos(rlat1) * math.sin(rlat2) - math.sin(rlat1) * math.cos(rlat2) * math.cos(d_lon)
    return (math.degrees(math.atan2(y, x)) + 360) % 360


def distance_m(a: LatLng, b: LatLng) -> float:
    return haversine_distance(a.lat, a.lon, b.lat, b.lon)


def bearing_deg(a: LatLng, b: LatLng) -> float:
    return calculate_bearing(a.lat, a.lon, b.lat, b.lon)


def forward_project(origin: LatLng, bearing: float, distance: float) -> LatLng:
    """
    Point reached by travelling `distance` metres along the great circle
    leaving `origin` with initial bearing `bearing` (degrees).

    Args:
        origin:   Start point.
        bearing:  Initial bearing in degrees (0 = north, 90 = east).
        distance: Distance along the surface in metres.

    Returns:
        Destination with longitude normalised to [-180, 180).
    """
    if distance == 0:
        return origin
    d = distance / EARTH_RADIUS_M
    theta = math.radians(bearing)
    lat1 = math.radians(origin.lat)
    lon1 = math.radians(origin.lon)

    lat2 = math.asin(
        math.sin(lat1) * math.cos(d)
        + math.cos(lat1) * math.sin(d) * math.cos(theta)
    )
    lon2 = lon1 + math.atan2(
        math.sin(theta) * math.sin(d) * math.cos(lat1),
        math.cos(d) - math.sin(lat1) * math.sin(lat2),
    )
    lon2_deg = (math.degrees(lon2) + 540) % 360 - 180
    return LatLng(math.degrees(lat2), lon2_deg)


# ---------------------------------------------------------------------------
# Route snapping
# ---------------------------------------------------------------------------

def _meters_per_degree(lat: float):
    return METERS_PER_DEG_LON_EQUATOR * math.cos(math.radians(lat)), METERS_PER_DEG_LAT


def project_point_to_segment(p: LatLng, a: LatLng, b: LatLng) -> SegmentProjection:
    """
    Closest point to `p` on segment a-b.

    Works in a local equirectangular frame scaled at the segment's mid-latitude.
    Fine for segments up to a few kilometres; not a geodesic projection.
    """
    mx, my = _meters_per_degree((a.lat + b.lat) / 2)
    px, py = p.lon * mx, p.lat * my
    ax, ay = a.lon * mx, a.lat * my
    bx, by = b.lon * mx, b.lat * my

    vx, vy = bx - ax, by - ay
    vv = vx * vx + vy * vy
    if vv == 0:
        return SegmentProjection(
            snapped=LatLng(a.lat, a.lon),
            t=0.0,
            distance_m=math.hypot(px - ax, py - ay),
        )

    t = ((px - ax) * vx + (py - ay) * vy) / vv
    t = max(0.0, min(1.0, t))
    cx, cy = ax + t * vx, ay + t * vy
    return SegmentProjection(
        snapped=LatLng(cy / my, cx / mx),
        t=t,
        distance_m=math.hypot(px - cx, py - cy),
    )


def _polyline_array(polyline: Sequence[LatLng]) -> np.ndarray:
    return np.array([(pt.lat, pt.lon) for pt in polyline], dtype=float)


def project_point_to_polyline(p: LatLng, polyline: Sequence[LatLng]) -> PolylineProjection:
    """
    Globally closest projection of `p` onto any segment of `polyline`.

    All segments are evaluated at once with numpy using the same local frame
    as project_point_to_segment (one frame per segment). Ties resolve to the
    lowest segment index.

    Returns:
        PolylineProjection; (p, -1, inf) when the polyline has < 2 points.
    """
    if len(polyline) < 2:
        return PolylineProjection(snapped=p, segment_index=-1, distance_m=math.inf)

    pts = _polyline_array(polyline)
    a, b = pts[:-1], pts[1:]

    mx = METERS_PER_DEG_LON_EQUATOR * np.cos(np.radians((a[:, 0] + b[:, 0]) / 2))
    my = METERS_PER_DEG_LAT
    px, py = p.lon * mx, p.lat * my
    ax, ay = a[:, 1] * mx, a[:, 0] * my
    bx, by = b[:, 1] * mx, b[:, 0] * my

    vx, vy = bx - ax, by - ay
    vv = vx * vx + vy * vy
    degenerate = vv == 0
    with np.errstate(divide="ignore", invalid="ignore"):
        t = np.where(degenerate, 0.0, ((px - ax) * vx + (py - ay) * vy) / np.where(degenerate, 1.0, vv))
    t = np.clip(t, 0.0, 1.0)
    cx, cy = ax + t * vx, ay + t * vy
    dist = np.hypot(px - cx, py - cy)

    i = int(np.argmin(dist))
    return PolylineProjection(
        snapped=LatLng(float(cy[i] / my), float(cx[i] / mx[i])),
        segment_index=i,
        distance_m=float(dist[i]),
    )


def distance_to_polyline_m(p: LatLng, polyline: Sequence[LatLng]) -> float:
    """Perpendicular distance to the route; inf when there is no route."""
    return project_point_to_polyline(p, polyline).distance_m


def closest_index_on_polyline(polyline: Sequence[LatLng], p: LatLng) -> int:
    """Index of the polyline vertex nearest to p (0 for an empty polyline)."""
    if not polyline:
        return 0
    pts = np.radians(_polyline_array(polyline))
    lat1, lon1 = math.radians(p.lat), math.radians(p.lon)
    h = (
        np.sin((pts[:, 0] - lat1) / 2) ** 2
        + math.cos(lat1) * np.cos(pts[:, 0]) * np.sin((pts[:, 1] - lon1) / 2) ** 2
    )
    return int(np.argmin(h))


def heading_along_polyline(polyline: Sequence[LatLng], p: LatLng) -> float:
    """Bearing from p toward the vertex after its closest one on the route."""
    idx = closest_index_on_polyline(polyline, p)
    ahead = polyline[min(idx + 1, len(polyline) - 1)]
    return bearing_deg(p, ahead)


def polyline_length_m(polyline: Sequence[LatLng]) -> float:
    return sum(distance_m(polyline[i - 1], polyline[i]) for i in range(1, len(polyline)))
