"""Spherical geometry primitives shared by the routing and planning services.

All distances are in meters on a sphere of radius ``EARTH_RADIUS_M``. Inputs
are ``Coordinates`` (decimal degrees).
"""
from __future__ import annotations

import math
from typing import Optional, Union

from domain.models import Coordinates, Place

EARTH_RADIUS_M = 6_371_000.0
FALLBACK_DRIVING_SPEED_KMH = 30.0


def round_half_up(value: float) -> int:
    """Round like a calculator (0.5 -> 1), not banker's rounding."""
    return int(math.floor(value + 0.5))


def has_usable_coordinates(item: Union[Place, Coordinates, None]) -> bool:
    """True when ``item`` carries coordinates that were actually geocoded."""
    if item is None:
        return False
    coords: Optional[Coordinates] = item.coordinates if isinstance(item, Place) else item
    if coords is None:
        return False
    return not coords.is_unset


def spherical_distance(a: Coordinates, b: Coordinates) -> float:
    """Great-circle (haversine) distance between two points, in meters."""
    lat1 = math.radians(a.lat)
    lat2 = math.radians(b.lat)
    dlat = math.radians(b.lat - a.lat)
    dlng = math.radians(b.lng - a.lng)
    h = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return EARTH_RADIUS_M * c


def initial_bearing(a: Coordinates, b: Coordinates) -> float:
    """Initial great-circle bearing from ``a`` to ``b``, in radians."""
    lat1 = math.radians(a.lat)
    lat2 = math.radians(b.lat)
    dlng = math.radians(b.lng - a.lng)
    y = math.sin(dlng) * math.cos(lat2)
    x = math.cos(lat1) * math.sin(lat2) - math.sin(lat1) * math.cos(lat2) * math.cos(dlng)
    return math.atan2(y, x)


def cross_track_distance(point: Coordinates, start: Coordinates, end: Coordinates) -> float:
    """
    Unsigned distance from ``point`` to the great circle through start/end.

    This is the distance to the infinite line, so points before ``start`` or
    past ``end`` can report less than their real distance to the segment.
    Use ``point_to_segment_distance`` for route corridors.
    """
    if start == end:
        return spherical_distance(point, start)
    angular_13 = spherical_distance(start, point) / EARTH_RADIUS_M
    theta_13 = initial_bearing(start, point)
    theta_12 = initial_bearing(start, end)
    value = math.sin(angular_13) * math.sin(theta_13 - theta_12)
    return abs(math.asin(max(-1.0, min(1.0, value)))) * EARTH_RADIUS_M


def along_track_distance(point: Coordinates, start: Coordinates, end: Coordinates) -> float:
    """
    Signed distance from ``start`` to the projection of ``point`` on the
    start->end great circle. Negative when the projection lies behind start.
    """
    if start == end:
        return 0.0
    angular_13 = spherical_distance(start, point) / EARTH_RADIUS_M
    theta_13 = initial_bearing(start, point)
    theta_12 = initial_bearing(start, end)
    angular_xt = math.asin(
        max(-1.0, min(1.0, math.sin(angular_13) * math.sin(theta_13 - theta_12)))
    )
    cos_xt = math.cos(angular_xt)
    if cos_xt == 0:
        return 0.0
    ratio = max(-1.0, min(1.0, math.cos(angular_13) / cos_xt))
    along = math.acos(ratio) * EARTH_RADIUS_M
    return along if math.cos(theta_13 - theta_12) >= 0 else -along


def point_to_segment_distance(point: Coordinates, seg_start: Coordinates, seg_end: Coordinates) -> float:
    """
    Distance from ``point`` to the finite great-circle segment, in meters.

    Cross-track distance while the projection falls inside the segment;
    otherwise the distance to the nearer endpoint. A zero-length segment is
    the plain distance to its start.
    """
    if seg_start == seg_end:
        return spherical_distance(point, seg_start)
    along = along_track_distance(point, seg_start, seg_end)
    length = spherical_distance(seg_start, seg_end)
    if along < 0 or along > length:
        return min(spherical_distance(point, seg_start), spherical_distance(point, seg_end))
    return cross_track_distance(point, seg_start, seg_end)


def midpoint(a: Coordinates, b: Coordinates) -> Coordinates:
    """Arithmetic midpoint; good enough for city-scale search centres."""
    return Coordinates(lat=(a.lat + b.lat) / 2, lng=(a.lng + b.lng) / 2)


def estimate_driving_seconds(distance_m: float, speed_kmh: float = FALLBACK_DRIVING_SPEED_KMH) -> int:
    """Rough drive time for a straight-line distance at average city speed."""
    speed_ms = speed_kmh * 1000 / 3600
    return round_half_up(distance_m / speed_ms)
