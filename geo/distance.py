"""
Purpose: Great-circle distance between two coordinates.
What it does:
Haversine formula on a spherical earth (mean radius 6371 km), returned in meters.
Pure functions, no I/O.
"""

from __future__ import annotations

import math
from typing import Tuple

LatLon = Tuple[float, float]

EARTH_RADIUS_METERS = 6371000.0


def haversine_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Distance in meters between (lat1, lon1) and (lat2, lon2), both in degrees.
    Symmetric: haversine_meters(a, b) == haversine_meters(b, a).
    """
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_METERS * c


def point_in_radius(point: LatLon, center: LatLon, radius_meters: float) -> bool:
    """
    True when `point` lies at or inside `radius_meters` of `center`.
    The boundary is inclusive and exact.
    """
    return haversine_meters(point[0], point[1], center[0], center[1]) <= radius_meters
