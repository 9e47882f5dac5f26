from __future__ import annotations
from dataclasses import dataclass
from math import asin, cos, isfinite, radians, sin, sqrt

"""
Geospatial helpers.

We keep a tiny geometry layer here so the catalog, spatial query and scoring modules
can do distance calculations without pulling in heavier GIS dependencies.
"""

EARTH_RADIUS_M = 6_371_000


@dataclass(frozen=True)
class GeoPoint:
    """A latitude/longitude pair in decimal degrees."""

    lat: float
    lon: float


def haversine_m(a: GeoPoint, b: GeoPoint) -> float:
    """Compute great-circle distance in meters between two points."""
    lat1 = radians(a.lat)
    lon1 = radians(a.lon)
    lat2 = radians(b.lat)
    lon2 = radians(b.lon)

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    h = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    # Floating-point overshoot near coincident/antipodal points can push sqrt(h) past 1.
    return 2 * EARTH_RADIUS_M * asin(min(1.0, sqrt(h)))


def distance_m(lon1: float, lat1: float, lon2: float, lat2: float) -> float:
    """Haversine distance in meters, taking lon/lat argument order like GeoJSON."""
    return haversine_m(GeoPoint(lat=lat1, lon=lon1), GeoPoint(lat=lat2, lon=lon2))


def is_valid_lon_lat(lon: float, lat: float) -> bool:
    """True when both coordinates are finite and inside WGS84 bounds."""
    if not (isfinite(lon) and isfinite(lat)):
        return False
    return -180.0 <= lon <= 180.0 and -90.0 <= lat <= 90.0
