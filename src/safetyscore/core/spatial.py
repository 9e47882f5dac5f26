"""
Spatial queries over a category's point list.

Both queries are plain linear scans: catalogs are a few thousand points per category at
most, and a scan keeps tie-breaking trivially deterministic (catalog order wins).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from safetyscore.core.geo import GeoPoint, haversine_m
from safetyscore.domain.models import Point


@dataclass(frozen=True)
class Neighbor:
    point: Point
    distance_m: float


def _distance_to(origin: GeoPoint, point: Point) -> float:
    return haversine_m(origin, GeoPoint(lat=point.lat, lon=point.lon))


def nearest(points: Iterable[Point], origin: GeoPoint) -> Neighbor | None:
    """Return the closest point to `origin`, or None for an empty sequence.

    Equal distances keep the first point encountered.
    """
    best: Neighbor | None = None
    for p in points:
        d = _distance_to(origin, p)
        if best is None or d < best.distance_m:
            best = Neighbor(point=p, distance_m=d)
    return best


def within(points: Iterable[Point], origin: GeoPoint, radius_m: float) -> list[Neighbor]:
    """Return every point with distance <= `radius_m`, sorted ascending by distance.

    The boundary is inclusive. A radius of zero or less yields an empty list.
    """
    r = float(radius_m)
    if r <= 0:
        return []
    out: list[Neighbor] = []
    for p in points:
        d = _distance_to(origin, p)
        if d <= r:
            out.append(Neighbor(point=p, distance_m=d))
    # `sorted` is stable, so ties stay in catalog order.
    return sorted(out, key=lambda n: n.distance_m)
