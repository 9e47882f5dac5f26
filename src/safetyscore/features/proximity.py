"""
Proximity feature (category-level).

This module lives in the `features/` layer:
- The catalog (`catalog/`) provides immutable per-category point lists.
- Features convert those lists into raw, explainable metrics for one query origin.
- Scoring (`scoring/`) later turns metrics into bounded 0..1 sub-scores.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from safetyscore.core.geo import GeoPoint
from safetyscore.core.spatial import Neighbor, nearest, within
from safetyscore.domain.models import Point


@dataclass(frozen=True)
class ProximityResult:
    # `nearest` is taken over the whole category, so it may lie outside the radius.
    count: int
    nearest: Point | None
    nearest_distance_m: float | None
    within: tuple[Neighbor, ...]


def compute_proximity(points: Sequence[Point], *, origin: GeoPoint, radius_m: float) -> ProximityResult:
    """Compute in-radius count/listing and overall nearest point for one category."""
    closest = nearest(points, origin)
    inside = tuple(within(points, origin, radius_m))
    return ProximityResult(
        count=len(inside),
        nearest=closest.point if closest else None,
        nearest_distance_m=closest.distance_m if closest else None,
        within=inside,
    )
