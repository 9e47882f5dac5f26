"""
Safety/amenity scorer.

A location scores well either because it has *many* relevant facilities nearby (count
signal) or because the *single closest* one is very near (proximity signal), even when the
in-radius count is zero. Per category:

    score        = mix_counts * count_subscore + (1 - mix_counts) * proximity_subscore
    contribution = weight * score

and the total is the clamped sum of contributions. Everything here is a pure function of
(catalog snapshot, origin, radius, weights, params).
"""

from __future__ import annotations

from typing import Mapping

from safetyscore.catalog.catalog import Catalog
from safetyscore.config.settings import ScoringSettings
from safetyscore.core.geo import GeoPoint
from safetyscore.domain.models import CATEGORIES, Category, CategoryScore, ScoreResult
from safetyscore.features.proximity import ProximityResult, compute_proximity
from safetyscore.scoring.composite import clamp01, count_subscore, proximity_subscore


def score_category(
    category: Category,
    proximity: ProximityResult,
    *,
    radius_m: float,
    weight: float,
    params: ScoringSettings,
) -> CategoryScore:
    count_score = count_subscore(
        proximity.count, k=getattr(params.count_k, category), curve=params.count_curve
    )
    proximity_score = proximity_subscore(
        proximity.nearest_distance_m,
        curve=params.proximity_curve,
        decay_m=getattr(params.decay_m, category),
        radius_m=radius_m,
        exponent=params.linear_exponent,
    )
    blended = clamp01(params.mix_counts * count_score + (1 - params.mix_counts) * proximity_score)
    return CategoryScore(
        category=category,
        count=proximity.count,
        nearest=proximity.nearest,
        nearest_distance_m=proximity.nearest_distance_m,
        count_score=count_score,
        proximity_score=proximity_score,
        score=blended,
        weight=weight,
        contribution=clamp01(weight * blended),
    )


def score(
    catalog: Catalog,
    origin: GeoPoint,
    radius_m: float,
    *,
    weights: Mapping[Category, float],
    params: ScoringSettings,
) -> ScoreResult:
    """Score `origin` against every category of `catalog`."""
    categories: dict[Category, CategoryScore] = {}
    for category in CATEGORIES:
        proximity = compute_proximity(catalog.points(category), origin=origin, radius_m=radius_m)
        categories[category] = score_category(
            category,
            proximity,
            radius_m=radius_m,
            weight=float(weights.get(category, 0.0)),
            params=params,
        )

    # Weights normally sum to 1, so this clamp only guards misconfiguration.
    total = clamp01(sum(c.contribution for c in categories.values()))
    return ScoreResult(
        lon=origin.lon,
        lat=origin.lat,
        radius_m=float(radius_m),
        weights={c: float(weights.get(c, 0.0)) for c in CATEGORIES},
        total_score=total,
        categories=categories,
    )
