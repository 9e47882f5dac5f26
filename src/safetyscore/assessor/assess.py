from __future__ import annotations

# This module is the "orchestrator" for point assessment.
# It wires together:
# - query input validation (QueryOrigin)
# - the catalog handle (catalog/)
# - scoring (scoring/safety.py) and explanations (scoring/explain.py)
# - the optional OSM fallback source (ingestion/overpass_client.py)
#
# Each layer stays focused: the catalog owns data, features/scoring do math, this file orchestrates.

import logging
from typing import Protocol

import httpx

from safetyscore.catalog.catalog import Catalog, default_catalog
from safetyscore.config.settings import Settings, get_settings
from safetyscore.core.geo import GeoPoint
from safetyscore.domain.models import (
    CATEGORIES,
    Category,
    CategoryWeights,
    ExplainedScore,
    NearbyPoint,
    NearbyResult,
    Point,
    QueryOrigin,
    ScoreResult,
)
from safetyscore.scoring.composite import normalize_weights
from safetyscore.scoring.explain import explain
from safetyscore.scoring.safety import score

logger = logging.getLogger(__name__)


class FallbackSource(Protocol):
    """Anything that can supply extra points around an origin (e.g., `OverpassClient`)."""

    def fetch_points(self, *, lon: float, lat: float, radius_m: float) -> list[Point]: ...


def _validated_origin(lon: float, lat: float, radius_m: float | None, settings: Settings) -> QueryOrigin:
    # Raises pydantic.ValidationError (a ValueError) for non-finite/out-of-range input.
    radius = settings.scoring.default_radius_m if radius_m is None else radius_m
    return QueryOrigin(lon=lon, lat=lat, radius_m=radius)


def effective_weights(settings: Settings, overrides: CategoryWeights | None = None) -> dict[Category, float]:
    """Configured category weights, then per-request overrides, normalized to sum to 1."""
    weights: dict[str, float] = dict(settings.scoring.weights)
    for c in CATEGORIES:
        weights.setdefault(c, 0.0)
    if overrides:
        weights.update(overrides.model_dump(exclude_none=True))
    return normalize_weights(weights)  # type: ignore[return-value]


def _apply_fallback(
    result: ScoreResult,
    *,
    catalog: Catalog,
    origin: QueryOrigin,
    weights: dict[Category, float],
    settings: Settings,
    fallback_client: FallbackSource,
) -> ScoreResult:
    empty = [c for c in CATEGORIES if result.categories[c].count == 0]
    if not empty:
        return result.model_copy(update={"meta": {**result.meta, "fallback": {"used": []}}})

    try:
        fetched = fallback_client.fetch_points(lon=origin.lon, lat=origin.lat, radius_m=origin.radius_m)
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("Fallback enrichment skipped: %s", exc)
        return result.model_copy(
            update={"meta": {**result.meta, "fallback": {"used": [], "error": str(exc)}}}
        )

    extra = [p for p in fetched if p.category in empty]
    if not extra:
        return result.model_copy(update={"meta": {**result.meta, "fallback": {"used": []}}})

    # The fallback points only live in a request-local catalog; the shared one is untouched.
    enriched = score(
        catalog.merged_with(extra),
        GeoPoint(lat=origin.lat, lon=origin.lon),
        origin.radius_m,
        weights=weights,
        params=settings.scoring,
    )
    used = [c for c in CATEGORIES if any(p.category == c for p in extra)]
    logger.info("Fallback enrichment used for: %s", ", ".join(used))
    return enriched.model_copy(update={"meta": {**result.meta, "fallback": {"used": used}}})


def score_point(
    lon: float,
    lat: float,
    radius_m: float | None = None,
    *,
    settings: Settings | None = None,
    catalog: Catalog | None = None,
    weights: CategoryWeights | None = None,
    fallback_client: FallbackSource | None = None,
    include_diagnostics: bool = False,
) -> ScoreResult:
    """Score a coordinate against the catalog (optionally enriched by a fallback source)."""
    settings = settings or get_settings()
    origin = _validated_origin(lon, lat, radius_m, settings)
    catalog = catalog if catalog is not None else default_catalog(settings)
    used_weights = effective_weights(settings, weights)

    result = score(
        catalog,
        GeoPoint(lat=origin.lat, lon=origin.lon),
        origin.radius_m,
        weights=used_weights,
        params=settings.scoring,
    )

    if fallback_client is not None:
        result = _apply_fallback(
            result,
            catalog=catalog,
            origin=origin,
            weights=used_weights,
            settings=settings,
            fallback_client=fallback_client,
        )

    if include_diagnostics:
        result = result.model_copy(update={"meta": {**result.meta, "diagnostics": catalog.stats()}})
    return result


def nearby_points(
    lon: float,
    lat: float,
    radius_m: float | None = None,
    *,
    settings: Settings | None = None,
    catalog: Catalog | None = None,
    top_n: int | None = None,
) -> NearbyResult:
    """List in-radius points per category, each list sorted by distance and cut to `top_n`."""
    settings = settings or get_settings()
    origin = _validated_origin(lon, lat, radius_m, settings)
    if top_n is not None and top_n < 1:
        raise ValueError("top_n must be >= 1")
    limit = top_n or settings.nearby.top_n_default
    catalog = catalog if catalog is not None else default_catalog(settings)
    center = GeoPoint(lat=origin.lat, lon=origin.lon)

    per_category: dict[Category, list[NearbyPoint]] = {}
    for c in CATEGORIES:
        per_category[c] = [
            NearbyPoint(name=n.point.name, lon=n.point.lon, lat=n.point.lat, category=c, distance_m=n.distance_m)
            for n in catalog.within(c, center, origin.radius_m)[:limit]
        ]
    combined = sorted((p for c in CATEGORIES for p in per_category[c]), key=lambda p: p.distance_m)

    return NearbyResult(
        lon=origin.lon,
        lat=origin.lat,
        radius_m=origin.radius_m,
        top_n=limit,
        shelter=per_category["shelter"],
        school=per_category["school"],
        health=per_category["health"],
        all=combined,
    )


def explain_point(
    lon: float,
    lat: float,
    radius_m: float | None = None,
    **kwargs,
) -> ExplainedScore:
    """Score a coordinate and attach the bilingual explanation."""
    result = score_point(lon, lat, radius_m, **kwargs)
    return ExplainedScore(result=result, explanation=explain(result))
