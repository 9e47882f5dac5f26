"""
API routes.

Endpoints:
- GET/POST `/api/score`: safety/amenity score for a coordinate.
- GET  `/api/nearby`: in-radius shelters/schools/health facilities, sorted by distance.
- GET  `/api/explain`: score plus bilingual (en/ja) explanation.
- GET  `/api/catalog`: catalog diagnostics.
- GET  `/api/settings`: public scoring settings for UIs.
"""

from __future__ import annotations

from functools import lru_cache

from fastapi import APIRouter, HTTPException, Query

from safetyscore.assessor.assess import explain_point, nearby_points, score_point
from safetyscore.catalog.catalog import Catalog, default_catalog
from safetyscore.config.overrides import apply_settings_overrides
from safetyscore.config.settings import Settings, get_settings
from safetyscore.domain.models import ExplainedScore, NearbyResult, ScoreRequest, ScoreResult
from safetyscore.ingestion.overpass_client import OverpassClient

router = APIRouter()


def _catalog() -> Catalog:
    # One shared, read-only catalog handle per process.
    return default_catalog(get_settings())


@lru_cache
def _fallback_client() -> OverpassClient:
    return OverpassClient(get_settings())


def _fallback_for(requested: bool | None, settings: Settings | None = None) -> OverpassClient | None:
    settings = settings or get_settings()
    enabled = settings.ingestion.overpass.enabled if requested is None else requested
    if not enabled:
        return None
    # Per-request overrides get their own client so the overridden query budget applies.
    return _fallback_client() if settings is get_settings() else OverpassClient(settings)


@router.get("/api/health")
def get_health() -> dict:
    return {"status": "ok"}


@router.get("/api/score", response_model=ScoreResult)
def get_score(
    lon: float,
    lat: float,
    radius: float | None = None,
    osm: bool | None = Query(default=None, description="Use the OSM fallback when a category is empty"),
    diagnostics: bool = False,
) -> ScoreResult:
    try:
        return score_point(
            lon,
            lat,
            radius,
            settings=get_settings(),
            catalog=_catalog(),
            fallback_client=_fallback_for(osm),
            include_diagnostics=diagnostics,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.post("/api/score", response_model=ScoreResult)
def post_score(request: ScoreRequest) -> ScoreResult:
    try:
        settings = apply_settings_overrides(get_settings(), request.settings_overrides)
        return score_point(
            request.lon,
            request.lat,
            request.radius_m,
            settings=settings,
            catalog=_catalog(),
            weights=request.weights,
            fallback_client=_fallback_for(request.use_fallback, settings),
            include_diagnostics=request.include_diagnostics,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.get("/api/nearby", response_model=NearbyResult)
def get_nearby(lon: float, lat: float, radius: float | None = None, top_n: int | None = None) -> NearbyResult:
    try:
        return nearby_points(lon, lat, radius, settings=get_settings(), catalog=_catalog(), top_n=top_n)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.get("/api/explain", response_model=ExplainedScore)
def get_explain(lon: float, lat: float, radius: float | None = None, osm: bool | None = None) -> ExplainedScore:
    try:
        return explain_point(
            lon,
            lat,
            radius,
            settings=get_settings(),
            catalog=_catalog(),
            fallback_client=_fallback_for(osm),
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.get("/api/catalog")
def get_catalog_stats() -> dict:
    return {"categories": _catalog().stats()}


@router.get("/api/settings")
def get_public_settings() -> dict:
    """Return scoring knobs only (no file paths or endpoints)."""
    settings = get_settings()
    return {
        "scoring": settings.scoring.model_dump(mode="json"),
        "nearby": settings.nearby.model_dump(mode="json"),
        "fallback_enabled": settings.ingestion.overpass.enabled,
    }
