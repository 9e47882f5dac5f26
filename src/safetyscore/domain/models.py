"""
Domain models (Pydantic).

These types represent the stable "contract" between layers:
- catalog entities (`Point`), produced only by the catalog loader
- query inputs (`QueryOrigin`, `CategoryWeights`, `ScoreRequest`)
- explainable scoring output (`ScoreResult`, `NearbyResult`, `ExplainedScore`)

Keeping these models in one place helps:
- validation (reject bad query inputs early),
- typed refactors,
- consistent JSON output across CLI/API.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

Category = Literal["shelter", "school", "health"]

CATEGORIES: tuple[Category, ...] = ("shelter", "school", "health")


class Point(BaseModel):
    """A named point of interest belonging to exactly one scoring category."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    lon: float = Field(..., ge=-180, le=180, allow_inf_nan=False)
    lat: float = Field(..., ge=-90, le=90, allow_inf_nan=False)
    category: Category
    tags: tuple[str, ...] = ()
    source: str | None = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, name: str) -> str:
        name = name.strip()
        if not name:
            raise ValueError("name must not be blank")
        return name

    def key(self) -> tuple[str, float, float]:
        """Identity used for de-duplication inside a category."""
        return (self.name, self.lon, self.lat)


class QueryOrigin(BaseModel):
    """A per-request query origin: coordinates plus search radius."""

    lon: float = Field(..., ge=-180, le=180, allow_inf_nan=False)
    lat: float = Field(..., ge=-90, le=90, allow_inf_nan=False)
    radius_m: float = Field(..., ge=0, allow_inf_nan=False)


class CategoryWeights(BaseModel):
    """Optional overrides for per-category weights (each 0..1)."""

    shelter: float | None = Field(default=None, ge=0, le=1)
    school: float | None = Field(default=None, ge=0, le=1)
    health: float | None = Field(default=None, ge=0, le=1)


class CategoryScore(BaseModel):
    """One explainable category score (shelter/school/health)."""

    category: Category
    count: int = Field(..., ge=0)
    nearest: Point | None = None
    nearest_distance_m: float | None = None
    count_score: float = Field(..., ge=0, le=1)
    proximity_score: float = Field(..., ge=0, le=1)
    score: float = Field(..., ge=0, le=1)
    weight: float = Field(..., ge=0, le=1)
    contribution: float = Field(..., ge=0, le=1)


class ScoreResult(BaseModel):
    """Bounded total score plus a per-category breakdown."""

    lon: float
    lat: float
    radius_m: float
    weights: dict[Category, float]
    total_score: float = Field(..., ge=0, le=1)
    categories: dict[Category, CategoryScore]
    meta: dict[str, Any] = Field(default_factory=dict)


class NearbyPoint(BaseModel):
    name: str
    lon: float
    lat: float
    category: Category
    distance_m: float = Field(..., ge=0)


class NearbyResult(BaseModel):
    """Per-category in-radius listings, each sorted by distance."""

    lon: float
    lat: float
    radius_m: float
    top_n: int | None = None
    shelter: list[NearbyPoint] = Field(default_factory=list)
    school: list[NearbyPoint] = Field(default_factory=list)
    health: list[NearbyPoint] = Field(default_factory=list)
    all: list[NearbyPoint] = Field(default_factory=list)


class Explanation(BaseModel):
    en: str
    ja: str


class ExplainedScore(BaseModel):
    result: ScoreResult
    explanation: Explanation


class ScoreRequest(BaseModel):
    """Request payload for `POST /api/score`."""

    lon: float
    lat: float
    radius_m: float | None = None
    weights: CategoryWeights | None = None
    include_diagnostics: bool = False
    use_fallback: bool | None = None
    settings_overrides: dict[str, Any] | None = None
