# src/safetyscore/config/settings.py
"""
Application settings (Pydantic).

Settings are loaded from `src/safetyscore/config/defaults.yaml`, then optionally overridden by:
- environment variables (e.g., `SAFETYSCORE_LOG_LEVEL`, `SAFETYSCORE_DATA_DIR`)
- an external YAML file via `SAFETYSCORE_CONFIG_PATH`

Design rule:
- Tuning knobs live in YAML, not hard-coded in business logic.
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any, Literal
from safetyscore.core.env import load_dotenv_if_present

import yaml
from pydantic import BaseModel, Field

from safetyscore.domain.models import Category


def _read_package_yaml(filename: str) -> dict[str, Any]:
    """Read a YAML file packaged inside `safetyscore.config`."""
    text = resources.files("safetyscore.config").joinpath(filename).read_text(encoding="utf-8")
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {filename}; expected a mapping.")
    return data


def _read_yaml_file(path: str | Path) -> dict[str, Any]:
    """Read a YAML file from disk and return its mapping root."""
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {path}; expected a mapping.")
    return data


class AppSettings(BaseModel):
    name: str = "SafetyScore"
    http_timeout_seconds: float = 25
    log_level: str = "INFO"


class CatalogSourceSettings(BaseModel):
    name: str
    path: str
    # None means "take the category from each feature's `primary` tag".
    category: Category | None = None


class CatalogSettings(BaseModel):
    data_dir: str = "data"
    sources: list[CatalogSourceSettings] = Field(default_factory=list)
    category_aliases: dict[str, Category] = Field(default_factory=dict)


class CategoryValues(BaseModel):
    """One positive number per scoring category."""

    shelter: float = Field(..., gt=0)
    school: float = Field(..., gt=0)
    health: float = Field(..., gt=0)


class ScoringSettings(BaseModel):
    default_radius_m: float = Field(1500, ge=0)
    weights: dict[Category, float] = Field(
        default_factory=lambda: {"shelter": 0.5, "school": 0.3, "health": 0.2}
    )
    mix_counts: float = Field(0.8, ge=0, le=1)
    count_curve: Literal["saturating", "capped"] = "saturating"
    count_k: CategoryValues = Field(
        default_factory=lambda: CategoryValues(shelter=1, school=3, health=2)
    )
    proximity_curve: Literal["exponential", "linear"] = "exponential"
    decay_m: CategoryValues = Field(
        default_factory=lambda: CategoryValues(shelter=500, school=1000, health=1500)
    )
    linear_exponent: float = Field(1.3, ge=1)


class NearbySettings(BaseModel):
    top_n_default: int = Field(25, ge=1)


class OverpassSettings(BaseModel):
    enabled: bool = False
    base_url: str = "https://overpass-api.de/api/interpreter"
    query_timeout_seconds: int = 25


class IngestionSettings(BaseModel):
    overpass: OverpassSettings = Field(default_factory=OverpassSettings)


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    catalog: CatalogSettings = Field(default_factory=CatalogSettings)
    scoring: ScoringSettings = Field(default_factory=ScoringSettings)
    nearby: NearbySettings = Field(default_factory=NearbySettings)
    ingestion: IngestionSettings = Field(default_factory=IngestionSettings)


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay selected environment variables onto raw settings payload.

    Note: We intentionally keep this whitelist small to avoid exposing unsafe overrides.
    """
    load_dotenv_if_present()
    data = dict(data)
    log_level = os.getenv("SAFETYSCORE_LOG_LEVEL")
    if log_level:
        data.setdefault("app", {})["log_level"] = log_level

    data_dir = os.getenv("SAFETYSCORE_DATA_DIR")
    if data_dir:
        data.setdefault("catalog", {})["data_dir"] = data_dir

    fallback = os.getenv("SAFETYSCORE_OSM_FALLBACK")
    if fallback:
        enabled = fallback.strip().lower() in {"1", "true", "yes", "y"}
        data.setdefault("ingestion", {}).setdefault("overpass", {})["enabled"] = enabled

    return data


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings (cached)."""
    load_dotenv_if_present()
    config_path = os.getenv("SAFETYSCORE_CONFIG_PATH")
    raw = _read_yaml_file(config_path) if config_path else _read_package_yaml("defaults.yaml")
    raw = _apply_env_overrides(raw)
    return Settings.model_validate(raw)


@lru_cache
def get_logging_config() -> dict[str, Any]:
    """Load logging configuration (cached)."""
    return _read_package_yaml("logging.yaml")
