"""
Point catalog loader.

Catalog sources are GeoJSON-like payloads (usually local `.geojson` files produced by the
ETL scripts) whose features carry a point geometry and a `name` / `primary` tag. This module
turns them into the narrow, validated `Point` type so spatial/scoring code never has to
look at raw source shapes.

Unusable rows are expected in open data: they are counted and skipped, never raised.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from math import isfinite
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping

from safetyscore.core.geo import is_valid_lon_lat
from safetyscore.domain.models import CATEGORIES, Category, Point

logger = logging.getLogger(__name__)

EMPTY_COLLECTION: dict[str, Any] = {"type": "FeatureCollection", "features": []}


@dataclass(frozen=True)
class CatalogSource:
    """A named loader for one raw payload.

    `category` forces every accepted feature into that bucket; None defers to each
    feature's `primary` tag.
    """

    name: str
    load: Callable[[], Any]
    category: Category | None = None


@dataclass
class ParseReport:
    """Accepted points for one source plus skip counters by reason."""

    source: str
    points: list[Point] = field(default_factory=list)
    skipped: dict[str, int] = field(
        default_factory=lambda: {"geometry": 0, "name": 0, "category": 0, "duplicate": 0}
    )

    @property
    def skipped_total(self) -> int:
        return sum(self.skipped.values())


def geojson_file_source(path: str | Path, category: Category | None = None, name: str | None = None) -> CatalogSource:
    """Build a source reading a GeoJSON file; a missing file reads as an empty collection."""
    p = Path(path)

    def _load() -> Any:
        if not p.is_file():
            logger.warning("Catalog source file not found: %s (treating as empty)", p)
            return EMPTY_COLLECTION
        return json.loads(p.read_text(encoding="utf-8"))

    return CatalogSource(name=name or p.stem, load=_load, category=category)


def payload_source(payload: Any, category: Category | None = None, name: str = "inline") -> CatalogSource:
    """Build a source around an already-decoded payload."""
    return CatalogSource(name=name, load=lambda: payload, category=category)


def _iter_features(payload: Any) -> list[Any]:
    if isinstance(payload, Mapping):
        features = payload.get("features")
        return list(features) if isinstance(features, list) else []
    if isinstance(payload, list):
        return payload
    return []


def _as_coordinate(value: Any) -> float | None:
    # bool is an int subclass; `true` is never a coordinate.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    f = float(value)
    return f if isfinite(f) else None


def _point_lon_lat(feature: Any) -> tuple[float, float] | None:
    if not isinstance(feature, Mapping):
        return None
    geometry = feature.get("geometry")
    if not isinstance(geometry, Mapping) or geometry.get("type") != "Point":
        return None
    coords = geometry.get("coordinates")
    if not isinstance(coords, (list, tuple)) or len(coords) < 2:
        return None
    lon = _as_coordinate(coords[0])
    lat = _as_coordinate(coords[1])
    if lon is None or lat is None or not is_valid_lon_lat(lon, lat):
        return None
    return lon, lat


def _resolve_category(
    primary: Any, *, forced: Category | None, aliases: Mapping[str, Category]
) -> Category | None:
    if forced is not None:
        return forced
    if not isinstance(primary, str):
        return None
    tag = primary.strip().lower()
    if tag in aliases:
        return aliases[tag]
    return tag if tag in CATEGORIES else None  # type: ignore[return-value]


def _tags_of(properties: Mapping[str, Any]) -> tuple[str, ...]:
    tags = properties.get("tags")
    if not isinstance(tags, list):
        return ()
    return tuple(t.strip() for t in tags if isinstance(t, str) and t.strip())


def parse_features(
    payload: Any,
    *,
    category: Category | None = None,
    aliases: Mapping[str, Category] | None = None,
    source: str = "inline",
) -> ParseReport:
    """Validate, categorize and de-duplicate the point features of one payload."""
    aliases = aliases or {}
    report = ParseReport(source=source)
    seen: set[tuple[Category, str, float, float]] = set()

    for feature in _iter_features(payload):
        lon_lat = _point_lon_lat(feature)
        if lon_lat is None:
            report.skipped["geometry"] += 1
            continue
        lon, lat = lon_lat

        properties = feature.get("properties")
        if not isinstance(properties, Mapping):
            properties = {}
        raw_name = properties.get("name")
        name = str(raw_name).strip() if raw_name is not None else ""
        if not name:
            report.skipped["name"] += 1
            continue

        cat = _resolve_category(properties.get("primary"), forced=category, aliases=aliases)
        if cat is None:
            report.skipped["category"] += 1
            continue

        key = (cat, name, lon, lat)
        if key in seen:
            report.skipped["duplicate"] += 1
            continue
        seen.add(key)
        report.points.append(
            Point(name=name, lon=lon, lat=lat, category=cat, tags=_tags_of(properties), source=source)
        )

    if report.skipped_total:
        logger.debug("Source %s: skipped rows by reason %s", source, report.skipped)
    return report


def load_source(source: CatalogSource, *, aliases: Mapping[str, Category] | None = None) -> ParseReport:
    """Load and parse one source."""
    report = parse_features(source.load(), category=source.category, aliases=aliases, source=source.name)
    logger.info(
        "Loaded catalog source %s: %d points, %d skipped",
        source.name,
        len(report.points),
        report.skipped_total,
    )
    return report


def dedupe_points(points: Iterable[Point]) -> list[Point]:
    """Drop exact (category, name, lon, lat) repeats, keeping the first occurrence."""
    seen: set[tuple[Category, str, float, float]] = set()
    out: list[Point] = []
    for p in points:
        key = (p.category, *p.key())
        if key in seen:
            continue
        seen.add(key)
        out.append(p)
    return out
