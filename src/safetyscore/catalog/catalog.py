"""
Catalog handle.

A `Catalog` owns the points of the three scoring categories for as long as the handle
lives. It is built once (usually at process start) and passed explicitly to the spatial
query and scoring layers, so several independent catalogs can coexist (e.g., in tests).

Loading is lazy: a category is parsed the first time it is asked for, then memoized.
"""

from __future__ import annotations

import logging
import threading
from functools import lru_cache
from pathlib import Path
from typing import Iterable, Mapping

from safetyscore.catalog.loader import (
    CatalogSource,
    ParseReport,
    dedupe_points,
    geojson_file_source,
    load_source,
)
from safetyscore.config.settings import CatalogSettings, Settings
from safetyscore.core.env import resolve_project_path
from safetyscore.core.geo import GeoPoint
from safetyscore.core.spatial import Neighbor, nearest, within
from safetyscore.domain.models import CATEGORIES, Category, Point

logger = logging.getLogger(__name__)


class Catalog:
    def __init__(
        self,
        sources: Iterable[CatalogSource] = (),
        *,
        aliases: Mapping[str, Category] | None = None,
    ):
        self._sources: tuple[CatalogSource, ...] = tuple(sources)
        self._aliases: dict[str, Category] = dict(aliases or {})
        self._lock = threading.Lock()
        self._reports: dict[int, ParseReport] = {}
        self._points: dict[Category, tuple[Point, ...]] = {}

    @classmethod
    def from_points(cls, points: Iterable[Point]) -> "Catalog":
        """Build an eagerly-populated catalog from already-normalized points."""
        catalog = cls()
        buckets: dict[Category, list[Point]] = {c: [] for c in CATEGORIES}
        for p in points:
            buckets[p.category].append(p)
        catalog._points = {c: tuple(dedupe_points(ps)) for c, ps in buckets.items()}
        return catalog

    def _report_for(self, index: int) -> ParseReport:
        # Caller holds the lock.
        report = self._reports.get(index)
        if report is None:
            report = load_source(self._sources[index], aliases=self._aliases)
            self._reports[index] = report
        return report

    def points(self, category: Category) -> tuple[Point, ...]:
        """Return the (memoized) points of one category in catalog order."""
        cached = self._points.get(category)
        if cached is not None:
            return cached
        with self._lock:
            cached = self._points.get(category)
            if cached is not None:
                return cached
            merged: list[Point] = []
            for i, source in enumerate(self._sources):
                if source.category not in (None, category):
                    continue
                merged.extend(p for p in self._report_for(i).points if p.category == category)
            loaded = tuple(dedupe_points(merged))
            self._points[category] = loaded
            logger.info("Catalog category %s ready: %d points", category, len(loaded))
            return loaded

    def nearest(self, category: Category, origin: GeoPoint) -> Neighbor | None:
        return nearest(self.points(category), origin)

    def within(self, category: Category, origin: GeoPoint, radius_m: float) -> list[Neighbor]:
        return within(self.points(category), origin, radius_m)

    def merged_with(self, points: Iterable[Point]) -> "Catalog":
        """Return a new catalog holding this catalog's points followed by `points`."""
        existing = [p for c in CATEGORIES for p in self.points(c)]
        return Catalog.from_points([*existing, *points])

    def counts(self) -> dict[Category, int]:
        return {c: len(self.points(c)) for c in CATEGORIES}

    def stats(self, *, samples: int = 3) -> dict[str, dict]:
        """Per-category diagnostics: point counts, contributing sources, skips, samples.

        `skipped` maps each contributing source to its skipped-row count. A mixed source
        (no fixed category) appears under every category with its whole-file count.
        """
        out: dict[str, dict] = {}
        for c in CATEGORIES:
            pts = self.points(c)
            skipped: dict[str, int] = {}
            for i, source in enumerate(self._sources):
                report = self._reports.get(i)
                if report is None or source.category not in (None, c):
                    continue
                skipped[source.name] = skipped.get(source.name, 0) + report.skipped_total
            out[c] = {
                "points": len(pts),
                "sources": list(skipped),
                "skipped": skipped,
                "samples": [p.model_dump(mode="json") for p in pts[:samples]],
            }
        return out


def load_catalog(
    sources: Iterable[CatalogSource], *, aliases: Mapping[str, Category] | None = None
) -> Catalog:
    """Create a lazily-loaded catalog from raw sources."""
    return Catalog(sources, aliases=aliases)


def _catalog_from_config(cfg: CatalogSettings) -> Catalog:
    data_dir = resolve_project_path(cfg.data_dir)
    sources = []
    for src in cfg.sources:
        path = Path(src.path)
        resolved = path if path.is_absolute() else data_dir / path
        sources.append(geojson_file_source(resolved, category=src.category, name=src.name))
    return load_catalog(sources, aliases=cfg.category_aliases)


def build_catalog(settings: Settings) -> Catalog:
    """Create a fresh catalog described by `settings.catalog` (file sources under `data_dir`)."""
    return _catalog_from_config(settings.catalog)


@lru_cache
def _shared_catalog(config_json: str) -> Catalog:
    return _catalog_from_config(CatalogSettings.model_validate_json(config_json))


def default_catalog(settings: Settings) -> Catalog:
    """Return the process-wide catalog for `settings.catalog` (one handle per distinct config)."""
    # Settings models are not hashable; the serialized catalog section is the cache key.
    return _shared_catalog(settings.catalog.model_dump_json())
