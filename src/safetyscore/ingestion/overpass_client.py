"""
OpenStreetMap fallback client (Overpass API).

When the local catalog has nothing in some category around a query origin, the assessor
can ask OSM for nearby schools, health facilities and shelters. The elements are
normalized into plain `Point`s here, so the scoring layer treats them exactly like any
other catalog source.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from safetyscore.config.settings import Settings
from safetyscore.core.geo import is_valid_lon_lat
from safetyscore.core.http import post_form
from safetyscore.domain.models import Category, Point

logger = logging.getLogger(__name__)

SOURCE_NAME = "osm"

SCHOOL_AMENITIES = {"school", "kindergarten", "college", "university"}
HEALTH_AMENITIES = {"hospital", "clinic", "doctors"}


def build_query(*, lon: float, lat: float, radius_m: float, timeout_seconds: int = 25) -> str:
    """Build the Overpass QL query for all three categories around a point."""
    around = f"(around:{int(round(radius_m))},{lat},{lon})"
    selectors = [f'nwr["amenity"="{a}"]{around};' for a in sorted(SCHOOL_AMENITIES)]
    selectors += [f'nwr["amenity"="{a}"]{around};' for a in sorted(HEALTH_AMENITIES)]
    selectors.append(f'nwr["amenity"="shelter"]{around};')
    selectors.append(f'nwr["emergency"="assembly_point"]{around};')
    body = "\n  ".join(selectors)
    return f"[out:json][timeout:{timeout_seconds}];\n(\n  {body}\n);\nout center tags;"


def _category_of(tags: Mapping[str, Any]) -> Category | None:
    amenity = tags.get("amenity")
    if amenity in SCHOOL_AMENITIES:
        return "school"
    if amenity in HEALTH_AMENITIES:
        return "health"
    if amenity == "shelter" or tags.get("emergency") == "assembly_point":
        return "shelter"
    return None


def _lon_lat_of(element: Mapping[str, Any]) -> tuple[float, float] | None:
    # Nodes carry lat/lon directly; ways/relations carry a computed `center`.
    center = element.get("center")
    src = center if isinstance(center, Mapping) else element
    lat, lon = src.get("lat"), src.get("lon")
    for value in (lat, lon):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
    if not is_valid_lon_lat(float(lon), float(lat)):
        return None
    return float(lon), float(lat)


def classify_elements(elements: Iterable[Any]) -> list[Point]:
    """Turn raw Overpass elements into categorized points (unusable elements are dropped)."""
    out: list[Point] = []
    for e in elements:
        if not isinstance(e, Mapping):
            continue
        tags = e.get("tags") if isinstance(e.get("tags"), Mapping) else {}
        category = _category_of(tags)
        lon_lat = _lon_lat_of(e)
        if category is None or lon_lat is None:
            continue
        name = next(
            (str(tags[k]).strip() for k in ("name", "name:ja", "name:en") if str(tags.get(k) or "").strip()),
            "(unnamed)",
        )
        out.append(
            Point(
                name=name,
                lon=lon_lat[0],
                lat=lon_lat[1],
                category=category,
                tags=tuple(t for t in (tags.get("amenity"), tags.get("emergency")) if isinstance(t, str)),
                source=SOURCE_NAME,
            )
        )
    return out


class OverpassClient:
    """Fetches OSM points of interest around a coordinate."""

    def __init__(self, settings: Settings):
        self._settings = settings

    def fetch_points(self, *, lon: float, lat: float, radius_m: float) -> list[Point]:
        cfg = self._settings.ingestion.overpass
        query = build_query(lon=lon, lat=lat, radius_m=radius_m, timeout_seconds=cfg.query_timeout_seconds)
        payload = post_form(
            cfg.base_url,
            data={"data": query},
            timeout_seconds=self._settings.app.http_timeout_seconds,
        )
        elements = payload.get("elements") if isinstance(payload, Mapping) else None
        points = classify_elements(elements or [])
        logger.info("Overpass returned %d usable points around (%s, %s)", len(points), lon, lat)
        return points
