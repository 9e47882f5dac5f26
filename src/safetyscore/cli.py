"""
SafetyScore CLI entrypoint.

This CLI is intended for quick local checks and debugging without the HTTP API.
It delegates all scoring logic to `safetyscore.assessor.assess`.
"""

from __future__ import annotations

import argparse
import json
from typing import Any

from safetyscore.assessor.assess import nearby_points, score_point
from safetyscore.catalog.catalog import default_catalog
from safetyscore.config.settings import get_settings
from safetyscore.core.logging import configure_logging
from safetyscore.ingestion.overpass_client import OverpassClient
from safetyscore.scoring.explain import explain_en, explain_ja, format_distance, one_line_summary


def _cmd_score(args: argparse.Namespace) -> int:
    """Handle the `score` subcommand."""
    settings = get_settings()
    use_osm = settings.ingestion.overpass.enabled if args.osm is None else args.osm
    result = score_point(
        args.lon,
        args.lat,
        args.radius,
        settings=settings,
        catalog=default_catalog(settings),
        fallback_client=OverpassClient(settings) if use_osm else None,
        include_diagnostics=bool(args.debug),
    )

    if args.json:
        print(json.dumps(result.model_dump(mode="json"), ensure_ascii=False, indent=2))
        return 0

    print(one_line_summary(result))
    for cat in result.categories.values():
        nearest = cat.nearest.name if cat.nearest else "-"
        print(
            f"  - {cat.category}: count={cat.count} nearest={format_distance(cat.nearest_distance_m)} ({nearest})"
            f"  count_score={cat.count_score:.3f} proximity_score={cat.proximity_score:.3f}"
        )
    if args.lang in ("en", "both"):
        print(explain_en(result))
    if args.lang in ("ja", "both"):
        print(explain_ja(result))
    return 0


def _cmd_nearby(args: argparse.Namespace) -> int:
    settings = get_settings()
    result = nearby_points(
        args.lon, args.lat, args.radius, settings=settings, catalog=default_catalog(settings), top_n=args.top_n
    )

    if args.json:
        print(json.dumps(result.model_dump(mode="json"), ensure_ascii=False, indent=2))
        return 0

    for p in result.all:
        print(f"{p.category:>8}  {format_distance(p.distance_m):>9}  {p.name}")
    return 0


def _cmd_catalog_stats(_: argparse.Namespace) -> int:
    stats = default_catalog(get_settings()).stats()
    print(json.dumps(stats, ensure_ascii=False, indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the SafetyScore CLI."""
    parser = argparse.ArgumentParser(prog="safetyscore")
    sub = parser.add_subparsers(dest="command", required=True)

    sc = sub.add_parser("score", help="Score a coordinate (lon, lat) within a radius in meters.")
    sc.add_argument("--lon", required=True, type=float)
    sc.add_argument("--lat", required=True, type=float)
    sc.add_argument("--radius", type=float, default=None, help="Search radius in meters (default from config)")
    sc.add_argument("--lang", choices=["en", "ja", "both", "none"], default="en")
    osm = sc.add_mutually_exclusive_group()
    osm.add_argument("--osm", dest="osm", action="store_true", default=None, help="Use the OSM fallback")
    osm.add_argument("--no-osm", dest="osm", action="store_false", help="Never use the OSM fallback")
    sc.add_argument("--debug", action="store_true", help="Include catalog diagnostics")
    sc.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    sc.set_defaults(func=_cmd_score, osm=None)

    nb = sub.add_parser("nearby", help="List shelters, schools and health facilities near a point.")
    nb.add_argument("--lon", required=True, type=float)
    nb.add_argument("--lat", required=True, type=float)
    nb.add_argument("--radius", type=float, default=None)
    nb.add_argument("--top-n", dest="top_n", type=int, default=None)
    nb.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    nb.set_defaults(func=_cmd_nearby)

    st = sub.add_parser("catalog-stats", help="Per-category point counts, sources and samples.")
    st.set_defaults(func=_cmd_catalog_stats)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint callable used by `python -m safetyscore.cli`."""
    configure_logging()
    parser = build_parser()
    args = parser.parse_args(argv)
    func: Any = getattr(args, "func")
    try:
        return int(func(args))
    except ValueError as exc:
        parser.error(str(exc))
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
