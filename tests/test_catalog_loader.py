import json
import threading

from safetyscore.catalog.catalog import Catalog, build_catalog, load_catalog
from safetyscore.catalog.loader import CatalogSource, geojson_file_source, parse_features, payload_source
from safetyscore.config.settings import get_settings
from safetyscore.domain.models import Point

ALIASES = {"hospital": "health", "clinic": "health", "shelter": "shelter", "school": "school"}


def _feature(name, lon, lat, primary=None, geometry_type="Point"):
    props = {"name": name}
    if primary is not None:
        props["primary"] = primary
    return {"type": "Feature", "geometry": {"type": geometry_type, "coordinates": [lon, lat]}, "properties": props}


def _fc(*features):
    return {"type": "FeatureCollection", "features": list(features)}


def test_parse_skips_unusable_rows_and_counts_them():
    payload = _fc(
        _feature("ok", 139.70, 35.60),
        _feature("line", 139.70, 35.60, geometry_type="LineString"),
        {"type": "Feature", "geometry": None, "properties": {"name": "no geometry"}},
        _feature("nan", float("nan"), 35.60),
        _feature("out of range", 200.0, 35.60),
        _feature("bool coords", True, False),
        _feature("   ", 139.70, 35.60),
        {"type": "Feature", "geometry": {"type": "Point", "coordinates": [139.7, 35.6]}},
    )
    report = parse_features(payload, category="shelter", source="test")

    assert [p.name for p in report.points] == ["ok"]
    assert report.skipped["geometry"] == 5
    assert report.skipped["name"] == 2
    assert report.skipped_total == 7


def test_parse_trims_names_and_keeps_auxiliary_tags():
    feature = _feature("  Central Shelter  ", 139.7, 35.6)
    feature["properties"]["tags"] = ["shelter", "health", 3]
    report = parse_features(_fc(feature), category="shelter")

    point = report.points[0]
    assert point.name == "Central Shelter"
    assert point.tags == ("shelter", "health")
    assert point.category == "shelter"


def test_parse_deduplicates_exact_name_and_coordinates():
    payload = _fc(
        _feature("Dup", 139.7, 35.6),
        _feature("Dup", 139.7, 35.6),
        _feature("Dup", 139.7001, 35.6),
    )
    report = parse_features(payload, category="school")

    assert len(report.points) == 2
    assert report.skipped["duplicate"] == 1


def test_parse_uses_primary_tag_and_aliases_when_source_has_no_category():
    payload = _fc(
        _feature("A", 139.1, 35.1, primary="shelter"),
        _feature("B", 139.2, 35.2, primary="Hospital"),
        _feature("C", 139.3, 35.3, primary="civic"),
        _feature("D", 139.4, 35.4),
    )
    report = parse_features(payload, aliases=ALIASES)

    assert [(p.name, p.category) for p in report.points] == [("A", "shelter"), ("B", "health")]
    assert report.skipped["category"] == 2


def test_parse_accepts_bare_feature_list_and_ignores_other_payloads():
    assert len(parse_features([_feature("A", 1.0, 2.0)], category="health").points) == 1
    assert parse_features("not geojson", category="health").points == []
    assert parse_features({"type": "FeatureCollection"}, category="health").points == []


def test_catalog_merges_aliased_sources_and_dedupes_across_them():
    health = payload_source(_fc(_feature("Clinic", 139.7, 35.6), _feature("Center", 139.8, 35.7)), "health", "health")
    hospitals = payload_source(_fc(_feature("Clinic", 139.7, 35.6), _feature("General", 139.9, 35.8)), "health", "hospitals")
    catalog = load_catalog([health, hospitals])

    points = catalog.points("health")
    assert [p.name for p in points] == ["Clinic", "Center", "General"]
    # First occurrence wins.
    assert points[0].source == "health"
    assert catalog.points("shelter") == ()


def test_catalog_loads_lazily_and_memoizes():
    calls = {"shelter": 0, "school": 0}

    def _loader(category):
        def _load():
            calls[category] += 1
            return _fc(_feature(f"{category}-1", 139.7, 35.6))

        return _load

    catalog = Catalog(
        [CatalogSource("shelters", _loader("shelter"), "shelter"), CatalogSource("schools", _loader("school"), "school")]
    )
    assert calls == {"shelter": 0, "school": 0}

    catalog.points("shelter")
    catalog.points("shelter")
    assert calls == {"shelter": 1, "school": 0}

    catalog.points("school")
    assert calls == {"shelter": 1, "school": 1}


def test_mixed_source_is_parsed_once_for_all_categories():
    calls = []

    def _load():
        calls.append(1)
        return _fc(_feature("S", 139.1, 35.1, primary="shelter"), _feature("K", 139.2, 35.2, primary="school"))

    catalog = Catalog([CatalogSource("mixed", _load)], aliases=ALIASES)
    assert [p.name for p in catalog.points("shelter")] == ["S"]
    assert [p.name for p in catalog.points("school")] == ["K"]
    assert catalog.points("health") == ()
    assert len(calls) == 1


def test_concurrent_first_access_parses_once():
    calls = []
    gate = threading.Event()

    def _load():
        gate.wait(timeout=5)
        calls.append(1)
        return _fc(_feature("S", 139.1, 35.1))

    catalog = Catalog([CatalogSource("slow", _load, "shelter")])
    results = []
    threads = [threading.Thread(target=lambda: results.append(catalog.points("shelter"))) for _ in range(8)]
    for t in threads:
        t.start()
    gate.set()
    for t in threads:
        t.join(timeout=5)

    assert len(calls) == 1
    assert len(results) == 8
    assert all(r == results[0] for r in results)


def test_geojson_file_source_reads_file_and_tolerates_missing_file(tmp_path):
    path = tmp_path / "shelters.geojson"
    path.write_text(json.dumps(_fc(_feature("避難所A", 139.7, 35.6))), encoding="utf-8")

    catalog = load_catalog(
        [
            geojson_file_source(path, category="shelter"),
            geojson_file_source(tmp_path / "missing.geojson", category="school"),
        ]
    )
    assert [p.name for p in catalog.points("shelter")] == ["避難所A"]
    assert catalog.points("school") == ()


def test_build_catalog_uses_configured_sources(tmp_path):
    (tmp_path / "health.geojson").write_text(json.dumps(_fc(_feature("Clinic", 139.7, 35.6))), encoding="utf-8")
    (tmp_path / "hospitals.geojson").write_text(
        json.dumps(_fc(_feature("Clinic", 139.7, 35.6), _feature("General", 139.8, 35.7))), encoding="utf-8"
    )
    settings = get_settings()
    settings = settings.model_copy(
        update={"catalog": settings.catalog.model_copy(update={"data_dir": str(tmp_path)})}
    )

    catalog = build_catalog(settings)
    assert catalog.counts() == {"shelter": 0, "school": 0, "health": 2}
    stats = catalog.stats()
    assert stats["health"]["sources"] == ["health", "hospitals"]
    assert stats["health"]["samples"][0]["name"] == "Clinic"


def test_merged_with_returns_new_catalog_without_touching_original():
    base = Catalog.from_points([Point(name="S", lon=139.7, lat=35.6, category="shelter")])
    extra = [
        Point(name="S", lon=139.7, lat=35.6, category="shelter"),
        Point(name="H", lon=139.71, lat=35.61, category="health"),
    ]
    merged = base.merged_with(extra)

    assert [p.name for p in merged.points("shelter")] == ["S"]
    assert [p.name for p in merged.points("health")] == ["H"]
    assert base.points("health") == ()


def test_stats_counts_skips_of_mixed_sources():
    payload = _fc(
        _feature("S", 139.1, 35.1, primary="shelter"),
        _feature("bad", 500.0, 35.2, primary="school"),
        _feature("C", 139.3, 35.3, primary="civic"),
    )
    catalog = Catalog(
        [CatalogSource("mixed", lambda: payload), payload_source(_fc(), "school", "schools")],
        aliases=ALIASES,
    )
    catalog.counts()
    stats = catalog.stats()

    assert stats["shelter"]["skipped"] == {"mixed": 2}
    assert stats["school"]["sources"] == ["mixed", "schools"]
    assert stats["school"]["skipped"] == {"mixed": 2, "schools": 0}
