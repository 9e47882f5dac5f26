import math

from safetyscore.catalog.catalog import Catalog
from safetyscore.config.settings import get_settings
from safetyscore.core.geo import EARTH_RADIUS_M, GeoPoint
from safetyscore.domain.models import Point
from safetyscore.scoring.explain import explain, explain_en, explain_ja, format_distance, one_line_summary
from safetyscore.scoring.safety import score

M_PER_DEG_LAT = EARTH_RADIUS_M * math.pi / 180
ORIGIN = GeoPoint(lat=35.0, lon=139.0)
WEIGHTS = {"shelter": 0.5, "school": 0.3, "health": 0.2}


def _north(name: str, meters: float, category: str) -> Point:
    return Point(name=name, lon=ORIGIN.lon, lat=ORIGIN.lat + meters / M_PER_DEG_LAT, category=category)


def _result(points, radius_m=1000):
    return score(Catalog.from_points(points), ORIGIN, radius_m, weights=WEIGHTS, params=get_settings().scoring)


def test_format_distance():
    assert format_distance(None) == "—"
    assert format_distance(849.6) == "850 m"
    assert format_distance(1234) == "1.2 km"


def test_english_explanation_mentions_counts_and_missing_categories():
    result = _result([_north("Shelter", 120, "shelter"), _north("School", 300, "school")])
    text = explain_en(result)

    assert text.startswith(f"Overall score: {result.total_score:.2f}")
    assert "Shelters: 1; nearest 120 m." in text
    assert "Schools: 1; nearest 300 m." in text
    assert "No health facilities found within 1000 m." in text
    assert "Scale (0–1)" in text


def test_explanations_report_nearest_outside_radius():
    result = _result([_north("Far shelter", 2500, "shelter")])

    assert "Nearest shelter (outside radius): 2.5 km." in explain_en(result)
    assert "（半径外）最寄りの避難所: 2.5 km。" in explain_ja(result)


def test_japanese_explanation():
    result = _result([_north("Clinic", 400, "health")])
    text = explain_ja(result)

    assert text.startswith("総合スコア:")
    assert "医療・保健施設は1件、最寄りは 400 m。" in text
    assert "半径1000m以内に避難所は見つかりませんでした。" in text


def test_fallback_note_is_added_when_used():
    result = _result([_north("Clinic", 400, "health")])
    result = result.model_copy(update={"meta": {"fallback": {"used": ["health"]}}})

    explanation = explain(result)
    assert "(OSM fallback used for: health.)" in explanation.en
    assert "（OSM補完: health）" in explanation.ja


def test_one_line_summary_lists_every_category():
    summary = one_line_summary(_result([]))

    assert summary.startswith("total=0.000")
    for category in ("shelter", "school", "health"):
        assert f"{category}=0.000 (n=0" in summary
