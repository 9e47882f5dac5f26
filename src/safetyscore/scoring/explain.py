"""
Explainability formatting helpers.

Template-based English/Japanese explanations of a `ScoreResult`, plus a compact one-line
summary used by the CLI.
"""

from __future__ import annotations

from safetyscore.domain.models import Explanation, ScoreResult

SCALE_EN = "Scale (0–1): 0–0.30 low, 0.30–0.70 moderate, 0.70–1.00 high."
SCALE_JA = "指標（0–1）: 0–0.30 低い / 0.30–0.70 中程度 / 0.70–1.00 高い。"


def format_distance(distance_m: float | None) -> str:
    """Render a distance as `850 m` / `1.2 km` (or an em dash when unknown)."""
    if distance_m is None:
        return "—"
    if distance_m >= 1000:
        return f"{distance_m / 1000:.1f} km"
    return f"{round(distance_m)} m"


def _fallback_used(result: ScoreResult) -> list[str]:
    fallback = result.meta.get("fallback") or {}
    return list(fallback.get("used") or [])


def one_line_summary(result: ScoreResult) -> str:
    """Render a compact single-line summary for a score result."""
    parts = [f"total={result.total_score:.3f}"]
    for cat in result.categories.values():
        parts.append(f"{cat.category}={cat.score:.3f} (n={cat.count}, w={cat.weight:.2f})")
    return " | ".join(parts)


def explain_en(result: ScoreResult) -> str:
    shelter = result.categories["shelter"]
    school = result.categories["school"]
    health = result.categories["health"]

    lines = [f"Overall score: {result.total_score:.2f} (≈ {round(result.total_score * 100)}/100)."]

    missing = []
    if shelter.count == 0:
        missing.append("shelters")
    if health.count == 0:
        missing.append("health facilities")
    if missing:
        lines.append(f"No {' and '.join(missing)} found within {round(result.radius_m)} m.")

    if shelter.count > 0:
        lines.append(f"Shelters: {shelter.count}; nearest {format_distance(shelter.nearest_distance_m)}.")
    if school.count > 0:
        lines.append(f"Schools: {school.count}; nearest {format_distance(school.nearest_distance_m)}.")
    if health.count > 0:
        lines.append(f"Health facilities: {health.count}; nearest {format_distance(health.nearest_distance_m)}.")
    if shelter.count == 0 and shelter.nearest is not None:
        lines.append(f"Nearest shelter (outside radius): {format_distance(shelter.nearest_distance_m)}.")
    if health.count == 0 and health.nearest is not None:
        lines.append(f"Nearest health facility (outside radius): {format_distance(health.nearest_distance_m)}.")

    used = _fallback_used(result)
    if used:
        lines.append(f"(OSM fallback used for: {', '.join(used)}.)")
    lines.append(SCALE_EN)
    return " ".join(lines)


def explain_ja(result: ScoreResult) -> str:
    shelter = result.categories["shelter"]
    school = result.categories["school"]
    health = result.categories["health"]

    lines = [f"総合スコア: {result.total_score:.2f}（約 {round(result.total_score * 100)}/100）。"]

    none = []
    if shelter.count == 0:
        none.append("避難所")
    if health.count == 0:
        none.append("医療・保健施設")
    if none:
        lines.append(f"半径{round(result.radius_m)}m以内に{'・'.join(none)}は見つかりませんでした。")

    if shelter.count > 0:
        lines.append(f"避難所は{shelter.count}件、最寄りは {format_distance(shelter.nearest_distance_m)}。")
    if school.count > 0:
        lines.append(f"学校は{school.count}件、最寄りは {format_distance(school.nearest_distance_m)}。")
    if health.count > 0:
        lines.append(f"医療・保健施設は{health.count}件、最寄りは {format_distance(health.nearest_distance_m)}。")
    if shelter.count == 0 and shelter.nearest is not None:
        lines.append(f"（半径外）最寄りの避難所: {format_distance(shelter.nearest_distance_m)}。")
    if health.count == 0 and health.nearest is not None:
        lines.append(f"（半径外）最寄りの医療・保健: {format_distance(health.nearest_distance_m)}。")

    used = _fallback_used(result)
    if used:
        lines.append(f"（OSM補完: {'・'.join(used)}）")
    lines.append(SCALE_JA)
    return "".join(lines)


def explain(result: ScoreResult) -> Explanation:
    return Explanation(en=explain_en(result), ja=explain_ja(result))
