"""
Shared scoring utilities.

This module contains small, reusable helpers used by the category scorer:
- `clamp01`: keep values within 0..1 for stable UI/output
- `normalize_weights`: convert arbitrary non-negative weights into a 1.0-summing distribution
- `count_subscore` / `proximity_subscore`: the two normalization curves blended per category
"""

from __future__ import annotations

from math import exp
from typing import Literal

CountCurve = Literal["saturating", "capped"]
ProximityCurve = Literal["exponential", "linear"]


def clamp01(x: float) -> float:
    """Clamp a number into the [0.0, 1.0] range."""
    return max(0.0, min(1.0, float(x)))


def normalize_weights(weights: dict[str, float]) -> dict[str, float]:
    """Normalize a dict of weights so they sum to 1.0 (non-negative)."""
    cleaned = {k: max(0.0, float(v)) for k, v in weights.items()}
    total = sum(cleaned.values())
    if total <= 0:
        return {k: 1.0 / len(weights) for k in weights}
    return {k: v / total for k, v in cleaned.items()}


def count_subscore(count: int, *, k: float, curve: CountCurve = "saturating") -> float:
    """Map an in-radius count to 0..1.

    - `saturating`: count / (count + k); k is the half-saturation count.
    - `capped`: min(1, count / k); k is the count that earns full credit.
    """
    n = max(0, int(count))
    if n == 0:
        return 0.0
    if curve == "capped":
        return clamp01(n / k)
    return clamp01(n / (n + k))


def proximity_subscore(
    distance_m: float | None,
    *,
    curve: ProximityCurve = "exponential",
    decay_m: float,
    radius_m: float,
    exponent: float = 1.0,
) -> float:
    """Map the nearest distance to 0..1 (closer is higher; no point at all is 0)."""
    if distance_m is None:
        return 0.0
    d = max(0.0, float(distance_m))
    if curve == "linear":
        if radius_m <= 0:
            return 0.0
        return clamp01(1 - d / radius_m) ** exponent
    return clamp01(exp(-d / decay_m))
