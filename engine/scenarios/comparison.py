"""Scenario comparison and probability weighting.

Metrics are addressed by dot-separated paths into a comprehensive metrics
dict, e.g. ``"returns.equity.npv"`` or ``"debt.min_dscr"``.
"""

from __future__ import annotations

import math
from typing import Any, Iterable, Mapping, Sequence

DEFAULT_EPSILON: float = 1e-9
WEIGHT_TOLERANCE: float = 0.01

DEFAULT_METRIC_KEYS: tuple[str, ...] = (
    "returns.equity.npv",
    "returns.equity.irr",
    "returns.equity.payback",
    "returns.project.npv",
    "returns.project.irr",
    "debt.min_dscr",
    "cash_health.peak_funding",
    "unit_economics.total.lcoc",
    "summary.total_revenue",
    "summary.total_net_income",
)


# ======================================================================
# Helpers
# ======================================================================

def get_metric(metrics: Mapping[str, Any] | None, path: str, default: Any = None) -> Any:
    """Retrieve a value from a nested dict using a dot-separated *path*."""
    obj: Any = metrics
    for key in path.split("."):
        if not isinstance(obj, Mapping) or key not in obj:
            return default
        obj = obj[key]
    return obj


def _number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value) if math.isfinite(value) else None


# ======================================================================
# Percentage change
# ======================================================================

def percent_change(
    current: float | None, base: float | None, epsilon: float = DEFAULT_EPSILON
) -> float | None:
    """``(current - base) / |base| * 100``.

    Zero when ``|base|`` is below *epsilon*; ``None`` when either side is
    not applicable.
    """
    current, base = _number(current), _number(base)
    if current is None or base is None:
        return None
    if abs(base) < epsilon:
        return 0.0
    return (current - base) / abs(base) * 100.0


def compare_metrics(
    current: Mapping[str, Any],
    base: Mapping[str, Any],
    keys: Iterable[str] = DEFAULT_METRIC_KEYS,
    epsilon: float = DEFAULT_EPSILON,
) -> dict[str, dict[str, float | None]]:
    """Per-key ``{current, base, change, change_pct}`` between two metric sets."""
    out: dict[str, dict[str, float | None]] = {}
    for key in keys:
        cur = _number(get_metric(current, key))
        ref = _number(get_metric(base, key))
        out[key] = {
            "current": cur,
            "base": ref,
            "change": cur - ref if cur is not None and ref is not None else None,
            "change_pct": percent_change(cur, ref, epsilon),
        }
    return out


# ======================================================================
# Probability weighting
# ======================================================================

def weights_valid(probabilities: Sequence[float], tolerance: float = WEIGHT_TOLERANCE) -> bool:
    """``True`` when the weights are non-negative and sum to 100 within *tolerance*."""
    if not probabilities or any(p < 0 for p in probabilities):
        return False
    return abs(sum(probabilities) - 100.0) <= tolerance


def probability_weighted(
    values: Sequence[float | None],
    probabilities: Sequence[float],
    tolerance: float = WEIGHT_TOLERANCE,
) -> float | None:
    """Expected value ``sum(p_i / 100 * v_i)``.

    ``None`` when the weights do not sum to 100 % within *tolerance*, when
    the sequences differ in length, or when any weighted value is not
    applicable.
    """
    if len(values) != len(probabilities) or not weights_valid(probabilities, tolerance):
        return None
    total = 0.0
    for value, p in zip(values, probabilities):
        number = _number(value)
        if number is None:
            return None
        total += p / 100.0 * number
    return total


def expected_metrics(
    scenarios: Sequence[Mapping[str, Any]],
    keys: Iterable[str] = DEFAULT_METRIC_KEYS,
    tolerance: float = WEIGHT_TOLERANCE,
) -> dict[str, Any]:
    """Probability-weighted expected value for each metric key.

    Each scenario is ``{"probability": float, "metrics": dict}``.  Returns
    ``{"valid", "probability_total", "expected": {key: value or None}}``.
    """
    probabilities = [float(s.get("probability") or 0.0) for s in scenarios]
    valid = weights_valid(probabilities, tolerance)
    expected: dict[str, float | None] = {}
    for key in keys:
        values = [get_metric(s.get("metrics"), key) for s in scenarios]
        expected[key] = probability_weighted(values, probabilities, tolerance) if valid else None
    return {
        "valid": valid,
        "probability_total": sum(probabilities),
        "expected": expected,
    }
