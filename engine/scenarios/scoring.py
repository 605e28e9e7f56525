"""Multi-scenario scoring with weighted decision matrix.

Normalizes metrics across scenarios and produces a weighted composite
score for ranking scenarios.
"""
from __future__ import annotations

from typing import Any

from .comparison import get_metric


# Metrics where lower values are better
LOWER_IS_BETTER = {"returns.equity.payback", "cash_health.peak_funding", "unit_economics.total.lcoc"}
# Metrics where higher values are better
HIGHER_IS_BETTER = {"returns.equity.npv", "returns.equity.irr", "returns.project.irr", "debt.min_dscr"}


def normalize_metrics(
    rows: list[dict],
    metric_keys: list[str] | None = None,
) -> list[dict]:
    """Min-max normalize flat metric rows to the 0-1 range.

    The best value of each metric maps to 1.0 and the worst to 0.0; a
    missing value scores 0.0 and a metric with a single distinct value
    scores 1.0 everywhere.
    """
    if not rows:
        return []

    if metric_keys is None:
        metric_keys = sorted(LOWER_IS_BETTER | HIGHER_IS_BETTER)

    normalized = [{k: v for k, v in r.items() if k not in metric_keys} for r in rows]

    for key in metric_keys:
        values = [float(r[key]) if r.get(key) is not None else None for r in rows]
        valid = [v for v in values if v is not None]
        if not valid:
            for entry in normalized:
                entry[key] = 0.0
            continue

        min_v = min(valid)
        span = max(valid) - min_v
        for entry, v in zip(normalized, values):
            if v is None:
                entry[key] = 0.0
            elif span == 0:
                entry[key] = 1.0
            elif key in LOWER_IS_BETTER:
                entry[key] = 1.0 - (v - min_v) / span
            else:
                entry[key] = (v - min_v) / span

    return normalized


def rank_scenarios(
    scenarios: list[dict],
    weights: dict[str, float] | None = None,
) -> list[dict]:
    """Score and rank scenarios using weighted decision matrix.

    Parameters
    ----------
    scenarios : list[dict]
        Each dict has ``name``, an optional ``id`` and a ``metrics`` dict
        (comprehensive metrics).
    weights : dict[str, float] or None
        Weight per metric path (normalized to sum to 1.0).  Defaults to
        equal weights over every metric available in any scenario.

    Returns
    -------
    list[dict]
        Sorted by composite score (descending), each with ``score``,
        ``rank``, ``normalized`` and ``raw``.
    """
    if not scenarios:
        return []

    all_metrics = sorted(LOWER_IS_BETTER | HIGHER_IS_BETTER)
    rows: list[dict[str, Any]] = [
        {m: get_metric(s.get("metrics"), m) for m in all_metrics} for s in scenarios
    ]
    available = [m for m in all_metrics if any(r.get(m) is not None for r in rows)]

    if weights is None:
        weights = {m: 1.0 for m in available}

    total_w = sum(weights.get(m, 0) for m in available)
    if total_w <= 0:
        total_w = 1.0
    norm_weights = {m: weights.get(m, 0) / total_w for m in available}

    normalized = normalize_metrics(rows, available)

    scored = []
    for i, (orig, row, norm) in enumerate(zip(scenarios, rows, normalized)):
        composite = sum(norm.get(m, 0) * norm_weights.get(m, 0) for m in available)
        scored.append({
            "id": orig.get("id"),
            "name": orig.get("name", f"Scenario {i + 1}"),
            "score": round(composite, 4),
            "normalized": {m: round(norm.get(m, 0), 4) for m in available},
            "raw": {m: row.get(m) for m in available},
        })

    scored.sort(key=lambda x: x["score"], reverse=True)
    for i, s in enumerate(scored):
        s["rank"] = i + 1

    return scored
