"""Slider overrides and one-at-a-time sensitivity sweeps.

A sensitivity override is a partial ``{key: scalar}`` map.  Scalar inputs
(rates, durations, the t0 equity) are replaced directly; array inputs are
rebuilt from their base pattern by the reconstruction policy so the slider
moves the level of a series without flattening its shape.

The sweep varies each variable independently while all others remain at
their base-case values, and returns data for spider plots and tornado
diagrams.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping

import numpy as np

from engine.patterns.policy import RECONSTRUCTION_POLICY, ReconstructionRule
from engine.patterns.reconstructor import anchor_value, reconstruct
from engine.statements.inputs import (
    AMOUNT_FIELDS,
    INTEGER_FIELDS,
    OPTIONAL_RATE_FIELDS,
    RATE_FIELDS,
    InputValidationError,
    ModelInputs,
    normalize_rate,
    parse_number_loose,
    unwrap,
)

logger = logging.getLogger(__name__)


# ======================================================================
# Overrides
# ======================================================================

def _rate_override(key: str, value: Any) -> float:
    """Slider rates are decimals; only strings get the percent reading."""
    value = unwrap(value)
    if isinstance(value, str):
        return normalize_rate(value)
    rate = parse_number_loose(value)
    if rate < 0 or rate > 1:
        raise InputValidationError(f"{key} must be a decimal between 0 and 1 (got {value!r}).")
    return rate


def _scalar_override(key: str, value: Any) -> float | int:
    if key in RATE_FIELDS or key in OPTIONAL_RATE_FIELDS:
        return _rate_override(key, value)
    if key in INTEGER_FIELDS:
        count = int(round(parse_number_loose(value)))
        if count < 0:
            raise InputValidationError(f"{key} must be >= 0.")
        return count
    return abs(parse_number_loose(value))


def apply_overrides(
    inputs: ModelInputs,
    overrides: Mapping[str, Any] | None,
    policy: dict[str, ReconstructionRule] | None = None,
) -> ModelInputs:
    """Return a new :class:`ModelInputs` with slider *overrides* applied.

    Array keys are reconstructed from the *base* arrays in *inputs*, never
    from a previously overridden copy, so repeated slider moves do not drift.

    Raises
    ------
    InputValidationError
        For an unknown key or a value that cannot be normalised.
    """
    if not overrides:
        return inputs

    rules = RECONSTRUCTION_POLICY if policy is None else policy
    changes: dict[str, Any] = {}
    for key, value in overrides.items():
        if key in rules:
            changes[key] = reconstruct(key, getattr(inputs, key), parse_number_loose(value), rules)
        elif key in RATE_FIELDS or key in OPTIONAL_RATE_FIELDS or key in INTEGER_FIELDS or key in AMOUNT_FIELDS:
            changes[key] = _scalar_override(key, value)
        else:
            raise InputValidationError(f"Unknown sensitivity variable: {key}")
    return inputs.with_overrides(**changes)


def slider_base_values(
    inputs: ModelInputs, policy: dict[str, ReconstructionRule] | None = None
) -> dict[str, float]:
    """Slider anchor per adjustable key.

    Growth keys anchor on the first-year magnitude, proportional keys on the
    horizon total, scalars on their own value.  Unset optional rates are
    omitted.
    """
    rules = RECONSTRUCTION_POLICY if policy is None else policy
    values: dict[str, float] = {}
    for key in rules:
        values[key] = anchor_value(key, getattr(inputs, key), rules)
    for key in RATE_FIELDS + INTEGER_FIELDS + AMOUNT_FIELDS:
        values[key] = getattr(inputs, key)
    for key in OPTIONAL_RATE_FIELDS:
        value = getattr(inputs, key)
        if value is not None:
            values[key] = value
    return values


# ======================================================================
# Metrics of interest
# ======================================================================

SWEEP_METRICS: tuple[str, ...] = ("equity_npv", "equity_irr", "min_dscr")


def _extract_metrics(metrics: Mapping[str, Any]) -> dict[str, float | None]:
    """Pull the sweep metrics out of a comprehensive metrics dict."""
    return {
        "equity_npv": metrics["returns"]["equity"]["npv"],
        "equity_irr": metrics["returns"]["equity"]["irr"],
        "min_dscr": metrics["debt"]["min_dscr"],
    }


def _default_run(inputs: ModelInputs, overrides: Mapping[str, Any]) -> Mapping[str, Any]:
    from engine.pipeline import run_model

    return run_model(inputs, overrides).metrics


# ======================================================================
# Main entry point
# ======================================================================

def sensitivity_sweep(
    inputs: ModelInputs,
    variables: list[dict],
    run_fn: Callable[[ModelInputs, Mapping[str, Any]], Mapping[str, Any]] | None = None,
    max_points: int = 25,
) -> dict:
    """Run a one-at-a-time sensitivity sweep.

    Parameters
    ----------
    inputs : ModelInputs
        Base-case inputs; never mutated.
    variables : list[dict]
        Each entry describes one sensitivity variable::

            {
                "key": "price_per_credit",
                "name": "Carbon price",     # optional, defaults to key
                "range": [10.0, 25.0],      # optional slider range
                "points": 5,                # optional, default 5
            }

        Without ``range`` the sweep spans +/-20 % around the slider anchor.
        Rate ranges are clipped to [0, 1].
    run_fn : callable, optional
        ``run_fn(inputs, overrides) -> metrics``.  Defaults to the full
        model pipeline.
    max_points : int
        Upper bound on evaluation points per variable.

    Returns
    -------
    dict
        ``spider``: ``{name: [{"value", "equity_npv", "equity_irr", "min_dscr"}, ...]}``;
        ``tornado``: ``{name: {low/high values and metrics, base metrics, npv_spread}}``
        sorted by descending ``npv_spread``; ``base_results``: base metrics.
    """
    run = run_fn or _default_run
    base_metrics = _extract_metrics(run(inputs, {}))
    anchors = slider_base_values(inputs)

    spider: dict[str, list[dict[str, Any]]] = {}
    tornado: dict[str, dict[str, Any]] = {}

    for var in variables:
        key: str = var["key"]
        if key not in anchors and key not in OPTIONAL_RATE_FIELDS:
            raise InputValidationError(f"Unknown sensitivity variable: {key}")
        name: str = var.get("name") or key
        n_points = min(max(int(var.get("points", 5)), 2), max_points)

        if var.get("range"):
            low_val, high_val = (float(v) for v in var["range"][:2])
        else:
            base = float(anchors.get(key, inputs.discount_rate))
            low_val, high_val = base * 0.8, base * 1.2
        if key in RATE_FIELDS or key in OPTIONAL_RATE_FIELDS:
            low_val, high_val = min(max(low_val, 0.0), 1.0), min(max(high_val, 0.0), 1.0)

        sweep_results: list[dict[str, Any]] = []
        for val in np.linspace(low_val, high_val, n_points).tolist():
            entry: dict[str, Any] = {"value": val}
            entry.update(_extract_metrics(run(inputs, {key: val})))
            sweep_results.append(entry)
        spider[name] = sweep_results

        # Tornado data: use the extreme ends of the sweep.
        low_result = sweep_results[0]
        high_result = sweep_results[-1]
        tornado[name] = {
            "key": key,
            "low_value": low_val,
            "high_value": high_val,
            "low_npv": low_result["equity_npv"],
            "high_npv": high_result["equity_npv"],
            "low_irr": low_result["equity_irr"],
            "high_irr": high_result["equity_irr"],
            "low_min_dscr": low_result["min_dscr"],
            "high_min_dscr": high_result["min_dscr"],
            "base_npv": base_metrics["equity_npv"],
            "base_irr": base_metrics["equity_irr"],
            "npv_spread": abs((high_result["equity_npv"] or 0.0) - (low_result["equity_npv"] or 0.0)),
        }

    logger.info("Sensitivity sweep over %d variables", len(variables))
    ordered = dict(sorted(tornado.items(), key=lambda item: item[1]["npv_spread"], reverse=True))
    return {"spider": spider, "tornado": ordered, "base_results": base_metrics}
