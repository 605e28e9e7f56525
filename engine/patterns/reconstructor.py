"""Regenerate a per-year array from one scalar while keeping its shape.

Growth mode re-anchors the first-year value and replays the base pattern's
year-over-year ratios.  Proportional mode re-anchors the horizon total and
keeps each year's share of it.  Neither mode ever divides by zero.
"""

from __future__ import annotations

from typing import Sequence

from engine.patterns.policy import (
    GROWTH,
    NEGATIVE,
    RECONSTRUCTION_POLICY,
    ReconstructionRule,
)


def growth_ratios(base: Sequence[float]) -> list[float]:
    """``r[0] = 1``, ``r[i] = |base[i]| / |base[i-1]|``; a zero prior year gives 1."""
    ratios: list[float] = []
    for i, value in enumerate(base):
        if i == 0 or base[i - 1] == 0:
            ratios.append(1.0)
        else:
            ratios.append(abs(value) / abs(base[i - 1]))
    return ratios


def base_total(base: Sequence[float]) -> float:
    return sum(abs(v) for v in base if v != 0)


def growth(base: Sequence[float], first_value: float) -> list[float]:
    """Rebuild *base* starting from *first_value*.

    ``growth(base, base[0])`` reproduces *base* whenever its entries share a
    sign and no year follows a zero year.
    """
    out: list[float] = []
    for i, ratio in enumerate(growth_ratios(base)):
        out.append(float(first_value) if i == 0 else out[-1] * ratio)
    return out


def proportional(base: Sequence[float], total: float) -> list[float]:
    """Rescale the non-zero entries of *base* so their magnitudes sum to *total*.

    A base with no non-zero entry has no shape to keep; *total* is then
    spread evenly over the horizon.
    """
    n = len(base)
    if n == 0:
        return []
    current = base_total(base)
    if current == 0:
        return [float(total) / n] * n
    factor = float(total) / current
    return [v * factor if v != 0 else 0.0 for v in base]


def _apply_sign(values: list[float], sign: int) -> list[float]:
    if sign == NEGATIVE:
        return [-abs(v) for v in values]
    return [abs(v) for v in values]


def reconstruct(
    key: str,
    base: Sequence[float],
    value: float,
    policy: dict[str, ReconstructionRule] | None = None,
) -> list[float]:
    """Reconstruct the array for *key* from a slider *value*.

    Raises
    ------
    KeyError
        If *key* has no reconstruction rule.
    """
    rules = RECONSTRUCTION_POLICY if policy is None else policy
    rule = rules[key]
    if rule.mode == GROWTH:
        values = growth(base, value)
    else:
        values = proportional(base, abs(value))
    return _apply_sign(values, rule.sign)


def anchor_value(key: str, base: Sequence[float], policy: dict[str, ReconstructionRule] | None = None) -> float:
    """Slider anchor for *key*: first-year magnitude (growth) or total (proportional)."""
    rules = RECONSTRUCTION_POLICY if policy is None else policy
    rule = rules[key]
    if rule.mode == GROWTH:
        return abs(float(base[0])) if len(base) else 0.0
    return base_total(base)
