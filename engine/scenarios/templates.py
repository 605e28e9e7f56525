"""Pre-built scenario templates.

A template scales the slider anchors of three variable groups (revenue
drivers, cost drivers, financing rates) by percentage adjustments and yields
an override map for :func:`engine.scenarios.sensitivity.apply_overrides`.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Mapping

from engine.statements.inputs import ModelInputs

from .sensitivity import slider_base_values

REVENUE_KEYS: tuple[str, ...] = ("credits_generated", "price_per_credit")
COST_KEYS: tuple[str, ...] = (
    "cogs_rate",
    "staff_costs",
    "mrv_costs",
    "pdd_costs",
    "feasibility_costs",
    "capex",
    "depreciation",
)
FINANCING_KEYS: tuple[str, ...] = ("interest_rate", "discount_rate")

_RATE_KEYS = {"cogs_rate", "interest_rate", "discount_rate"}


@dataclass(frozen=True)
class ScenarioTemplate:
    key: str
    name: str
    description: str
    category: str
    revenue_pct: float
    cost_pct: float
    financing_pct: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


SCENARIO_TEMPLATES: dict[str, ScenarioTemplate] = {
    t.key: t
    for t in (
        ScenarioTemplate(
            "optimistic", "Optimistic Growth",
            "Higher revenues and lower costs.",
            "three_point", 20.0, -10.0, 0.0,
        ),
        ScenarioTemplate(
            "pessimistic", "Pessimistic Downturn",
            "Lower revenues and higher costs.",
            "three_point", -20.0, 15.0, 0.0,
        ),
        ScenarioTemplate(
            "conservative", "Conservative Base",
            "Moderate revenue reduction and cost increase.",
            "three_point", -10.0, 10.0, 0.0,
        ),
        ScenarioTemplate(
            "market_stress", "Market Stress",
            "Lower credit prices and higher financing costs.",
            "market", -25.0, 5.0, 25.0,
        ),
        ScenarioTemplate(
            "best_case", "Best Case",
            "Maximum revenue potential with an optimal cost structure.",
            "market", 30.0, -15.0, -20.0,
        ),
        ScenarioTemplate(
            "cost_overrun", "Cost Overrun",
            "Significant cost increases across all expense categories.",
            "risk", 0.0, 30.0, 10.0,
        ),
    )
}


def template_overrides(
    inputs: ModelInputs,
    template: ScenarioTemplate | str,
    revenue_pct: float | None = None,
    cost_pct: float | None = None,
    financing_pct: float | None = None,
) -> dict[str, float]:
    """Override map produced by *template* for *inputs*.

    The optional percentages replace the template's own, which lets a caller
    customise a template before applying it.  Scaled rates are clamped to
    [0, 1].

    Raises
    ------
    KeyError
        If *template* names no known template.
    """
    if isinstance(template, str):
        template = SCENARIO_TEMPLATES[template]

    adjustments: Mapping[tuple[str, ...], float] = {
        REVENUE_KEYS: template.revenue_pct if revenue_pct is None else revenue_pct,
        COST_KEYS: template.cost_pct if cost_pct is None else cost_pct,
        FINANCING_KEYS: template.financing_pct if financing_pct is None else financing_pct,
    }
    anchors = slider_base_values(inputs)

    overrides: dict[str, float] = {}
    for keys, pct in adjustments.items():
        factor = 1.0 + pct / 100.0
        for key in keys:
            value = anchors[key] * factor
            if key in _RATE_KEYS:
                value = min(max(value, 0.0), 1.0)
            overrides[key] = value
    return overrides
