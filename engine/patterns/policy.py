"""Declarative reconstruction policy for array-typed inputs.

Each slider-adjustable array field is reconstructed either by preserving its
year-over-year growth ratios (drivers that compound) or by preserving its
per-year share of the total (one-off or budget-style amounts).  The sign rule
is reapplied after reconstruction so cost arrays always stay negative.
"""

from __future__ import annotations

from dataclasses import dataclass

GROWTH = "growth"
PROPORTIONAL = "proportional"

NEGATIVE = -1
POSITIVE = 1


@dataclass(frozen=True)
class ReconstructionRule:
    key: str
    mode: str
    sign: int
    label: str = ""

    @property
    def anchor(self) -> str:
        """What the slider value means for this key."""
        return "first_year" if self.mode == GROWTH else "total"


_RULES: tuple[ReconstructionRule, ...] = (
    # Compounding drivers
    ReconstructionRule("credits_generated", GROWTH, POSITIVE, "Credits generated"),
    ReconstructionRule("price_per_credit", GROWTH, POSITIVE, "Price per credit"),
    ReconstructionRule("staff_costs", GROWTH, NEGATIVE, "Staff costs"),
    ReconstructionRule("mrv_costs", GROWTH, NEGATIVE, "MRV costs"),
    # Budgets and one-off amounts
    ReconstructionRule("capex", PROPORTIONAL, NEGATIVE, "CAPEX"),
    ReconstructionRule("feasibility_costs", PROPORTIONAL, NEGATIVE, "Feasibility costs"),
    ReconstructionRule("pdd_costs", PROPORTIONAL, NEGATIVE, "PDD costs"),
    ReconstructionRule("depreciation", PROPORTIONAL, NEGATIVE, "Depreciation"),
    ReconstructionRule("equity_injection", PROPORTIONAL, POSITIVE, "Equity injections"),
    ReconstructionRule("debt_draw", PROPORTIONAL, POSITIVE, "Debt draws"),
    ReconstructionRule("purchase_amount", PROPORTIONAL, POSITIVE, "Pre-purchase amount"),
)

RECONSTRUCTION_POLICY: dict[str, ReconstructionRule] = {rule.key: rule for rule in _RULES}


def rule_for(key: str) -> ReconstructionRule | None:
    return RECONSTRUCTION_POLICY.get(key)


def keys_by_mode(mode: str) -> list[str]:
    return [rule.key for rule in _RULES if rule.mode == mode]
