"""Advisory diagnostics for a model run.

Diagnostics never block a computation.  They flag inputs and results a
reviewer should look at: revenue that cannot cover costs, leverage far above
the capital programme, implausible rates, negative cash, missing inputs,
failed accounting checks and debt left outstanding at the horizon.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Mapping

from engine.metrics.calculator import COMPLIANCE_CHECKS
from engine.statements.inputs import ModelInputs
from engine.statements.records import FinancialStatements

INFO = "info"
WARNING = "warning"

DEBT_TO_CAPEX_LIMIT: float = 1.5
MAX_DISCOUNT_RATE: float = 0.50
MAX_INTEREST_RATE: float = 0.30
MAX_TAX_RATE: float = 0.60


@dataclass(frozen=True)
class Diagnostic:
    code: str
    severity: str
    message: str
    year: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _rate_diagnostics(inputs: ModelInputs) -> list[Diagnostic]:
    out: list[Diagnostic] = []
    limits = (
        ("discount_rate", "Discount rate", MAX_DISCOUNT_RATE),
        ("interest_rate", "Interest rate", MAX_INTEREST_RATE),
        ("income_tax_rate", "Income tax rate", MAX_TAX_RATE),
    )
    for name, label, limit in limits:
        rate = getattr(inputs, name)
        if rate > limit:
            out.append(Diagnostic(
                "unrealistic_rate",
                WARNING,
                f"{label} of {rate:.1%} exceeds {limit:.0%}.",
            ))
    return out


def validate_model(
    inputs: ModelInputs,
    statements: FinancialStatements,
    metrics: Mapping[str, Any] | None = None,
    completeness: Mapping[str, Any] | None = None,
    tolerance: float = 0.01,
) -> list[Diagnostic]:
    """Return advisory diagnostics for one run.

    Parameters
    ----------
    inputs : ModelInputs
        The inputs the statements were computed from.
    statements : FinancialStatements
        Engine output.
    metrics : dict, optional
        Comprehensive metrics; when given, failed compliance checks are
        reported.
    completeness : dict, optional
        Output of :func:`engine.patterns.extractor.completeness_report`.
    """
    diagnostics: list[Diagnostic] = []

    total_revenue = sum(i.total_revenue for i in statements.income_statements)
    total_costs = sum(abs(i.cogs) + abs(i.total_opex) for i in statements.income_statements)
    if total_costs > 0 and total_revenue < total_costs:
        diagnostics.append(Diagnostic(
            "revenue_below_costs",
            WARNING,
            f"Total revenue {total_revenue:,.0f} does not cover operating costs {total_costs:,.0f}.",
        ))

    total_draws = sum(inputs.debt_draw)
    total_capex = sum(abs(v) for v in inputs.capex)
    if total_draws > 0 and total_draws > DEBT_TO_CAPEX_LIMIT * total_capex:
        diagnostics.append(Diagnostic(
            "debt_exceeds_capex",
            WARNING,
            f"Debt draws {total_draws:,.0f} exceed {DEBT_TO_CAPEX_LIMIT}x CAPEX {total_capex:,.0f}.",
        ))

    diagnostics.extend(_rate_diagnostics(inputs))

    for bs in statements.balance_sheets:
        if bs.cash < -tolerance:
            diagnostics.append(Diagnostic(
                "negative_cash",
                WARNING,
                f"Cash balance is negative ({bs.cash:,.2f}).",
                bs.year,
            ))

    if completeness is not None:
        for key in list(completeness.get("missing_arrays", [])) + list(completeness.get("zero_arrays", [])):
            diagnostics.append(Diagnostic(
                "incomplete_input",
                INFO,
                f"Input '{key}' is missing or zero for every year.",
            ))
        for key, count in dict(completeness.get("short_arrays", {})).items():
            diagnostics.append(Diagnostic(
                "incomplete_input",
                INFO,
                f"Input '{key}' is missing {count} year(s); zero assumed.",
            ))
        for key in completeness.get("missing_scalars", []):
            diagnostics.append(Diagnostic(
                "incomplete_input",
                INFO,
                f"Assumption '{key}' is not set; zero assumed.",
            ))

    if metrics is not None:
        for row in metrics.get("compliance", {}).get("yearly", []):
            for check in COMPLIANCE_CHECKS:
                if not row.get(check, True):
                    diagnostics.append(Diagnostic(
                        "compliance_failure",
                        WARNING,
                        f"Accounting check '{check}' failed.",
                        row.get("year"),
                    ))

    if len(statements) and statements.debt_schedule[-1].ending_balance > tolerance:
        last = statements.debt_schedule[-1]
        diagnostics.append(Diagnostic(
            "debt_outstanding_at_horizon",
            INFO,
            f"Debt of {last.ending_balance:,.0f} is still outstanding at the end of the horizon.",
            last.year,
        ))

    return diagnostics
