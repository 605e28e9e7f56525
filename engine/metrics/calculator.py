"""Comprehensive metrics over a set of financial statements.

Each metric group is an independent pure function over
:class:`~engine.statements.records.FinancialStatements`; none of them mutate
their input.  Ratios whose denominator is zero are reported as ``None``.

Result dictionaries use snake_case keys.  Every group has a ``yearly`` list
(one entry per horizon year) plus horizon-level totals where meaningful.
"""

from __future__ import annotations

import logging
from typing import Any

import numpy as np

from engine.metrics.returns import return_metrics
from engine.statements.records import FinancialStatements

logger = logging.getLogger(__name__)


# ======================================================================
# Constants
# ======================================================================

DEFAULT_TOLERANCE: float = 0.01
DAYS_PER_YEAR: int = 365

COMPLIANCE_CHECKS: tuple[str, ...] = (
    "balance_identity",
    "cash_tie_out",
    "equity_identity",
    "liability_signs",
    "debt_continuity",
)


# ======================================================================
# Internal helpers
# ======================================================================

def _ratio(numerator: float, denominator: float, scale: float = 1.0) -> float | None:
    """``numerator / denominator * scale`` or ``None`` for a zero denominator."""
    if abs(denominator) < 1e-12:
        return None
    return numerator / denominator * scale


def _discount_factor(rate: float, year: int) -> float:
    return 1.0 / (1.0 + rate) ** year


def _min_with_year(pairs: list[tuple[int, float | None]]) -> tuple[float | None, int | None]:
    valid = [(value, year) for year, value in pairs if value is not None]
    if not valid:
        return None, None
    value, year = min(valid, key=lambda item: item[0])
    return value, year


# ======================================================================
# Profitability
# ======================================================================

def profitability_metrics(statements: FinancialStatements) -> dict[str, Any]:
    yearly = []
    for inc in statements.income_statements:
        revenue = inc.total_revenue
        yearly.append({
            "year": inc.year,
            "revenue": revenue,
            "cogs": abs(inc.cogs),
            "gross_profit": inc.gross_profit,
            "opex": abs(inc.total_opex),
            "ebitda": inc.ebitda,
            "depreciation": abs(inc.depreciation),
            "interest": abs(inc.interest_expense),
            "ebt": inc.earnings_before_tax,
            "tax": abs(inc.income_tax),
            "net_income": inc.net_income,
            "gross_margin": _ratio(inc.gross_profit, revenue, 100.0),
            "ebitda_margin": _ratio(inc.ebitda, revenue, 100.0),
            "net_margin": _ratio(inc.net_income, revenue, 100.0),
        })

    total = {
        key: sum(y[key] for y in yearly)
        for key in ("revenue", "cogs", "gross_profit", "opex", "ebitda", "net_income")
    }
    total["gross_margin"] = _ratio(total["gross_profit"], total["revenue"], 100.0)
    total["ebitda_margin"] = _ratio(total["ebitda"], total["revenue"], 100.0)
    total["net_margin"] = _ratio(total["net_income"], total["revenue"], 100.0)
    return {"yearly": yearly, "total": total}


# ======================================================================
# Unit economics
# ======================================================================

def unit_economics(statements: FinancialStatements, discount_rate: float) -> dict[str, Any]:
    """Per-credit economics and the levelised cost of credit (LCOC).

    LCOC discounts operating cost (COGS + OPEX) and issued credits with the
    same factor as the return series, horizon year *t* at ``t + 1``.
    """
    yearly = []
    pv_cost = 0.0
    pv_credits = 0.0
    for t, inc in enumerate(statements.income_statements):
        issued = inc.credits_issued
        cogs = abs(inc.cogs)
        opex = abs(inc.total_opex)
        dep = abs(inc.depreciation)
        yearly.append({
            "year": inc.year,
            "credits_issued": issued,
            "wa_price": _ratio(inc.total_revenue, issued),
            "cogs_per_credit": _ratio(cogs, issued),
            "gross_profit_per_credit": _ratio(inc.total_revenue - cogs, issued),
            "opex_per_credit": _ratio(opex, issued),
            "cost_per_credit": _ratio(cogs + opex, issued),
            "all_in_cost_per_credit": _ratio(cogs + opex + dep, issued),
        })
        factor = _discount_factor(discount_rate, t + 1)
        pv_cost += (cogs + opex) * factor
        pv_credits += issued * factor

    total_issued = sum(y["credits_issued"] for y in yearly)
    total_revenue = sum(inc.total_revenue for inc in statements.income_statements)
    total_cogs = sum(abs(inc.cogs) for inc in statements.income_statements)
    total_opex = sum(abs(inc.total_opex) for inc in statements.income_statements)
    return {
        "yearly": yearly,
        "total": {
            "credits_issued": total_issued,
            "avg_wa_price": _ratio(total_revenue, total_issued),
            "avg_cogs_per_credit": _ratio(total_cogs, total_issued),
            "avg_cost_per_credit": _ratio(total_cogs + total_opex, total_issued),
            "lcoc": _ratio(pv_cost, pv_credits),
        },
    }


# ======================================================================
# Working capital
# ======================================================================

def working_capital_metrics(statements: FinancialStatements) -> dict[str, Any]:
    yearly = []
    for y in statements:
        ar = y.balance.accounts_receivable
        ap = y.balance.accounts_payable
        unearned = y.balance.unearned_revenue
        revenue = y.income.total_revenue
        spend = abs(y.income.cogs) + abs(y.income.total_opex)
        nwc = ar - ap - unearned
        yearly.append({
            "year": y.year,
            "accounts_receivable": ar,
            "accounts_payable": ap,
            "unearned_revenue": unearned,
            "net_working_capital": nwc,
            "dso": _ratio(ar, revenue, DAYS_PER_YEAR),
            "dpo": _ratio(ap, spend, DAYS_PER_YEAR),
            "nwc_pct_revenue": _ratio(nwc, revenue, 100.0),
        })
    return {"yearly": yearly}


# ======================================================================
# Liquidity & solvency
# ======================================================================

def liquidity_metrics(statements: FinancialStatements) -> dict[str, Any]:
    yearly = []
    for y in statements:
        bs = y.balance
        current_assets = bs.cash + bs.accounts_receivable
        current_liabilities = bs.accounts_payable + bs.unearned_revenue
        net_debt = max(bs.debt_balance - bs.cash, 0.0)
        ebitda = y.income.ebitda
        interest = abs(y.income.interest_expense)
        yearly.append({
            "year": y.year,
            "cash": bs.cash,
            "current_assets": current_assets,
            "current_liabilities": current_liabilities,
            "debt": bs.debt_balance,
            "equity": bs.total_equity,
            "current_ratio": _ratio(current_assets, current_liabilities),
            "cash_ratio": _ratio(bs.cash, current_liabilities),
            "debt_to_equity": bs.debt_balance / bs.total_equity if bs.total_equity > 0 else None,
            "net_debt": net_debt,
            "net_debt_to_ebitda": net_debt / ebitda if ebitda > 0 else None,
            "interest_coverage": _ratio(ebitda, interest),
        })
    return {"yearly": yearly}


# ======================================================================
# Debt coverage
# ======================================================================

def debt_metrics(statements: FinancialStatements, tolerance: float = DEFAULT_TOLERANCE) -> dict[str, Any]:
    """Per-year DSCR plus the conservative (post-CAPEX) variant.

    ``debt_amortized_by`` is the first year from which the balance stays at
    zero after the last draw; ``None`` when there is no debt or it is still
    outstanding at the horizon.
    """
    yearly = []
    for y in statements:
        d = y.debt
        ebitda = y.income.ebitda
        capex = abs(y.cash_flow.capex)
        yearly.append({
            "year": y.year,
            "beginning": d.beginning_balance,
            "draw": d.draw,
            "principal": d.principal_payment,
            "ending": d.ending_balance,
            "interest": d.interest_expense,
            "debt_service": d.debt_service,
            "dscr": _ratio(ebitda, d.debt_service) if d.debt_service > 0 else None,
            "dscr_conservative": (
                _ratio(ebitda - capex, d.debt_service) if d.debt_service > 0 else None
            ),
        })

    min_dscr, min_dscr_year = _min_with_year([(y["year"], y["dscr"]) for y in yearly])

    amortized_by = None
    if any(y["draw"] > 0 for y in yearly):
        for y in reversed(yearly):
            if y["ending"] > tolerance:
                break
            amortized_by = y["year"]

    return {
        "yearly": yearly,
        "min_dscr": min_dscr,
        "min_dscr_year": min_dscr_year,
        "debt_amortized_by": amortized_by,
    }


# ======================================================================
# Cash health & runway
# ======================================================================

def cash_health_metrics(statements: FinancialStatements) -> dict[str, Any]:
    yearly = []
    for cf in statements.cash_flow_statements:
        core_burn = -min(cf.operating_cash_flow + cf.investing_cash_flow, 0.0)
        yearly.append({
            "year": cf.year,
            "operating_cf": cf.operating_cash_flow,
            "investing_cf": cf.investing_cash_flow,
            "financing_cf": cf.financing_cash_flow,
            "net_change": cf.net_change_cash,
            "cash_end": cf.cash_end,
            "core_burn": core_burn,
            "runway_months": 12.0 * cf.cash_end / core_burn if core_burn > 0 else None,
        })

    min_cash, min_cash_year = _min_with_year([(y["year"], y["cash_end"]) for y in yearly])

    # Largest cumulative deficit before financing.
    pre_financing = np.array([y["operating_cf"] + y["investing_cf"] for y in yearly], dtype=np.float64)
    cumulative = np.cumsum(pre_financing) if pre_financing.size else np.zeros(1)
    peak_funding = float(abs(min(float(cumulative.min()), 0.0)))

    return {
        "yearly": yearly,
        "min_cash": min_cash,
        "min_cash_year": min_cash_year,
        "peak_funding": peak_funding,
    }


# ======================================================================
# Returns
# ======================================================================

def equity_cash_flows(statements: FinancialStatements) -> list[float]:
    """t0 equity outlay followed by free cash flow to equity.

    In-horizon injections are not subtracted: FCFE already nets the CAPEX
    they fund.
    """
    return [-statements.opening_equity] + [y.fcf.fcf_to_equity for y in statements]


def project_cash_flows(statements: FinancialStatements) -> list[float]:
    """Unlevered flows: OCF + ICF with interest added back."""
    return [
        y.cash_flow.operating_cash_flow
        + y.cash_flow.investing_cash_flow
        + abs(y.income.interest_expense)
        for y in statements
    ]


def investor_cash_flows(statements: FinancialStatements) -> list[float]:
    return [row.investor_cash_flow for row in statements.carbon_stream]


def returns_metrics(
    statements: FinancialStatements,
    discount_rate: float,
    finance_rate: float | None = None,
    reinvestment_rate: float | None = None,
) -> dict[str, Any]:
    return {
        "equity": return_metrics(
            equity_cash_flows(statements), discount_rate, finance_rate, reinvestment_rate
        ),
        "project": return_metrics(
            project_cash_flows(statements), discount_rate, finance_rate, reinvestment_rate
        ),
        "investor": return_metrics(
            investor_cash_flows(statements), discount_rate, finance_rate, reinvestment_rate
        ),
    }


# ======================================================================
# Carbon KPIs
# ======================================================================

def carbon_kpis(statements: FinancialStatements) -> dict[str, Any]:
    yearly = []
    remaining = statements.total_contracted_credits
    for inc in statements.income_statements:
        generated = inc.credits_generated
        issued = inc.credits_issued
        delivered = inc.credits_purchased
        spot_issued = issued - delivered
        remaining -= delivered
        ratio = _ratio(issued, generated, 100.0)
        yearly.append({
            "year": inc.year,
            "generated": generated,
            "issued": issued,
            "issuance_ratio": min(ratio, 100.0) if ratio is not None else None,
            "purchased_delivered": delivered,
            "remaining_contracted": max(remaining, 0.0),
            "wa_price": _ratio(inc.total_revenue, issued),
            "spot_price": inc.spot_revenue / spot_issued if spot_issued > 0 else None,
        })

    total_generated = sum(y["generated"] for y in yearly)
    total_issued = sum(y["issued"] for y in yearly)
    return {
        "yearly": yearly,
        "total_generated": total_generated,
        "total_issued": total_issued,
        "total_contracted": statements.total_contracted_credits,
        "issuance_ratio": _ratio(total_issued, total_generated, 100.0),
        "implied_pre_purchase_price": (
            statements.implied_purchase_price if statements.total_contracted_credits > 0 else None
        ),
    }


# ======================================================================
# Break-even
# ======================================================================

def break_even_metrics(statements: FinancialStatements) -> dict[str, Any]:
    """Operating break-even at which EBITDA is zero for the year's volume.

    With COGS a fixed share of revenue, the break-even price is
    ``opex / (issued * (1 - cogs_rate))``.
    """
    margin = 1.0 - statements.cogs_rate
    yearly = []
    for inc in statements.income_statements:
        issued = inc.credits_issued
        opex = abs(inc.total_opex)
        wa_price = _ratio(inc.total_revenue, issued)
        be_price = _ratio(opex, issued * margin) if margin > 0 else None
        be_volume = (
            opex / (wa_price * margin) if wa_price is not None and wa_price > 0 and margin > 0 else None
        )
        yearly.append({
            "year": inc.year,
            "break_even_price": be_price,
            "break_even_volume": be_volume,
            "realized_price": wa_price,
            "safety_spread": wa_price - be_price if wa_price is not None and be_price is not None else None,
        })
    return {"yearly": yearly}


# ======================================================================
# Compliance
# ======================================================================

def compliance_checks(
    statements: FinancialStatements, tolerance: float = DEFAULT_TOLERANCE
) -> dict[str, Any]:
    """Re-check the accounting identities for every year.

    The engine never fails closed: a failed check is reported per year and
    the overall flag is ``False``, but the statements are still returned.
    """
    yearly = []
    prev_equity = statements.opening_equity
    prev_ending_debt = 0.0
    for y in statements:
        bs, cf, inc, d = y.balance, y.cash_flow, y.income, y.debt

        balance_ok = abs(bs.total_assets - (bs.total_liabilities + bs.total_equity)) <= tolerance
        cash_ok = abs(cf.cash_end - bs.cash) <= tolerance
        equity_ok = (
            abs(bs.total_equity - (prev_equity + inc.net_income + cf.equity_injection)) <= tolerance
        )
        liabilities_ok = all(
            v >= -tolerance
            for v in (
                bs.accounts_payable,
                bs.unearned_revenue,
                bs.debt_balance,
                bs.accumulated_depreciation,
            )
        )
        costs_ok = all(
            v <= tolerance
            for v in (
                inc.cogs,
                inc.total_opex,
                inc.depreciation,
                inc.interest_expense,
                inc.income_tax,
            )
        ) and inc.total_revenue >= -tolerance
        debt_ok = (
            abs(d.beginning_balance - prev_ending_debt) <= tolerance
            and abs(d.beginning_balance + d.draw - d.principal_payment - d.ending_balance) <= tolerance
        )

        row = {
            "year": y.year,
            "balance_identity": balance_ok,
            "cash_tie_out": cash_ok,
            "equity_identity": equity_ok,
            "liability_signs": liabilities_ok and costs_ok,
            "debt_continuity": debt_ok,
        }
        row["passed"] = all(row[name] for name in COMPLIANCE_CHECKS)
        yearly.append(row)

        prev_equity = bs.total_equity
        prev_ending_debt = d.ending_balance

    overall = all(row["passed"] for row in yearly)
    if not overall:
        failed = [
            (row["year"], name) for row in yearly for name in COMPLIANCE_CHECKS if not row[name]
        ]
        logger.info("Compliance checks failed: %s", failed)
    return {"yearly": yearly, "overall_pass": overall, "tolerance": tolerance}


# ======================================================================
# Summary
# ======================================================================

def _summary(metrics: dict[str, Any]) -> dict[str, Any]:
    profit_total = metrics["profitability"]["total"]
    latest_liquidity = metrics["liquidity"]["yearly"][-1] if metrics["liquidity"]["yearly"] else {}
    return {
        "total_revenue": profit_total["revenue"],
        "total_ebitda": profit_total["ebitda"],
        "total_net_income": profit_total["net_income"],
        "total_credits_issued": metrics["carbon_kpis"]["total_issued"],
        "wa_price": metrics["unit_economics"]["total"]["avg_wa_price"],
        "min_dscr": metrics["debt"]["min_dscr"],
        "equity_irr": metrics["returns"]["equity"]["irr"],
        "equity_npv": metrics["returns"]["equity"]["npv"],
        "project_irr": metrics["returns"]["project"]["irr"],
        "project_npv": metrics["returns"]["project"]["npv"],
        "ending_cash": latest_liquidity.get("cash"),
        "current_ratio": latest_liquidity.get("current_ratio"),
        "net_debt": latest_liquidity.get("net_debt"),
    }


# ======================================================================
# Main entry point
# ======================================================================

def compute_comprehensive_metrics(
    statements: FinancialStatements,
    discount_rate: float,
    finance_rate: float | None = None,
    reinvestment_rate: float | None = None,
    tolerance: float = DEFAULT_TOLERANCE,
) -> dict[str, Any]:
    """Compute every metric group for one set of statements.

    Parameters
    ----------
    statements : FinancialStatements
        Output of :func:`engine.statements.compute_statements`.
    discount_rate : float
        Decimal discount rate used for NPV, discounted payback and LCOC.
    finance_rate, reinvestment_rate : float, optional
        MIRR rates; default to *discount_rate*.
    tolerance : float
        Absolute tolerance for the compliance checks.

    Returns
    -------
    dict
        Keys: ``profitability``, ``unit_economics``, ``working_capital``,
        ``liquidity``, ``debt``, ``cash_health``, ``returns``,
        ``carbon_kpis``, ``break_even``, ``compliance``, ``summary``.
    """
    metrics: dict[str, Any] = {
        "years": list(statements.years),
        "discount_rate": discount_rate,
        "profitability": profitability_metrics(statements),
        "unit_economics": unit_economics(statements, discount_rate),
        "working_capital": working_capital_metrics(statements),
        "liquidity": liquidity_metrics(statements),
        "debt": debt_metrics(statements, tolerance),
        "cash_health": cash_health_metrics(statements),
        "returns": returns_metrics(statements, discount_rate, finance_rate, reinvestment_rate),
        "carbon_kpis": carbon_kpis(statements),
        "break_even": break_even_metrics(statements),
        "compliance": compliance_checks(statements, tolerance),
    }
    metrics["summary"] = _summary(metrics)
    return metrics
