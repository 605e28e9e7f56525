"""Linked financial statements for carbon-credit projects.

Computes, year by year, the income statement, debt schedule, balance
sheet, cash-flow statement, carbon stream and free cash flow to equity from
a complete :class:`~engine.statements.inputs.ModelInputs`.

The waterfall is a single pass: every step only reads values from the
current or prior year.  Interest is charged on the prior year's ending
debt balance, which removes the interest/cash circularity without a
fixed-point iteration.  The balance sheet is rolled forward from the
cash-flow statement, so the balance identity is a genuine check rather
than a plug.
"""

from __future__ import annotations

import logging

from engine.statements.inputs import ModelInputs
from engine.statements.records import (
    BalanceSheet,
    CarbonStreamRow,
    CashFlowStatement,
    DebtScheduleRow,
    FinancialStatements,
    FreeCashFlow,
    IncomeStatement,
    YearlyStatement,
)

logger = logging.getLogger(__name__)


# ======================================================================
# Carbon credits
# ======================================================================

def _issued_credits(inputs: ModelInputs) -> list[float]:
    """Credits issued per year.

    Generated credits accumulate until a year with ``issuance_flag == 1``
    releases the whole un-issued backlog.
    """
    issued: list[float] = []
    cum_generated = 0.0
    cum_issued = 0.0
    for t in range(inputs.horizon):
        cum_generated += inputs.value("credits_generated", t)
        flag = 1.0 if inputs.value("issuance_flag", t) >= 0.5 else 0.0
        q = (cum_generated - cum_issued) * flag
        issued.append(q)
        cum_issued += q
    return issued


def _pre_purchase(
    inputs: ModelInputs, issued: list[float]
) -> tuple[list[float], float]:
    """Return (credits delivered to the pre-purchaser per year, implied price).

    The agreement is active from the first year with a purchase payment
    onward; in active years ``purchase_share`` of the issued credits go to
    the pre-purchaser.  The implied price spreads the total amount paid over
    the total credits delivered.
    """
    purchased: list[float] = []
    active = False
    for t, q in enumerate(issued):
        if inputs.value("purchase_amount", t) > 0:
            active = True
        purchased.append(q * inputs.purchase_share if active else 0.0)

    total_purchased = sum(purchased)
    total_amount = sum(inputs.purchase_amount)
    implied_price = total_amount / total_purchased if total_purchased > 0 else 0.0
    return purchased, implied_price


# ======================================================================
# Depreciation
# ======================================================================

def _depreciation_schedule(inputs: ModelInputs) -> list[float]:
    """Per-year depreciation as negative values.

    The explicit schedule wins whenever it has a non-zero entry.  Otherwise,
    with ``depreciation_years > 0``, each CAPEX vintage is depreciated
    straight-line from its spend year, never beyond its own cost.
    """
    explicit = [-abs(v) for v in inputs.depreciation]
    if any(explicit) or inputs.depreciation_years <= 0:
        return explicit

    n = inputs.horizon
    life = inputs.depreciation_years
    schedule = [0.0] * n
    for spend_year, capex in enumerate(inputs.capex):
        cost = abs(capex)
        if cost == 0:
            continue
        annual = cost / life
        for t in range(spend_year, min(spend_year + life, n)):
            schedule[t] -= annual
    return schedule


# ======================================================================
# Debt
# ======================================================================

def _principal_due(
    beginning: float, t: int, first_draw: int | None, tenor: int
) -> float:
    """Level amortisation of *beginning* over the remaining tenor.

    The tenor clock starts at the first draw year; repayment begins the year
    after.  Once the tenor is exhausted the full balance falls due.
    """
    if beginning <= 0 or first_draw is None or t <= first_draw:
        return 0.0
    remaining = tenor - (t - first_draw) + 1
    if remaining <= 0:
        return beginning
    return min(beginning / remaining, beginning)


def _first_draw_index(inputs: ModelInputs) -> int | None:
    for t, draw in enumerate(inputs.debt_draw):
        if draw > 0:
            return t
    return None


# ======================================================================
# Main entry point
# ======================================================================

def compute_statements(inputs: ModelInputs) -> FinancialStatements:
    """Run the full statement waterfall for every horizon year.

    Parameters
    ----------
    inputs : ModelInputs
        Complete, normalised inputs (costs negative, inflows positive).

    Returns
    -------
    FinancialStatements
        One :class:`YearlyStatement` per horizon year, in ``years`` order.
        The function is pure: identical inputs always produce equal output.
    """
    issued = _issued_credits(inputs)
    purchased, implied_price = _pre_purchase(inputs, issued)
    depreciation = _depreciation_schedule(inputs)
    first_draw = _first_draw_index(inputs)

    # Prior-year balances (opening position before the first horizon year).
    prev_cash = inputs.initial_equity_t0
    prev_ar = 0.0
    prev_ap = 0.0
    prev_unearned = 0.0
    prev_debt = 0.0
    prev_equity = inputs.initial_equity_t0
    ppe_gross = 0.0
    accumulated_dep = 0.0
    contributed = inputs.initial_equity_t0
    retained = 0.0
    cum_unearned = 0.0

    yearly: list[YearlyStatement] = []

    for t, year in enumerate(inputs.years):
        # --------------------------------------------------------------
        # 1. Revenue
        # --------------------------------------------------------------
        price = inputs.value("price_per_credit", t)
        q_issued = issued[t]
        q_purchased = purchased[t]
        spot_revenue = (q_issued - q_purchased) * price
        pre_revenue = q_purchased * implied_price
        revenue = spot_revenue + pre_revenue

        # --------------------------------------------------------------
        # 2-4. COGS, OPEX, EBITDA
        # --------------------------------------------------------------
        cogs = -revenue * inputs.cogs_rate
        feasibility = -abs(inputs.value("feasibility_costs", t))
        pdd = -abs(inputs.value("pdd_costs", t))
        mrv = -abs(inputs.value("mrv_costs", t))
        staff = -abs(inputs.value("staff_costs", t))
        opex = feasibility + pdd + mrv + staff
        gross_profit = revenue + cogs
        ebitda = gross_profit + opex

        # --------------------------------------------------------------
        # 5. Depreciation
        # --------------------------------------------------------------
        dep = depreciation[t]

        # --------------------------------------------------------------
        # 6. Debt schedule (interest on prior-year ending balance)
        # --------------------------------------------------------------
        beginning = prev_debt
        draw = abs(inputs.value("debt_draw", t))
        interest = beginning * inputs.interest_rate
        principal = _principal_due(beginning, t, first_draw, inputs.debt_duration_years)
        ending = beginning + draw - principal
        debt_service = interest + principal
        dscr = ebitda / debt_service if debt_service > 0 else None

        # --------------------------------------------------------------
        # 7. Earnings and tax
        # --------------------------------------------------------------
        ebt = ebitda + dep - interest
        tax = -max(0.0, ebt) * inputs.income_tax_rate
        net_income = ebt + tax

        # --------------------------------------------------------------
        # 8. Working capital
        # --------------------------------------------------------------
        purchase_inflow = abs(inputs.value("purchase_amount", t))
        ar = revenue * inputs.ar_rate
        ap = inputs.ap_rate * (abs(cogs) + abs(opex))
        cum_unearned += purchase_inflow - pre_revenue
        unearned = cum_unearned

        # --------------------------------------------------------------
        # 10. Cash flow from balance-sheet deltas
        # --------------------------------------------------------------
        capex = -abs(inputs.value("capex", t))
        equity_injection = abs(inputs.value("equity_injection", t))

        change_ar = ar - prev_ar
        change_ap = ap - prev_ap
        change_unearned = unearned - prev_unearned
        dep_addback = -dep
        operating_cf = net_income + dep_addback - change_ar + change_ap + change_unearned
        investing_cf = capex
        financing_cf = equity_injection + draw - principal
        net_change = operating_cf + investing_cf + financing_cf
        cash_end = prev_cash + net_change

        # --------------------------------------------------------------
        # 9. Balance sheet roll-forward
        # --------------------------------------------------------------
        ppe_gross += -capex
        accumulated_dep += -dep
        ppe_net = ppe_gross - accumulated_dep
        contributed += equity_injection
        retained += net_income

        total_assets = cash_end + ar + ppe_net
        total_liabilities = ap + unearned + ending
        total_equity = contributed + retained
        total_le = total_liabilities + total_equity

        # --------------------------------------------------------------
        # 11. Free cash flow to equity
        # --------------------------------------------------------------
        nwc = ar - ap - unearned
        prev_nwc = prev_ar - prev_ap - prev_unearned
        change_nwc = nwc - prev_nwc
        net_borrowing = draw - principal
        fcfe = net_income + dep_addback - change_nwc + capex + net_borrowing

        yearly.append(
            YearlyStatement(
                year=year,
                income=IncomeStatement(
                    year=year,
                    credits_generated=inputs.value("credits_generated", t),
                    credits_issued=q_issued,
                    credits_purchased=q_purchased,
                    spot_revenue=spot_revenue,
                    pre_purchase_revenue=pre_revenue,
                    total_revenue=revenue,
                    cogs=cogs,
                    gross_profit=gross_profit,
                    feasibility_costs=feasibility,
                    pdd_costs=pdd,
                    mrv_costs=mrv,
                    staff_costs=staff,
                    total_opex=opex,
                    ebitda=ebitda,
                    depreciation=dep,
                    interest_expense=-interest,
                    earnings_before_tax=ebt,
                    income_tax=tax,
                    net_income=net_income,
                ),
                balance=BalanceSheet(
                    year=year,
                    cash=cash_end,
                    accounts_receivable=ar,
                    ppe_gross=ppe_gross,
                    accumulated_depreciation=accumulated_dep,
                    ppe_net=ppe_net,
                    total_assets=total_assets,
                    accounts_payable=ap,
                    unearned_revenue=unearned,
                    debt_balance=ending,
                    total_liabilities=total_liabilities,
                    contributed_capital=contributed,
                    retained_earnings=retained,
                    total_equity=total_equity,
                    total_liabilities_equity=total_le,
                    balance_check=total_assets - total_le,
                ),
                cash_flow=CashFlowStatement(
                    year=year,
                    net_income=net_income,
                    depreciation_addback=dep_addback,
                    change_ar=change_ar,
                    change_ap=change_ap,
                    change_unearned=change_unearned,
                    operating_cash_flow=operating_cf,
                    capex=capex,
                    investing_cash_flow=investing_cf,
                    equity_injection=equity_injection,
                    debt_draw=draw,
                    debt_repayment=-principal,
                    financing_cash_flow=financing_cf,
                    cash_start=prev_cash,
                    net_change_cash=net_change,
                    cash_end=cash_end,
                ),
                debt=DebtScheduleRow(
                    year=year,
                    beginning_balance=beginning,
                    draw=draw,
                    principal_payment=principal,
                    ending_balance=ending,
                    interest_expense=interest,
                    debt_service=debt_service,
                    dscr=dscr,
                ),
                carbon=CarbonStreamRow(
                    year=year,
                    purchase_amount=purchase_inflow,
                    purchased_credits=q_purchased,
                    implied_purchase_price=implied_price,
                    investor_cash_flow=-purchase_inflow + q_purchased * price,
                ),
                fcf=FreeCashFlow(
                    year=year,
                    net_income=net_income,
                    depreciation_addback=dep_addback,
                    change_working_capital=change_nwc,
                    capex=capex,
                    net_borrowing=net_borrowing,
                    fcf_to_equity=fcfe,
                ),
            )
        )

        prev_cash = cash_end
        prev_ar = ar
        prev_ap = ap
        prev_unearned = unearned
        prev_debt = ending
        prev_equity = total_equity

    if yearly:
        logger.debug(
            "Computed statements for %d years (%s-%s), closing cash %.2f, closing equity %.2f",
            len(yearly),
            inputs.years[0],
            inputs.years[-1],
            prev_cash,
            prev_equity,
        )

    return FinancialStatements(
        years=inputs.years,
        yearly=tuple(yearly),
        opening_equity=inputs.initial_equity_t0,
        implied_purchase_price=implied_price,
        total_contracted_credits=sum(purchased),
        cogs_rate=inputs.cogs_rate,
    )
