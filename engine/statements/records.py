"""Immutable per-year statement records produced by the statement engine.

Income-statement cost lines are stored as negative numbers; debt-schedule
amounts are positive magnitudes.  All records are frozen: a recomputation
always yields a fresh set instead of mutating an existing one.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any


@dataclass(frozen=True)
class IncomeStatement:
    year: int
    credits_generated: float
    credits_issued: float
    credits_purchased: float
    spot_revenue: float
    pre_purchase_revenue: float
    total_revenue: float
    cogs: float
    gross_profit: float
    feasibility_costs: float
    pdd_costs: float
    mrv_costs: float
    staff_costs: float
    total_opex: float
    ebitda: float
    depreciation: float
    interest_expense: float
    earnings_before_tax: float
    income_tax: float
    net_income: float


@dataclass(frozen=True)
class BalanceSheet:
    year: int
    # Assets
    cash: float
    accounts_receivable: float
    ppe_gross: float
    accumulated_depreciation: float
    ppe_net: float
    total_assets: float
    # Liabilities
    accounts_payable: float
    unearned_revenue: float
    debt_balance: float
    total_liabilities: float
    # Equity
    contributed_capital: float
    retained_earnings: float
    total_equity: float
    total_liabilities_equity: float
    balance_check: float


@dataclass(frozen=True)
class CashFlowStatement:
    year: int
    # Operating
    net_income: float
    depreciation_addback: float
    change_ar: float
    change_ap: float
    change_unearned: float
    operating_cash_flow: float
    # Investing
    capex: float
    investing_cash_flow: float
    # Financing
    equity_injection: float
    debt_draw: float
    debt_repayment: float
    financing_cash_flow: float
    # Cash roll
    cash_start: float
    net_change_cash: float
    cash_end: float


@dataclass(frozen=True)
class DebtScheduleRow:
    year: int
    beginning_balance: float
    draw: float
    principal_payment: float
    ending_balance: float
    interest_expense: float
    debt_service: float
    dscr: float | None


@dataclass(frozen=True)
class CarbonStreamRow:
    year: int
    purchase_amount: float
    purchased_credits: float
    implied_purchase_price: float
    investor_cash_flow: float


@dataclass(frozen=True)
class FreeCashFlow:
    year: int
    net_income: float
    depreciation_addback: float
    change_working_capital: float
    capex: float
    net_borrowing: float
    fcf_to_equity: float


@dataclass(frozen=True)
class YearlyStatement:
    """The six linked records for one horizon year."""

    year: int
    income: IncomeStatement
    balance: BalanceSheet
    cash_flow: CashFlowStatement
    debt: DebtScheduleRow
    carbon: CarbonStreamRow
    fcf: FreeCashFlow


@dataclass(frozen=True)
class FinancialStatements:
    """Ordered statements for the full horizon plus run-level context.

    ``opening_equity`` is the pre-horizon (t0) equity contribution, which is
    also the opening cash balance.
    """

    years: tuple[int, ...]
    yearly: tuple[YearlyStatement, ...]
    opening_equity: float = 0.0
    implied_purchase_price: float = 0.0
    total_contracted_credits: float = 0.0
    cogs_rate: float = 0.0

    def __len__(self) -> int:
        return len(self.yearly)

    def __iter__(self):
        return iter(self.yearly)

    def __getitem__(self, index: int) -> YearlyStatement:
        return self.yearly[index]

    @property
    def income_statements(self) -> list[IncomeStatement]:
        return [y.income for y in self.yearly]

    @property
    def balance_sheets(self) -> list[BalanceSheet]:
        return [y.balance for y in self.yearly]

    @property
    def cash_flow_statements(self) -> list[CashFlowStatement]:
        return [y.cash_flow for y in self.yearly]

    @property
    def debt_schedule(self) -> list[DebtScheduleRow]:
        return [y.debt for y in self.yearly]

    @property
    def carbon_stream(self) -> list[CarbonStreamRow]:
        return [y.carbon for y in self.yearly]

    @property
    def free_cash_flow(self) -> list[FreeCashFlow]:
        return [y.fcf for y in self.yearly]

    def to_dict(self) -> dict[str, list[dict[str, Any]]]:
        """Output contract: one list per statement, indexed in lockstep with ``years``."""
        return {
            "years": list(self.years),
            "incomeStatements": [asdict(r) for r in self.income_statements],
            "balanceSheets": [asdict(r) for r in self.balance_sheets],
            "cashFlowStatements": [asdict(r) for r in self.cash_flow_statements],
            "debtSchedule": [asdict(r) for r in self.debt_schedule],
            "carbonStream": [asdict(r) for r in self.carbon_stream],
            "freeCashFlow": [asdict(r) for r in self.free_cash_flow],
        }
