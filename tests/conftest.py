"""Shared test fixtures for CarbonFlow engine and API tests."""

from __future__ import annotations

import pytest

from engine.statements.inputs import ModelInputs, model_inputs_from_dict


# ======================================================================
# Loose input fixtures
# ======================================================================

@pytest.fixture
def simple_inputs_dict() -> dict:
    """Three-year equity-only project with yearly issuance and flat opex.

    Revenue is 150k / 192k / 255k against 60k opex and 10% COGS, so cash
    grows every year from the 500k opening balance.
    """
    return {
        "years": [2024, 2025, 2026],
        "credits_generated": [10_000, 12_000, 15_000],
        "price_per_credit": [15, 16, 17],
        "issuance_flag": [1, 1, 1],
        "staff_costs": [50_000, 50_000, 50_000],
        "mrv_costs": [10_000, 10_000, 10_000],
        "cogs_rate": 0.10,
        "discount_rate": 0.08,
        "initial_equity_t0": 500_000,
    }


@pytest.fixture
def debt_inputs_dict() -> dict:
    """Five-year levered project: 1M CAPEX funded 60/40 debt/equity.

    The 600k loan is drawn in 2024 and amortised over three years
    (200k per year in 2025-2027) at 6% interest.
    """
    return {
        "years": [2024, 2025, 2026, 2027, 2028],
        "credits_generated": [50_000, 60_000, 70_000, 80_000, 90_000],
        "price_per_credit": [20, 20, 20, 20, 20],
        "issuance_flag": [1, 1, 1, 1, 1],
        "staff_costs": [-100_000] * 5,
        "mrv_costs": [-20_000] * 5,
        "capex": [-1_000_000, 0, 0, 0, 0],
        "equity_injection": [400_000, 0, 0, 0, 0],
        "debt_draw": [600_000, 0, 0, 0, 0],
        "cogs_rate": "10%",
        "income_tax_rate": 25,
        "ar_rate": 0.1,
        "ap_rate": 0.05,
        "interest_rate": 0.06,
        "discount_rate": 0.10,
        "debt_duration_years": 3,
        "depreciation_years": 5,
        "initial_equity_t0": 50_000,
    }


@pytest.fixture
def prepurchase_inputs_dict() -> dict:
    """A 100k pre-purchase in year one buying half of every issuance."""
    return {
        "years": [2024, 2025, 2026],
        "credits_generated": [10_000, 10_000, 10_000],
        "price_per_credit": [15, 15, 15],
        "issuance_flag": [1, 1, 1],
        "purchase_amount": [100_000, 0, 0],
        "purchase_share": 0.5,
        "discount_rate": 0.08,
        "initial_equity_t0": 10_000,
    }


# ======================================================================
# Strict input fixtures
# ======================================================================

@pytest.fixture
def simple_inputs(simple_inputs_dict) -> ModelInputs:
    return model_inputs_from_dict(simple_inputs_dict)


@pytest.fixture
def debt_inputs(debt_inputs_dict) -> ModelInputs:
    return model_inputs_from_dict(debt_inputs_dict)


@pytest.fixture
def prepurchase_inputs(prepurchase_inputs_dict) -> ModelInputs:
    return model_inputs_from_dict(prepurchase_inputs_dict)
