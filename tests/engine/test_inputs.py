"""Tests for engine.statements.inputs — boundary normalisation."""

from __future__ import annotations

import pytest

from engine.statements.inputs import (
    InputValidationError,
    ModelInputs,
    model_inputs_from_dict,
    normalize_flag,
    normalize_inflow,
    normalize_outflow,
    normalize_rate,
    parse_number_loose,
    parse_years,
    unwrap,
)


# ======================================================================
# Loose number parsing
# ======================================================================


class TestParseNumberLoose:
    def test_currency_string(self):
        assert parse_number_loose("$1,200") == 1200.0

    def test_whitespace(self):
        assert parse_number_loose(" 5 ") == 5.0

    def test_none_and_empty(self):
        assert parse_number_loose(None) == 0.0
        assert parse_number_loose("") == 0.0

    def test_wrapped_value(self):
        assert parse_number_loose({"value": "2,500"}) == 2500.0

    def test_garbage_raises(self):
        with pytest.raises(InputValidationError):
            parse_number_loose("abc")

    def test_unwrap_nested(self):
        assert unwrap({"value": {"value": 7}}) == 7


# ======================================================================
# Signs, rates and flags
# ======================================================================


class TestNormalizers:
    def test_outflow_forced_negative(self):
        assert normalize_outflow(5000) == -5000.0
        assert normalize_outflow(-5000) == -5000.0

    def test_inflow_forced_positive(self):
        assert normalize_inflow(-300) == 300.0

    @pytest.mark.parametrize("raw", [5, "5", "5%", 0.05, {"value": "5%"}])
    def test_rate_forms(self, raw):
        assert normalize_rate(raw) == pytest.approx(0.05)

    def test_rate_of_one_is_kept(self):
        assert normalize_rate(1) == 1.0

    def test_rate_out_of_range(self):
        with pytest.raises(InputValidationError):
            normalize_rate(250)
        with pytest.raises(InputValidationError):
            normalize_rate(-0.1)

    @pytest.mark.parametrize("raw,expected", [
        (True, 1), (False, 0), ("true", 1), ("TRUE", 1), (1, 1), ("1", 1),
        (0, 0), ("no", 0), (None, 0),
    ])
    def test_flag(self, raw, expected):
        assert normalize_flag(raw) == expected


# ======================================================================
# Horizon
# ======================================================================


class TestParseYears:
    def test_valid(self):
        assert parse_years([2024, "2025", 2026]) == (2024, 2025, 2026)

    def test_empty(self):
        with pytest.raises(InputValidationError):
            parse_years([])

    def test_gap(self):
        with pytest.raises(InputValidationError):
            parse_years([2024, 2026])

    def test_descending(self):
        with pytest.raises(InputValidationError):
            parse_years([2025, 2024])


# ======================================================================
# ModelInputs construction
# ======================================================================


class TestModelInputsFromDict:
    def test_arrays_padded_to_horizon(self):
        inputs = model_inputs_from_dict({"years": [2024, 2025, 2026], "credits_generated": [100]})
        assert inputs.credits_generated == (100.0, 0.0, 0.0)
        assert inputs.capex == (0.0, 0.0, 0.0)

    def test_arrays_truncated_to_horizon(self):
        inputs = model_inputs_from_dict({"years": [2024], "price_per_credit": [10, 11, 12]})
        assert inputs.price_per_credit == (10.0,)

    def test_scalar_broadcast(self):
        inputs = model_inputs_from_dict({"years": [2024, 2025], "staff_costs": "$1,000"})
        assert inputs.staff_costs == (-1000.0, -1000.0)

    def test_costs_negative_inflows_positive(self, debt_inputs):
        assert all(v <= 0 for v in debt_inputs.staff_costs)
        assert all(v <= 0 for v in debt_inputs.capex)
        assert all(v >= 0 for v in debt_inputs.debt_draw)

    def test_rates_normalised(self, debt_inputs):
        assert debt_inputs.cogs_rate == pytest.approx(0.10)
        assert debt_inputs.income_tax_rate == pytest.approx(0.25)

    def test_missing_scalars_default_to_zero(self, simple_inputs):
        assert simple_inputs.interest_rate == 0.0
        assert simple_inputs.debt_duration_years == 0
        assert simple_inputs.finance_rate is None

    def test_negative_duration_rejected(self):
        with pytest.raises(InputValidationError):
            model_inputs_from_dict({"years": [2024], "debt_duration_years": -2})

    def test_frozen(self, simple_inputs):
        with pytest.raises(AttributeError):
            simple_inputs.cogs_rate = 0.5  # type: ignore[misc]

    def test_with_overrides_refits_arrays(self, simple_inputs):
        changed = simple_inputs.with_overrides(capex=[-5.0])
        assert changed.capex == (-5.0, 0.0, 0.0)
        assert simple_inputs.capex == (0.0, 0.0, 0.0)

    def test_value_outside_horizon(self, simple_inputs):
        assert simple_inputs.value("credits_generated", 5) == 0.0
        assert simple_inputs.value("credits_generated", 1) == 12_000.0

    def test_to_dict_round_trip(self, debt_inputs):
        assert ModelInputs(**debt_inputs.to_dict()) == debt_inputs
