"""Tests for engine.scenarios.sensitivity — overrides and OAT sweeps."""

from __future__ import annotations

import pytest

from engine.scenarios.sensitivity import apply_overrides, sensitivity_sweep, slider_base_values
from engine.statements.inputs import InputValidationError, model_inputs_from_dict


# ======================================================================
# Overrides
# ======================================================================


class TestApplyOverrides:
    def test_growth_key_keeps_shape(self, simple_inputs):
        result = apply_overrides(simple_inputs, {"credits_generated": 20_000})
        assert result.credits_generated == pytest.approx((20_000, 24_000, 30_000))

    def test_proportional_key_keeps_distribution(self, debt_inputs):
        result = apply_overrides(debt_inputs, {"capex": "$2,000,000"})
        assert result.capex == pytest.approx((-2_000_000, 0, 0, 0, 0))

    def test_rate_override_is_decimal(self, simple_inputs):
        assert apply_overrides(simple_inputs, {"interest_rate": 0.08}).interest_rate == pytest.approx(0.08)
        assert apply_overrides(simple_inputs, {"purchase_share": 1}).purchase_share == 1.0

    def test_rate_string_read_as_percent(self, simple_inputs):
        assert apply_overrides(simple_inputs, {"interest_rate": "8%"}).interest_rate == pytest.approx(0.08)

    @pytest.mark.parametrize("value", [1.08, 8, -0.1])
    def test_numeric_rate_outside_unit_interval_rejected(self, simple_inputs, value):
        with pytest.raises(InputValidationError):
            apply_overrides(simple_inputs, {"purchase_share": value})

    def test_integer_override(self, debt_inputs):
        assert apply_overrides(debt_inputs, {"debt_duration_years": 4.6}).debt_duration_years == 5

    def test_base_untouched(self, simple_inputs):
        apply_overrides(simple_inputs, {"price_per_credit": 30})
        assert simple_inputs.price_per_credit == (15.0, 16.0, 17.0)

    def test_empty_overrides_return_same_inputs(self, simple_inputs):
        assert apply_overrides(simple_inputs, None) is simple_inputs
        assert apply_overrides(simple_inputs, {}) is simple_inputs

    def test_unknown_key(self, simple_inputs):
        with pytest.raises(InputValidationError):
            apply_overrides(simple_inputs, {"moon_phase": 3})

    def test_invalid_rate(self, simple_inputs):
        with pytest.raises(InputValidationError):
            apply_overrides(simple_inputs, {"discount_rate": 500})


class TestSliderBaseValues:
    def test_anchors(self, debt_inputs):
        values = slider_base_values(debt_inputs)
        assert values["credits_generated"] == 50_000
        assert values["staff_costs"] == 100_000
        assert values["capex"] == 1_000_000
        assert values["interest_rate"] == pytest.approx(0.06)
        assert values["debt_duration_years"] == 3

    def test_unset_optional_rates_omitted(self, simple_inputs):
        values = slider_base_values(simple_inputs)
        assert "finance_rate" not in values
        assert "reinvestment_rate" not in values


# ======================================================================
# Sweep
# ======================================================================


def _linear_run(inputs, overrides):
    """Stub model: equity NPV rises with price and falls with staff costs."""
    price = overrides.get("price_per_credit", inputs.price_per_credit[0])
    staff = overrides.get("staff_costs", abs(inputs.staff_costs[0]))
    return {
        "returns": {"equity": {"npv": 1000.0 * price - 2.0 * staff, "irr": None}},
        "debt": {"min_dscr": None},
    }


class TestSensitivitySweep:
    def test_spider_points(self, simple_inputs):
        result = sensitivity_sweep(
            simple_inputs,
            [{"key": "price_per_credit", "name": "Price", "range": [10, 20], "points": 3}],
            run_fn=_linear_run,
        )
        points = result["spider"]["Price"]
        assert [p["value"] for p in points] == pytest.approx([10, 15, 20])
        assert [p["equity_npv"] for p in points] == pytest.approx([
            10_000 - 100_000, 15_000 - 100_000, 20_000 - 100_000,
        ])

    def test_default_range_is_twenty_percent(self, simple_inputs):
        result = sensitivity_sweep(
            simple_inputs, [{"key": "price_per_credit", "points": 2}], run_fn=_linear_run,
        )
        bar = result["tornado"]["price_per_credit"]
        assert bar["low_value"] == pytest.approx(12.0)
        assert bar["high_value"] == pytest.approx(18.0)

    def test_tornado_sorted_by_spread(self, simple_inputs):
        result = sensitivity_sweep(
            simple_inputs,
            [
                {"key": "staff_costs", "range": [40_000, 60_000]},
                {"key": "price_per_credit", "range": [10, 20]},
            ],
            run_fn=_linear_run,
        )
        order = list(result["tornado"])
        assert order == ["staff_costs", "price_per_credit"]
        assert result["tornado"]["price_per_credit"]["npv_spread"] == pytest.approx(10_000)
        assert result["tornado"]["staff_costs"]["npv_spread"] == pytest.approx(40_000)

    def test_points_capped(self, simple_inputs):
        result = sensitivity_sweep(
            simple_inputs,
            [{"key": "price_per_credit", "range": [10, 20], "points": 99}],
            run_fn=_linear_run,
            max_points=4,
        )
        assert len(result["spider"]["price_per_credit"]) == 4

    def test_base_results(self, simple_inputs):
        result = sensitivity_sweep(simple_inputs, [{"key": "price_per_credit"}], run_fn=_linear_run)
        assert result["base_results"]["equity_npv"] == pytest.approx(15_000 - 100_000)

    def test_rate_range_clipped_to_unit_interval(self, prepurchase_inputs_dict):
        inputs = model_inputs_from_dict({**prepurchase_inputs_dict, "purchase_share": 0.9})
        result = sensitivity_sweep(inputs, [{"key": "purchase_share", "points": 3}])
        bar = result["tornado"]["purchase_share"]
        assert bar["low_value"] == pytest.approx(0.72)
        assert bar["high_value"] == pytest.approx(1.0)
        values = [p["value"] for p in result["spider"]["purchase_share"]]
        assert values == pytest.approx([0.72, 0.86, 1.0])
        # A full pre-purchase leaves no spot revenue, so the top end differs from the base.
        assert bar["high_npv"] != pytest.approx(bar["base_npv"])

    def test_unknown_variable(self, simple_inputs):
        with pytest.raises(InputValidationError):
            sensitivity_sweep(simple_inputs, [{"key": "nope"}], run_fn=_linear_run)

    def test_full_pipeline(self, simple_inputs):
        result = sensitivity_sweep(
            simple_inputs, [{"key": "price_per_credit", "range": [10, 20], "points": 3}],
        )
        npvs = [p["equity_npv"] for p in result["spider"]["price_per_credit"]]
        assert npvs[0] < npvs[1] < npvs[2]
