"""Tests for engine.patterns — extraction and shape-preserving reconstruction."""

from __future__ import annotations

import logging

import pytest

from engine.patterns.extractor import (
    align_arrays,
    completeness_report,
    extract_pattern,
    group_input_rows,
)
from engine.patterns.policy import GROWTH, PROPORTIONAL, RECONSTRUCTION_POLICY, keys_by_mode
from engine.patterns.reconstructor import (
    anchor_value,
    growth,
    growth_ratios,
    proportional,
    reconstruct,
)
from engine.statements.inputs import ARRAY_FIELDS, SCALAR_FIELDS

YEARS = [2024, 2025, 2026]


# ======================================================================
# Growth mode
# ======================================================================


class TestGrowth:
    def test_ratios(self):
        assert growth_ratios([100, 110, 121]) == pytest.approx([1.0, 1.1, 1.1])

    def test_zero_prior_year_ratio_is_one(self):
        assert growth_ratios([0, 100, 200]) == pytest.approx([1.0, 1.0, 2.0])

    def test_reanchor(self):
        assert growth([100, 110, 121], 200) == pytest.approx([200, 220, 242])

    def test_zero_prior_year(self):
        assert growth([0, 100, 200], 50) == pytest.approx([50, 50, 100])

    def test_identity_at_base_anchor(self):
        base = [10_000, 12_000, 15_000]
        assert growth(base, base[0]) == pytest.approx(base)


# ======================================================================
# Proportional mode
# ======================================================================


class TestProportional:
    def test_keeps_distribution(self):
        assert proportional([-1000, 0, -3000], 8000) == pytest.approx([-2000, 0, -6000])

    def test_zero_entries_stay_zero(self):
        result = proportional([0, 500, 0], 1000)
        assert result == pytest.approx([0, 1000, 0])

    def test_all_zero_base_spreads_evenly(self):
        assert proportional([0, 0, 0], 300) == pytest.approx([100, 100, 100])

    def test_empty(self):
        assert proportional([], 100) == []


# ======================================================================
# Policy-driven reconstruction
# ======================================================================


class TestReconstruct:
    def test_policy_modes(self):
        assert RECONSTRUCTION_POLICY["credits_generated"].mode == GROWTH
        assert RECONSTRUCTION_POLICY["capex"].mode == PROPORTIONAL
        assert "staff_costs" in keys_by_mode(GROWTH)
        assert RECONSTRUCTION_POLICY["capex"].anchor == "total"

    def test_cost_sign_reapplied(self):
        result = reconstruct("staff_costs", [-100, -110], 200)
        assert result == pytest.approx([-200, -220])

    def test_capex_total(self):
        result = reconstruct("capex", [-1000, 0, -3000], 8000)
        assert result == pytest.approx([-2000, 0, -6000])

    def test_inflow_sign(self):
        assert reconstruct("debt_draw", [600, 0], -1200) == pytest.approx([1200, 0])

    def test_unknown_key(self):
        with pytest.raises(KeyError):
            reconstruct("income_tax_rate", [0.1], 0.2)

    @pytest.mark.parametrize("key,base", [
        ("credits_generated", [10_000, 12_000, 15_000]),
        ("price_per_credit", [15, 16, 17]),
        ("staff_costs", [-50_000, -52_000, -54_000]),
        ("capex", [-1_000_000, -250_000, 0]),
        ("equity_injection", [400_000, 0, 100_000]),
    ])
    def test_anchor_round_trip(self, key, base):
        assert reconstruct(key, base, anchor_value(key, base)) == pytest.approx(base)

    def test_anchor_values(self):
        assert anchor_value("credits_generated", [100, 110]) == 100
        assert anchor_value("capex", [-1000, 0, -3000]) == 4000
        assert anchor_value("price_per_credit", []) == 0.0


# ======================================================================
# Extraction
# ======================================================================


class TestExtractPattern:
    def test_none(self):
        assert extract_pattern(None, YEARS) == [0.0, 0.0, 0.0]

    def test_scalar_broadcast(self):
        assert extract_pattern({"value": "$5"}, YEARS) == [5.0, 5.0, 5.0]

    def test_short_list_padded(self):
        assert extract_pattern([1, 2], YEARS) == [1.0, 2.0, 0.0]

    def test_rows(self):
        rows = [{"year": 2025, "input_value": {"value": "$1,000"}}]
        assert extract_pattern(rows, YEARS) == [0.0, 1000.0, 0.0]

    def test_year_mapping_ignores_out_of_horizon(self):
        assert extract_pattern({"2024": 3, 2026: 4, 2030: 9}, YEARS) == [3.0, 0.0, 4.0]

    def test_unreadable_value_logged_as_zero(self, caplog):
        with caplog.at_level(logging.WARNING):
            assert extract_pattern(["abc", 2], YEARS, "price_per_credit") == [0.0, 2.0, 0.0]
        assert "price_per_credit" in caplog.text


class TestGroupInputRows:
    def test_array_and_scalar_rows(self):
        rows = [
            {"input_key": "credits_generated", "year": 2024, "input_value": {"value": 100}},
            {"input_key": "credits_generated", "year": 2026, "input_value": {"value": 300}},
            {"input_key": "cogs_rate", "year": None, "input_value": {"value": "10%"}},
            {"input_key": "capex", "year": None, "input_value": {"value": [500, 0, 0]}},
        ]
        data = group_input_rows(rows, YEARS)
        assert data["years"] == YEARS
        assert data["credits_generated"] == [100.0, 0.0, 300.0]
        assert data["cogs_rate"] == "10%"
        assert data["capex"] == [500.0, 0.0, 0.0]

    def test_align_arrays(self):
        data = align_arrays({"years": YEARS, "credits_generated": {2025: 10}, "cogs_rate": 5}, YEARS)
        assert data["credits_generated"] == [0.0, 10.0, 0.0]
        assert data["cogs_rate"] == 5

    def test_flag_strings_survive_alignment(self, caplog):
        with caplog.at_level(logging.WARNING):
            data = align_arrays({"issuance_flag": ["true", "false", True]}, YEARS)
        assert data["issuance_flag"] == [1.0, 0.0, 1.0]
        assert caplog.text == ""

    def test_flag_rows_keep_their_years(self):
        rows = [
            {"input_key": "issuance_flag", "year": 2025, "input_value": {"value": "true"}},
            {"input_key": "issuance_flag", "year": 2026, "input_value": {"value": "TRUE"}},
        ]
        assert group_input_rows(rows, YEARS)["issuance_flag"] == [0.0, 1.0, 1.0]


class TestCompletenessReport:
    def test_gaps_reported(self):
        report = completeness_report({"credits_generated": [1, 2], "price_per_credit": [0, 0, 0]}, YEARS)
        assert report["short_arrays"] == {"credits_generated": 1}
        assert "price_per_credit" in report["zero_arrays"]
        assert "capex" in report["missing_arrays"]
        assert "cogs_rate" in report["missing_scalars"]
        assert report["complete"] is False

    def test_complete(self):
        data = {key: [1, 1, 1] for key in ARRAY_FIELDS}
        data.update({key: 0 for key in SCALAR_FIELDS})
        report = completeness_report(data, YEARS)
        assert report["complete"] is True

    def test_optional_rates_not_required(self):
        report = completeness_report({}, YEARS)
        assert "finance_rate" not in report["missing_scalars"]
        assert "reinvestment_rate" not in report["missing_scalars"]
