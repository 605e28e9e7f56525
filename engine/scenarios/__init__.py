"""Scenario overrides, sensitivity sweeps, templates and comparison."""

from .comparison import compare_metrics, expected_metrics, percent_change, probability_weighted
from .scoring import rank_scenarios
from .sensitivity import apply_overrides, sensitivity_sweep, slider_base_values
from .templates import SCENARIO_TEMPLATES, template_overrides

__all__ = [
    "apply_overrides",
    "compare_metrics",
    "expected_metrics",
    "percent_change",
    "probability_weighted",
    "rank_scenarios",
    "SCENARIO_TEMPLATES",
    "sensitivity_sweep",
    "slider_base_values",
    "template_overrides",
]
