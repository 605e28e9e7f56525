"""Investment and operational metrics over computed statements."""

from .calculator import compute_comprehensive_metrics
from .returns import cumulative_npv, discounted_payback, irr, mirr, npv, payback
from .validation import Diagnostic, validate_model

__all__ = [
    "compute_comprehensive_metrics",
    "cumulative_npv",
    "Diagnostic",
    "discounted_payback",
    "irr",
    "mirr",
    "npv",
    "payback",
    "validate_model",
]
