"""Linked financial statements for carbon-credit projects."""

from .engine import compute_statements
from .inputs import InputValidationError, ModelInputs, model_inputs_from_dict
from .records import FinancialStatements, YearlyStatement

__all__ = [
    "compute_statements",
    "FinancialStatements",
    "InputValidationError",
    "ModelInputs",
    "model_inputs_from_dict",
    "YearlyStatement",
]
