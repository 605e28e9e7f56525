"""Full recalculation pipeline.

reconstruct (slider overrides) -> statements -> metrics -> diagnostics.
There is no partial entry point: every input change reruns the
whole chain and yields a fresh :class:`ModelRun`.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Any, Mapping

from engine.metrics.calculator import DEFAULT_TOLERANCE, compute_comprehensive_metrics
from engine.metrics.validation import Diagnostic, validate_model
from engine.scenarios.sensitivity import apply_overrides
from engine.statements.engine import compute_statements
from engine.statements.inputs import ModelInputs
from engine.statements.records import FinancialStatements

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModelRun:
    """Immutable result of one pipeline run.

    ``metrics`` is a plain dict; anything stored or handed out goes through
    :meth:`metrics_snapshot` so later edits never reach the run.
    """

    inputs: ModelInputs
    statements: FinancialStatements
    metrics: dict[str, Any]
    diagnostics: tuple[Diagnostic, ...]

    def metrics_snapshot(self) -> dict[str, Any]:
        return copy.deepcopy(self.metrics)

    def to_dict(self) -> dict[str, Any]:
        return {
            "years": list(self.inputs.years),
            "statements": self.statements.to_dict(),
            "metrics": self.metrics_snapshot(),
            "diagnostics": [d.to_dict() for d in self.diagnostics],
        }


def run_model(
    inputs: ModelInputs,
    overrides: Mapping[str, Any] | None = None,
    tolerance: float = DEFAULT_TOLERANCE,
    completeness: Mapping[str, Any] | None = None,
) -> ModelRun:
    """Run the full model for *inputs* with optional slider *overrides*.

    Parameters
    ----------
    inputs : ModelInputs
        Base-case inputs.
    overrides : mapping, optional
        Partial ``{key: scalar}`` slider map.
    tolerance : float
        Compliance tolerance in currency units.
    completeness : mapping, optional
        Input completeness report to turn into diagnostics.
    """
    effective = apply_overrides(inputs, overrides)
    statements = compute_statements(effective)
    metrics = compute_comprehensive_metrics(
        statements,
        effective.discount_rate,
        finance_rate=effective.finance_rate,
        reinvestment_rate=effective.reinvestment_rate,
        tolerance=tolerance,
    )
    diagnostics = validate_model(
        effective, statements, metrics=metrics, completeness=completeness, tolerance=tolerance
    )
    logger.debug(
        "Model run: %d years, %d overrides, %d diagnostics",
        len(statements), len(overrides or {}), len(diagnostics),
    )
    return ModelRun(
        inputs=effective,
        statements=statements,
        metrics=metrics,
        diagnostics=tuple(diagnostics),
    )
