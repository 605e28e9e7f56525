"""Bridge between stored model rows and the pure engine."""

from __future__ import annotations

import logging
import uuid
from typing import Any

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.financial_model import FinancialModel, ModelInput
from engine.patterns.extractor import completeness_report, group_input_rows
from engine.pipeline import ModelRun, run_model
from engine.statements.inputs import ModelInputs, model_inputs_from_dict

logger = logging.getLogger(__name__)


async def get_model_or_404(
    db: AsyncSession, model_id: uuid.UUID, trashed: bool = False
) -> FinancialModel:
    """Fetch a live model, or with *trashed* a model that sits in the trash."""
    deleted = FinancialModel.deleted_at.is_not(None) if trashed else FinancialModel.deleted_at.is_(None)
    result = await db.execute(
        select(FinancialModel).where(FinancialModel.id == model_id, deleted)
    )
    model = result.scalar_one_or_none()
    if not model:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Model not found")
    return model


async def load_input_rows(db: AsyncSession, model_id: uuid.UUID) -> list[ModelInput]:
    result = await db.execute(
        select(ModelInput)
        .where(ModelInput.model_id == model_id)
        .order_by(ModelInput.input_key, ModelInput.year)
    )
    return list(result.scalars().all())


def rows_to_inputs(
    model: FinancialModel, rows: list[ModelInput]
) -> tuple[ModelInputs, dict[str, Any]]:
    """Normalise stored rows into strict inputs plus a completeness report.

    Raises
    ------
    InputValidationError
        When a stored scalar cannot be normalised.
    """
    data = group_input_rows(
        (
            {"input_key": r.input_key, "year": r.year, "input_value": r.input_value}
            for r in rows
        ),
        model.years,
    )
    completeness = completeness_report(data, model.years)
    return model_inputs_from_dict(data), completeness


async def run_stored_model(
    db: AsyncSession,
    model: FinancialModel,
    overrides: dict[str, Any] | None = None,
) -> ModelRun:
    rows = await load_input_rows(db, model.id)
    inputs, completeness = rows_to_inputs(model, rows)
    logger.info(
        "Running model %s (%d input rows, %d overrides)",
        model.id, len(rows), len(overrides or {}),
    )
    return run_model(
        inputs,
        overrides,
        tolerance=settings.compliance_tolerance,
        completeness=completeness,
    )


async def load_base_inputs(db: AsyncSession, model: FinancialModel) -> ModelInputs:
    rows = await load_input_rows(db, model.id)
    inputs, _ = rows_to_inputs(model, rows)
    return inputs
