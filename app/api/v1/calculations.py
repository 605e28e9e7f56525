import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.database import get_db
from app.schemas.model import CalculateRequest, CalculationResponse, ModelCalculateRequest
from app.services.model_loader import get_model_or_404, run_stored_model
from engine.patterns.extractor import align_arrays, completeness_report
from engine.pipeline import run_model
from engine.statements.inputs import model_inputs_from_dict, parse_years

router = APIRouter()


@router.post(
    "/calculate",
    response_model=CalculationResponse,
    summary="Calculate from inputs",
    description="Run the full model on inputs supplied in the request body. Nothing is stored.",
)
async def calculate(body: CalculateRequest):
    years = parse_years(body.inputs.get("years"))
    inputs = model_inputs_from_dict(align_arrays(body.inputs, years))
    run = run_model(
        inputs,
        body.overrides,
        tolerance=settings.compliance_tolerance,
        completeness=completeness_report(body.inputs, years),
    )
    return run.to_dict()


@router.post(
    "/models/{model_id}/calculate",
    response_model=CalculationResponse,
    summary="Calculate stored model",
    description="Run the full model on a stored model's inputs with optional slider overrides.",
)
async def calculate_model(
    model_id: uuid.UUID,
    body: ModelCalculateRequest | None = None,
    db: AsyncSession = Depends(get_db),
):
    model = await get_model_or_404(db, model_id)
    run = await run_stored_model(db, model, body.overrides if body else None)
    return run.to_dict()
