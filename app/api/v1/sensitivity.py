import uuid

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.rate_limit import sweep_limiter
from app.models.database import get_db
from app.schemas.scenario import SensitivityRequest, SweepRequest
from app.services.model_loader import get_model_or_404, load_base_inputs, run_stored_model
from engine.scenarios.comparison import DEFAULT_METRIC_KEYS, compare_metrics
from engine.scenarios.sensitivity import sensitivity_sweep, slider_base_values

router = APIRouter()


@router.get(
    "/models/{model_id}/sensitivity/base-values",
    summary="Slider anchors",
    description="Return the base value each sensitivity slider is anchored on.",
)
async def get_slider_base_values(model_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    model = await get_model_or_404(db, model_id)
    inputs = await load_base_inputs(db, model)
    return {"base_values": slider_base_values(inputs)}


@router.post(
    "/models/{model_id}/sensitivity",
    summary="Apply sensitivity overrides",
    description=(
        "Recompute the model with slider overrides and report the change of "
        "each key metric against the un-overridden base case."
    ),
)
async def run_sensitivity(
    model_id: uuid.UUID,
    body: SensitivityRequest,
    db: AsyncSession = Depends(get_db),
):
    model = await get_model_or_404(db, model_id)
    base = await run_stored_model(db, model)
    current = await run_stored_model(db, model, body.overrides)
    keys = tuple(body.metric_keys) if body.metric_keys else DEFAULT_METRIC_KEYS

    return {
        "overrides": body.overrides,
        "metrics": current.metrics,
        "changes": compare_metrics(
            current.metrics, base.metrics, keys, epsilon=settings.comparison_epsilon,
        ),
        "diagnostics": [d.to_dict() for d in current.diagnostics],
    }


@router.post(
    "/models/{model_id}/sensitivity/sweep",
    summary="Run sensitivity sweep",
    description=(
        "One-at-a-time sweep over each variable's range. Returns spider "
        "series and tornado bars sorted by equity NPV spread."
    ),
)
async def run_sweep(
    model_id: uuid.UUID,
    body: SweepRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    sweep_limiter.check(request)
    model = await get_model_or_404(db, model_id)
    inputs = await load_base_inputs(db, model)
    return sensitivity_sweep(
        inputs,
        [v.model_dump(exclude_none=True) for v in body.variables],
        max_points=settings.sweep_max_points,
    )
