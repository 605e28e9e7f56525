import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.database import get_db
from app.models.financial_model import FinancialModel, ModelInput
from app.schemas.model import (
    FinancialModelCreate,
    FinancialModelResponse,
    FinancialModelUpdate,
    ModelInputResponse,
    ModelInputsPayload,
    PurgeResponse,
)
from app.services.model_loader import get_model_or_404, load_input_rows
from app.services.trash import purge_expired, utcnow

router = APIRouter()


@router.post(
    "/",
    response_model=FinancialModelResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create model",
    description="Create a new carbon-credit financial model with its year horizon.",
)
async def create_model(
    body: FinancialModelCreate,
    db: AsyncSession = Depends(get_db),
):
    model = FinancialModel(**body.model_dump())
    db.add(model)
    await db.commit()
    await db.refresh(model)
    return model


@router.get(
    "/",
    response_model=list[FinancialModelResponse],
    summary="List models",
    description="Return all live financial models, most recently updated first.",
)
async def list_models(db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(FinancialModel)
        .where(FinancialModel.deleted_at.is_(None))
        .order_by(FinancialModel.updated_at.desc())
    )
    return result.scalars().all()


# ======================================================================
# Trash
# ======================================================================

@router.get(
    "/trash",
    response_model=list[FinancialModelResponse],
    summary="List trashed models",
    description="Models deleted within the retention window, most recently deleted first.",
)
async def list_trashed_models(db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(FinancialModel)
        .where(FinancialModel.deleted_at.is_not(None))
        .order_by(FinancialModel.deleted_at.desc())
    )
    return result.scalars().all()


@router.post(
    "/trash/purge",
    response_model=PurgeResponse,
    summary="Purge expired trash",
    description=(
        "Permanently delete trashed models and scenarios older than the "
        "retention window (``trash_retention_days`` unless overridden)."
    ),
)
async def purge_trash(
    retention_days: int | None = Query(default=None, ge=0),
    db: AsyncSession = Depends(get_db),
):
    days = settings.trash_retention_days if retention_days is None else retention_days
    return await purge_expired(db, days)


@router.post(
    "/{model_id}/restore",
    response_model=FinancialModelResponse,
    summary="Restore model",
    description="Move a trashed model back to the live list.",
)
async def restore_model(model_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    model = await get_model_or_404(db, model_id, trashed=True)
    model.deleted_at = None
    await db.commit()
    await db.refresh(model)
    return model


@router.delete(
    "/{model_id}/purge",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Purge model",
    description="Permanently delete a trashed model with its inputs and scenarios.",
)
async def purge_model(model_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    model = await get_model_or_404(db, model_id, trashed=True)
    await db.delete(model)
    await db.commit()


# ======================================================================
# Live models
# ======================================================================


@router.get(
    "/{model_id}",
    response_model=FinancialModelResponse,
    summary="Get model",
)
async def get_model(model_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    return await get_model_or_404(db, model_id)


@router.patch(
    "/{model_id}",
    response_model=FinancialModelResponse,
    summary="Update model",
    description="Partially update a model's name, description, status or horizon.",
)
async def update_model(
    model_id: uuid.UUID,
    body: FinancialModelUpdate,
    db: AsyncSession = Depends(get_db),
):
    model = await get_model_or_404(db, model_id)
    changes = body.model_dump(exclude_unset=True)
    start = changes.get("start_year", model.start_year)
    end = changes.get("end_year", model.end_year)
    if end < start:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="end_year must not be before start_year",
        )
    for field, value in changes.items():
        setattr(model, field, value)
    await db.commit()
    await db.refresh(model)
    return model


@router.delete(
    "/{model_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete model",
    description="Move a model to the trash. Inputs and scenarios are kept until it is purged.",
)
async def delete_model(model_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    model = await get_model_or_404(db, model_id)
    model.deleted_at = utcnow()
    await db.commit()


@router.put(
    "/{model_id}/inputs",
    response_model=list[ModelInputResponse],
    summary="Replace model inputs",
    description="Replace every stored input row of a model. Values are stored as submitted.",
)
async def replace_inputs(
    model_id: uuid.UUID,
    body: ModelInputsPayload,
    db: AsyncSession = Depends(get_db),
):
    await get_model_or_404(db, model_id)
    await db.execute(delete(ModelInput).where(ModelInput.model_id == model_id))
    for item in body.inputs:
        db.add(ModelInput(model_id=model_id, **item.model_dump()))
    await db.commit()
    return await load_input_rows(db, model_id)


@router.get(
    "/{model_id}/inputs",
    response_model=list[ModelInputResponse],
    summary="Get model inputs",
)
async def get_inputs(model_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    await get_model_or_404(db, model_id)
    return await load_input_rows(db, model_id)
