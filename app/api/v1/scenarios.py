import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.database import get_db
from app.models.financial_model import FinancialModel
from app.models.scenario import ModelScenario
from app.schemas.scenario import (
    CompareRequest,
    ScenarioCreate,
    ScenarioResponse,
    TemplateApplyRequest,
    WeightedRequest,
)
from app.services.model_loader import get_model_or_404, load_base_inputs, run_stored_model
from app.services.trash import utcnow
from engine.scenarios.comparison import DEFAULT_METRIC_KEYS, compare_metrics, expected_metrics
from engine.scenarios.scoring import rank_scenarios
from engine.scenarios.templates import SCENARIO_TEMPLATES, template_overrides

logger = logging.getLogger(__name__)

router = APIRouter()


async def _save_scenario(
    db: AsyncSession,
    model: FinancialModel,
    name: str,
    variables: dict,
    is_base_case: bool = False,
    probability: float | None = None,
) -> ModelScenario:
    """Run the model with *variables* and store the frozen metrics snapshot."""
    run = await run_stored_model(db, model, variables)
    if is_base_case:
        await db.execute(
            update(ModelScenario)
            .where(ModelScenario.model_id == model.id, ModelScenario.deleted_at.is_(None))
            .values(is_base_case=False)
        )
    scenario = ModelScenario(
        model_id=model.id,
        scenario_name=name,
        is_base_case=is_base_case,
        probability=probability,
        scenario_data={"variables": dict(variables), "metrics": run.metrics_snapshot()},
    )
    db.add(scenario)
    await db.commit()
    await db.refresh(scenario)
    logger.info("Saved scenario %r for model %s", name, model.id)
    return scenario


async def _get_scenario_or_404(
    db: AsyncSession, model_id: uuid.UUID, scenario_id: uuid.UUID, trashed: bool = False
) -> ModelScenario:
    deleted = ModelScenario.deleted_at.is_not(None) if trashed else ModelScenario.deleted_at.is_(None)
    result = await db.execute(
        select(ModelScenario).where(
            ModelScenario.id == scenario_id, ModelScenario.model_id == model_id, deleted
        )
    )
    scenario = result.scalar_one_or_none()
    if not scenario:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Scenario not found")
    return scenario


async def _list_scenarios(db: AsyncSession, model_id: uuid.UUID) -> list[ModelScenario]:
    result = await db.execute(
        select(ModelScenario)
        .where(ModelScenario.model_id == model_id, ModelScenario.deleted_at.is_(None))
        .order_by(ModelScenario.created_at)
    )
    return list(result.scalars().all())


# ======================================================================
# Templates
# ======================================================================

@router.get(
    "/scenario-templates",
    summary="List scenario templates",
    description="Predefined revenue/cost/financing adjustments that can be applied to any model.",
)
async def list_templates():
    return [t.to_dict() for t in SCENARIO_TEMPLATES.values()]


@router.post(
    "/models/{model_id}/scenarios/from-template",
    response_model=ScenarioResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create scenario from template",
    description="Apply a scenario template (optionally with custom percentages) and save the result.",
)
async def create_from_template(
    model_id: uuid.UUID,
    body: TemplateApplyRequest,
    db: AsyncSession = Depends(get_db),
):
    template = SCENARIO_TEMPLATES.get(body.template)
    if template is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown scenario template: {body.template}",
        )
    model = await get_model_or_404(db, model_id)
    inputs = await load_base_inputs(db, model)
    overrides = template_overrides(
        inputs,
        template,
        revenue_pct=body.revenue_pct,
        cost_pct=body.cost_pct,
        financing_pct=body.financing_pct,
    )
    return await _save_scenario(
        db, model, body.scenario_name or template.name, overrides, probability=body.probability,
    )


# ======================================================================
# Saved scenarios
# ======================================================================

@router.post(
    "/models/{model_id}/scenarios",
    response_model=ScenarioResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Save scenario",
    description=(
        "Save a named set of slider overrides. Metrics are computed now and "
        "stored with the scenario; they do not follow later input edits."
    ),
)
async def create_scenario(
    model_id: uuid.UUID,
    body: ScenarioCreate,
    db: AsyncSession = Depends(get_db),
):
    model = await get_model_or_404(db, model_id)
    return await _save_scenario(
        db,
        model,
        body.scenario_name,
        body.variables,
        is_base_case=body.is_base_case,
        probability=body.probability,
    )


@router.get(
    "/models/{model_id}/scenarios",
    response_model=list[ScenarioResponse],
    summary="List scenarios",
)
async def list_scenarios(model_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    await get_model_or_404(db, model_id)
    return await _list_scenarios(db, model_id)


@router.get(
    "/models/{model_id}/scenarios/trash",
    response_model=list[ScenarioResponse],
    summary="List trashed scenarios",
)
async def list_trashed_scenarios(model_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    await get_model_or_404(db, model_id)
    result = await db.execute(
        select(ModelScenario)
        .where(ModelScenario.model_id == model_id, ModelScenario.deleted_at.is_not(None))
        .order_by(ModelScenario.deleted_at.desc())
    )
    return result.scalars().all()


@router.get(
    "/models/{model_id}/scenarios/{scenario_id}",
    response_model=ScenarioResponse,
    summary="Get scenario",
)
async def get_scenario(
    model_id: uuid.UUID,
    scenario_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    await get_model_or_404(db, model_id)
    return await _get_scenario_or_404(db, model_id, scenario_id)


@router.delete(
    "/models/{model_id}/scenarios/{scenario_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete scenario",
    description="Move a scenario to the trash; it can be restored until purged.",
)
async def delete_scenario(
    model_id: uuid.UUID,
    scenario_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    await get_model_or_404(db, model_id)
    scenario = await _get_scenario_or_404(db, model_id, scenario_id)
    scenario.deleted_at = utcnow()
    await db.commit()


@router.post(
    "/models/{model_id}/scenarios/{scenario_id}/restore",
    response_model=ScenarioResponse,
    summary="Restore scenario",
    description=(
        "Move a trashed scenario back to the live list. A restored base case "
        "loses the flag when another live scenario already holds it."
    ),
)
async def restore_scenario(
    model_id: uuid.UUID,
    scenario_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    await get_model_or_404(db, model_id)
    scenario = await _get_scenario_or_404(db, model_id, scenario_id, trashed=True)
    if scenario.is_base_case and any(s.is_base_case for s in await _list_scenarios(db, model_id)):
        scenario.is_base_case = False
    scenario.deleted_at = None
    await db.commit()
    await db.refresh(scenario)
    return scenario


@router.delete(
    "/models/{model_id}/scenarios/{scenario_id}/purge",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Purge scenario",
    description="Permanently delete a trashed scenario.",
)
async def purge_scenario(
    model_id: uuid.UUID,
    scenario_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    scenario = await _get_scenario_or_404(db, model_id, scenario_id, trashed=True)
    await db.delete(scenario)
    await db.commit()


# ======================================================================
# Comparison
# ======================================================================

@router.post(
    "/models/{model_id}/scenarios/compare",
    summary="Compare scenarios",
    description=(
        "Compare saved scenarios against a base: the named base scenario, the "
        "model's base-case scenario, or a fresh run of the current inputs. "
        "Also ranks the scenarios with a weighted decision matrix."
    ),
)
async def compare_scenarios(
    model_id: uuid.UUID,
    body: CompareRequest,
    db: AsyncSession = Depends(get_db),
):
    model = await get_model_or_404(db, model_id)
    all_scenarios = await _list_scenarios(db, model_id)
    scenarios = all_scenarios
    if body.scenario_ids:
        wanted = set(body.scenario_ids)
        scenarios = [s for s in scenarios if s.id in wanted]
        if len(scenarios) != len(wanted):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="One or more scenarios not found",
            )

    if body.base_scenario_id:
        base = await _get_scenario_or_404(db, model_id, body.base_scenario_id)
        base_name, base_metrics = base.scenario_name, base.metrics or {}
    else:
        base_case = next((s for s in all_scenarios if s.is_base_case), None)
        if base_case is not None:
            base_name, base_metrics = base_case.scenario_name, base_case.metrics or {}
        else:
            base_name, base_metrics = "Current inputs", (await run_stored_model(db, model)).metrics

    keys = tuple(body.metric_keys) if body.metric_keys else DEFAULT_METRIC_KEYS
    comparisons = [
        {
            "id": str(s.id),
            "name": s.scenario_name,
            "changes": compare_metrics(
                s.metrics or {}, base_metrics, keys, epsilon=settings.comparison_epsilon,
            ),
        }
        for s in scenarios
    ]
    ranking = rank_scenarios(
        [{"id": str(s.id), "name": s.scenario_name, "metrics": s.metrics or {}} for s in scenarios],
        body.weights,
    )
    return {"base": base_name, "comparisons": comparisons, "ranking": ranking}


@router.post(
    "/models/{model_id}/scenarios/weighted",
    summary="Probability-weighted metrics",
    description=(
        "Expected value of each metric across scenarios weighted by probability. "
        "Values are null unless the probabilities sum to 100%."
    ),
)
async def weighted_metrics(
    model_id: uuid.UUID,
    body: WeightedRequest,
    db: AsyncSession = Depends(get_db),
):
    await get_model_or_404(db, model_id)
    scenarios = await _list_scenarios(db, model_id)
    if body.probabilities is not None:
        scenarios = [s for s in scenarios if s.id in body.probabilities]
        weighted = [
            {"probability": body.probabilities[s.id], "metrics": s.metrics or {}}
            for s in scenarios
        ]
    else:
        weighted = [
            {"probability": s.probability, "metrics": s.metrics or {}}
            for s in scenarios
            if s.probability is not None
        ]

    keys = tuple(body.metric_keys) if body.metric_keys else DEFAULT_METRIC_KEYS
    result = expected_metrics(weighted, keys)
    result["scenario_count"] = len(weighted)
    return result
