import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class ScenarioCreate(BaseModel):
    scenario_name: str = Field(max_length=255)
    is_base_case: bool = False
    probability: float | None = Field(default=None, ge=0, le=100)
    variables: dict[str, Any] = Field(default_factory=dict)


class ScenarioResponse(BaseModel):
    id: uuid.UUID
    model_id: uuid.UUID
    scenario_name: str
    is_base_case: bool
    probability: float | None
    variables: dict[str, Any]
    metrics: dict[str, Any] | None
    created_at: datetime
    deleted_at: datetime | None = None

    model_config = {"from_attributes": True}


class SensitivityRequest(BaseModel):
    overrides: dict[str, Any] = Field(default_factory=dict)
    metric_keys: list[str] | None = None


class SweepVariable(BaseModel):
    key: str
    name: str | None = None
    range: list[float] | None = Field(default=None, min_length=2, max_length=2)
    points: int = Field(default=5, ge=2, le=25)


class SweepRequest(BaseModel):
    variables: list[SweepVariable] = Field(min_length=1, max_length=10)


class TemplateApplyRequest(BaseModel):
    template: str
    scenario_name: str | None = Field(default=None, max_length=255)
    revenue_pct: float | None = None
    cost_pct: float | None = None
    financing_pct: float | None = None
    probability: float | None = Field(default=None, ge=0, le=100)


class CompareRequest(BaseModel):
    scenario_ids: list[uuid.UUID] | None = None
    base_scenario_id: uuid.UUID | None = None
    metric_keys: list[str] | None = None
    weights: dict[str, float] | None = None


class WeightedRequest(BaseModel):
    """Probabilities in percent keyed by scenario ID; stored ones when omitted."""

    probabilities: dict[uuid.UUID, float] | None = None
    metric_keys: list[str] | None = None
