import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, model_validator


class FinancialModelCreate(BaseModel):
    name: str = Field(max_length=255)
    description: str | None = Field(default=None, max_length=2000)
    start_year: int = Field(ge=1900, le=2200)
    end_year: int = Field(ge=1900, le=2200)
    status: str = Field(default="draft", pattern="^(draft|active|archived)$")

    @model_validator(mode="after")
    def _check_horizon(self):
        if self.end_year < self.start_year:
            raise ValueError("end_year must not be before start_year")
        if self.end_year - self.start_year >= 100:
            raise ValueError("horizon must be shorter than 100 years")
        return self


class FinancialModelUpdate(BaseModel):
    name: str | None = Field(default=None, max_length=255)
    description: str | None = Field(default=None, max_length=2000)
    start_year: int | None = Field(default=None, ge=1900, le=2200)
    end_year: int | None = Field(default=None, ge=1900, le=2200)
    status: str | None = Field(default=None, pattern="^(draft|active|archived)$")


class FinancialModelResponse(BaseModel):
    id: uuid.UUID
    name: str
    description: str | None
    start_year: int
    end_year: int
    status: str
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None = None

    model_config = {"from_attributes": True}


class ModelInputItem(BaseModel):
    category: str = Field(max_length=50)
    input_key: str = Field(max_length=100)
    year: int | None = None
    input_value: Any = None


class ModelInputsPayload(BaseModel):
    inputs: list[ModelInputItem]


class ModelInputResponse(ModelInputItem):
    id: uuid.UUID

    model_config = {"from_attributes": True}


class CalculateRequest(BaseModel):
    """Stateless calculation: loose inputs plus optional slider overrides."""

    inputs: dict[str, Any]
    overrides: dict[str, Any] | None = None


class ModelCalculateRequest(BaseModel):
    overrides: dict[str, Any] | None = None


class CalculationResponse(BaseModel):
    years: list[int]
    statements: dict[str, Any]
    metrics: dict[str, Any]
    diagnostics: list[dict[str, Any]]


class PurgeResponse(BaseModel):
    purged_models: int
    purged_scenarios: int
