import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import String, Integer, ForeignKey, DateTime, Uuid, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.database import Base, JSONType


class FinancialModel(Base):
    __tablename__ = "financial_models"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(String(2000))
    start_year: Mapped[int] = mapped_column(Integer, nullable=False)
    end_year: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="draft"
    )  # draft, active, archived
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
    # Set while the model sits in the trash; purged after the retention window.
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), index=True)

    inputs: Mapped[list["ModelInput"]] = relationship(
        back_populates="model", cascade="all, delete-orphan", passive_deletes=True
    )
    scenarios: Mapped[list["ModelScenario"]] = relationship(  # noqa: F821
        back_populates="model", cascade="all, delete-orphan", passive_deletes=True
    )

    @property
    def years(self) -> list[int]:
        return list(range(self.start_year, self.end_year + 1))


class ModelInput(Base):
    """One stored input value.

    ``year`` is ``None`` for horizon-wide values (rates, durations, or an
    array stored as a whole); ``input_value`` keeps the ``{"value": X}``
    wrapper exactly as submitted.
    """

    __tablename__ = "model_inputs"
    __table_args__ = (
        UniqueConstraint("model_id", "category", "input_key", "year", name="uq_model_input"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    model_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("financial_models.id", ondelete="CASCADE"), nullable=False, index=True
    )
    category: Mapped[str] = mapped_column(
        String(50), nullable=False
    )  # operational_metrics, expenses, financing, investor_assumptions
    input_key: Mapped[str] = mapped_column(String(100), nullable=False)
    year: Mapped[int | None] = mapped_column(Integer)
    input_value: Mapped[Any] = mapped_column(JSONType, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    model: Mapped["FinancialModel"] = relationship(back_populates="inputs")
