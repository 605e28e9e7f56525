import uuid
from datetime import datetime

from sqlalchemy import String, Float, Boolean, ForeignKey, DateTime, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.database import Base, JSONType


class ModelScenario(Base):
    """A named scenario: slider overrides plus metrics frozen at save time."""

    __tablename__ = "model_scenarios"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    model_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("financial_models.id", ondelete="CASCADE"), nullable=False, index=True
    )
    scenario_name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_base_case: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    probability: Mapped[float | None] = mapped_column(Float)
    # {"variables": {...}, "metrics": {...}}
    scenario_data: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), index=True)

    model: Mapped["FinancialModel"] = relationship(back_populates="scenarios")  # noqa: F821

    @property
    def variables(self) -> dict:
        return dict((self.scenario_data or {}).get("variables") or {})

    @property
    def metrics(self) -> dict | None:
        return (self.scenario_data or {}).get("metrics")
