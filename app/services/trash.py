"""Soft-delete bookkeeping for models and scenarios.

Deleting a model or scenario only stamps ``deleted_at``; the row stays
restorable until it is purged explicitly or ages past the retention window.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.financial_model import FinancialModel
from app.models.scenario import ModelScenario

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def purge_expired(
    db: AsyncSession, retention_days: int, now: datetime | None = None
) -> dict[str, int]:
    """Permanently delete trashed rows older than *retention_days*.

    Purging a model also removes its inputs and every scenario through the
    foreign-key cascade.
    """
    cutoff = (now or utcnow()) - timedelta(days=retention_days)

    models = (
        await db.execute(
            select(FinancialModel).where(
                FinancialModel.deleted_at.is_not(None), FinancialModel.deleted_at < cutoff
            )
        )
    ).scalars().all()
    for model in models:
        await db.delete(model)

    result = await db.execute(
        delete(ModelScenario).where(
            ModelScenario.deleted_at.is_not(None), ModelScenario.deleted_at < cutoff
        )
    )
    await db.commit()

    counts = {"purged_models": len(models), "purged_scenarios": result.rowcount or 0}
    logger.info(
        "Purged %d models and %d scenarios deleted before %s",
        counts["purged_models"], counts["purged_scenarios"], cutoff.isoformat(),
    )
    return counts
