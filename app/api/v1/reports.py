"""CSV and PDF report download endpoints."""
import uuid

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response, StreamingResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.rate_limit import report_limiter
from app.models.database import get_db
from app.models.scenario import ModelScenario
from app.services.model_loader import get_model_or_404, run_stored_model
from engine.reporting.csv_export import statements_to_csv

router = APIRouter()


def _filename(name: str, ext: str) -> str:
    safe = "".join(c if c.isalnum() or c in "-_" else "_" for c in name)
    return f"carbonflow_{safe}.{ext}"


@router.get(
    "/models/{model_id}/report/csv",
    summary="Download CSV export",
    description="Export every statement plus returns and summary metrics as CSV.",
)
async def download_csv(
    model_id: uuid.UUID,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    report_limiter.check(request)
    model = await get_model_or_404(db, model_id)
    run = await run_stored_model(db, model)
    content = statements_to_csv(run.statements.to_dict(), run.metrics)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{_filename(model.name, "csv")}"'},
    )


@router.get(
    "/models/{model_id}/report/pdf",
    summary="Download PDF report",
    description=(
        "Generate a PDF with key metrics, the three statements, debt schedule, "
        "carbon stream, compliance checks and saved scenarios."
    ),
)
async def download_pdf(
    model_id: uuid.UUID,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    report_limiter.check(request)
    model = await get_model_or_404(db, model_id)
    run = await run_stored_model(db, model)

    result = await db.execute(
        select(ModelScenario)
        .where(ModelScenario.model_id == model_id, ModelScenario.deleted_at.is_(None))
        .order_by(ModelScenario.created_at)
    )
    scenarios = [
        {"name": s.scenario_name, "probability": s.probability, "metrics": s.metrics}
        for s in result.scalars().all()
    ]

    from engine.reporting.pdf_report import generate_pdf_report

    pdf_buffer = generate_pdf_report(
        model_name=model.name,
        statements=run.statements.to_dict(),
        metrics=run.metrics,
        model_description=model.description,
        diagnostics=[d.to_dict() for d in run.diagnostics],
        scenarios=scenarios,
    )

    return StreamingResponse(
        pdf_buffer,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{_filename(model.name, "pdf")}"'},
    )
