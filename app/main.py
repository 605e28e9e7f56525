from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.api.v1 import calculations, models, reports, scenarios, sensitivity
from app.core.logging import RequestLoggingMiddleware, setup_logging
from app.models.database import get_engine
from engine.statements.inputs import InputValidationError


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    yield
    await get_engine().dispose()


async def input_validation_handler(request: Request, exc: InputValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": str(exc)},
    )


def create_app() -> FastAPI:
    setup_logging(json_format=settings.log_json)

    application = FastAPI(
        title=settings.app_name,
        version="0.1.0",
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in settings.cors_origins.split(",") if o.strip()],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.add_middleware(RequestLoggingMiddleware)
    application.add_exception_handler(InputValidationError, input_validation_handler)

    application.include_router(models.router, prefix="/api/v1/models", tags=["models"])
    application.include_router(
        calculations.router, prefix="/api/v1", tags=["calculations"]
    )
    application.include_router(
        sensitivity.router, prefix="/api/v1", tags=["sensitivity"]
    )
    application.include_router(scenarios.router, prefix="/api/v1", tags=["scenarios"])
    application.include_router(reports.router, prefix="/api/v1", tags=["reports"])

    @application.get("/health")
    async def health_check() -> dict:
        from app.models.database import get_session_factory

        result: dict = {"status": "ok", "services": {}}

        # Check database
        try:
            async with get_session_factory()() as session:
                await session.execute(text("SELECT 1"))
            result["services"]["database"] = "ok"
        except Exception as e:
            result["services"]["database"] = f"error: {e}"
            result["status"] = "degraded"

        return result

    return application


app = create_app()
