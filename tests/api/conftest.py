"""API test infrastructure — async httpx client with SQLite test database."""

from __future__ import annotations

from collections.abc import AsyncGenerator

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.models.database import Base, enable_sqlite_foreign_keys, get_db

# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)
    # Enable foreign key enforcement for SQLite
    event.listen(engine.sync_engine, "connect", enable_sqlite_foreign_keys)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


# ---------------------------------------------------------------------------
# FastAPI app with overridden dependencies
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def app(db_engine):
    from app.main import create_app

    application = create_app()

    factory = async_sessionmaker(
        db_engine, class_=AsyncSession, expire_on_commit=False
    )

    async def _override_get_db():
        async with factory() as session:
            yield session

    application.dependency_overrides[get_db] = _override_get_db

    # Reset rate limiters between tests
    from app.core.rate_limit import ALL_LIMITERS
    for limiter in ALL_LIMITERS:
        limiter.reset()

    yield application

    application.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ---------------------------------------------------------------------------
# Model helpers
# ---------------------------------------------------------------------------

def input_rows(data: dict) -> list[dict]:
    """Turn a loose inputs dict into stored input rows.

    Lists become one row per year; scalars become one horizon-wide row.
    """
    years = data["years"]
    rows = []
    for key, value in data.items():
        if key == "years":
            continue
        if isinstance(value, list):
            for year, v in zip(years, value):
                rows.append({
                    "category": "operational_metrics",
                    "input_key": key,
                    "year": year,
                    "input_value": {"value": v},
                })
        else:
            rows.append({
                "category": "investor_assumptions",
                "input_key": key,
                "year": None,
                "input_value": {"value": value},
            })
    return rows


@pytest_asyncio.fixture
async def sample_model(client: AsyncClient) -> dict:
    """Create and return an empty 2024-2028 model."""
    resp = await client.post(
        "/api/v1/models/",
        json={
            "name": "Mangrove Restoration",
            "description": "Blue carbon pilot",
            "start_year": 2024,
            "end_year": 2028,
        },
    )
    assert resp.status_code == 201
    return resp.json()


@pytest_asyncio.fixture
async def loaded_model(client: AsyncClient, sample_model: dict, debt_inputs_dict: dict) -> dict:
    """The sample model with the five-year levered inputs stored."""
    resp = await client.put(
        f"/api/v1/models/{sample_model['id']}/inputs",
        json={"inputs": input_rows(debt_inputs_dict)},
    )
    assert resp.status_code == 200
    return sample_model
