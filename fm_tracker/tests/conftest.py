"""Shared fixtures: temporary database, ASGI client and station doubles."""

from typing import Any, Dict, List

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from fm_tracker.database import get_db_session
from fm_tracker.main import app as fastapi_app
from fm_tracker.models import Base
from fm_tracker.services.seed_data import sample_station_rows
from fm_tracker.services.station_codec import codec
from fm_tracker.services.station_repository import StationRepository
from fm_tracker.services.station_types import Station
from fm_tracker.tests.factories import FakeStationClient


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def test_db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def seeded(session_factory):
    async with session_factory() as session:
        await StationRepository(session).add_stations(sample_station_rows())
        await session.commit()


@pytest.fixture
def app(session_factory):
    async def _override_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    fastapi_app.dependency_overrides[get_db_session] = _override_session
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http_client:
        yield http_client


@pytest.fixture
def sample_rows() -> List[Dict[str, Any]]:
    return sample_station_rows()


@pytest.fixture
def sample_stations(sample_rows) -> List[Station]:
    return [codec.from_row(row) for row in sample_rows]


@pytest.fixture
def fake_client(sample_stations):
    return FakeStationClient(sample_stations)
