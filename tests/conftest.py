from __future__ import annotations

import pytest
import pytest_asyncio
from sqlalchemy.pool import StaticPool

from app.cache.layer import CacheLayer
from app.database import create_db_and_tables, create_engine, create_session_factory
from app.services.task_service import TaskService
from tests.fakes import FakeClock, FakeTaskStore, FlakyCacheClient


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache_client(clock: FakeClock) -> FlakyCacheClient:
    return FlakyCacheClient(timer=clock)


@pytest.fixture
def cache_layer(cache_client: FlakyCacheClient) -> CacheLayer:
    return CacheLayer(cache_client, ttl=600)


@pytest.fixture
def task_store() -> FakeTaskStore:
    return FakeTaskStore()


@pytest.fixture
def task_service(task_store: FakeTaskStore, cache_layer: CacheLayer) -> TaskService:
    return TaskService(task_store, cache_layer)


@pytest_asyncio.fixture
async def session_factory():
    engine = create_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await create_db_and_tables(engine)
    yield create_session_factory(engine)
    await engine.dispose()
