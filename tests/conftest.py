"""
pytest configuration and shared fixtures.

Unit tests run against an in-memory SQLite database through aiosqlite and
never need external services.

Usage:
    # all tests
    uv run pytest

    # with coverage
    uv run pytest --cov=entitystore --cov-report=html
"""

from collections.abc import AsyncGenerator
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from entitystore.domain.events import DomainEvent, DomainEventHandler, EventBus
from entitystore.infrastructure.cache.manager import MemoryCacheManager
from entitystore.infrastructure.database.data_provider import DataProvider
from entitystore.infrastructure.database.entity_repository import EntityRepository
from entitystore.infrastructure.database.session import create_session_factory
from tests.models import News, Setting


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


# ============================================
# Database fixtures
# ============================================


@pytest.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory SQLite engine with working SAVEPOINT support."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # Let SQLAlchemy emit BEGIN itself instead of the driver, otherwise
    # SAVEPOINT does not behave.
    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection: Any, _connection_record: Any) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = create_session_factory(engine)
    async with session_factory() as session:
        yield session


class SpyDataProvider(DataProvider):
    """DataProvider that counts query round trips."""

    def __init__(self, session: AsyncSession):
        super().__init__(session)
        self.query_count = 0

    async def to_list(self, query):
        self.query_count += 1
        return await super().to_list(query)

    async def first_or_default(self, query):
        self.query_count += 1
        return await super().first_or_default(query)

    async def count(self, query):
        self.query_count += 1
        return await super().count(query)


@pytest.fixture
def data_provider(session: AsyncSession) -> SpyDataProvider:
    return SpyDataProvider(session)


# ============================================
# Cache / event fixtures
# ============================================


@pytest.fixture
def cache_manager() -> MemoryCacheManager:
    return MemoryCacheManager(default_cache_time=60, short_term_cache_time=3)


class RecordingHandler(DomainEventHandler):
    """Keeps every event it receives."""

    def __init__(self) -> None:
        self.events: list[DomainEvent] = []

    async def handle(self, event: DomainEvent) -> None:
        self.events.append(event)


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def recorder(event_bus: EventBus) -> RecordingHandler:
    handler = RecordingHandler()
    event_bus.subscribe_entity_events(handler)
    return handler


# ============================================
# Repository fixtures
# ============================================


@pytest.fixture
def news_repository(
    data_provider: SpyDataProvider,
    cache_manager: MemoryCacheManager,
    event_bus: EventBus,
) -> EntityRepository[News]:
    return EntityRepository(News, data_provider, cache_manager, event_bus)


@pytest.fixture
def setting_repository(
    data_provider: SpyDataProvider,
    cache_manager: MemoryCacheManager,
    event_bus: EventBus,
) -> EntityRepository[Setting]:
    return EntityRepository(Setting, data_provider, cache_manager, event_bus)


@pytest.fixture
def mock_redis_client() -> MagicMock:
    """Mock Redis client."""
    from entitystore.infrastructure.redis.client import RedisClient

    client = MagicMock(spec=RedisClient)
    client.ping = AsyncMock(return_value=True)
    client.get_json = AsyncMock(return_value=None)
    client.set_json = AsyncMock(return_value=True)
    client.delete = AsyncMock(return_value=1)
    client.delete_by_prefix = AsyncMock(return_value=0)
    return client
