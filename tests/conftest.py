from datetime import datetime, timezone
from typing import TYPE_CHECKING, AsyncGenerator
from unittest.mock import AsyncMock

if TYPE_CHECKING:
    from edunity_intake.core.cache import CacheService

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from edunity_intake.core.database import get_db, get_session_factory
from edunity_intake.core.rate_limit import limiter
from edunity_intake.dependencies import get_redis_client
from edunity_intake.main import app
from edunity_intake.models import Base, Lead


@pytest_asyncio.fixture
async def engine():
    """In-memory SQLite engine; one shared connection so every session sees
    the same database.  Concurrent allocations need ``file_session_factory``.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def file_session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker, None]:
    """Session factory over a file-backed SQLite database.

    Every session gets its own connection, so concurrent allocations
    really race on the database.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'leads.db'}",
        connect_args={"timeout": 30},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def add_rows(session_factory):
    """Return a coroutine that inserts and commits model instances."""

    async def _add(*rows):
        async with session_factory() as session:
            session.add_all(rows)
            await session.commit()

    return _add


@pytest.fixture
def make_lead():
    """Build a ``Lead`` row with sensible defaults for direct insertion."""

    def _make(lead_id: str, email: str = "", phone: str = "", **overrides) -> Lead:
        values = {
            "lead_id": lead_id,
            "lead_type": "teacher",
            "edunity_id": lead_id,
            "full_name": "Test Lead",
            "email": email,
            "email_normalized": email.strip().lower(),
            "phone": phone,
            "phone_normalized": "".join(ch for ch in phone if ch.isdigit()),
            "status": "new",
            "details": {},
            "created_at": datetime(2025, 1, 1, tzinfo=timezone.utc),
        }
        values.update(overrides)
        return Lead(**values)

    return _make


@pytest.fixture
def load_all(session_factory):
    """Return a coroutine that loads every row of a model class."""
    from sqlalchemy import select

    async def _load(model):
        async with session_factory() as session:
            result = await session.execute(select(model))
            return list(result.scalars().all())

    return _load


@pytest_asyncio.fixture
async def async_client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Yield an ``httpx.AsyncClient`` wired to the FastAPI app and SQLite."""

    async def _get_db():
        async with session_factory() as session:
            yield session

    async def _get_session_factory():
        return session_factory

    async def _no_redis():
        return None

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_session_factory] = _get_session_factory
    app.dependency_overrides[get_redis_client] = _no_redis
    limiter.enabled = False

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    limiter.enabled = True
    app.dependency_overrides.clear()


@pytest.fixture
def mock_redis() -> AsyncMock:
    """Return an ``AsyncMock`` that behaves like ``redis.asyncio.Redis``."""
    redis = AsyncMock()
    redis.get = AsyncMock(return_value=None)
    redis.set = AsyncMock()
    redis.setex = AsyncMock()
    redis.delete = AsyncMock()
    redis.ping = AsyncMock()
    return redis


@pytest.fixture
def mock_cache(mock_redis) -> "CacheService":
    """Return a ``CacheService`` backed by the mock Redis client."""
    from edunity_intake.core.cache import CacheService

    return CacheService(redis_client=mock_redis)

