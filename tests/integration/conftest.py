"""Integration fixtures: PostgreSQL and Redis in Docker.

Every test here is skipped when no Docker daemon is reachable.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import AsyncIterator, Iterator

import pytest
import pytest_asyncio
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from freshkey.cache.redis import RedisCacheStore
from freshkey.persistence.tables import Base
from tests import models  # noqa: F401  (registers tables on Base.metadata)
from tests.integration.docker_utils import (
    POSTGRES,
    REDIS,
    RunningService,
    get_docker_client,
    run_service,
)


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        if "tests/integration" in str(item.fspath).replace("\\", "/"):
            item.add_marker(pytest.mark.integration)


@pytest.fixture(scope="session")
def docker_client():
    """Create a Docker client or skip if Docker is unavailable."""
    try:
        client = get_docker_client()
        client.ping()
    except Exception as exc:
        pytest.skip(f"Docker not available: {exc}")
    yield client
    client.close()


@pytest.fixture(scope="session")
def postgres(docker_client) -> Iterator[RunningService]:
    with run_service(docker_client, POSTGRES) as service:
        yield service


@pytest.fixture(scope="session")
def redis_service(docker_client) -> Iterator[RunningService]:
    with run_service(docker_client, REDIS) as service:
        yield service


@pytest.fixture(scope="session")
def database_url(postgres: RunningService) -> str:
    return f"postgresql+asyncpg://freshkey:freshkey@{postgres.host}:{postgres.port}/freshkey"


@pytest.fixture(scope="session")
def redis_url(redis_service: RunningService) -> str:
    return f"redis://{redis_service.host}:{redis_service.port}/0"


@pytest_asyncio.fixture
async def db_engine(database_url: str) -> AsyncIterator[AsyncEngine]:
    """Engine with freshly created tables, dropped again after the test."""
    engine = create_async_engine(database_url, echo=False)
    await _wait_for_engine(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def redis_client(redis_url: str) -> AsyncIterator[Redis]:
    client = Redis.from_url(redis_url, decode_responses=False)
    await _wait_for_redis(client)
    yield client
    await client.flushdb()
    await client.aclose()


@pytest_asyncio.fixture
async def redis_store(redis_client: Redis) -> RedisCacheStore:
    return RedisCacheStore(redis_client)


async def _wait_for_engine(engine: AsyncEngine, timeout: float = 30.0) -> None:
    """Wait for the database engine to accept connections."""
    deadline = time.monotonic() + timeout
    while True:
        try:
            async with engine.connect():
                return
        except Exception:
            if time.monotonic() >= deadline:
                raise
            await asyncio.sleep(0.5)


async def _wait_for_redis(client: Redis, timeout: float = 30.0) -> None:
    """Wait for Redis to accept connections."""
    deadline = time.monotonic() + timeout
    while True:
        try:
            await client.ping()
            return
        except Exception:
            if time.monotonic() >= deadline:
                raise
            await asyncio.sleep(0.5)
