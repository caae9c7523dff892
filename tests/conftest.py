"""
Pytest fixtures for testing.

Provides:
- Application and test client wired to in-memory backends
- Async SQLite database session for the SQL configuration backend
- Cache and publisher fixtures for the serving layer
"""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from featuregate.core.config import EvaluatorSettings, Settings
from featuregate.core.container import Container
from featuregate.core.evaluator import MemoryConfigBackend
from featuregate.core.evaluator import models  # noqa: F401  (registers tables)
from featuregate.implementations.cache import MemoryCacheBackend
from featuregate.main import create_app
from featuregate.models.base import Base
from featuregate.services.cache import FlagCache
from featuregate.services.notifications import MemoryChangePublisher


# Test database URL (SQLite in-memory for speed)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
def settings() -> Settings:
    """Settings for an in-memory deployment."""
    return Settings(
        environment="testing",
        log_format="text",
        evaluator=EvaluatorSettings(
            backend="memory",
            cache_backend="memory",
            notifications="memory",
        ),
    )


@pytest.fixture
def app(settings: Settings):
    return create_app(settings)


@pytest.fixture
def container(app) -> Container:
    return app.state.container


@pytest.fixture
def backend(container: Container) -> MemoryConfigBackend:
    """Configuration backend the application serves from."""
    return container.memory_backend


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Test client for the application."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client


@pytest.fixture
def memory_cache() -> MemoryCacheBackend:
    return MemoryCacheBackend(default_ttl=60)


@pytest.fixture
def flag_cache(memory_cache: MemoryCacheBackend) -> FlagCache:
    return FlagCache(memory_cache, payload_ttl=60, flag_ttl=60)


@pytest.fixture
def publisher() -> MemoryChangePublisher:
    return MemoryChangePublisher()


# ============ Database ============


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """
    Create database session with automatic rollback.

    Each test gets a fresh transaction that's rolled back after.
    """
    session_factory = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with session_factory() as session:
        yield session
        await session.rollback()
