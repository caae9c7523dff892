"""
Dependency injection container.
Centralizes backend instantiation and configuration.

The container is constructed explicitly by the application factory and
kept on app.state; there is no module-level instance.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import redis.asyncio as redis
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from featuregate.core.config import Settings
from featuregate.core.evaluator.backends.memory import MemoryConfigBackend
from featuregate.core.interfaces import CacheBackend
from featuregate.implementations.cache import MemoryCacheBackend, RedisCacheBackend
from featuregate.services.cache import FlagCache
from featuregate.services.notifications import (
    ChangePublisher,
    MemoryChangePublisher,
    NullChangePublisher,
    RedisChangePublisher,
)


@dataclass
class Container:
    """
    Holds the long-lived resources of one application instance.

    Example:
    ```python
    container = Container(settings)
    await container.initialize()

    cache = container.flag_cache
    await cache.invalidate_segments("production")

    await container.shutdown()
    ```
    """

    settings: Settings
    _instances: dict[str, Any] = field(default_factory=dict)

    @property
    def redis(self) -> redis.Redis:
        """Shared Redis client (created lazily)."""
        if "redis" not in self._instances:
            self._instances["redis"] = redis.from_url(
                str(self.settings.redis.url),
                encoding="utf-8",
                decode_responses=True,
                max_connections=self.settings.redis.max_connections,
            )
        return self._instances["redis"]

    @property
    def cache(self) -> CacheBackend:
        """Get configured cache backend."""
        if "cache" not in self._instances:
            config = self.settings.evaluator
            if config.cache_backend == "redis":
                self._instances["cache"] = RedisCacheBackend(
                    self.redis,
                    prefix=config.cache_prefix,
                    default_ttl=config.payload_ttl,
                )
            else:
                self._instances["cache"] = MemoryCacheBackend(default_ttl=config.payload_ttl)
        return self._instances["cache"]

    @property
    def flag_cache(self) -> FlagCache:
        if "flag_cache" not in self._instances:
            self._instances["flag_cache"] = FlagCache(
                self.cache,
                payload_ttl=self.settings.evaluator.payload_ttl,
                flag_ttl=self.settings.evaluator.flag_ttl,
            )
        return self._instances["flag_cache"]

    @property
    def publisher(self) -> ChangePublisher:
        """Get configured change publisher."""
        if "publisher" not in self._instances:
            kind = self.settings.evaluator.notifications
            if kind == "redis":
                self._instances["publisher"] = RedisChangePublisher(
                    self.redis,
                    prefix=self.settings.evaluator.channel_prefix,
                )
            elif kind == "memory":
                self._instances["publisher"] = MemoryChangePublisher()
            else:
                self._instances["publisher"] = NullChangePublisher()
        return self._instances["publisher"]

    @property
    def memory_backend(self) -> MemoryConfigBackend:
        """In-memory configuration backend (EVAL_BACKEND=memory)."""
        if "memory_backend" not in self._instances:
            self._instances["memory_backend"] = MemoryConfigBackend()
        return self._instances["memory_backend"]

    @property
    def engine(self) -> AsyncEngine:
        if "engine" not in self._instances:
            from featuregate.models.database import create_engine
            self._instances["engine"] = create_engine(self.settings.database)
        return self._instances["engine"]

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if "session_factory" not in self._instances:
            from featuregate.models.database import create_session_factory
            self._instances["session_factory"] = create_session_factory(self.engine)
        return self._instances["session_factory"]

    @property
    def uses_database(self) -> bool:
        return self.settings.evaluator.backend == "database"

    async def initialize(self) -> None:
        """Initialize backends that need async setup."""
        if self.uses_database:
            from featuregate.models.database import init_db
            await init_db(self.engine)

    async def shutdown(self) -> None:
        """Shutdown backends gracefully."""
        if "engine" in self._instances:
            await self._instances["engine"].dispose()
        if "redis" in self._instances:
            await self._instances["redis"].aclose()
        self._instances.clear()
