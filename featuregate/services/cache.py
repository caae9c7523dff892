"""
Flag configuration cache.

Caches the assembled per-environment SDK payload (and single flags) on top
of any CacheBackend. A flag write invalidates that flag and the environment
payload. A segment write invalidates the payload and every single-flag entry
of the environment, since cached flags carry resolved segment references.

Keys:
    flag:{environment}:{flag_key}
    sdk-payload:{environment}
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import structlog

from featuregate.core.interfaces import CacheBackend

logger = structlog.get_logger()


def flag_key(environment: str, key: str) -> str:
    return f"flag:{environment}:{key}"


def sdk_payload_key(environment: str) -> str:
    return f"sdk-payload:{environment}"


class FlagCache:
    """Payload cache with flag/segment invalidation."""

    def __init__(
        self,
        backend: CacheBackend,
        payload_ttl: int = 60,
        flag_ttl: int = 60,
    ):
        self.backend = backend
        self.payload_ttl = payload_ttl
        self.flag_ttl = flag_ttl

    # ============================================================
    # SDK PAYLOAD
    # ============================================================

    async def get_payload(self, environment: str) -> dict[str, Any] | None:
        return await self.backend.get(sdk_payload_key(environment))

    async def set_payload(self, environment: str, payload: dict[str, Any]) -> None:
        await self.backend.set(sdk_payload_key(environment), payload, ttl=self.payload_ttl)

    # ============================================================
    # SINGLE FLAG
    # ============================================================

    async def get_flag(self, environment: str, key: str) -> dict[str, Any] | None:
        return await self.backend.get(flag_key(environment, key))

    async def set_flag(self, environment: str, key: str, data: dict[str, Any]) -> None:
        await self.backend.set(flag_key(environment, key), data, ttl=self.flag_ttl)

    # ============================================================
    # INVALIDATION
    # ============================================================

    async def invalidate_flag(self, environment: str, key: str) -> int:
        """Drop a flag and the environment payload that includes it."""
        deleted = await self.backend.delete_many([
            flag_key(environment, key),
            sdk_payload_key(environment),
        ])
        logger.debug("flag_cache_invalidated", environment=environment, flag_key=key, deleted=deleted)
        return deleted

    async def invalidate_segments(self, environment: str, flag_keys: Iterable[str] = ()) -> int:
        """Drop the environment payload and the given flags after a segment change."""
        deleted = await self.backend.delete_many([
            sdk_payload_key(environment),
            *(flag_key(environment, key) for key in flag_keys),
        ])
        logger.debug("segment_cache_invalidated", environment=environment, deleted=deleted)
        return deleted
