"""
In-memory cache backend for development and testing.
"""

from __future__ import annotations

import time
from typing import Any
from datetime import timedelta


class MemoryCacheBackend:
    """
    Process-local cache with per-entry expiry.

    Note: Not shared between processes; each worker caches its own payloads.

    Usage:
        cache = MemoryCacheBackend(default_ttl=60)
        await cache.set("sdk-payload:production", payload)
        payload = await cache.get("sdk-payload:production")
    """

    def __init__(self, default_ttl: int = 3600):
        self.default_ttl = default_ttl
        # key -> (value, monotonic deadline or None)
        self._store: dict[str, tuple[Any, float | None]] = {}

    def _deadline(self, ttl: int | timedelta | None) -> float | None:
        if ttl is None:
            ttl = self.default_ttl
        seconds = ttl.total_seconds() if isinstance(ttl, timedelta) else ttl
        return time.monotonic() + seconds if seconds else None

    async def get(self, key: str) -> Any | None:
        item = self._store.get(key)
        if item is None:
            return None
        value, deadline = item
        if deadline is not None and time.monotonic() >= deadline:
            del self._store[key]
            return None
        return value

    async def set(
        self,
        key: str,
        value: Any,
        ttl: int | timedelta | None = None,
    ) -> bool:
        self._store[key] = (value, self._deadline(ttl))
        return True

    async def delete(self, key: str) -> bool:
        return self._store.pop(key, None) is not None

    async def delete_many(self, keys: list[str]) -> int:
        return sum([await self.delete(key) for key in keys])

    async def exists(self, key: str) -> bool:
        return await self.get(key) is not None

    async def clear(self) -> None:
        """Clear all cache entries."""
        self._store.clear()
