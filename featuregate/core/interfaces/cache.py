"""
Cache backend protocol.

Implementations live in featuregate.implementations.cache.
"""

from __future__ import annotations

from typing import Protocol, Any
from datetime import timedelta


class CacheBackend(Protocol):
    """
    Key/value store behind the flag payload cache.

    Values are JSON-compatible dicts and lists. ttl is in seconds (or a
    timedelta); None means the backend's default.
    """

    async def get(self, key: str) -> Any | None:
        """Value for key, or None when missing or expired."""
        ...

    async def set(
        self,
        key: str,
        value: Any,
        ttl: int | timedelta | None = None,
    ) -> bool:
        ...

    async def delete(self, key: str) -> bool:
        """True if the key existed."""
        ...

    async def delete_many(self, keys: list[str]) -> int:
        """Number of keys that existed."""
        ...

    async def exists(self, key: str) -> bool:
        ...
