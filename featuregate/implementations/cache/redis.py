"""
Redis cache backend implementation.
"""

from __future__ import annotations

import json
from typing import Any
from datetime import timedelta

import redis.asyncio as redis


class RedisCacheBackend:
    """
    Redis cache backend for the SDK payload cache.

    Values are stored as compact JSON under an optional key prefix. The
    client is owned by whoever created it (normally the application
    container, which shares it with the change publisher) and is never
    closed here.

    Usage:
        cache = RedisCacheBackend.from_url("redis://localhost:6379/0", prefix="fg:")

        await cache.set("sdk-payload:production", payload, ttl=60)
        payload = await cache.get("sdk-payload:production")
    """

    def __init__(
        self,
        client: redis.Redis,
        prefix: str = "",
        default_ttl: int = 3600,
    ):
        self.client = client
        self.prefix = prefix
        self.default_ttl = default_ttl

    @classmethod
    def from_url(cls, url: str, **options: Any) -> RedisCacheBackend:
        """Build a backend with its own client (connects lazily)."""
        client = redis.from_url(url, encoding="utf-8", decode_responses=True)
        return cls(client, **options)

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def _expiry(self, ttl: int | timedelta | None) -> int | None:
        # Redis rejects ex=0, so a zero TTL means "no expiry"
        if ttl is None:
            ttl = self.default_ttl
        if isinstance(ttl, timedelta):
            ttl = int(ttl.total_seconds())
        return ttl if ttl and ttl > 0 else None

    async def get(self, key: str) -> Any | None:
        raw = await self.client.get(self._key(key))
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            return raw

    async def set(
        self,
        key: str,
        value: Any,
        ttl: int | timedelta | None = None,
    ) -> bool:
        data = json.dumps(value, separators=(",", ":"))
        return bool(await self.client.set(self._key(key), data, ex=self._expiry(ttl)))

    async def delete(self, key: str) -> bool:
        return await self.client.delete(self._key(key)) > 0

    async def delete_many(self, keys: list[str]) -> int:
        if not keys:
            return 0
        return await self.client.delete(*(self._key(k) for k in keys))

    async def exists(self, key: str) -> bool:
        return await self.client.exists(self._key(key)) > 0
