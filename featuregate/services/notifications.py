"""
Change notifications.

After a successful configuration write, a ChangeEvent is published so that
long-lived clients know to refetch. Events are advisory only; they carry no
evaluation semantics.

Channels (Redis):
    {prefix}flag-updates:{environment}
    {prefix}segment-updates:{environment}
"""

from __future__ import annotations

import asyncio
import json
import time
from dataclasses import asdict, dataclass, field
from typing import Any, Protocol

import redis.asyncio as redis
import structlog

logger = structlog.get_logger()


class ChangeType:
    """Change event types."""
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


@dataclass
class ChangeEvent:
    """A flag or segment changed in one environment."""
    type: str
    environment: str
    flag_key: str | None = None
    segment_key: str | None = None
    timestamp: int = field(default_factory=lambda: int(time.time() * 1000))

    @property
    def kind(self) -> str:
        return "flag" if self.flag_key is not None else "segment"

    def to_message(self) -> str:
        data: dict[str, Any] = {"type": self.type, "timestamp": self.timestamp}
        if self.flag_key is not None:
            data["flagKey"] = self.flag_key
        if self.segment_key is not None:
            data["segmentKey"] = self.segment_key
        return json.dumps(data)


class ChangePublisher(Protocol):
    """Publishes configuration change events."""

    async def publish(self, event: ChangeEvent) -> None:
        ...


class NullChangePublisher:
    """Publisher used when notifications are disabled."""

    async def publish(self, event: ChangeEvent) -> None:
        return None


class MemoryChangePublisher:
    """
    In-process publisher for development and testing.

    Records every event and fans it out to subscriber queues.

    Usage:
        publisher = MemoryChangePublisher()
        queue = publisher.subscribe("production")
        await publisher.publish(ChangeEvent("updated", "production", flag_key="new-ui"))
        event = await queue.get()
    """

    def __init__(self):
        self.events: list[ChangeEvent] = []
        self._subscribers: dict[str, list[asyncio.Queue[ChangeEvent]]] = {}

    def subscribe(self, environment: str) -> asyncio.Queue[ChangeEvent]:
        queue: asyncio.Queue[ChangeEvent] = asyncio.Queue()
        self._subscribers.setdefault(environment, []).append(queue)
        return queue

    def unsubscribe(self, environment: str, queue: asyncio.Queue[ChangeEvent]) -> None:
        queues = self._subscribers.get(environment, [])
        if queue in queues:
            queues.remove(queue)

    async def publish(self, event: ChangeEvent) -> None:
        self.events.append(event)
        for queue in self._subscribers.get(event.environment, []):
            queue.put_nowait(event)

    def clear(self) -> None:
        self.events.clear()


class RedisChangePublisher:
    """Publishes change events over Redis pub/sub."""

    def __init__(
        self,
        client: redis.Redis,
        prefix: str = "fg:",
    ):
        self.client = client
        self.prefix = prefix

    def channel(self, event: ChangeEvent) -> str:
        return f"{self.prefix}{event.kind}-updates:{event.environment}"

    async def publish(self, event: ChangeEvent) -> None:
        receivers = await self.client.publish(self.channel(event), event.to_message())
        logger.debug("change_event_published", receivers=receivers, **asdict(event))
