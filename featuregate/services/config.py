"""Configuration write path: persist, invalidate cached payloads, notify."""

from __future__ import annotations

import structlog

from featuregate.core.evaluator.interfaces import ConfigBackend, FlagRecord, SegmentRecord
from featuregate.core.evaluator.transformers import to_eval_flag, to_eval_segment

from .cache import FlagCache
from .notifications import ChangeEvent, ChangePublisher, ChangeType, NullChangePublisher

logger = structlog.get_logger()


class ConfigService:
    """
    Service for changing flag and segment configuration.

    Every successful write invalidates the affected cache entries and then
    publishes a change event. Records are validated through the
    transformer before they are stored.
    """

    def __init__(
        self,
        backend: ConfigBackend,
        cache: FlagCache | None = None,
        publisher: ChangePublisher | None = None,
    ):
        self.backend = backend
        self.cache = cache
        self.publisher = publisher or NullChangePublisher()

    async def save_flag(self, environment: str, record: FlagRecord) -> FlagRecord:
        """Create or replace a flag configuration."""
        to_eval_flag(record)
        existing = await self.backend.get_flag(environment, record.key)
        saved = await self.backend.save_flag(environment, record)

        if self.cache is not None:
            await self.cache.invalidate_flag(environment, record.key)
        await self.publisher.publish(ChangeEvent(
            type=ChangeType.UPDATED if existing else ChangeType.CREATED,
            environment=environment,
            flag_key=record.key,
        ))

        logger.info("flag_saved", environment=environment, flag_key=record.key, enabled=record.enabled)
        return saved

    async def delete_flag(self, environment: str, key: str) -> bool:
        """Delete a flag configuration."""
        deleted = await self.backend.delete_flag(environment, key)
        if not deleted:
            return False

        if self.cache is not None:
            await self.cache.invalidate_flag(environment, key)
        await self.publisher.publish(ChangeEvent(
            type=ChangeType.DELETED,
            environment=environment,
            flag_key=key,
        ))

        logger.info("flag_deleted", environment=environment, flag_key=key)
        return True

    async def save_segment(self, environment: str, record: SegmentRecord) -> SegmentRecord:
        """Create or replace a segment configuration."""
        to_eval_segment(record)
        existing = {s.key for s in await self.backend.list_segments(environment)}
        saved = await self.backend.save_segment(environment, record)

        if self.cache is not None:
            flag_keys = [f.key for f in await self.backend.list_flags(environment)]
            await self.cache.invalidate_segments(environment, flag_keys)
        await self.publisher.publish(ChangeEvent(
            type=ChangeType.UPDATED if record.key in existing else ChangeType.CREATED,
            environment=environment,
            segment_key=record.key,
        ))

        logger.info("segment_saved", environment=environment, segment_key=record.key)
        return saved

    async def delete_segment(self, environment: str, key: str) -> bool:
        """Delete a segment configuration."""
        deleted = await self.backend.delete_segment(environment, key)
        if not deleted:
            return False

        if self.cache is not None:
            flag_keys = [f.key for f in await self.backend.list_flags(environment)]
            await self.cache.invalidate_segments(environment, flag_keys)
        await self.publisher.publish(ChangeEvent(
            type=ChangeType.DELETED,
            environment=environment,
            segment_key=key,
        ))

        logger.info("segment_deleted", environment=environment, segment_key=key)
        return True
