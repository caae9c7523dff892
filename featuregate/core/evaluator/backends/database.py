"""
Database backend for flag configuration.

Uses SQLAlchemy (PostgreSQL in production) for persistent storage.
"""

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from ..interfaces import ConfigBackend, FlagRecord, SegmentRecord
from ..models import FlagConfigModel, SegmentConfigModel


class DatabaseConfigBackend(ConfigBackend):
    """
    SQL-backed flag and segment configuration storage.

    Writes flush but do not commit; the session owner commits.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    # ============================================================
    # FLAG OPERATIONS
    # ============================================================

    async def _flag_model(self, environment: str, key: str) -> FlagConfigModel | None:
        query = select(FlagConfigModel).where(
            FlagConfigModel.environment_key == environment,
            FlagConfigModel.flag_key == key,
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_flag(self, environment: str, key: str) -> FlagRecord | None:
        """Get a flag configuration by key."""
        model = await self._flag_model(environment, key)
        if not model:
            return None
        return self._model_to_flag(model)

    async def list_flags(self, environment: str) -> list[FlagRecord]:
        """List all flag configurations of an environment."""
        query = (
            select(FlagConfigModel)
            .where(FlagConfigModel.environment_key == environment)
            .order_by(FlagConfigModel.flag_key)
        )
        result = await self.db.execute(query)
        return [self._model_to_flag(m) for m in result.scalars().all()]

    async def save_flag(self, environment: str, record: FlagRecord) -> FlagRecord:
        """Create or replace a flag configuration."""
        model = await self._flag_model(environment, record.key)
        if model is None:
            model = FlagConfigModel(environment_key=environment, flag_key=record.key)
            self.db.add(model)

        model.enabled = record.enabled
        model.off_variation = record.off_variation
        model.variations = list(record.variations)
        model.fallthrough = record.fallthrough
        model.targets = list(record.targets)
        model.rules = list(record.rules)

        await self.db.flush()
        await self.db.refresh(model)
        return self._model_to_flag(model)

    async def delete_flag(self, environment: str, key: str) -> bool:
        """Delete a flag configuration."""
        query = delete(FlagConfigModel).where(
            FlagConfigModel.environment_key == environment,
            FlagConfigModel.flag_key == key,
        )
        result = await self.db.execute(query)
        await self.db.flush()
        return result.rowcount > 0

    # ============================================================
    # SEGMENT OPERATIONS
    # ============================================================

    async def _segment_model(self, environment: str, key: str) -> SegmentConfigModel | None:
        query = select(SegmentConfigModel).where(
            SegmentConfigModel.environment_key == environment,
            SegmentConfigModel.segment_key == key,
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def list_segments(self, environment: str) -> list[SegmentRecord]:
        """List all segment configurations of an environment."""
        query = (
            select(SegmentConfigModel)
            .where(SegmentConfigModel.environment_key == environment)
            .order_by(SegmentConfigModel.segment_key)
        )
        result = await self.db.execute(query)
        return [self._model_to_segment(m) for m in result.scalars().all()]

    async def save_segment(self, environment: str, record: SegmentRecord) -> SegmentRecord:
        """Create or replace a segment configuration."""
        model = await self._segment_model(environment, record.key)
        if model is None:
            model = SegmentConfigModel(environment_key=environment, segment_key=record.key)
            self.db.add(model)

        model.segment_id = str(record.id)
        model.included = list(record.included)
        model.excluded = list(record.excluded)
        model.rules = list(record.rules)

        await self.db.flush()
        await self.db.refresh(model)
        return self._model_to_segment(model)

    async def delete_segment(self, environment: str, key: str) -> bool:
        """Delete a segment configuration."""
        query = delete(SegmentConfigModel).where(
            SegmentConfigModel.environment_key == environment,
            SegmentConfigModel.segment_key == key,
        )
        result = await self.db.execute(query)
        await self.db.flush()
        return result.rowcount > 0

    # ============================================================
    # HELPERS
    # ============================================================

    def _model_to_flag(self, model: FlagConfigModel) -> FlagRecord:
        """Convert database model to record."""
        return FlagRecord(
            key=model.flag_key,
            enabled=model.enabled,
            variations=list(model.variations or []),
            off_variation=model.off_variation,
            fallthrough=model.fallthrough,
            targets=list(model.targets or []),
            rules=list(model.rules or []),
            updated_at=model.updated_at,
        )

    def _model_to_segment(self, model: SegmentConfigModel) -> SegmentRecord:
        """Convert database model to record."""
        return SegmentRecord(
            id=model.segment_id,
            key=model.segment_key,
            included=list(model.included or []),
            excluded=list(model.excluded or []),
            rules=list(model.rules or []),
            updated_at=model.updated_at,
        )
