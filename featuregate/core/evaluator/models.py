"""
Flag Configuration Models - SQLAlchemy models for stored configuration.

Tables:
- flag_configs: Per-environment flag targeting configuration
- segment_configs: Per-environment segment configuration

Targeting structures are stored as JSON in the record shapes documented on
FlagRecord and SegmentRecord.
"""

from sqlalchemy import JSON, String, Integer, Boolean, UniqueConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import JSONB

from featuregate.models.base import Base, TimestampMixin, UUIDMixin

JSONType = JSON().with_variant(JSONB(), "postgresql")


class FlagConfigModel(Base, UUIDMixin, TimestampMixin):
    """
    Flag configuration for one environment.

    One row per (environment, flag key).
    """

    __tablename__ = "flag_configs"
    __table_args__ = (
        UniqueConstraint("environment_key", "flag_key", name="uq_flag_configs_env_flag"),
        Index("idx_flag_configs_env", "environment_key"),
    )

    environment_key: Mapped[str] = mapped_column(String(100), nullable=False)
    flag_key: Mapped[str] = mapped_column(String(100), nullable=False)

    enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    off_variation: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # [{"value": ..., "name": ..., "description": ...}]
    variations: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)
    # {"variation": 0} or {"rollout": {"variations": [...]}}
    fallthrough: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    # [{"variation": 1, "values": ["user-1"]}]
    targets: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)
    rules: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)

    def __repr__(self) -> str:
        status = "ON" if self.enabled else "OFF"
        return f"<FlagConfig {self.environment_key}/{self.flag_key} [{status}]>"


class SegmentConfigModel(Base, UUIDMixin, TimestampMixin):
    """
    Segment configuration for one environment.

    segment_id is the stable identifier that flag rules reference through
    "segmentMatch" clauses.
    """

    __tablename__ = "segment_configs"
    __table_args__ = (
        UniqueConstraint("environment_key", "segment_key", name="uq_segment_configs_env_segment"),
        Index("idx_segment_configs_env", "environment_key"),
    )

    environment_key: Mapped[str] = mapped_column(String(100), nullable=False)
    segment_key: Mapped[str] = mapped_column(String(100), nullable=False)
    segment_id: Mapped[str] = mapped_column(String(64), nullable=False)

    included: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)
    excluded: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)
    # [{"id": ..., "clauses": [...], "weight": 50000, "bucketBy": "key"}]
    rules: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)

    def __repr__(self) -> str:
        return f"<SegmentConfig {self.environment_key}/{self.segment_key}>"
