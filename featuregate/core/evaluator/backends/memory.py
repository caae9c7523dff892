"""
In-memory configuration backend.

For development and testing. Data is lost on restart.
"""

from dataclasses import replace
from datetime import datetime, timezone

from ..interfaces import ConfigBackend, FlagRecord, SegmentRecord


class MemoryConfigBackend(ConfigBackend):
    """
    In-memory flag and segment configuration storage.

    Useful for:
    - Development without database
    - Unit testing
    - Quick prototyping
    """

    def __init__(self):
        self._flags: dict[str, dict[str, FlagRecord]] = {}
        self._segments: dict[str, dict[str, SegmentRecord]] = {}

    # ============================================================
    # FLAG OPERATIONS
    # ============================================================

    async def get_flag(self, environment: str, key: str) -> FlagRecord | None:
        """Get a flag configuration by key."""
        return self._flags.get(environment, {}).get(key)

    async def list_flags(self, environment: str) -> list[FlagRecord]:
        """List all flag configurations of an environment."""
        return [self._flags[environment][k] for k in sorted(self._flags.get(environment, {}))]

    async def save_flag(self, environment: str, record: FlagRecord) -> FlagRecord:
        """Create or replace a flag configuration."""
        stored = replace(record, updated_at=datetime.now(timezone.utc))
        self._flags.setdefault(environment, {})[record.key] = stored
        return stored

    async def delete_flag(self, environment: str, key: str) -> bool:
        """Delete a flag configuration."""
        return self._flags.get(environment, {}).pop(key, None) is not None

    # ============================================================
    # SEGMENT OPERATIONS
    # ============================================================

    async def list_segments(self, environment: str) -> list[SegmentRecord]:
        """List all segment configurations of an environment."""
        return [self._segments[environment][k] for k in sorted(self._segments.get(environment, {}))]

    async def save_segment(self, environment: str, record: SegmentRecord) -> SegmentRecord:
        """Create or replace a segment configuration."""
        stored = replace(record, updated_at=datetime.now(timezone.utc))
        self._segments.setdefault(environment, {})[record.key] = stored
        return stored

    async def delete_segment(self, environment: str, key: str) -> bool:
        """Delete a segment configuration."""
        return self._segments.get(environment, {}).pop(key, None) is not None

    # ============================================================
    # TEST HELPERS
    # ============================================================

    def clear(self) -> None:
        """Clear all data. Useful for testing."""
        self._flags.clear()
        self._segments.clear()

    def seed(
        self,
        environment: str,
        flags: list[FlagRecord] | None = None,
        segments: list[SegmentRecord] | None = None,
    ) -> None:
        """Seed an environment with initial configuration. Useful for testing."""
        for flag in flags or []:
            self._flags.setdefault(environment, {})[flag.key] = flag
        for segment in segments or []:
            self._segments.setdefault(environment, {})[segment.key] = segment
