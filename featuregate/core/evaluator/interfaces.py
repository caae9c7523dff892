"""
Evaluation Interfaces - Core data model and abstractions.

Everything the evaluator consumes is an immutable value object supplied by
the caller for the duration of one call. Persisted records (FlagRecord,
SegmentRecord) describe how configuration is stored; the transformer turns
them into the evaluation types below.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Union


# Weights are integers on a 0-100000 scale (100.000%)
BUCKET_SCALE = 100_000

SEGMENT_ATTRIBUTE_PREFIX = "segment:"

EvaluationContext = Mapping[str, Any]


class Operator(str, Enum):
    """Clause operators, grouped by coercion category."""

    # String
    EQUALS = "equals"
    NOT_EQUALS = "notEquals"
    CONTAINS = "contains"
    NOT_CONTAINS = "notContains"
    STARTS_WITH = "startsWith"
    ENDS_WITH = "endsWith"
    MATCHES = "matches"
    # List
    IN = "in"
    NOT_IN = "notIn"
    # Number
    GREATER_THAN = "greaterThan"
    LESS_THAN = "lessThan"
    GREATER_THAN_OR_EQUAL = "greaterThanOrEqual"
    LESS_THAN_OR_EQUAL = "lessThanOrEqual"
    # Semver
    SEMVER_EQUALS = "semverEquals"
    SEMVER_GREATER_THAN = "semverGreaterThan"
    SEMVER_LESS_THAN = "semverLessThan"
    # Date
    BEFORE = "before"
    AFTER = "after"
    # Boolean
    IS_TRUE = "isTrue"
    IS_FALSE = "isFalse"
    # Existence
    EXISTS = "exists"
    NOT_EXISTS = "notExists"


class EvaluationReason(str, Enum):
    """Machine-readable reason attached to every evaluation result."""

    FLAG_DISABLED = "FLAG_DISABLED"
    INDIVIDUAL_TARGET = "INDIVIDUAL_TARGET"
    RULE_MATCH = "RULE_MATCH"
    ROLLOUT = "ROLLOUT"
    DEFAULT = "DEFAULT"
    DEFAULT_ROLLOUT = "DEFAULT_ROLLOUT"
    ERROR = "ERROR"


# ============================================================
# EVALUATION MODEL
# ============================================================

@dataclass(frozen=True)
class Variation:
    """One possible output of a flag, identified by its list position."""
    value: Any
    name: str | None = None
    description: str | None = None


@dataclass(frozen=True)
class AttributeClause:
    """
    Predicate over one context attribute.

    operator is kept as a plain string when it is not a known Operator,
    so that unknown operators evaluate to false instead of failing to load.
    """
    attribute: str
    operator: Operator | str
    values: list[Any] = field(default_factory=list)
    negate: bool = False


@dataclass(frozen=True)
class SegmentClause:
    """Predicate "context is a member of segment_key"."""
    segment_key: str
    negate: bool = False


Clause = Union[AttributeClause, SegmentClause]


@dataclass(frozen=True)
class WeightedVariation:
    variation: int
    weight: int


@dataclass(frozen=True)
class Rollout:
    """Weighted split across variations, bucketed by a context attribute."""
    variations: list[WeightedVariation] = field(default_factory=list)
    bucket_by: str = "key"


@dataclass(frozen=True)
class Rule:
    """
    AND-group of clauses with one outcome.

    Exactly one of variation or rollout is expected; when both are set the
    fixed variation wins.
    """
    id: str
    clauses: list[Clause] = field(default_factory=list)
    variation: int | None = None
    rollout: Rollout | None = None


@dataclass(frozen=True)
class IndividualTarget:
    variation: int
    values: frozenset[str] = frozenset()


@dataclass(frozen=True)
class DefaultRule:
    """Fallthrough outcome: a fixed variation or a rollout."""
    variation: int | None = None
    rollout: Rollout | None = None


@dataclass(frozen=True)
class Flag:
    """
    Flag definition as consumed by the evaluator.

    Attributes:
        key: Unique flag key, also the salt for rollout bucketing
        enabled: Targeting on/off switch
        variations: Ordered possible outputs
        off_variation: Index served when disabled or on error
        individual_targets: Context keys pinned to a variation
        rules: Ordered targeting rules
        default_rule: Fallthrough outcome
    """
    key: str
    enabled: bool
    variations: list[Variation]
    off_variation: int
    individual_targets: list[IndividualTarget] = field(default_factory=list)
    rules: list[Rule] = field(default_factory=list)
    default_rule: DefaultRule = field(default_factory=DefaultRule)


@dataclass(frozen=True)
class SegmentRule:
    """Segment rule: clauses plus an optional 0-100000 rollout weight."""
    id: str
    clauses: list[Clause] = field(default_factory=list)
    weight: int | None = None
    bucket_by: str = "key"


@dataclass(frozen=True)
class Segment:
    """Reusable cohort: explicit include/exclude lists plus OR-ed rules."""
    key: str
    included: frozenset[str] = frozenset()
    excluded: frozenset[str] = frozenset()
    rules: list[SegmentRule] = field(default_factory=list)


@dataclass(frozen=True)
class EvaluationResult:
    """
    Result of flag evaluation.

    rule_index and rule_id are set only for RULE_MATCH and ROLLOUT.
    """
    value: Any
    variation_index: int
    reason: EvaluationReason
    rule_index: int | None = None
    rule_id: str | None = None

    def reason_dict(self) -> dict[str, Any]:
        """Reason in the wire shape {kind, ruleIndex?, ruleId?}."""
        reason: dict[str, Any] = {"kind": self.reason.value}
        if self.rule_index is not None:
            reason["ruleIndex"] = self.rule_index
        if self.rule_id is not None:
            reason["ruleId"] = self.rule_id
        return reason


@dataclass
class EnvironmentSnapshot:
    """All evaluable flags and segments of one project environment."""
    environment: str
    flags: dict[str, Flag] = field(default_factory=dict)
    segments: dict[str, Segment] = field(default_factory=dict)


# ============================================================
# PERSISTED CONFIGURATION RECORDS
# ============================================================

@dataclass
class FlagRecord:
    """
    Stored per-environment flag configuration.

    Shapes (JSON-compatible):
        variations: [{"value": ..., "name"?: str, "description"?: str}]
        fallthrough: {"variation"?: int, "rollout"?: {"variations": [...]}}
        targets: [{"variation": int, "values": [str]}]
        rules: [{"id": str, "clauses": [...],
                 "rollout": {"variation"?: int, "variations"?: [...]}}]

    Segment references are clauses of the form
    {"attribute": "segmentMatch", "values": [<segment id>]}.
    """
    key: str
    enabled: bool = False
    variations: list[dict[str, Any]] = field(default_factory=list)
    off_variation: int = 0
    fallthrough: dict[str, Any] | None = None
    targets: list[dict[str, Any]] = field(default_factory=list)
    rules: list[dict[str, Any]] = field(default_factory=list)
    updated_at: datetime | None = None


@dataclass
class SegmentRecord:
    """
    Stored per-environment segment configuration.

    rules: [{"id": str, "clauses": [...], "weight"?: int, "bucketBy"?: str}]
    """
    id: str
    key: str
    included: list[str] = field(default_factory=list)
    excluded: list[str] = field(default_factory=list)
    rules: list[dict[str, Any]] = field(default_factory=list)
    updated_at: datetime | None = None


class ConfigBackend(ABC):
    """
    Abstract configuration supplier.

    Implementations:
    - MemoryConfigBackend: In-memory (dev/testing)
    - DatabaseConfigBackend: SQLAlchemy
    """

    @abstractmethod
    async def get_flag(self, environment: str, key: str) -> FlagRecord | None:
        """Get a flag configuration by key."""
        pass

    @abstractmethod
    async def list_flags(self, environment: str) -> list[FlagRecord]:
        """List all flag configurations of an environment."""
        pass

    @abstractmethod
    async def list_segments(self, environment: str) -> list[SegmentRecord]:
        """List all segment configurations of an environment."""
        pass

    @abstractmethod
    async def save_flag(self, environment: str, record: FlagRecord) -> FlagRecord:
        """Create or replace a flag configuration."""
        pass

    @abstractmethod
    async def delete_flag(self, environment: str, key: str) -> bool:
        """Delete a flag configuration."""
        pass

    @abstractmethod
    async def save_segment(self, environment: str, record: SegmentRecord) -> SegmentRecord:
        """Create or replace a segment configuration."""
        pass

    @abstractmethod
    async def delete_segment(self, environment: str, key: str) -> bool:
        """Delete a segment configuration."""
        pass
