"""
Flag Evaluation Core.

Deterministic feature flag evaluation with:
- Individual targets
- Attribute and segment rules
- Percentage rollouts (MurmurHash3 buckets)
- Default rule and off variation

Usage Levels:

Level 1 - Pure evaluation:
    from featuregate.core.evaluator import evaluate

    result = evaluate(flag, {"key": "user-123", "country": "US"}, segments)
    result.value, result.variation_index, result.reason

Level 2 - Environment-backed:
    from featuregate.core.evaluator import EvaluationService, MemoryConfigBackend

    service = EvaluationService(MemoryConfigBackend())
    result = await service.evaluate("production", "new-checkout", {"key": "user-123"})

Level 3 - Route injection:
    from featuregate.core.evaluator.dependencies import Evaluation

    @router.post("/evaluate")
    async def evaluate(environment: str, evaluation: Evaluation):
        return await evaluation.evaluate_all(environment, {"key": "user-123"})

Level 4 - Segment targeting:
    # A rule clause on "segment:<key>" matches when the context is a
    # member of that segment:
    # {"attribute": "segment:beta", "operator": "in", "values": [true]}
"""

from .interfaces import (
    BUCKET_SCALE,
    AttributeClause,
    Clause,
    ConfigBackend,
    DefaultRule,
    EnvironmentSnapshot,
    EvaluationContext,
    EvaluationReason,
    EvaluationResult,
    Flag,
    FlagRecord,
    IndividualTarget,
    Operator,
    Rollout,
    Rule,
    Segment,
    SegmentClause,
    SegmentRecord,
    SegmentRule,
    Variation,
    WeightedVariation,
)

from .clauses import match_clause
from .hashing import bucket_subject, bucket_variation, hash_subject
from .segments import is_member
from .service import EvaluationService, evaluate

from .transformers import (
    build_segment_id_map,
    flag_from_dict,
    flag_to_dict,
    segment_from_dict,
    segment_to_dict,
    to_eval_flag,
    to_eval_segment,
)

from .backends import (
    DatabaseConfigBackend,
    MemoryConfigBackend,
)

__all__ = [
    # Model
    "BUCKET_SCALE",
    "AttributeClause",
    "Clause",
    "DefaultRule",
    "EnvironmentSnapshot",
    "EvaluationContext",
    "EvaluationReason",
    "EvaluationResult",
    "Flag",
    "IndividualTarget",
    "Operator",
    "Rollout",
    "Rule",
    "Segment",
    "SegmentClause",
    "SegmentRule",
    "Variation",
    "WeightedVariation",
    # Evaluation
    "match_clause",
    "bucket_subject",
    "bucket_variation",
    "hash_subject",
    "is_member",
    "evaluate",
    "EvaluationService",
    # Configuration
    "ConfigBackend",
    "FlagRecord",
    "SegmentRecord",
    "build_segment_id_map",
    "to_eval_flag",
    "to_eval_segment",
    "flag_to_dict",
    "flag_from_dict",
    "segment_to_dict",
    "segment_from_dict",
    # Backends
    "DatabaseConfigBackend",
    "MemoryConfigBackend",
]
