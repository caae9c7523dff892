"""
Segment membership.

Priority (first match wins):
1. excluded contains context key -> not a member
2. included contains context key -> member
3. any rule matches -> member

A rule matches when all of its clauses match and, if it carries a weight,
the context buckets below that weight (salted with the segment key).
"""

from __future__ import annotations

from .clauses import match_clause
from .coercion import stringify
from .hashing import bucket_subject, hash_subject
from .interfaces import AttributeClause, EvaluationContext, Segment, SegmentRule


def context_key(context: EvaluationContext) -> str:
    """The context's subject key as a string ("" when absent)."""
    key = context.get("key") if context is not None else None
    return "" if key is None else stringify(key)


def _rule_matches(rule: SegmentRule, segment_key: str, context: EvaluationContext) -> bool:
    # Segments cannot reference other segments; such clauses never match
    for clause in rule.clauses or []:
        if not isinstance(clause, AttributeClause) or not match_clause(clause, context):
            return False

    if rule.weight is None:
        return True

    return hash_subject(bucket_subject(context, rule.bucket_by), segment_key) < rule.weight


def is_member(context: EvaluationContext, segment: Segment) -> bool:
    """Decide whether a context belongs to a segment."""
    key = context_key(context)

    if key in (segment.excluded or ()):
        return False
    if key in (segment.included or ()):
        return True

    return any(_rule_matches(rule, segment.key, context) for rule in segment.rules or [])
