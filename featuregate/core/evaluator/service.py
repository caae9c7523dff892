"""
Flag Evaluation - Main evaluation logic.

evaluate() decides a flag's variation for a context. Order (first match wins):
1. Flag disabled -> off variation (FLAG_DISABLED)
2. Individual target containing the context key (INDIVIDUAL_TARGET)
3. Rules in order; segment clauses delegate to segment membership
   (RULE_MATCH for a fixed variation, ROLLOUT for a weighted split)
4. Default rule (DEFAULT, or DEFAULT_ROLLOUT)
5. Anything unresolvable -> off variation (ERROR)

evaluate() never raises. EvaluationService wraps it with configuration
loading and payload caching for the serving layer.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

import structlog

from featuregate.core.exceptions import ConfigurationError, NotFoundError
from featuregate.services.cache import FlagCache

from .clauses import match_clause
from .coercion import stringify
from .hashing import bucket_subject, bucket_variation, hash_subject
from .interfaces import (
    Clause,
    ConfigBackend,
    EnvironmentSnapshot,
    EvaluationContext,
    EvaluationReason,
    EvaluationResult,
    Flag,
    Rollout,
    Segment,
    SegmentClause,
)
from .segments import context_key, is_member
from .transformers import (
    build_segment_id_map,
    flag_from_dict,
    flag_to_dict,
    segment_from_dict,
    segment_to_dict,
    to_eval_flag,
    to_eval_segment,
)

logger = structlog.get_logger()


# ============================================================
# EVALUATION CORE
# ============================================================

def _resolve(flag: Flag, index: int | None, reason: EvaluationReason, **extra: Any) -> EvaluationResult:
    if index is None or isinstance(index, bool) or not 0 <= index < len(flag.variations):
        raise ConfigurationError(f"variation index {index!r} out of range for flag '{flag.key}'")
    return EvaluationResult(
        value=flag.variations[index].value,
        variation_index=index,
        reason=reason,
        **extra,
    )


def _rollout_variation(flag: Flag, rollout: Rollout, context: EvaluationContext) -> int:
    bucket = hash_subject(bucket_subject(context, rollout.bucket_by), flag.key)
    return bucket_variation(bucket, rollout.variations)


def _clause_matches(
    clause: Clause,
    context: EvaluationContext,
    segments: Mapping[str, Segment],
) -> bool:
    if isinstance(clause, SegmentClause):
        segment = segments.get(clause.segment_key)
        if segment is None:
            return False
        member = is_member(context, segment)
        return not member if clause.negate else member
    return match_clause(clause, context)


def _evaluate(
    flag: Flag,
    context: EvaluationContext,
    segments: Mapping[str, Segment],
) -> EvaluationResult:
    if not flag.enabled:
        return _resolve(flag, flag.off_variation, EvaluationReason.FLAG_DISABLED)

    key = context_key(context)
    for target in flag.individual_targets or []:
        if key in target.values:
            return _resolve(flag, target.variation, EvaluationReason.INDIVIDUAL_TARGET)

    for index, rule in enumerate(flag.rules or []):
        if not all(_clause_matches(c, context, segments) for c in rule.clauses or []):
            continue

        if rule.variation is not None:
            return _resolve(
                flag, rule.variation, EvaluationReason.RULE_MATCH,
                rule_index=index, rule_id=rule.id,
            )
        if rule.rollout is not None:
            return _resolve(
                flag, _rollout_variation(flag, rule.rollout, context), EvaluationReason.ROLLOUT,
                rule_index=index, rule_id=rule.id,
            )

    default = flag.default_rule
    if default is not None and default.variation is not None:
        return _resolve(flag, default.variation, EvaluationReason.DEFAULT)
    if default is not None and default.rollout is not None:
        return _resolve(
            flag, _rollout_variation(flag, default.rollout, context),
            EvaluationReason.DEFAULT_ROLLOUT,
        )

    raise ConfigurationError(f"no evaluation path for flag '{flag.key}'")


def _error_result(flag: Flag) -> EvaluationResult:
    index = flag.off_variation
    value = None
    try:
        if isinstance(index, int) and not isinstance(index, bool) and 0 <= index < len(flag.variations):
            value = flag.variations[index].value
    except TypeError:
        pass
    return EvaluationResult(value=value, variation_index=index, reason=EvaluationReason.ERROR)


def evaluate(
    flag: Flag,
    context: EvaluationContext,
    segments: Mapping[str, Segment] | None = None,
) -> EvaluationResult:
    """
    Evaluate a flag for a context.

    Args:
        flag: Flag definition
        context: Subject attributes; "key" identifies the subject
        segments: Segments visible in the flag's environment, by key

    Returns:
        EvaluationResult; configuration faults resolve to the off variation
        with reason ERROR instead of raising.
    """
    try:
        return _evaluate(flag, context if context is not None else {}, segments or {})
    except Exception as e:
        logger.warning(
            "flag_evaluation_error",
            flag_key=getattr(flag, "key", None),
            error=str(e),
            error_type=type(e).__name__,
        )
        return _error_result(flag)


# ============================================================
# SERVING
# ============================================================

class EvaluationService:
    """
    Flag evaluation service for one configuration backend.

    Environment snapshots are assembled from the backend, transformed into
    the evaluation model and cached as the SDK payload (cache-aside).
    """

    def __init__(
        self,
        backend: ConfigBackend,
        cache: FlagCache | None = None,
    ):
        self.backend = backend
        self.cache = cache

    # ============================================================
    # SNAPSHOTS
    # ============================================================

    async def _build_payload(self, environment: str) -> dict[str, Any]:
        segment_records = await self.backend.list_segments(environment)
        flag_records = await self.backend.list_flags(environment)
        segment_ids = build_segment_id_map(segment_records)

        flags: dict[str, Any] = {}
        for record in flag_records:
            try:
                flags[record.key] = flag_to_dict(to_eval_flag(record, segment_ids))
            except ConfigurationError as e:
                logger.warning("flag_config_skipped", environment=environment, flag_key=record.key, error=str(e))

        segments: dict[str, Any] = {}
        for record in segment_records:
            try:
                segments[record.key] = segment_to_dict(to_eval_segment(record))
            except ConfigurationError as e:
                logger.warning("segment_config_skipped", environment=environment, segment_key=record.key, error=str(e))

        return {"flags": flags, "segments": segments}

    async def get_payload(self, environment: str) -> dict[str, Any]:
        """
        Get all flags and segments of an environment in SDK payload shape.

        Served to SDKs that evaluate locally.
        """
        if self.cache is not None:
            cached = await self.cache.get_payload(environment)
            if cached is not None:
                return cached

        payload = await self._build_payload(environment)
        if self.cache is not None:
            await self.cache.set_payload(environment, payload)
        return payload

    async def get_snapshot(self, environment: str) -> EnvironmentSnapshot:
        """Get the evaluable snapshot of an environment."""
        payload = await self.get_payload(environment)
        return EnvironmentSnapshot(
            environment=environment,
            flags={key: flag_from_dict(data) for key, data in payload.get("flags", {}).items()},
            segments={key: segment_from_dict(data) for key, data in payload.get("segments", {}).items()},
        )

    async def get_flag(self, environment: str, key: str) -> dict[str, Any]:
        """Get one flag in SDK payload shape. Raises NotFoundError."""
        if self.cache is not None:
            cached = await self.cache.get_flag(environment, key)
            if cached is not None:
                return cached

        record = await self.backend.get_flag(environment, key)
        if record is None:
            raise NotFoundError("Flag", key)

        segment_ids = build_segment_id_map(await self.backend.list_segments(environment))
        data = flag_to_dict(to_eval_flag(record, segment_ids))
        if self.cache is not None:
            await self.cache.set_flag(environment, key, data)
        return data

    # ============================================================
    # EVALUATION
    # ============================================================

    async def evaluate(
        self,
        environment: str,
        flag_key: str,
        context: EvaluationContext,
    ) -> EvaluationResult:
        """Evaluate one flag. Raises NotFoundError for unknown flags."""
        snapshot = await self.get_snapshot(environment)
        flag = snapshot.flags.get(flag_key)
        if flag is None:
            raise NotFoundError("Flag", flag_key)

        result = evaluate(flag, context, snapshot.segments)
        logger.debug(
            "flag_evaluated",
            environment=environment,
            flag_key=flag_key,
            variation_index=result.variation_index,
            reason=result.reason.value,
        )
        return result

    async def evaluate_all(
        self,
        environment: str,
        context: EvaluationContext,
        flag_keys: Iterable[str] | None = None,
    ) -> dict[str, EvaluationResult]:
        """
        Evaluate several flags under one context.

        Unknown keys in flag_keys are skipped. Without flag_keys every flag
        of the environment is evaluated.
        """
        snapshot = await self.get_snapshot(environment)
        if flag_keys is None:
            selected = list(snapshot.flags)
        else:
            wanted = set(flag_keys)
            selected = [key for key in snapshot.flags if key in wanted]

        return {key: evaluate(snapshot.flags[key], context, snapshot.segments) for key in selected}
