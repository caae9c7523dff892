"""
Configuration transformers.

Two directions are handled here:

- Stored records -> evaluation model (to_eval_flag, to_eval_segment).
  Stored rules nest their outcome under "rollout", the default outcome is
  called "fallthrough", and segment references are "segmentMatch" clauses
  that carry a segment id. Segment ids are resolved to keys here, once,
  so the evaluator only ever sees SegmentClause values.

- Evaluation model <-> SDK payload dicts (flag_to_dict, flag_from_dict, ...).
  The payload is what GET /flags serves and what the payload cache stores.
  In the payload, segment membership is the attribute form
  {"attribute": "segment:<key>", "operator": "in", "values": [true]}.
"""

from __future__ import annotations

from typing import Any, Iterable

from featuregate.core.exceptions import ConfigurationError

from .interfaces import (
    SEGMENT_ATTRIBUTE_PREFIX,
    AttributeClause,
    Clause,
    DefaultRule,
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

SEGMENT_MATCH_ATTRIBUTE = "segmentMatch"


# ============================================================
# SHARED HELPERS
# ============================================================

def _operator(raw: Any) -> Operator | str:
    try:
        return Operator(raw)
    except ValueError:
        return str(raw)


def _attribute_clause(raw: dict[str, Any]) -> AttributeClause:
    values = raw.get("values")
    if values is None:
        values = []
    elif not isinstance(values, list):
        values = [values]
    return AttributeClause(
        attribute=str(raw["attribute"]),
        operator=_operator(raw.get("operator")),
        values=list(values),
        negate=bool(raw.get("negate", False)),
    )


def _parse_clause(raw: dict[str, Any]) -> Clause:
    """Parse a payload clause, turning "segment:<key>" into a SegmentClause."""
    attribute = str(raw["attribute"])
    if attribute.startswith(SEGMENT_ATTRIBUTE_PREFIX):
        return SegmentClause(
            segment_key=attribute[len(SEGMENT_ATTRIBUTE_PREFIX):],
            negate=bool(raw.get("negate", False)),
        )
    return _attribute_clause(raw)


def _weighted(raw: Iterable[dict[str, Any]] | None) -> list[WeightedVariation]:
    return [
        WeightedVariation(variation=int(entry["variation"]), weight=int(entry["weight"]))
        for entry in raw or []
    ]


def _rollout(raw: dict[str, Any] | None) -> Rollout | None:
    if not raw or not raw.get("variations"):
        return None
    return Rollout(
        variations=_weighted(raw["variations"]),
        bucket_by=raw.get("bucketBy") or "key",
    )


def _variations(raw: Iterable[dict[str, Any]]) -> list[Variation]:
    return [
        Variation(
            value=v.get("value"),
            name=v.get("name") or None,
            description=v.get("description") or None,
        )
        for v in raw
    ]


def _optional_int(value: Any) -> int | None:
    return None if value is None else int(value)


# ============================================================
# STORED RECORD -> EVALUATION MODEL
# ============================================================

def build_segment_id_map(records: Iterable[SegmentRecord]) -> dict[str, str]:
    """Map stored segment ids to segment keys."""
    return {str(record.id): record.key for record in records}


def _record_clause(raw: dict[str, Any], segment_ids: dict[str, str]) -> Clause:
    if raw.get("attribute") == SEGMENT_MATCH_ATTRIBUTE:
        values = raw.get("values") or []
        segment_key = segment_ids.get(str(values[0])) if values else None
        if segment_key is not None:
            return SegmentClause(segment_key=segment_key, negate=bool(raw.get("negate", False)))
    return _attribute_clause(raw)


def _record_rule(raw: dict[str, Any], segment_ids: dict[str, str]) -> Rule:
    outcome = raw.get("rollout") or {}
    return Rule(
        id=str(raw.get("id", "")),
        clauses=[_record_clause(c, segment_ids) for c in raw.get("clauses") or []],
        variation=_optional_int(outcome.get("variation")),
        rollout=_rollout(outcome),
    )


def _fallthrough(raw: dict[str, Any] | None) -> DefaultRule:
    if raw is None:
        return DefaultRule(variation=0)
    return DefaultRule(
        variation=_optional_int(raw.get("variation")),
        rollout=_rollout(raw.get("rollout")),
    )


def to_eval_flag(record: FlagRecord, segment_ids: dict[str, str] | None = None) -> Flag:
    """Convert a stored flag configuration into the evaluation model."""
    segment_ids = segment_ids or {}
    try:
        return Flag(
            key=record.key,
            enabled=bool(record.enabled),
            variations=_variations(record.variations),
            off_variation=int(record.off_variation),
            individual_targets=[
                IndividualTarget(
                    variation=int(t["variation"]),
                    values=frozenset(str(v) for v in t.get("values") or []),
                )
                for t in record.targets or []
            ],
            rules=[_record_rule(r, segment_ids) for r in record.rules or []],
            default_rule=_fallthrough(record.fallthrough),
        )
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise ConfigurationError(f"Invalid flag configuration '{record.key}': {e}") from e


def _record_segment_rule(raw: dict[str, Any]) -> SegmentRule:
    return SegmentRule(
        id=str(raw.get("id", "")),
        clauses=[_attribute_clause(c) for c in raw.get("clauses") or []],
        weight=_optional_int(raw.get("weight")),
        bucket_by=raw.get("bucketBy") or "key",
    )


def to_eval_segment(record: SegmentRecord) -> Segment:
    """Convert a stored segment configuration into the evaluation model."""
    try:
        return Segment(
            key=record.key,
            included=frozenset(str(k) for k in record.included or []),
            excluded=frozenset(str(k) for k in record.excluded or []),
            rules=[_record_segment_rule(r) for r in record.rules or []],
        )
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise ConfigurationError(f"Invalid segment configuration '{record.key}': {e}") from e


# ============================================================
# EVALUATION MODEL <-> SDK PAYLOAD
# ============================================================

def _clause_to_dict(clause: Clause) -> dict[str, Any]:
    if isinstance(clause, SegmentClause):
        data: dict[str, Any] = {
            "attribute": f"{SEGMENT_ATTRIBUTE_PREFIX}{clause.segment_key}",
            "operator": Operator.IN.value,
            "values": [True],
        }
    else:
        operator = clause.operator
        data = {
            "attribute": clause.attribute,
            "operator": operator.value if isinstance(operator, Operator) else operator,
            "values": list(clause.values),
        }
    if clause.negate:
        data["negate"] = True
    return data


def _rollout_to_dict(rollout: Rollout) -> dict[str, Any]:
    return {
        "variations": [{"variation": w.variation, "weight": w.weight} for w in rollout.variations],
        "bucketBy": rollout.bucket_by,
    }


def _outcome_to_dict(variation: int | None, rollout: Rollout | None) -> dict[str, Any]:
    data: dict[str, Any] = {}
    if variation is not None:
        data["variation"] = variation
    if rollout is not None:
        data["rollout"] = _rollout_to_dict(rollout)
    return data


def flag_to_dict(flag: Flag) -> dict[str, Any]:
    """Serialize a flag into the SDK payload shape."""
    variations = []
    for v in flag.variations:
        item: dict[str, Any] = {"value": v.value}
        if v.name:
            item["name"] = v.name
        if v.description:
            item["description"] = v.description
        variations.append(item)

    return {
        "key": flag.key,
        "enabled": flag.enabled,
        "variations": variations,
        "offVariation": flag.off_variation,
        "individualTargets": [
            {"variation": t.variation, "values": sorted(t.values)}
            for t in flag.individual_targets
        ],
        "rules": [
            {
                "id": rule.id,
                "clauses": [_clause_to_dict(c) for c in rule.clauses],
                **_outcome_to_dict(rule.variation, rule.rollout),
            }
            for rule in flag.rules
        ],
        "defaultRule": _outcome_to_dict(flag.default_rule.variation, flag.default_rule.rollout),
    }


def flag_from_dict(data: dict[str, Any]) -> Flag:
    """Parse a flag from the SDK payload shape."""
    try:
        default = data.get("defaultRule") or {}
        return Flag(
            key=str(data["key"]),
            enabled=bool(data.get("enabled", False)),
            variations=_variations(data.get("variations") or []),
            off_variation=int(data.get("offVariation", 0)),
            individual_targets=[
                IndividualTarget(
                    variation=int(t["variation"]),
                    values=frozenset(str(v) for v in t.get("values") or []),
                )
                for t in data.get("individualTargets") or []
            ],
            rules=[
                Rule(
                    id=str(r.get("id", "")),
                    clauses=[_parse_clause(c) for c in r.get("clauses") or []],
                    variation=_optional_int(r.get("variation")),
                    rollout=_rollout(r.get("rollout")),
                )
                for r in data.get("rules") or []
            ],
            default_rule=DefaultRule(
                variation=_optional_int(default.get("variation")),
                rollout=_rollout(default.get("rollout")),
            ),
        )
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise ConfigurationError(f"Invalid flag payload: {e}") from e


def segment_to_dict(segment: Segment) -> dict[str, Any]:
    """Serialize a segment into the SDK payload shape."""
    rules = []
    for rule in segment.rules:
        item: dict[str, Any] = {
            "id": rule.id,
            "clauses": [_clause_to_dict(c) for c in rule.clauses],
            "bucketBy": rule.bucket_by,
        }
        if rule.weight is not None:
            item["weight"] = rule.weight
        rules.append(item)

    return {
        "key": segment.key,
        "included": sorted(segment.included),
        "excluded": sorted(segment.excluded),
        "rules": rules,
    }


def segment_from_dict(data: dict[str, Any]) -> Segment:
    """Parse a segment from the SDK payload shape."""
    try:
        return Segment(
            key=str(data["key"]),
            included=frozenset(str(k) for k in data.get("included") or []),
            excluded=frozenset(str(k) for k in data.get("excluded") or []),
            rules=[_record_segment_rule(r) for r in data.get("rules") or []],
        )
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise ConfigurationError(f"Invalid segment payload: {e}") from e
