"""
Deterministic bucketing.

The hash must be reproduced bit-for-bit by every SDK: MurmurHash3 x86
32-bit, seed 0, unsigned, over the UTF-8 bytes of "<subject>.<salt>",
reduced modulo 100000. The "." separator keeps ("1", "23") and ("12", "3")
apart.
"""

from __future__ import annotations

from collections.abc import Sequence

import mmh3

from featuregate.core.exceptions import ConfigurationError

from .coercion import stringify
from .interfaces import BUCKET_SCALE, EvaluationContext, WeightedVariation


def hash_subject(subject: str, salt: str) -> int:
    """Hash a (subject, salt) pair into [0, 99999]."""
    data = f"{subject}.{salt}".encode("utf-8")
    return mmh3.hash(data, 0, signed=False) % BUCKET_SCALE


def bucket_subject(context: EvaluationContext, attribute: str | None) -> str:
    """
    The string a context hashes under for a bucketing attribute.

    A missing attribute hashes as "undefined" and an explicit null as "null",
    matching what JavaScript SDKs produce for the same context.
    """
    name = attribute or "key"
    if name not in context:
        return "undefined"
    value = context[name]
    return "null" if value is None else stringify(value)


def bucket_variation(bucket: int, weighted: Sequence[WeightedVariation]) -> int:
    """
    Map a bucket value onto a weighted variation index.

    Weights accumulate in list order and the first entry whose cumulative
    weight is strictly greater than the bucket wins. If the weights sum to
    less than the bucket, the last entry is returned.
    """
    if not weighted:
        raise ConfigurationError("rollout has no weighted variations")

    cumulative = 0
    for entry in weighted:
        cumulative += entry.weight
        if bucket < cumulative:
            return entry.variation

    return weighted[-1].variation
