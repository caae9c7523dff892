"""
Tests for deterministic bucketing.
"""

import mmh3
import pytest

from featuregate.core.evaluator import (
    BUCKET_SCALE,
    WeightedVariation,
    bucket_subject,
    bucket_variation,
    hash_subject,
)
from featuregate.core.exceptions import ConfigurationError


def test_hash_is_in_range():
    buckets = [hash_subject(f"user-{i}", "new-checkout") for i in range(2000)]
    assert all(0 <= b < BUCKET_SCALE for b in buckets)


def test_hash_is_deterministic():
    assert hash_subject("user-1", "new-checkout") == hash_subject("user-1", "new-checkout")


@pytest.mark.parametrize(
    "subject,salt",
    [("user-1", "new-checkout"), ("1", "23"), ("12", "3"), ("Zoë", "flag")],
)
def test_hash_is_murmur3_of_subject_dot_salt(subject, salt):
    expected = mmh3.hash(f"{subject}.{salt}".encode("utf-8"), 0, signed=False) % 100000
    assert hash_subject(subject, salt) == expected


def test_murmur3_reference_vector():
    # Published MurmurHash3 x86_32 value for "foo", seed 0
    assert mmh3.hash(b"foo", 0, signed=False) == 4138058784


def test_salt_changes_bucket_assignment():
    subjects = [f"user-{i}" for i in range(200)]
    a = [hash_subject(s, "flag-a") for s in subjects]
    b = [hash_subject(s, "flag-b") for s in subjects]
    assert a != b


def test_buckets_are_evenly_spread():
    weighted = [WeightedVariation(variation=0, weight=50000), WeightedVariation(variation=1, weight=50000)]
    counts = [0, 0]
    for i in range(10000):
        counts[bucket_variation(hash_subject(f"user-{i}", "split"), weighted)] += 1
    assert 4500 < counts[0] < 5500


# ============ bucket_variation ============


def test_two_way_split_boundary():
    weighted = [WeightedVariation(variation=0, weight=50000), WeightedVariation(variation=1, weight=50000)]
    assert bucket_variation(0, weighted) == 0
    assert bucket_variation(49999, weighted) == 0
    assert bucket_variation(50000, weighted) == 1
    assert bucket_variation(99999, weighted) == 1


def test_weights_accumulate_in_list_order():
    weighted = [
        WeightedVariation(variation=2, weight=10000),
        WeightedVariation(variation=0, weight=20000),
        WeightedVariation(variation=1, weight=70000),
    ]
    assert bucket_variation(9999, weighted) == 2
    assert bucket_variation(10000, weighted) == 0
    assert bucket_variation(29999, weighted) == 0
    assert bucket_variation(30000, weighted) == 1


def test_zero_weight_entry_is_never_chosen_before_its_successor():
    weighted = [WeightedVariation(variation=0, weight=0), WeightedVariation(variation=1, weight=100000)]
    assert bucket_variation(0, weighted) == 1


def test_falls_back_to_last_entry_when_weights_run_out():
    weighted = [WeightedVariation(variation=3, weight=30000)]
    assert bucket_variation(29999, weighted) == 3
    assert bucket_variation(30000, weighted) == 3
    assert bucket_variation(99999, weighted) == 3


def test_empty_rollout_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        bucket_variation(10, [])


def test_bucket_subject_stringifies_like_javascript():
    context = {"key": "u1", "org": None, "seats": 10.0, "beta": True}

    assert bucket_subject(context, None) == "u1"
    assert bucket_subject(context, "org") == "null"
    assert bucket_subject(context, "team") == "undefined"
    assert bucket_subject(context, "seats") == "10"
    assert bucket_subject(context, "beta") == "true"
