"""
Tests for clause matching.
"""

from datetime import datetime, timezone

import pytest

from featuregate.core.evaluator import AttributeClause, Operator, match_clause


def clause(attribute: str, operator, values=None, negate: bool = False) -> AttributeClause:
    return AttributeClause(
        attribute=attribute,
        operator=operator,
        values=[] if values is None else values,
        negate=negate,
    )


# ============ String operators ============


@pytest.mark.parametrize(
    "operator,actual,values,expected",
    [
        (Operator.EQUALS, "US", ["FR", "US"], True),
        (Operator.EQUALS, "US", ["FR"], False),
        (Operator.EQUALS, True, ["true"], True),
        (Operator.EQUALS, 3.0, ["3"], True),
        (Operator.NOT_EQUALS, "US", ["FR"], True),
        (Operator.NOT_EQUALS, "US", ["US", "FR"], False),
        (Operator.CONTAINS, "alice@example.com", ["@example.com"], True),
        (Operator.CONTAINS, "alice@example.com", ["@acme.io"], False),
        (Operator.NOT_CONTAINS, "alice@example.com", ["@acme.io"], True),
        (Operator.NOT_CONTAINS, "alice@example.com", ["alice"], False),
        (Operator.STARTS_WITH, "user-42", ["admin-", "user-"], True),
        (Operator.STARTS_WITH, "user-42", ["admin-"], False),
        (Operator.ENDS_WITH, "report.pdf", [".pdf"], True),
        (Operator.ENDS_WITH, "report.pdf", [".doc"], False),
        (Operator.MATCHES, "user-42", [r"^user-\d+$"], True),
        (Operator.MATCHES, "admin", [r"^user-\d+$"], False),
    ],
)
def test_string_operators(operator, actual, values, expected):
    assert match_clause(clause("attr", operator, values), {"attr": actual}) is expected


def test_matches_searches_anywhere():
    assert match_clause(clause("email", Operator.MATCHES, ["example"]), {"email": "a@example.com"})


def test_matches_skips_invalid_patterns():
    context = {"name": "user-1"}
    assert match_clause(clause("name", Operator.MATCHES, ["(", "^user"]), context)


def test_matches_all_invalid_patterns_fails_closed():
    context = {"name": "user-1"}
    assert not match_clause(clause("name", Operator.MATCHES, ["("]), context)
    assert not match_clause(clause("name", Operator.MATCHES, ["("], negate=True), context)


# ============ List operators ============


def test_in_matches_any_value():
    assert match_clause(clause("plan", Operator.IN, ["pro", "team"]), {"plan": "pro"})
    assert not match_clause(clause("plan", Operator.IN, ["pro", "team"]), {"plan": "free"})


def test_in_is_strict_about_booleans():
    assert not match_clause(clause("beta", Operator.IN, [1]), {"beta": True})
    assert match_clause(clause("beta", Operator.IN, [True]), {"beta": True})


def test_in_treats_int_and_float_as_equal():
    assert match_clause(clause("n", Operator.IN, [1.0]), {"n": 1})


def test_not_in():
    assert match_clause(clause("plan", Operator.NOT_IN, ["pro"]), {"plan": "free"})
    assert not match_clause(clause("plan", Operator.NOT_IN, ["pro"]), {"plan": "pro"})


# ============ Number operators ============


@pytest.mark.parametrize(
    "operator,actual,threshold,expected",
    [
        (Operator.GREATER_THAN, 21, 18, True),
        (Operator.GREATER_THAN, 18, 18, False),
        (Operator.GREATER_THAN, "21", 18, True),
        (Operator.LESS_THAN, 17, 18, True),
        (Operator.LESS_THAN, 18.5, 18, False),
        (Operator.GREATER_THAN_OR_EQUAL, 18, 18, True),
        (Operator.GREATER_THAN_OR_EQUAL, 17, 18, False),
        (Operator.LESS_THAN_OR_EQUAL, 18, "18", True),
        (Operator.LESS_THAN_OR_EQUAL, 19, 18, False),
    ],
)
def test_number_operators(operator, actual, threshold, expected):
    assert match_clause(clause("age", operator, [threshold]), {"age": actual}) is expected


@pytest.mark.parametrize("actual", ["abc", True, [1], float("nan")])
def test_number_operators_fail_closed_on_non_numbers(actual):
    assert not match_clause(clause("age", Operator.GREATER_THAN, [0]), {"age": actual})
    assert not match_clause(clause("age", Operator.GREATER_THAN, [0], negate=True), {"age": actual})


# ============ Semver operators ============


def test_semver_compares_numerically():
    context = {"version": "1.10.0"}
    assert match_clause(clause("version", Operator.SEMVER_GREATER_THAN, ["1.9.0"]), context)
    assert not match_clause(clause("version", Operator.SEMVER_LESS_THAN, ["1.9.0"]), context)


def test_semver_equals():
    assert match_clause(clause("version", Operator.SEMVER_EQUALS, ["2.1.3"]), {"version": "2.1.3"})
    assert not match_clause(clause("version", Operator.SEMVER_EQUALS, ["2.1.4"]), {"version": "2.1.3"})


def test_semver_invalid_version_fails_closed():
    context = {"version": "not-a-version"}
    assert not match_clause(clause("version", Operator.SEMVER_GREATER_THAN, ["1.0.0"]), context)
    assert not match_clause(
        clause("version", Operator.SEMVER_GREATER_THAN, ["1.0.0"], negate=True), context
    )


def test_semver_ignores_build_metadata():
    assert match_clause(
        clause("version", Operator.SEMVER_EQUALS, ["1.0.0+build.2"]), {"version": "1.0.0+build.1"}
    )


def test_semver_orders_dotted_prereleases():
    context = {"version": "1.0.0-alpha.beta"}
    assert match_clause(clause("version", Operator.SEMVER_GREATER_THAN, ["1.0.0-alpha"]), context)
    assert match_clause(clause("version", Operator.SEMVER_LESS_THAN, ["1.0.0"]), context)


@pytest.mark.parametrize("version", ["1.2", "1.0.0.post1", "1!2.0"])
def test_semver_rejects_non_semver_forms(version: str):
    assert not match_clause(
        clause("version", Operator.SEMVER_GREATER_THAN, ["1.0.0"]), {"version": version}
    )


def test_semver_accepts_leading_v():
    assert match_clause(clause("version", Operator.SEMVER_EQUALS, ["1.4.0"]), {"version": "v1.4.0"})


# ============ Date operators ============


def test_before_and_after_with_iso_strings():
    context = {"signup": "2024-01-01T00:00:00Z"}
    assert match_clause(clause("signup", Operator.BEFORE, ["2024-06-01T00:00:00Z"]), context)
    assert not match_clause(clause("signup", Operator.AFTER, ["2024-06-01T00:00:00Z"]), context)


def test_dates_accept_epoch_millis():
    # 2024-01-01T00:00:00Z
    context = {"signup": 1704067200000}
    assert match_clause(clause("signup", Operator.AFTER, ["2023-12-31T00:00:00Z"]), context)
    assert match_clause(clause("signup", Operator.BEFORE, [1704067200001]), context)


def test_dates_accept_datetime_objects():
    context = {"signup": datetime(2024, 1, 1, tzinfo=timezone.utc)}
    assert match_clause(clause("signup", Operator.BEFORE, ["2024-01-02"]), context)


def test_invalid_date_fails_closed():
    context = {"signup": "yesterday"}
    assert not match_clause(clause("signup", Operator.BEFORE, ["2024-01-01"]), context)
    assert not match_clause(clause("signup", Operator.BEFORE, ["2024-01-01"], negate=True), context)


# ============ Boolean operators ============


def test_is_true_and_is_false():
    assert match_clause(clause("beta", Operator.IS_TRUE), {"beta": True})
    assert not match_clause(clause("beta", Operator.IS_TRUE), {"beta": "true"})
    assert match_clause(clause("beta", Operator.IS_FALSE), {"beta": False})
    assert not match_clause(clause("beta", Operator.IS_FALSE), {"beta": 0})


# ============ Existence operators ============


def test_exists():
    assert match_clause(clause("country", Operator.EXISTS), {"country": "US"})
    assert not match_clause(clause("country", Operator.EXISTS), {})
    assert not match_clause(clause("country", Operator.EXISTS), {"country": None})


def test_not_exists():
    assert match_clause(clause("country", Operator.NOT_EXISTS), {})
    assert not match_clause(clause("country", Operator.NOT_EXISTS), {"country": "US"})


def test_existence_operators_ignore_negate():
    assert match_clause(clause("country", Operator.EXISTS, negate=True), {"country": "US"})
    assert match_clause(clause("country", Operator.NOT_EXISTS, negate=True), {})


# ============ Fail-closed behaviour ============


def test_missing_attribute_is_false_even_when_negated():
    context = {"key": "u1"}
    assert not match_clause(clause("country", Operator.IN, ["US"]), context)
    assert not match_clause(clause("country", Operator.IN, ["US"], negate=True), context)


def test_negate_inverts_successful_comparison():
    context = {"country": "US"}
    assert not match_clause(clause("country", Operator.IN, ["US"], negate=True), context)
    assert match_clause(clause("country", Operator.IN, ["FR"], negate=True), context)


def test_empty_values_fail_closed():
    context = {"country": "US"}
    assert not match_clause(clause("country", Operator.EQUALS, []), context)
    assert not match_clause(clause("country", Operator.EQUALS, [], negate=True), context)
    assert not match_clause(clause("country", Operator.IN, [], negate=True), context)


def test_unknown_operator_is_false():
    context = {"country": "US"}
    assert not match_clause(clause("country", "looksLike", ["US"]), context)
    assert not match_clause(clause("country", "looksLike", ["US"], negate=True), context)


def test_operator_given_as_string():
    assert match_clause(clause("plan", "in", ["pro"]), {"plan": "pro"})


def test_scalar_values_are_treated_as_single_value():
    assert match_clause(clause("plan", Operator.EQUALS, "pro"), {"plan": "pro"})
