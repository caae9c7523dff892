"""
Clause matching.

match_clause() is total: it never raises, and any value it cannot
interpret makes the clause false. Missing data always fails closed, even
under negate; only notExists reacts positively to an absent attribute.
"""

from __future__ import annotations

import re
from typing import Any, Callable

from .coercion import same_value, stringify, to_number, to_timestamp, to_version
from .interfaces import AttributeClause, EvaluationContext, Operator


# Result of an operator: True/False, or None when it could not be evaluated
Outcome = bool | None


# ============================================================
# OPERATOR IMPLEMENTATIONS
# ============================================================

def _any_string(test: Callable[[str, str], bool]) -> Callable[[Any, list[Any]], Outcome]:
    def apply(actual: Any, values: list[Any]) -> Outcome:
        if not values:
            return None
        text = stringify(actual)
        return any(test(text, stringify(v)) for v in values)
    return apply


def _negated(op: Callable[[Any, list[Any]], Outcome]) -> Callable[[Any, list[Any]], Outcome]:
    def apply(actual: Any, values: list[Any]) -> Outcome:
        result = op(actual, values)
        return None if result is None else not result
    return apply


def _matches(actual: Any, values: list[Any]) -> Outcome:
    text = stringify(actual)
    compiled_any = False
    for pattern in values:
        try:
            regex = re.compile(stringify(pattern))
        except re.error:
            continue
        compiled_any = True
        if regex.search(text):
            return True
    return False if compiled_any else None


def _in(actual: Any, values: list[Any]) -> Outcome:
    if not values:
        return None
    return any(same_value(actual, v) for v in values)


def _compare(coerce: Callable[[Any], Any], test: Callable[[Any, Any], bool]):
    def apply(actual: Any, values: list[Any]) -> Outcome:
        if not values:
            return None
        left = coerce(actual)
        right = coerce(values[0])
        if left is None or right is None:
            return None
        return test(left, right)
    return apply


def _is_true(actual: Any, values: list[Any]) -> Outcome:
    return actual is True


def _is_false(actual: Any, values: list[Any]) -> Outcome:
    return actual is False


_OPERATORS: dict[Operator, Callable[[Any, list[Any]], Outcome]] = {
    # String
    Operator.EQUALS: _any_string(lambda a, b: a == b),
    Operator.NOT_EQUALS: _negated(_any_string(lambda a, b: a == b)),
    Operator.CONTAINS: _any_string(lambda a, b: b in a),
    Operator.NOT_CONTAINS: _negated(_any_string(lambda a, b: b in a)),
    Operator.STARTS_WITH: _any_string(lambda a, b: a.startswith(b)),
    Operator.ENDS_WITH: _any_string(lambda a, b: a.endswith(b)),
    Operator.MATCHES: _matches,
    # List
    Operator.IN: _in,
    Operator.NOT_IN: _negated(_in),
    # Number
    Operator.GREATER_THAN: _compare(to_number, lambda a, b: a > b),
    Operator.LESS_THAN: _compare(to_number, lambda a, b: a < b),
    Operator.GREATER_THAN_OR_EQUAL: _compare(to_number, lambda a, b: a >= b),
    Operator.LESS_THAN_OR_EQUAL: _compare(to_number, lambda a, b: a <= b),
    # Semver
    Operator.SEMVER_EQUALS: _compare(to_version, lambda a, b: a.compare(b) == 0),
    Operator.SEMVER_GREATER_THAN: _compare(to_version, lambda a, b: a.compare(b) > 0),
    Operator.SEMVER_LESS_THAN: _compare(to_version, lambda a, b: a.compare(b) < 0),
    # Date
    Operator.BEFORE: _compare(to_timestamp, lambda a, b: a < b),
    Operator.AFTER: _compare(to_timestamp, lambda a, b: a > b),
    # Boolean
    Operator.IS_TRUE: _is_true,
    Operator.IS_FALSE: _is_false,
}


# ============================================================
# CLAUSE MATCHING
# ============================================================

def _operator_name(operator: Operator | str) -> str:
    return operator.value if isinstance(operator, Operator) else str(operator)


def match_clause(clause: AttributeClause, context: EvaluationContext) -> bool:
    """
    Evaluate one attribute clause against a context.

    Order:
    1. Existence operators read presence directly and ignore negate
    2. Missing or null attribute -> false (negate is not applied)
    3. Operator comparison; an uninterpretable value -> false
    4. negate inverts a successful comparison
    """
    operator = _operator_name(clause.operator)
    actual = context.get(clause.attribute) if context is not None else None

    if operator == Operator.EXISTS.value:
        return actual is not None
    if operator == Operator.NOT_EXISTS.value:
        return actual is None

    if actual is None:
        return False

    try:
        apply = _OPERATORS[Operator(operator)]
    except (ValueError, KeyError):
        return False

    values = clause.values
    if values is None:
        values = []
    elif not isinstance(values, (list, tuple)):
        values = [values]
    try:
        result = apply(actual, values)
    except (TypeError, ValueError, OverflowError):
        result = None

    if result is None:
        return False
    return not result if clause.negate else result
