"""
Value coercions used by clause operators and bucketing.

Each coercion returns None when the value cannot be interpreted in the
requested category; callers treat None as a failed (fail-closed) clause.
Contexts arrive as decoded JSON, so strings, numbers, booleans, lists and
objects are the expected inputs.
"""

from __future__ import annotations

import json
import math
from datetime import datetime, timezone
from typing import Any

from dateutil.parser import isoparse
from semver import Version


def stringify(value: Any) -> str:
    """
    Render a value the way a JSON-native SDK would.

    Booleans are lowercase and integral floats drop the trailing ".0" so that
    the same attribute hashes and compares identically across SDKs.
    """
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, separators=(",", ":"), default=str)
    return str(value)


def to_number(value: Any) -> float | None:
    """Coerce to a finite float. Booleans are not numbers."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def to_version(value: Any) -> Version | None:
    """
    Parse a SemVer 2.0.0 version; None if malformed.

    A leading "v" or "=" is tolerated, as npm-style SDKs accept it. Two-part
    versions such as "1.2" are malformed.
    """
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        return None
    text = stringify(value).strip().removeprefix("=").removeprefix("v")
    try:
        return Version.parse(text)
    except ValueError:
        return None
    try:
        return Version(stringify(value).strip())
    except InvalidVersion:
        return None


def to_timestamp(value: Any) -> float | None:
    """
    Coerce to epoch milliseconds.

    Accepts epoch millis (number or numeric string), ISO-8601 strings and
    datetime objects. Naive datetimes are taken as UTC.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return _datetime_millis(value)
    if isinstance(value, (int, float)):
        return to_number(value)
    if isinstance(value, str):
        millis = to_number(value)
        if millis is not None:
            return millis
        try:
            parsed = isoparse(value.strip())
        except (ValueError, OverflowError):
            return None
        return _datetime_millis(parsed)
    return None


def _datetime_millis(value: datetime) -> float | None:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    try:
        return value.timestamp() * 1000
    except (OverflowError, OSError, ValueError):
        return None


def same_value(left: Any, right: Any) -> bool:
    """
    Strict equality for list membership.

    Python treats True == 1; JSON-native evaluators do not, so booleans only
    ever equal booleans.
    """
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left is right
    return left == right
