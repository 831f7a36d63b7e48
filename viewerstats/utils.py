"""Coercion helpers for loosely typed request values."""

from __future__ import annotations

import math
from typing import Any, Optional

_TRUE_STRINGS = {"true", "1", "yes", "y", "on"}


def norm_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return False


def _to_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def clamp_int(value: Any, default: int, minimum: int, maximum: int) -> int:
    """Parse a base-10 integer and clamp it; unparsable input yields ``default``."""

    try:
        number = int(norm_str(value))
    except ValueError:
        return default
    return min(maximum, max(minimum, number))


def to_int(
    value: Any,
    *,
    minimum: Optional[int] = None,
    maximum: Optional[int] = None,
    fallback: int = 0,
) -> int:
    number = _to_number(value)
    if number is None:
        return fallback
    result = math.trunc(number)
    if minimum is not None and result < minimum:
        result = minimum
    if maximum is not None and result > maximum:
        result = maximum
    return result


def to_float(
    value: Any,
    *,
    minimum: Optional[float] = None,
    maximum: Optional[float] = None,
    fallback: float = 0.0,
) -> float:
    number = _to_number(value)
    if number is None:
        return fallback
    if minimum is not None and number < minimum:
        number = minimum
    if maximum is not None and number > maximum:
        number = maximum
    return number


def to_positive_ms(value: Any) -> Optional[int]:
    number = _to_number(value)
    if number is None or number <= 0:
        return None
    return math.trunc(number)


__all__ = [
    "clamp_int",
    "norm_str",
    "to_bool",
    "to_float",
    "to_int",
    "to_positive_ms",
]
