"""
Numeric safety helpers for review analytics.

Every numeric value that reaches an aggregate passes through these
functions. None of them ever returns NaN or Infinity: invalid inputs are
filtered out of both numerator and denominator rather than coerced to zero.

Usage:
    from reviewhub.core.numeric import is_valid_rating, safe_average

    ratings = [5, float("nan"), 4, None, 3]
    safe_average(ratings)  # 4.0
"""

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Optional


def is_valid_rating(value: Any) -> bool:
    """Return True iff value is a finite real number.

    Booleans and numeric strings are not numbers here; coercion of strings
    belongs to the validators (see to_number).
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return _as_float(value) is not None


def _as_float(value: Any) -> Optional[float]:
    # Ints beyond float range (JSON allows arbitrary digits) overflow float()
    try:
        number = float(value)
    except OverflowError:
        return None
    return number if math.isfinite(number) else None


def finite_values(values: Iterable[Any]) -> list[float]:
    """Filter an iterable down to its finite numeric members."""
    return [float(v) for v in values if is_valid_rating(v)]


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero (2.5 -> 3)."""
    if abs(value) >= 1e15:
        return int(value)
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def clamp_rating(value: float, min_value: int = 1, max_value: int = 5) -> int:
    """Round to the nearest integer, then clamp into [min_value, max_value].

    Only call with values that already passed is_valid_rating.
    """
    return max(min_value, min(max_value, round_half_up(value)))


def bound(value: float, min_value: float, max_value: float) -> float:
    """Clamp into [min_value, max_value] without rounding."""
    return max(float(min_value), min(float(max_value), float(value)))


def safe_average(values: Iterable[Any]) -> float:
    """Average of the finite values; 0.0 when none remain."""
    valid = finite_values(values)
    if not valid:
        return 0.0
    # Divide first: fsum raises OverflowError when the running total leaves float range
    count = len(valid)
    return math.fsum(value / count for value in valid)


def safe_ratio(numerator: Any, denominator: Any) -> float:
    """numerator / denominator, or 0.0 when the result would not be finite."""
    if not is_valid_rating(numerator) or not is_valid_rating(denominator):
        return 0.0
    if denominator == 0:
        return 0.0
    result = float(numerator) / float(denominator)
    return result if math.isfinite(result) else 0.0


def percent(numerator: Any, denominator: Any) -> float:
    """safe_ratio expressed as a percentage."""
    return safe_ratio(numerator, denominator) * 100.0


def rescale(
    value: float,
    from_scale: tuple[float, float],
    to_scale: tuple[float, float],
) -> float:
    """Linearly map value from one closed range onto another.

    Example:
        rescale(10, (1, 10), (1, 5))  # 5.0
        rescale(1, (1, 10), (1, 5))   # 1.0
    """
    src_lo, src_hi = from_scale
    dst_lo, dst_hi = to_scale
    if (src_lo, src_hi) == (dst_lo, dst_hi):
        return float(value)
    span = src_hi - src_lo
    if span == 0:
        return float(dst_lo)
    return dst_lo + (value - src_lo) * (dst_hi - dst_lo) / span


def to_number(value: Any) -> Optional[float]:
    """Coerce ints, floats and numeric strings to a finite float.

    Returns None for anything else, including "NaN", "inf", booleans and
    empty strings.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return _as_float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            parsed = float(text)
        except ValueError:
            return None
        return parsed if math.isfinite(parsed) else None
    return None
