"""Numeric helpers shared by the path, axis and hover code."""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping


def is_finite_number(value: object) -> bool:
    """Return True for int/float values that are neither NaN nor infinite."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def coerce_float(value: object, default: float = 0.0) -> float:
    """Coerce a raw API value to a finite float.

    Args:
        value: Raw value (number, numeric string, None, ...)
        default: Value returned when coercion fails

    Returns:
        Finite float, or ``default`` for None, non-numeric, NaN or infinite input
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        result = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return default
        try:
            result = float(text)
        except ValueError:
            return default
    else:
        return default
    return result if math.isfinite(result) else default


def value_bounds(values: Iterable[float]) -> tuple[float, float] | None:
    """Return ``(min, max)`` over the finite values, or None if there are none."""
    finite = [v for v in values if is_finite_number(v)]
    if not finite:
        return None
    return min(finite), max(finite)


def value_range(min_value: float, max_value: float, floor: float = 1.0) -> float:
    """Span between bounds, floored so it can always be used as a divisor."""
    return max(max_value - min_value, floor)


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    if denominator == 0 or not math.isfinite(denominator):
        return default
    result = numerator / denominator
    return result if math.isfinite(result) else default


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(value, upper))


def clamp_min(value: float, lower: float) -> float:
    return max(value, lower)


def ensure_non_negative(value: float) -> float:
    return value if value > 0 else 0.0


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (2.5 -> 3, -2.5 -> -2)."""
    return math.floor(value + 0.5)


def normalize_to_percentages(values: Mapping[str, float]) -> dict[str, float]:
    """Scale values so they sum to 100.

    A mapping whose total is zero or negative is returned unchanged (as a new
    dict) instead of being divided by zero.
    """
    total = sum(values.values())
    if total <= 0:
        return dict(values)
    return {key: value / total * 100.0 for key, value in values.items()}


def format_coordinate(value: float) -> str:
    """Render a path coordinate with at most two decimals and no trailing zeros."""
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    if text in ("-0", ""):
        return "0"
    return text
