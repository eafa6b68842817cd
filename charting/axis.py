"""Axis label values and their display text."""

from __future__ import annotations

import math
from collections.abc import Iterable
from typing import Literal

from charting.numeric import is_finite_number

LabelMode = Literal["currency", "percentage"]


def generate_axis_labels(min_value: float, max_value: float, steps: int) -> list[float]:
    """Generate evenly spaced axis values from max down to min.

    Args:
        min_value: Lowest value on the axis
        max_value: Highest value on the axis
        steps: Number of labels to produce

    Returns:
        ``steps`` descending values, first = max and last = min. All labels are
        equal when ``min_value == max_value``; ``[]`` when ``steps <= 0``.
    """
    if steps <= 0:
        return []
    if steps == 1:
        return [max_value]
    interval = (max_value - min_value) / (steps - 1)
    labels = [max_value - interval * i for i in range(steps - 1)]
    labels.append(min_value)
    return labels


def format_axis_label(value: float, mode: LabelMode = "currency") -> str:
    """Render an axis value for display.

    Currency values of magnitude 1000 or more are compressed to thousands with
    one decimal (``12345 -> "$12.3k"``); smaller ones are whole dollars.
    Percentages keep one decimal (``"12.3%"``).
    """
    if mode == "percentage":
        return f"{value:.1f}%"
    if mode != "currency":
        raise ValueError(f"Unknown label mode: {mode!r}")

    sign = "-" if value < 0 else ""
    magnitude = abs(value)
    if magnitude >= 1000:
        return f"{sign}${magnitude / 1000:.1f}k"
    return f"{sign}${magnitude:.0f}"


def drawdown_axis_floor(
    values: Iterable[float],
    default_min: float = -20.0,
    step: float = 5.0,
) -> float:
    """Lowest value of a drawdown axis.

    The deepest drawdown is rounded down to a multiple of ``step``; the result
    never sits above ``default_min`` so shallow drawdowns keep a stable scale.
    """
    finite = [v for v in values if is_finite_number(v)]
    if not finite:
        return default_min
    rounded = math.floor(min(finite) / step) * step
    return min(rounded, default_min)
