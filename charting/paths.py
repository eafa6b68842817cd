"""SVG path generation for time-series charts.

Series are laid out left to right across the viewport width, one slot per
point, and values are mapped linearly onto the viewport height with the Y axis
pointing down. Every function here is pure: identical arguments always produce
identical strings, and an empty series produces ``""`` (nothing to draw).
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import TypeVar

from charting.numeric import coerce_float, format_coordinate, value_bounds, value_range

T = TypeVar("T")

Bounds = tuple[float, float]


def project_x(index: int, count: int, width: float) -> float:
    """X coordinate of point ``index`` in a series of ``count`` points.

    A single-point series sits at ``x = 0``.
    """
    return index / max(count - 1, 1) * width


def project_y(
    value: float,
    min_value: float,
    max_value: float,
    height: float,
    padding: float,
) -> float:
    """Map ``value`` from ``[min_value, max_value]`` onto ``[height - padding, padding]``.

    The range is floored to 1. A flat series (``min_value == max_value``) is
    centred in that range and lands on ``height / 2``; a range below 1 keeps
    its minimum on the bottom edge.
    """
    actual_range = max_value - min_value
    span = value_range(min_value, max_value)
    offset = span / 2 if actual_range == 0 else 0.0
    drawable = height - 2 * padding
    return height - padding - ((value - min_value + offset) / span) * drawable


def series_values(series: Sequence[T], get_value: Callable[[T], float]) -> list[float]:
    """Extract values through ``get_value``, replacing malformed numbers with 0."""
    return [coerce_float(get_value(point)) for point in series]


def series_bounds(values: Sequence[float]) -> Bounds:
    bounds = value_bounds(values)
    return bounds if bounds is not None else (0.0, 0.0)


def _segments(points: Sequence[tuple[float, float]]) -> str:
    return " ".join(
        f"{'M' if i == 0 else 'L'} {format_coordinate(x)} {format_coordinate(y)}"
        for i, (x, y) in enumerate(points)
    )


def _project(
    values: Sequence[float],
    width: float,
    height: float,
    padding: float,
    bounds: Bounds,
) -> list[tuple[float, float]]:
    min_value, max_value = bounds
    count = len(values)
    return [
        (
            project_x(i, count, width),
            project_y(value, min_value, max_value, height, padding),
        )
        for i, value in enumerate(values)
    ]


def generate_path(
    series: Sequence[T],
    get_value: Callable[[T], float],
    width: float,
    height: float,
    padding: float,
    *,
    bounds: Bounds | None = None,
) -> str:
    """Generate the SVG line path of a series.

    Args:
        series: Ordered data points
        get_value: Extracts the plotted value from a point
        width: Viewport width
        height: Viewport height
        padding: Vertical padding inside the viewport
        bounds: Optional ``(min, max)`` scale shared with other paths; defaults
            to the series' own bounds

    Returns:
        Path string such as ``"M 0 290 L 400 10 L 800 150"``, or ``""`` for an
        empty series
    """
    if not series:
        return ""
    values = series_values(series, get_value)
    scale = bounds if bounds is not None else series_bounds(values)
    return _segments(_project(values, width, height, padding, scale))


def generate_area_path(
    series: Sequence[T],
    get_value: Callable[[T], float],
    width: float,
    height: float,
    padding: float,
    *,
    bounds: Bounds | None = None,
) -> str:
    """Generate a closed area path: the line path dropped to the viewport baseline.

    The baseline is the bottom edge of the viewport (``y = height``).
    """
    line = generate_path(series, get_value, width, height, padding, bounds=bounds)
    if not line:
        return ""
    baseline = format_coordinate(height)
    return f"{line} L {format_coordinate(width)} {baseline} L 0 {baseline} Z"


def generate_band_path(
    series: Sequence[T],
    get_upper: Callable[[T], float],
    get_lower: Callable[[T], float],
    width: float,
    height: float,
    padding: float,
    *,
    bounds: Bounds | None = None,
) -> str:
    """Generate a closed polygon between an upper and a lower curve.

    Both curves share one scale; by default the bounds of the upper and lower
    values taken together.
    """
    if not series:
        return ""
    upper = series_values(series, get_upper)
    lower = series_values(series, get_lower)
    scale = bounds if bounds is not None else series_bounds(upper + lower)

    forward = _project(upper, width, height, padding, scale)
    backward = _project(lower, width, height, padding, scale)
    reverse = " ".join(
        f"L {format_coordinate(x)} {format_coordinate(y)}" for x, y in reversed(backward)
    )
    return f"{_segments(forward)} {reverse} Z"


def generate_scaled_path(y_values: Sequence[float], width: float) -> str:
    """Generate a line path through already-projected Y coordinates."""
    count = len(y_values)
    return _segments([(project_x(i, count, width), y) for i, y in enumerate(y_values)])
