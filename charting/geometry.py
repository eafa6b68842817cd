"""Static chart geometry: paths and axis values for each chart layout."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import TypeVar

from charting.axis import drawdown_axis_floor, generate_axis_labels
from charting.contracts import (
    ChartGeometry,
    DrawdownGeometry,
    StackedGeometry,
    Viewport,
    YieldGeometry,
)
from charting.numeric import clamp, format_coordinate, is_finite_number, safe_divide
from charting.paths import (
    Bounds,
    generate_area_path,
    generate_band_path,
    generate_path,
    generate_scaled_path,
    project_x,
    project_y,
    series_bounds,
    series_values,
)

T = TypeVar("T")

DRAWDOWN_MAX = 0.0


def build_chart_geometry(
    series: Sequence[T],
    get_value: Callable[[T], float],
    viewport: Viewport,
    axis_steps: int = 3,
    *,
    bounds: Bounds | None = None,
) -> ChartGeometry:
    """Line, area and axis values of a single-series chart.

    Args:
        series: Ordered data points
        get_value: Extracts the plotted value
        viewport: Drawing area
        axis_steps: Number of Y axis labels
        bounds: Fixed ``(min, max)`` scale; defaults to the series bounds

    Returns:
        Chart geometry; every field is empty for an empty series
    """
    if not series:
        return ChartGeometry(line_path="", area_path="")

    scale = bounds if bounds is not None else series_bounds(series_values(series, get_value))
    line = generate_path(
        series, get_value, viewport.width, viewport.height, viewport.padding, bounds=scale
    )
    area = generate_area_path(
        series, get_value, viewport.width, viewport.height, viewport.padding, bounds=scale
    )
    labels = generate_axis_labels(scale[0], scale[1], axis_steps)
    return ChartGeometry(line_path=line, area_path=area, y_axis_labels=tuple(labels))


def build_stacked_geometry(
    series: Sequence[T],
    get_defi: Callable[[T], float],
    get_total: Callable[[T], float],
    viewport: Viewport,
    axis_steps: int = 3,
) -> StackedGeometry:
    """Geometry of the stacked DeFi/wallet chart.

    The DeFi area rises from the baseline to the DeFi value, the wallet band
    fills the space between the DeFi value and the total. Every path shares
    one scale covering both the DeFi values and the totals.
    """
    if not series:
        return StackedGeometry(
            defi_area_path="",
            wallet_area_path="",
            defi_line_path="",
            total_line_path="",
        )

    scale = series_bounds(series_values(series, get_defi) + series_values(series, get_total))
    width, height, padding = viewport.width, viewport.height, viewport.padding

    return StackedGeometry(
        defi_area_path=generate_area_path(series, get_defi, width, height, padding, bounds=scale),
        wallet_area_path=generate_band_path(
            series, get_total, get_defi, width, height, padding, bounds=scale
        ),
        defi_line_path=generate_path(series, get_defi, width, height, padding, bounds=scale),
        total_line_path=generate_path(series, get_total, width, height, padding, bounds=scale),
        y_axis_labels=tuple(generate_axis_labels(scale[0], scale[1], axis_steps)),
    )


def drawdown_y(value: float, min_value: float, viewport: Viewport, top_offset: float) -> float:
    """Y coordinate of a drawdown value on the 0..``min_value`` scale.

    0% sits at ``top_offset`` and ``min_value`` at the bottom edge; values
    outside the scale are clamped and non-finite values sit at the bottom.
    """
    bottom = viewport.height
    if not is_finite_number(value):
        return bottom
    chart_height = viewport.height - top_offset
    normalized = safe_divide(value - DRAWDOWN_MAX, min_value - DRAWDOWN_MAX)
    return clamp(top_offset + normalized * chart_height, top_offset, bottom)


def build_drawdown_geometry(
    points: Sequence[T],
    get_value: Callable[[T], float],
    viewport: Viewport,
    top_offset: float = 50.0,
    default_min: float = -20.0,
    step: float = 5.0,
) -> DrawdownGeometry:
    """Geometry of the drawdown chart.

    Args:
        points: Drawdown series
        get_value: Extracts the drawdown percentage
        viewport: Drawing area
        top_offset: Space kept above the 0% line
        default_min: Shallowest allowed bottom of the scale
        step: The bottom of the scale is a multiple of ``step``
    """
    if not 0 <= top_offset < viewport.height:
        raise ValueError(
            f"top_offset must be in [0, {viewport.height}), got {top_offset}"
        )

    values = [get_value(point) for point in points]
    min_value = drawdown_axis_floor(values, default_min=default_min, step=step)
    zero_y = drawdown_y(DRAWDOWN_MAX, min_value, viewport, top_offset)

    if not points:
        return DrawdownGeometry(line_path="", area_path="", zero_line_y=zero_y, min_value=min_value)

    ys = [drawdown_y(value, min_value, viewport, top_offset) for value in values]
    line = generate_scaled_path(ys, viewport.width)

    count = len(ys)
    segments = " ".join(
        f"L {format_coordinate(project_x(i, count, viewport.width))} {format_coordinate(y)}"
        for i, y in enumerate(ys)
    )
    zero = format_coordinate(zero_y)
    area = f"M 0 {zero} {segments} L {format_coordinate(viewport.width)} {zero} Z"

    return DrawdownGeometry(line_path=line, area_path=area, zero_line_y=zero_y, min_value=min_value)


def yield_bounds(daily: Sequence[float], cumulative: Sequence[float]) -> Bounds:
    """Scale of the daily yield chart: every daily and cumulative value, plus 0."""
    values = [0.0, *daily, *cumulative]
    return min(values), max(values)


def _zero_area(ys: Sequence[float], zero_y: float, width: float) -> str:
    count = len(ys)
    segments = " ".join(
        f"L {format_coordinate(project_x(i, count, width))} {format_coordinate(y)}"
        for i, y in enumerate(ys)
    )
    zero = format_coordinate(zero_y)
    last_x = format_coordinate(project_x(count - 1, count, width))
    return f"M 0 {zero} {segments} L {last_x} {zero} Z"


def build_yield_geometry(
    points: Sequence[T],
    get_daily: Callable[[T], float],
    get_cumulative: Callable[[T], float],
    viewport: Viewport,
    axis_steps: int = 3,
) -> YieldGeometry:
    """Geometry of the daily yield chart.

    Gains fill the area above the zero line and losses the area below it;
    the cumulative yield is drawn as a line on the same scale.

    Args:
        points: Daily yield series
        get_daily: Extracts the yield of the day
        get_cumulative: Extracts the running yield total
        viewport: Drawing area
        axis_steps: Number of Y axis labels
    """
    width, height, padding = viewport.width, viewport.height, viewport.padding
    if not points:
        return YieldGeometry(
            positive_area_path="",
            negative_area_path="",
            cumulative_line_path="",
            zero_line_y=project_y(0.0, 0.0, 0.0, height, padding),
        )

    daily = series_values(points, get_daily)
    scale = yield_bounds(daily, series_values(points, get_cumulative))

    def to_y(value: float) -> float:
        return project_y(value, scale[0], scale[1], height, padding)

    zero_y = to_y(0.0)
    return YieldGeometry(
        positive_area_path=_zero_area([to_y(max(value, 0.0)) for value in daily], zero_y, width),
        negative_area_path=_zero_area([to_y(min(value, 0.0)) for value in daily], zero_y, width),
        cumulative_line_path=generate_path(
            points, get_cumulative, width, height, padding, bounds=scale
        ),
        zero_line_y=zero_y,
        y_axis_labels=tuple(generate_axis_labels(scale[0], scale[1], axis_steps)),
    )
