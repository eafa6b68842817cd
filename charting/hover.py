"""Pointer-to-data-index resolution and per-chart hover state."""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
import logging
from typing import Any, Generic, TypeVar

from charting.contracts import HoverState, Viewport
from charting.numeric import clamp, coerce_float, is_finite_number, round_half_up
from charting.paths import Bounds, project_x, project_y, series_bounds, series_values
from charting.scheduler import FrameScheduler

logger = logging.getLogger(__name__)

T = TypeVar("T")

PayloadBuilder = Callable[[T, int], Mapping[str, Any]]


def resolve_hover(pointer_x: float, series: Sequence[object], viewport_width: float) -> int | None:
    """Map a pointer X coordinate to the nearest data index.

    Args:
        pointer_x: Pointer position in viewport units
        series: Plotted series
        viewport_width: Viewport width

    Returns:
        Index in ``[0, len(series) - 1]``, or None for an empty series. A
        non-finite pointer resolves to the middle of the chart.
    """
    count = len(series)
    if count == 0:
        return None

    if not is_finite_number(pointer_x):
        normalized = 0.5
    elif viewport_width <= 0:
        normalized = 0.0
    else:
        normalized = clamp(pointer_x / viewport_width, 0.0, 1.0)

    index = round_half_up(normalized * (count - 1))
    return int(clamp(index, 0, count - 1))


def build_hover_state(
    series: Sequence[T],
    index: int,
    viewport: Viewport,
    get_value: Callable[[T], float],
    build_payload: PayloadBuilder[T],
    bounds: Bounds | None = None,
    to_y: Callable[[float], float] | None = None,
) -> HoverState:
    """Position the point at ``index`` on the chart and build its tooltip payload.

    ``to_y`` replaces the linear value-to-Y mapping for charts drawn on their
    own scale (the drawdown chart); ``bounds`` is ignored when it is given.
    """
    value = coerce_float(get_value(series[index]))
    x = project_x(index, len(series), viewport.width)
    if to_y is not None:
        y = to_y(value)
    else:
        if bounds is None:
            bounds = series_bounds(series_values(series, get_value))
        min_value, max_value = bounds
        y = project_y(value, min_value, max_value, viewport.height, viewport.padding)
    return HoverState(index=index, x=x, y=y, payload=build_payload(series[index], index))


@dataclass
class ChartHoverState:
    """Hover bookkeeping owned by exactly one chart instance.

    Attributes:
        pending_frame: Handle of the scheduled, not yet applied update
        last_resolved_index: Index of the latest pointer resolution
        hovered: Hover state currently displayed (None when idle)
    """

    pending_frame: int | None = None
    last_resolved_index: int | None = None
    hovered: HoverState | None = None

    @property
    def is_hovering(self) -> bool:
        return self.hovered is not None or self.pending_frame is not None

    def reset(self) -> None:
        self.pending_frame = None
        self.last_resolved_index = None
        self.hovered = None


class HoverController(Generic[T]):
    """Drive the Idle -> Hovering -> Idle hover cycle of one chart.

    Pointer moves are resolved immediately, but the payload is built at the next
    frame through ``scheduler``. Moves that land on the index already resolved
    are dropped, and at most one frame is pending at any time.
    """

    def __init__(
        self,
        series: Sequence[T],
        *,
        chart_type: str,
        viewport: Viewport,
        get_value: Callable[[T], float],
        build_payload: PayloadBuilder[T],
        scheduler: FrameScheduler,
        bounds: Bounds | None = None,
        to_y: Callable[[float], float] | None = None,
        on_change: Callable[[HoverState | None], None] | None = None,
    ) -> None:
        self.chart_type = chart_type
        self._to_y = to_y
        self.viewport = viewport
        self.state = ChartHoverState()
        self._get_value = get_value
        self._build_payload = build_payload
        self._scheduler = scheduler
        self._on_change = on_change
        self._fixed_bounds = bounds
        self._series: tuple[T, ...] = ()
        self._bounds: Bounds = (0.0, 0.0)
        self.set_series(series)

    @property
    def series(self) -> tuple[T, ...]:
        return self._series

    @property
    def hovered(self) -> HoverState | None:
        return self.state.hovered

    def set_series(self, series: Sequence[T]) -> None:
        """Swap the plotted data (period or account change) and drop any hover."""
        self._cancel_pending()
        was_hovering = self.state.hovered is not None
        self.state.reset()
        self._series = tuple(series)
        self._bounds = (
            self._fixed_bounds
            if self._fixed_bounds is not None
            else series_bounds(series_values(self._series, self._get_value))
        )
        if was_hovering:
            self._notify(None)

    def pointer_move(self, pointer_x: float) -> None:
        """Handle a pointer move at ``pointer_x`` (viewport units)."""
        index = resolve_hover(pointer_x, self._series, self.viewport.width)
        if index is None:
            return
        if index == self.state.last_resolved_index:
            return

        self.state.last_resolved_index = index
        self._cancel_pending()
        self.state.pending_frame = self._scheduler.request_frame(lambda: self._apply(index))

    def pointer_leave(self) -> None:
        """Cancel pending work and clear the hover synchronously."""
        self._cancel_pending()
        was_hovering = self.state.hovered is not None
        self.state.reset()
        if was_hovering:
            logger.debug("hover cleared chart=%s", self.chart_type)
            self._notify(None)

    def close(self) -> None:
        """Tear down: same as leaving the chart."""
        self.pointer_leave()

    def _cancel_pending(self) -> None:
        if self.state.pending_frame is not None:
            self._scheduler.cancel_frame(self.state.pending_frame)
            self.state.pending_frame = None

    def _apply(self, index: int) -> None:
        self.state.pending_frame = None
        if index >= len(self._series):
            return
        hovered = build_hover_state(
            self._series,
            index,
            self.viewport,
            self._get_value,
            self._build_payload,
            bounds=self._bounds,
            to_y=self._to_y,
        )
        self.state.hovered = hovered
        logger.debug(
            "hover update chart=%s index=%d x=%.2f y=%.2f",
            self.chart_type,
            index,
            hovered.x,
            hovered.y,
        )
        self._notify(hovered)

    def _notify(self, hovered: HoverState | None) -> None:
        if self._on_change is not None:
            self._on_change(hovered)
