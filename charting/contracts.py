"""Chart geometry and hover contracts."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any


@dataclass(frozen=True)
class Viewport:
    """Fixed-size drawing area of a chart (SVG viewBox units).

    Attributes:
        width: Viewport width
        height: Viewport height
        padding: Vertical padding kept free above the max and below the min
    """

    width: float = 800.0
    height: float = 300.0
    padding: float = 10.0

    def __post_init__(self) -> None:
        """Validate viewport dimensions."""
        if self.width <= 0:
            raise ValueError(f"width must be positive, got {self.width}")
        if self.height <= 0:
            raise ValueError(f"height must be positive, got {self.height}")
        if self.padding < 0:
            raise ValueError(f"padding must be non-negative, got {self.padding}")
        if self.padding * 2 > self.height:
            raise ValueError(
                f"padding ({self.padding}) must be at most half the height ({self.height})"
            )

    @property
    def drawable_height(self) -> float:
        """Height left for data once top and bottom padding are removed."""
        return self.height - 2 * self.padding


@dataclass(frozen=True)
class ChartGeometry:
    """Static geometry of a single-series chart.

    Attributes:
        line_path: SVG path of the series line ("" when nothing to draw)
        area_path: Closed SVG path for the filled area ("" when nothing to draw)
        y_axis_labels: Axis values, highest first
    """

    line_path: str
    area_path: str
    y_axis_labels: tuple[float, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.line_path


@dataclass(frozen=True)
class StackedGeometry:
    """Geometry of the DeFi/wallet stacked performance chart."""

    defi_area_path: str
    wallet_area_path: str
    defi_line_path: str
    total_line_path: str
    y_axis_labels: tuple[float, ...] = ()


@dataclass(frozen=True)
class DrawdownGeometry:
    """Geometry of the drawdown chart, drawn on a fixed 0..min scale.

    Attributes:
        line_path: SVG path of the drawdown line
        area_path: Area between the zero line and the drawdown line
        zero_line_y: Y coordinate of the 0% line
        min_value: Lowest value of the scale (a non-positive percentage)
    """

    line_path: str
    area_path: str
    zero_line_y: float
    min_value: float


@dataclass(frozen=True)
class YieldGeometry:
    """Geometry of the daily yield chart.

    Attributes:
        positive_area_path: Area between the zero line and the gains
        negative_area_path: Area between the zero line and the losses
        cumulative_line_path: SVG path of the running yield total
        zero_line_y: Y coordinate of the zero line
        y_axis_labels: Axis values, highest first
    """

    positive_area_path: str
    negative_area_path: str
    cumulative_line_path: str
    zero_line_y: float
    y_axis_labels: tuple[float, ...] = ()


@dataclass(frozen=True)
class HoverState:
    """Resolved hover position and its tooltip payload.

    Attributes:
        index: Index of the hovered data point
        x: X coordinate of the point in viewport units
        y: Y coordinate of the point in viewport units
        payload: Chart-specific tooltip data (read-only)
    """

    index: int
    x: float
    y: float
    payload: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.index < 0:
            raise ValueError(f"index must be >= 0, got {self.index}")
        object.__setattr__(self, "payload", MappingProxyType(dict(self.payload)))
