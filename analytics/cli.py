"""Command-line interface for chart data inspection."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from collections.abc import Callable, Sequence
from dataclasses import asdict, dataclass, is_dataclass
from typing import Any

import structlog

from analytics.contracts import ALLOCATION_BUCKETS
from analytics.dashboard import ChartData, build_chart_data, period_days
from analytics.drawdown import build_recovery_insights, underwater_periods
from analytics.stacked import stacked_total_value
from analytics.tooltips import (
    allocation_payload,
    daily_yield_payload,
    make_drawdown_payload,
    performance_payload,
    sharpe_payload,
    underwater_payload,
    volatility_payload,
)
from charting.axis import LabelMode, drawdown_axis_floor, format_axis_label
from charting.contracts import HoverState, Viewport
from charting.geometry import (
    build_chart_geometry,
    build_drawdown_geometry,
    build_stacked_geometry,
    build_yield_geometry,
    drawdown_y,
    yield_bounds,
)
from charting.hover import HoverController, PayloadBuilder
from charting.paths import Bounds, series_bounds, series_values
from charting.scheduler import frame_scheduler
from core.config import ChartsCfg, Config, HoverCfg, default_config, load_config
from core.logging import configure_logging

CHART_TYPES = (
    "performance",
    "allocation",
    "drawdown",
    "sharpe",
    "volatility",
    "underwater",
    "daily-yield",
)

# Fixed hover scales of the metric charts
ALLOCATION_BOUNDS: Bounds = (0.0, 100.0)
SHARPE_BOUNDS: Bounds = (0.0, 2.5)
VOLATILITY_BOUNDS: Bounds = (10.0, 40.0)
UNDERWATER_BOUNDS: Bounds = (-20.0, 0.0)

log = structlog.get_logger("analytics.cli")


@dataclass(frozen=True)
class ChartLayout:
    """What one chart plots and how its hover is resolved."""

    series: Sequence[Any]
    get_value: Callable[[Any], float]
    build_payload: PayloadBuilder[Any]
    bounds: Bounds | None = None
    to_y: Callable[[float], float] | None = None
    label_mode: LabelMode | None = "percentage"


def _daily_yield_scale(data: ChartData) -> Bounds:
    return yield_bounds(
        [point.total_yield for point in data.daily_yield],
        [point.cumulative_yield for point in data.daily_yield],
    )


def chart_layout(chart: str, data: ChartData, charts: ChartsCfg, viewport: Viewport) -> ChartLayout:
    """Resolve the plotted series, value getter and hover scale of ``chart``.

    Args:
        chart: One of ``CHART_TYPES``
        data: Chart data of the dashboard
        charts: Chart settings
        viewport: Drawing area

    Returns:
        Layout of the chart

    Raises:
        ValueError: If ``chart`` is not a known chart type
    """
    if chart == "performance":
        # same scale as the stacked geometry
        values = series_values(data.stacked, lambda point: point.defi_value) + series_values(
            data.stacked, stacked_total_value
        )
        return ChartLayout(
            series=data.stacked,
            get_value=stacked_total_value,
            build_payload=performance_payload,
            bounds=series_bounds(values),
            label_mode="currency",
        )
    if chart == "allocation":
        return ChartLayout(
            series=data.allocation_history,
            get_value=lambda point: 50.0,
            build_payload=allocation_payload,
            bounds=ALLOCATION_BOUNDS,
        )
    if chart == "drawdown":
        drawdown_cfg = charts.drawdown
        min_value = drawdown_axis_floor(
            [point.drawdown for point in data.drawdown],
            default_min=drawdown_cfg.default_min,
            step=drawdown_cfg.axis_step,
        )
        return ChartLayout(
            series=data.drawdown,
            get_value=lambda point: point.drawdown,
            build_payload=make_drawdown_payload(data.drawdown_reference),
            to_y=lambda value: drawdown_y(value, min_value, viewport, drawdown_cfg.top_offset),
        )
    if chart == "sharpe":
        return ChartLayout(
            series=data.sharpe,
            get_value=lambda point: point.sharpe,
            build_payload=sharpe_payload,
            bounds=SHARPE_BOUNDS,
            label_mode=None,
        )
    if chart == "volatility":
        return ChartLayout(
            series=data.volatility,
            get_value=lambda point: point.volatility,
            build_payload=volatility_payload,
            bounds=VOLATILITY_BOUNDS,
        )
    if chart == "underwater":
        return ChartLayout(
            series=data.underwater,
            get_value=lambda point: point.underwater,
            build_payload=underwater_payload,
            bounds=UNDERWATER_BOUNDS,
        )
    if chart == "daily-yield":
        return ChartLayout(
            series=data.daily_yield,
            get_value=lambda point: point.total_yield,
            build_payload=daily_yield_payload,
            bounds=_daily_yield_scale(data),
            label_mode="currency",
        )
    raise ValueError(f"Unknown chart type: {chart!r}")


def _to_jsonable(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {key: _to_jsonable(item) for key, item in value.items()}
    return value


def _load_dashboard(path: str) -> Any:
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def _load_settings(args: argparse.Namespace) -> Config:
    if args.config_dir:
        return load_config(args.config_dir)
    return default_config()


def _viewport(charts: ChartsCfg) -> Viewport:
    return Viewport(
        width=charts.viewport.width,
        height=charts.viewport.height,
        padding=charts.viewport.padding,
    )


def _chart_data(args: argparse.Namespace, cfg: Config) -> ChartData:
    dashboard = _load_dashboard(args.input)
    period = args.period or cfg.charts.default_period
    data = build_chart_data(
        dashboard, fallback_ratio=cfg.charts.stacked.fallback_ratio, period=period
    )
    log.info(
        "chart_data_built",
        input=args.input,
        points=len(data.portfolio_history),
        period=period,
        period_days=period_days(period),
    )
    return data


def _geometry(chart: str, data: ChartData, charts: ChartsCfg, viewport: Viewport) -> Any:
    steps = charts.axis_steps
    if chart == "performance":
        return build_stacked_geometry(
            data.stacked,
            lambda point: point.defi_value,
            stacked_total_value,
            viewport,
            steps,
        )
    if chart == "allocation":
        return {
            bucket: build_chart_geometry(
                data.allocation_history,
                lambda point, bucket=bucket: getattr(point, bucket),
                viewport,
                steps,
                bounds=ALLOCATION_BOUNDS,
            )
            for bucket in ALLOCATION_BUCKETS
        }
    if chart == "drawdown":
        return build_drawdown_geometry(
            data.drawdown,
            lambda point: point.drawdown,
            viewport,
            top_offset=charts.drawdown.top_offset,
            default_min=charts.drawdown.default_min,
            step=charts.drawdown.axis_step,
        )
    if chart == "daily-yield":
        return build_yield_geometry(
            data.daily_yield,
            lambda point: point.total_yield,
            lambda point: point.cumulative_yield,
            viewport,
            steps,
        )
    layout = chart_layout(chart, data, charts, viewport)
    return build_chart_geometry(layout.series, layout.get_value, viewport, steps)


def render_chart(args: argparse.Namespace) -> int:
    """Print the series and geometry of one chart as JSON.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    try:
        cfg = _load_settings(args)
        configure_logging(cfg.logging)
        data = _chart_data(args, cfg)
        viewport = _viewport(cfg.charts)
        layout = chart_layout(args.chart, data, cfg.charts, viewport)
        geometry = _geometry(args.chart, data, cfg.charts, viewport)

        labels = getattr(geometry, "y_axis_labels", ())
        output = {
            "chart": args.chart,
            "points": len(layout.series),
            "series": _to_jsonable(list(layout.series)),
            "geometry": _to_jsonable(geometry),
            "axis_labels": [
                format_axis_label(value, layout.label_mode) if layout.label_mode else f"{value:.2f}"
                for value in labels
            ],
        }
        print(json.dumps(output, indent=2))
        return 0

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def show_recovery(args: argparse.Namespace) -> int:
    """Print the drawdown recovery summary and underwater periods as JSON."""
    try:
        cfg = _load_settings(args)
        configure_logging(cfg.logging)
        data = _chart_data(args, cfg)
        annotated, summary = build_recovery_insights(
            data.drawdown, recovery_epsilon=cfg.charts.drawdown.recovery_epsilon
        )
        output = {
            "summary": _to_jsonable(summary),
            "recovery_points": [
                _to_jsonable(point) for point in annotated if point.is_recovery_point
            ],
            "underwater_periods": _to_jsonable(underwater_periods(data.drawdown)),
        }
        print(json.dumps(output, indent=2))
        return 0

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


async def _hover_on_loop(
    layout: ChartLayout,
    chart: str,
    viewport: Viewport,
    hover_cfg: HoverCfg,
    pointer_x: float,
) -> HoverState | None:
    """Move the pointer to ``pointer_x`` and wait for the hover frame to run."""
    settled = asyncio.Event()
    controller: HoverController[Any] = HoverController(
        layout.series,
        chart_type=chart,
        viewport=viewport,
        get_value=layout.get_value,
        build_payload=layout.build_payload,
        scheduler=frame_scheduler(hover_cfg),
        bounds=layout.bounds,
        to_y=layout.to_y,
        on_change=lambda state: settled.set(),
    )
    controller.pointer_move(pointer_x)
    if controller.state.pending_frame is not None:
        await settled.wait()

    hovered = controller.hovered
    controller.close()
    return hovered


def show_hover(args: argparse.Namespace) -> int:
    """Resolve a pointer position on one chart and print the hover state."""
    try:
        cfg = _load_settings(args)
        configure_logging(cfg.logging)
        data = _chart_data(args, cfg)
        viewport = _viewport(cfg.charts)
        layout = chart_layout(args.chart, data, cfg.charts, viewport)

        hovered = asyncio.run(
            _hover_on_loop(layout, args.chart, viewport, cfg.charts.hover, args.x)
        )
        if hovered is None:
            print(json.dumps({"chart": args.chart, "hover": None}))
            return 0

        output = {
            "chart": args.chart,
            "hover": {
                "index": hovered.index,
                "x": hovered.x,
                "y": hovered.y,
                "payload": dict(hovered.payload),
            },
        }
        print(json.dumps(output, indent=2))
        return 0

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Portfolio chart data CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config-dir", help="Directory holding config/base.yaml")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # Render command
    render_parser = subparsers.add_parser("render", help="Render chart series and paths")
    render_parser.add_argument("--input", required=True, help="Dashboard response JSON file")
    render_parser.add_argument("--chart", choices=CHART_TYPES, required=True, help="Chart type")
    render_parser.add_argument("--period", help="Period selector (1W, 1M, 3M, 6M, 1Y, ALL)")

    # Recovery command
    recovery_parser = subparsers.add_parser("recovery", help="Drawdown recovery summary")
    recovery_parser.add_argument("--input", required=True, help="Dashboard response JSON file")
    recovery_parser.add_argument("--period", help="Period selector (1W, 1M, 3M, 6M, 1Y, ALL)")

    # Hover command
    hover_parser = subparsers.add_parser("hover", help="Hover payload at a pointer position")
    hover_parser.add_argument("--input", required=True, help="Dashboard response JSON file")
    hover_parser.add_argument("--chart", choices=CHART_TYPES, required=True, help="Chart type")
    hover_parser.add_argument("--period", help="Period selector (1W, 1M, 3M, 6M, 1Y, ALL)")
    hover_parser.add_argument(
        "--x", type=float, required=True, help="Pointer X in viewport units"
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Returns:
        Exit code (0 for success)
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    # Route to appropriate handler
    if args.command == "render":
        return render_chart(args)
    elif args.command == "recovery":
        return show_recovery(args)
    elif args.command == "hover":
        return show_hover(args)
    else:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
