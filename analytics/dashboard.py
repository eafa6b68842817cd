"""Assemble every chart series from one unified dashboard response."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from typing import Any, Protocol, TypeVar

from analytics.allocation import resolve_allocation_history
from analytics.contracts import (
    AllocationPoint,
    DailyYieldPoint,
    DrawdownPoint,
    SharpePoint,
    StackedPoint,
    TimeSeriesPoint,
    UnderwaterPoint,
    VolatilityPoint,
)
from analytics.drawdown import calculate_drawdown
from analytics.payloads import (
    DailyYieldRecord,
    DrawdownRecord,
    RecordT,
    SharpeRecord,
    UnderwaterRecord,
    VolatilityRecord,
    decode_allocation_payload,
    decode_portfolio_history,
    decode_records,
)
from analytics.rolling import (
    build_daily_yield_series,
    build_drawdown_series,
    build_sharpe_series,
    build_underwater_series,
    build_volatility_series,
)
from analytics.stacked import DEFAULT_FALLBACK_RATIO, build_stacked_portfolio_data

logger = logging.getLogger(__name__)

PointT = TypeVar("PointT")


class _Dated(Protocol):
    @property
    def date(self) -> str: ...


DatedT = TypeVar("DatedT", bound=_Dated)

CHART_PERIODS: dict[str, int] = {
    "1W": 7,
    "1M": 30,
    "3M": 90,
    "6M": 180,
    "1Y": 365,
    "ALL": 730,
}

DEFAULT_PERIOD_DAYS = 90


def period_days(period: str) -> int:
    """Look-back window of a period selector value; unknown periods use 90 days."""
    return CHART_PERIODS.get(period.upper(), DEFAULT_PERIOD_DAYS)


def _calendar_day(text: str) -> date | None:
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def limit_to_period(points: Sequence[DatedT], days: int) -> list[DatedT]:
    """Keep the points dated within the last ``days`` calendar days.

    The window ends on the latest parseable date of ``points`` and covers
    ``days`` days including it, so a 7-day window over daily data keeps 7
    points. Points whose date does not parse are kept.
    """
    dated = [(_calendar_day(point.date), point) for point in points]
    known = [day for day, _ in dated if day is not None]
    if not known:
        return list(points)
    start = max(known) - timedelta(days=days - 1)
    return [point for day, point in dated if day is None or day >= start]


def _section(dashboard: Mapping[str, Any] | None, *path: str) -> Any:
    node: Any = dashboard
    for key in path:
        if not isinstance(node, Mapping):
            return None
        node = node.get(key)
    return node


@dataclass(frozen=True)
class ChartOverrides:
    """Preloaded raw series that take precedence over the dashboard sections.

    An empty override is ignored. Each override takes raw records or the
    already-built points of its series (``TimeSeriesPoint``,
    ``AllocationPoint``, ``DrawdownPoint``, ...).
    """

    portfolio_data: Sequence[Any] = ()
    allocation_data: Sequence[Any] = ()
    drawdown_data: Sequence[Any] = ()
    sharpe_data: Sequence[Any] = ()
    volatility_data: Sequence[Any] = ()
    underwater_data: Sequence[Any] = ()
    daily_yield_data: Sequence[Any] = ()


@dataclass(frozen=True)
class ChartData:
    """Every series the portfolio charts plot, for one dashboard response.

    Attributes:
        portfolio_history: Daily valuations, ascending by date
        stacked: DeFi/wallet composition per day
        allocation_history: Bucket shares per day
        drawdown: Drawdown series (service-provided when available)
        sharpe: Rolling Sharpe ratio series
        volatility: Rolling volatility series
        underwater: Underwater depth series
        daily_yield: Daily yield with its running total
    """

    portfolio_history: list[TimeSeriesPoint] = field(default_factory=list)
    stacked: list[StackedPoint] = field(default_factory=list)
    allocation_history: list[AllocationPoint] = field(default_factory=list)
    drawdown: list[DrawdownPoint] = field(default_factory=list)
    sharpe: list[SharpePoint] = field(default_factory=list)
    volatility: list[VolatilityPoint] = field(default_factory=list)
    underwater: list[UnderwaterPoint] = field(default_factory=list)
    daily_yield: list[DailyYieldPoint] = field(default_factory=list)

    @property
    def drawdown_reference(self) -> list[TimeSeriesPoint]:
        """Valuation series the drawdown hover measures peaks against."""
        return self.portfolio_history

    @property
    def current_value(self) -> float:
        return self.portfolio_history[-1].value if self.portfolio_history else 0.0

    @property
    def first_value(self) -> float:
        return self.portfolio_history[0].value if self.portfolio_history else 0.0

    @property
    def total_return(self) -> float:
        """Return over the window in percent; 0 when the first value is not positive."""
        first = self.first_value
        if first <= 0:
            return 0.0
        return (self.current_value - first) / first * 100.0

    @property
    def is_positive(self) -> bool:
        return self.total_return >= 0


def _prebuilt(raw: Sequence[Any] | None, kind: type[PointT]) -> list[PointT] | None:
    if raw and all(isinstance(item, kind) for item in raw):
        return list(raw)
    return None


def _metric_series(
    raw: Sequence[Any] | None,
    kind: type[PointT],
    model: type[RecordT],
    build: Callable[[list[RecordT]], list[PointT]],
) -> list[PointT]:
    prebuilt = _prebuilt(raw, kind)
    if prebuilt is not None:
        return prebuilt
    return build(decode_records(model, raw))


def _portfolio_history(raw: Sequence[Any] | None) -> list[TimeSeriesPoint]:
    prebuilt = _prebuilt(raw, TimeSeriesPoint)
    if prebuilt is not None:
        return sorted(prebuilt, key=lambda point: point.date)
    return decode_portfolio_history(raw)


def _window_daily_yield(points: list[DailyYieldPoint], days: int) -> list[DailyYieldPoint]:
    """Window the yield series and restart its running total at the window start."""
    kept = limit_to_period(points, days)
    kept_ids = {id(point) for point in kept}
    dropped = [point for point in points if id(point) not in kept_ids]
    if not dropped:
        return kept
    offset = dropped[-1].cumulative_yield
    return [replace(point, cumulative_yield=point.cumulative_yield - offset) for point in kept]


def build_chart_data(
    dashboard: Mapping[str, Any] | None,
    overrides: ChartOverrides | None = None,
    *,
    fallback_ratio: float = DEFAULT_FALLBACK_RATIO,
    period: str | None = None,
) -> ChartData:
    """Build every chart series from a unified dashboard response.

    Args:
        dashboard: Raw dashboard response (None while it is not loaded)
        overrides: Preloaded series that win over the response when non-empty
        fallback_ratio: DeFi share for days without a source breakdown
        period: Period selector ("1W" .. "ALL"); each series keeps only the
            last ``period_days(period)`` days. None keeps everything.

    Returns:
        Chart data; a missing section yields an empty series
    """
    overrides = overrides or ChartOverrides()

    portfolio_history = _portfolio_history(
        overrides.portfolio_data or _section(dashboard, "trends", "daily_totals")
    )
    days = period_days(period) if period else None
    if days is not None:
        portfolio_history = limit_to_period(portfolio_history, days)

    allocation_payload = decode_allocation_payload(
        overrides.allocation_data or _section(dashboard, "allocation", "allocation_data")
    )
    allocation_history = resolve_allocation_history(allocation_payload)
    if days is not None:
        allocation_history = limit_to_period(allocation_history, days)

    drawdown_raw = overrides.drawdown_data or _section(
        dashboard, "drawdown_analysis", "enhanced", "drawdown_data"
    )
    if drawdown_raw:
        drawdown = _metric_series(drawdown_raw, DrawdownPoint, DrawdownRecord, build_drawdown_series)
        if days is not None:
            drawdown = limit_to_period(drawdown, days)
    else:
        logger.debug(
            "no drawdown series in response, computing from %d points", len(portfolio_history)
        )
        drawdown = calculate_drawdown(portfolio_history)

    sharpe = _metric_series(
        overrides.sharpe_data
        or _section(dashboard, "rolling_analytics", "sharpe", "rolling_sharpe_data"),
        SharpePoint,
        SharpeRecord,
        build_sharpe_series,
    )
    volatility = _metric_series(
        overrides.volatility_data
        or _section(dashboard, "rolling_analytics", "volatility", "rolling_volatility_data"),
        VolatilityPoint,
        VolatilityRecord,
        build_volatility_series,
    )
    underwater = _metric_series(
        overrides.underwater_data
        or _section(dashboard, "drawdown_analysis", "underwater_recovery", "underwater_data"),
        UnderwaterPoint,
        UnderwaterRecord,
        build_underwater_series,
    )
    daily_yield = _metric_series(
        overrides.daily_yield_data or _section(dashboard, "daily_yield", "daily_returns"),
        DailyYieldPoint,
        DailyYieldRecord,
        build_daily_yield_series,
    )
    if days is not None:
        sharpe = limit_to_period(sharpe, days)
        volatility = limit_to_period(volatility, days)
        underwater = limit_to_period(underwater, days)
        daily_yield = _window_daily_yield(daily_yield, days)
        logger.debug("limited series to the last %d days (%s)", days, period)

    return ChartData(
        portfolio_history=portfolio_history,
        stacked=build_stacked_portfolio_data(portfolio_history, fallback_ratio),
        allocation_history=allocation_history,
        drawdown=drawdown,
        sharpe=sharpe,
        volatility=volatility,
        underwater=underwater,
        daily_yield=daily_yield,
    )
