"""Rolling risk metric series (Sharpe, volatility, drawdown, underwater) and daily yield."""

from __future__ import annotations

from collections.abc import Iterable

from analytics.contracts import (
    DailyYieldPoint,
    DrawdownPoint,
    SharpePoint,
    UnderwaterPoint,
    VolatilityPoint,
)
from analytics.payloads import (
    DailyYieldRecord,
    DrawdownRecord,
    SharpeRecord,
    UnderwaterRecord,
    VolatilityRecord,
)


def build_sharpe_series(records: Iterable[SharpeRecord]) -> list[SharpePoint]:
    """Sharpe ratio series; records without a ratio are dropped."""
    return [
        SharpePoint(date=record.date, sharpe=record.sharpe)
        for record in records
        if record.sharpe is not None
    ]


def build_volatility_series(records: Iterable[VolatilityRecord]) -> list[VolatilityPoint]:
    """Volatility series (percent); records without a value are dropped."""
    return [
        VolatilityPoint(date=record.date, volatility=record.volatility)
        for record in records
        if record.volatility is not None
    ]


def build_drawdown_series(records: Iterable[DrawdownRecord]) -> list[DrawdownPoint]:
    """Drawdown series as reported by the analytics service.

    An absent drawdown reads as 0 so the series keeps one point per date.
    """
    return [
        DrawdownPoint(
            date=record.date,
            drawdown=record.drawdown if record.drawdown is not None else 0.0,
        )
        for record in records
    ]


def build_underwater_series(records: Iterable[UnderwaterRecord]) -> list[UnderwaterPoint]:
    return [
        UnderwaterPoint(
            date=record.date,
            underwater=record.underwater if record.underwater is not None else 0.0,
            recovery=record.recovery_point,
        )
        for record in records
    ]


def build_daily_yield_series(records: Iterable[DailyYieldRecord]) -> list[DailyYieldPoint]:
    """Daily yield series, one point per date in ascending order.

    Records sharing a date are summed into one point and their protocol
    breakdowns concatenated, so per-protocol rows and per-day summaries give
    the same series. The cumulative yield is the running total of the daily
    yields; when the service reports a cumulative value for a date, that
    value is used and the running total continues from it.

    Args:
        records: Decoded daily yield records, in any order

    Returns:
        Daily yield points sorted by date
    """
    by_date: dict[str, list[DailyYieldRecord]] = {}
    for record in records:
        by_date.setdefault(record.date, []).append(record)

    points: list[DailyYieldPoint] = []
    running = 0.0
    for day in sorted(by_date):
        day_records = by_date[day]
        total = sum(record.day_yield for record in day_records)
        protocols = tuple(entry for record in day_records for entry in record.breakdown())
        reported = [
            record.cumulative_yield for record in day_records if record.cumulative_yield is not None
        ]
        running = reported[-1] if reported else running + total
        counts = [
            record.protocol_count for record in day_records if record.protocol_count is not None
        ]
        points.append(
            DailyYieldPoint(
                date=day,
                total_yield=total,
                cumulative_yield=running,
                protocol_count=max(counts) if counts else len({p.protocol for p in protocols}),
                protocols=protocols,
            )
        )
    return points
