"""Drawdown from running peak and drawdown-recovery cycle analysis."""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime

from analytics.contracts import (
    DrawdownPoint,
    DrawdownStatus,
    RecoveryPoint,
    RecoverySummary,
    TimeSeriesPoint,
    UnderwaterPeriod,
)
from charting.numeric import coerce_float, round_half_up

DRAWDOWN_EPSILON = 0.0005


def calculate_drawdown(series: Sequence[TimeSeriesPoint]) -> list[DrawdownPoint]:
    """Compute the drawdown of each point from the running peak.

    drawdown = (value - peak) / peak * 100, where peak is the highest value
    seen so far. While the peak is not positive the drawdown is 0.

    Args:
        series: Portfolio valuations in chronological order

    Returns:
        One non-positive drawdown per input point, in input order
    """
    points: list[DrawdownPoint] = []
    peak = 0.0

    for point in series:
        value = coerce_float(point.value)
        if value > peak:
            peak = value
        drawdown = (value - peak) / peak * 100.0 if peak > 0 else 0.0
        points.append(DrawdownPoint(date=point.date, drawdown=drawdown))

    return points


def _parse_date(text: str | None) -> date | None:
    if not text:
        return None
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def _days_between(start: date | None, end: date | None) -> int | None:
    if start is None or end is None:
        return None
    return max(0, (end - start).days)


@dataclass
class _RecoveryTracker:
    """Mutable state of the recovery state machine (At Peak <-> Underwater)."""

    peak_date: str | None = None
    peak_day: date | None = None
    underwater: bool = False
    cycle_min: float = 0.0
    previous_drawdown: float = 0.0


def build_recovery_insights(
    points: Sequence[DrawdownPoint],
    recovery_epsilon: float = DRAWDOWN_EPSILON,
) -> tuple[list[RecoveryPoint], RecoverySummary]:
    """Annotate a drawdown series with its recovery cycles.

    A point within ``recovery_epsilon`` of zero is at the peak. The first
    such point after an underwater stretch is a recovery point and carries
    the duration (days since the peak the stretch started from) and the
    depth of the completed cycle.

    Args:
        points: Drawdown series in chronological order
        recovery_epsilon: Tolerance (in percent) for "back at the peak"

    Returns:
        Annotated points and the summary of the series
    """
    if not points:
        return [], RecoverySummary()

    tracker = _RecoveryTracker(
        peak_date=points[0].date,
        peak_day=_parse_date(points[0].date),
    )
    annotated: list[RecoveryPoint] = []
    durations: list[int] = []

    for point in points:
        drawdown = point.drawdown if math.isfinite(point.drawdown) else 0.0
        day = _parse_date(point.date)

        if drawdown >= -recovery_epsilon:
            duration: int | None = None
            depth: float | None = None
            is_recovery = False
            if tracker.underwater:
                duration = _days_between(tracker.peak_day, day)
                depth = tracker.cycle_min
                is_recovery = True
                if duration is not None:
                    durations.append(duration)
            elif tracker.previous_drawdown < -recovery_epsilon:
                is_recovery = True

            annotated.append(
                RecoveryPoint(
                    date=point.date,
                    drawdown=drawdown,
                    is_recovery_point=is_recovery,
                    peak_date=point.date,
                    days_from_peak=0,
                    recovery_duration_days=duration,
                    recovery_depth=depth,
                )
            )
            tracker.underwater = False
            tracker.cycle_min = 0.0
            if day is not None:
                tracker.peak_date = point.date
                tracker.peak_day = day
        else:
            if not tracker.underwater:
                tracker.cycle_min = drawdown
            elif drawdown < tracker.cycle_min:
                tracker.cycle_min = drawdown
            tracker.underwater = True

            annotated.append(
                RecoveryPoint(
                    date=point.date,
                    drawdown=drawdown,
                    peak_date=tracker.peak_date,
                    days_from_peak=_days_between(tracker.peak_day, day),
                )
            )

        tracker.previous_drawdown = drawdown

    current = annotated[-1].drawdown
    status: DrawdownStatus = "At Peak" if current >= -recovery_epsilon else "Underwater"
    average = round_half_up(sum(durations) / len(durations)) if durations else None

    summary = RecoverySummary(
        max_drawdown=min(0.0, min(p.drawdown for p in annotated)),
        total_recoveries=sum(1 for p in annotated if p.is_recovery_point),
        average_recovery_days=average,
        current_drawdown=current,
        current_status=status,
        latest_peak_date=tracker.peak_date,
        latest_recovery_duration_days=durations[-1] if durations else None,
    )
    return annotated, summary


def underwater_periods(points: Sequence[DrawdownPoint]) -> list[UnderwaterPeriod]:
    """Split a drawdown series into its contiguous underwater stretches.

    A stretch is recovered when a point at or above zero follows it; the
    trailing stretch of a series that ends underwater is not.
    """
    periods: list[UnderwaterPeriod] = []
    start: DrawdownPoint | None = None
    end: DrawdownPoint | None = None
    trough: DrawdownPoint | None = None
    count = 0

    for point in points:
        if point.drawdown < 0:
            if start is None:
                start, trough, count = point, point, 0
            end = point
            count += 1
            if trough is not None and point.drawdown < trough.drawdown:
                trough = point
        elif start is not None and end is not None and trough is not None:
            periods.append(
                UnderwaterPeriod(
                    start=start.date,
                    end=end.date,
                    trough_date=trough.date,
                    depth=trough.drawdown,
                    recovered=True,
                    points=count,
                )
            )
            start = end = trough = None

    if start is not None and end is not None and trough is not None:
        periods.append(
            UnderwaterPeriod(
                start=start.date,
                end=end.date,
                trough_date=trough.date,
                depth=trough.drawdown,
                recovered=False,
                points=count,
            )
        )
    return periods


def find_peak_date(reference: Sequence[TimeSeriesPoint], index: int) -> str | None:
    """Date of the highest value in ``reference[0..index]``.

    The earliest date wins a tie. None when ``index`` is out of range.
    """
    if index < 0 or index >= len(reference):
        return None
    peak_index = 0
    peak_value = coerce_float(reference[0].value)
    for i in range(1, index + 1):
        value = coerce_float(reference[i].value)
        if value > peak_value:
            peak_value = value
            peak_index = i
    return reference[peak_index].date


def days_since_peak(reference: Sequence[TimeSeriesPoint], index: int) -> int | None:
    """Calendar days between the running peak and ``reference[index]``."""
    peak_date = find_peak_date(reference, index)
    if peak_date is None:
        return None
    return _days_between(_parse_date(peak_date), _parse_date(reference[index].date))
