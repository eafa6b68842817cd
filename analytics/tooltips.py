"""Tooltip payloads for each chart type and their classification labels."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import datetime
from typing import Any, Literal

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
from analytics.drawdown import DRAWDOWN_EPSILON, days_since_peak, find_peak_date
from analytics.stacked import stacked_total_value
from charting.numeric import coerce_float, safe_divide

SharpeInterpretation = Literal["Excellent", "Good", "Fair", "Poor", "Very Poor"]
VolatilityRiskLevel = Literal["Low", "Moderate", "High", "Very High"]
RecoveryStatus = Literal["At Peak", "Underwater"]

_SHARPE_LEVELS: tuple[tuple[float, SharpeInterpretation], ...] = (
    (2.0, "Excellent"),
    (1.0, "Good"),
    (0.5, "Fair"),
    (0.0, "Poor"),
)

_VOLATILITY_LEVELS: tuple[tuple[float, VolatilityRiskLevel], ...] = (
    (10.0, "Low"),
    (25.0, "Moderate"),
    (50.0, "High"),
)

_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def sharpe_interpretation(value: float) -> SharpeInterpretation:
    """Classify a Sharpe ratio. Thresholds are strict: exactly 1.0 is "Fair"."""
    for threshold, label in _SHARPE_LEVELS:
        if value > threshold:
            return label
    return "Very Poor"


def volatility_risk_level(value: float) -> VolatilityRiskLevel:
    """Classify an annualized volatility given in percent."""
    for threshold, label in _VOLATILITY_LEVELS:
        if value < threshold:
            return label
    return "Very High"


def recovery_status(underwater: float, epsilon: float = DRAWDOWN_EPSILON) -> RecoveryStatus:
    return "At Peak" if underwater >= -epsilon else "Underwater"


def format_tooltip_date(value: str) -> str:
    """Render an ISO date as ``"Jan 5, 2024"``; other text is returned unchanged."""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    return f"{_MONTHS[parsed.month - 1]} {parsed.day}, {parsed.year}"


def performance_payload(point: StackedPoint, index: int) -> dict[str, Any]:
    return {
        "chart_type": "performance",
        "date": format_tooltip_date(point.date),
        "value": stacked_total_value(point),
        "benchmark": point.benchmark or 0.0,
        "defi_value": point.defi_value,
        "wallet_value": point.wallet_value,
    }


def allocation_payload(point: AllocationPoint, index: int) -> dict[str, Any]:
    """Allocation tooltip; shares are re-expressed as percent of the day's total."""
    total = point.total
    payload: dict[str, Any] = {
        "chart_type": "allocation",
        "date": format_tooltip_date(point.date),
    }
    for bucket, share in point.shares().items():
        payload[bucket] = safe_divide(share, total) * 100.0
    return payload


def make_drawdown_payload(
    reference: Sequence[TimeSeriesPoint],
) -> Callable[[DrawdownPoint, int], dict[str, Any]]:
    """Build the drawdown payload builder bound to the portfolio value series.

    Peak date and days since peak come from ``reference``, the valuation
    series the drawdown was derived from, at the hovered index.
    """

    def drawdown_payload(point: DrawdownPoint, index: int) -> dict[str, Any]:
        return {
            "chart_type": "drawdown",
            "date": format_tooltip_date(point.date),
            "drawdown": point.drawdown,
            "peak_date": find_peak_date(reference, index),
            "distance_from_peak": days_since_peak(reference, index),
        }

    return drawdown_payload


def sharpe_payload(point: SharpePoint, index: int) -> dict[str, Any]:
    sharpe = coerce_float(point.sharpe)
    return {
        "chart_type": "sharpe",
        "date": format_tooltip_date(point.date),
        "sharpe": sharpe,
        "interpretation": sharpe_interpretation(sharpe),
    }


def volatility_payload(point: VolatilityPoint, index: int) -> dict[str, Any]:
    volatility = coerce_float(point.volatility)
    return {
        "chart_type": "volatility",
        "date": format_tooltip_date(point.date),
        "volatility": volatility,
        "risk_level": volatility_risk_level(volatility),
    }


def underwater_payload(point: UnderwaterPoint, index: int) -> dict[str, Any]:
    return {
        "chart_type": "underwater",
        "date": format_tooltip_date(point.date),
        "underwater": point.underwater,
        "is_recovery_point": bool(point.recovery),
        "recovery_status": recovery_status(point.underwater),
    }


def daily_yield_payload(point: DailyYieldPoint, index: int) -> dict[str, Any]:
    """Daily yield tooltip with the per-protocol breakdown of the day."""
    return {
        "chart_type": "daily-yield",
        "date": format_tooltip_date(point.date),
        "total_yield": point.total_yield,
        "cumulative_yield": point.cumulative_yield,
        "is_positive": point.is_positive,
        "protocol_count": point.protocol_count,
        "protocols": [
            {"protocol": entry.protocol, "chain": entry.chain, "yield_usd": entry.yield_usd}
            for entry in point.protocols
        ],
    }
