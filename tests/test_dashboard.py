"""Tests for dashboard chart data assembly."""

from __future__ import annotations

from typing import Any

import pytest

from analytics.contracts import AllocationPoint, DailyYieldPoint, DrawdownPoint, TimeSeriesPoint
from analytics.dashboard import (
    CHART_PERIODS,
    ChartData,
    ChartOverrides,
    build_chart_data,
    limit_to_period,
    period_days,
)


@pytest.fixture
def dashboard() -> dict[str, Any]:
    """Unified dashboard response with every section but the drawdown series."""
    return {
        "trends": {
            "daily_totals": [
                {"date": "2024-01-02", "total_value_usd": 80},
                {
                    "date": "2024-01-01",
                    "total_value_usd": 100,
                    "categories": [
                        {"category": "btc", "value_usd": 60, "source_type": "defi"},
                        {"category": "eth", "value_usd": 40, "source_type": "wallet"},
                    ],
                },
                {"date": "2024-01-03", "total_value_usd": 90},
            ]
        },
        "allocation": {
            "allocation_data": [
                {"date": "2024-01-01", "category": "btc", "percentage": 30},
                {"date": "2024-01-01", "category": "Stable LP", "percentage": 10},
            ]
        },
        "rolling_analytics": {
            "sharpe": {
                "rolling_sharpe_data": [
                    {"date": "2024-01-01", "rolling_sharpe_ratio": 1.2},
                    {"date": "2024-01-02", "rolling_sharpe_ratio": None},
                ]
            },
            "volatility": {
                "rolling_volatility_data": [
                    {"date": "2024-01-01", "annualized_volatility_pct": 21.0}
                ]
            },
        },
        "drawdown_analysis": {
            "underwater_recovery": {
                "underwater_data": [{"date": "2024-01-02", "underwater_pct": -20.0}]
            }
        },
    }


def test_build_chart_data(dashboard: dict[str, Any]) -> None:
    data = build_chart_data(dashboard)

    assert [p.date for p in data.portfolio_history] == ["2024-01-01", "2024-01-02", "2024-01-03"]
    assert data.stacked[0].defi_value == pytest.approx(60.0)
    assert data.stacked[1].defi_value == pytest.approx(52.0)
    assert data.allocation_history[0].btc == pytest.approx(75.0)
    assert data.allocation_history[0].stablecoin == pytest.approx(25.0)
    assert [p.sharpe for p in data.sharpe] == [1.2]
    assert [p.volatility for p in data.volatility] == [21.0]
    assert [p.underwater for p in data.underwater] == [-20.0]


def test_drawdown_computed_when_absent(dashboard: dict[str, Any]) -> None:
    data = build_chart_data(dashboard)

    assert [p.drawdown for p in data.drawdown] == pytest.approx([0.0, -20.0, -10.0])
    assert data.drawdown_reference == data.portfolio_history


def test_service_drawdown_preferred(dashboard: dict[str, Any]) -> None:
    dashboard["drawdown_analysis"]["enhanced"] = {
        "drawdown_data": [{"date": "2024-01-01", "drawdown_pct": -1.5}]
    }

    data = build_chart_data(dashboard)

    assert data.drawdown == [DrawdownPoint(date="2024-01-01", drawdown=-1.5)]


def test_summary_properties(dashboard: dict[str, Any]) -> None:
    data = build_chart_data(dashboard)

    assert data.first_value == 100.0
    assert data.current_value == 90.0
    assert data.total_return == pytest.approx(-10.0)
    assert data.is_positive is False


def test_missing_dashboard_gives_empty_series() -> None:
    data = build_chart_data(None)

    assert data == ChartData()
    assert data.total_return == 0.0
    assert data.is_positive is True


def test_overrides_win_over_response(dashboard: dict[str, Any]) -> None:
    overrides = ChartOverrides(
        portfolio_data=[
            TimeSeriesPoint(date="2024-02-02", value=50.0),
            TimeSeriesPoint(date="2024-02-01", value=40.0),
        ],
        allocation_data=[AllocationPoint(date="2024-02-01", eth=100.0)],
        sharpe_data=[{"date": "2024-02-01", "sharpe": 0.4}],
    )

    data = build_chart_data(dashboard, overrides, fallback_ratio=0.5)

    assert [p.value for p in data.portfolio_history] == [40.0, 50.0]
    assert data.allocation_history == [AllocationPoint(date="2024-02-01", eth=100.0)]
    assert [p.sharpe for p in data.sharpe] == [0.4]
    assert data.stacked[0].defi_value == pytest.approx(20.0)
    assert [p.volatility for p in data.volatility] == [21.0]


def test_malformed_sections_are_ignored() -> None:
    data = build_chart_data({"trends": "broken", "allocation": {"allocation_data": 7}})

    assert data.portfolio_history == []
    assert data.allocation_history == []


@pytest.mark.parametrize(
    ("period", "days"),
    [("1W", 7), ("1m", 30), ("3M", 90), ("6M", 180), ("1Y", 365), ("ALL", 730), ("5Y", 90)],
)
def test_period_days(period: str, days: int) -> None:
    assert period_days(period) == days


def test_chart_periods_are_ascending() -> None:
    assert list(CHART_PERIODS.values()) == sorted(CHART_PERIODS.values())


class TestLimitToPeriod:
    def test_keeps_last_days_inclusive(self) -> None:
        points = [
            TimeSeriesPoint(date=f"2024-01-{day:02d}", value=float(day)) for day in range(1, 31)
        ]

        kept = limit_to_period(points, 7)

        assert [p.date for p in kept] == [f"2024-01-{day}" for day in range(24, 31)]

    def test_window_is_anchored_on_latest_date(self) -> None:
        """Test gaps in the data do not widen the window."""
        points = [
            TimeSeriesPoint(date="2023-06-01", value=1.0),
            TimeSeriesPoint(date="2024-01-01T00:00:00Z", value=2.0),
            TimeSeriesPoint(date="2024-01-05", value=3.0),
        ]

        assert [p.value for p in limit_to_period(points, 7)] == [2.0, 3.0]

    def test_unparseable_dates_are_kept(self) -> None:
        points = [
            TimeSeriesPoint(date="not a date", value=1.0),
            TimeSeriesPoint(date="2024-01-01", value=2.0),
            TimeSeriesPoint(date="2024-03-01", value=3.0),
        ]

        assert [p.value for p in limit_to_period(points, 30)] == [1.0, 3.0]
        assert limit_to_period(points[:1], 7) == points[:1]

    def test_empty(self) -> None:
        assert limit_to_period([], 7) == []


def test_build_chart_data_with_period() -> None:
    """Test a period windows every series, including the computed drawdown."""
    days = [f"2024-01-{day:02d}" for day in range(1, 11)]
    dashboard: dict[str, Any] = {
        "trends": {
            "daily_totals": [
                {"date": day, "total_value_usd": 100 - i} for i, day in enumerate(days)
            ]
        },
        "allocation": {"allocation_data": [{"date": day, "btc": 100} for day in days]},
        "rolling_analytics": {
            "sharpe": {
                "rolling_sharpe_data": [{"date": day, "rolling_sharpe_ratio": 1.0} for day in days]
            }
        },
    }

    data = build_chart_data(dashboard, period="1W")

    assert [p.date for p in data.portfolio_history] == days[3:]
    assert [p.date for p in data.stacked] == days[3:]
    assert [p.date for p in data.allocation_history] == days[3:]
    assert [p.date for p in data.sharpe] == days[3:]
    assert data.drawdown[0].drawdown == 0.0
    assert len(data.drawdown) == 7
    assert data.first_value == 97.0


def test_build_chart_data_without_period_keeps_all(dashboard: dict[str, Any]) -> None:
    dashboard["trends"]["daily_totals"].append({"date": "2024-12-31", "total_value_usd": 70})

    assert len(build_chart_data(dashboard).portfolio_history) == 4


def test_daily_yield_section(dashboard: dict[str, Any]) -> None:
    dashboard["daily_yield"] = {
        "daily_returns": [
            {"date": "2024-01-02", "protocol_name": "Aave", "chain": "eth", "yield_return_usd": 2},
            {"date": "2024-01-01", "protocol_name": "Aave", "chain": "eth", "yield_return_usd": 1},
        ]
    }

    data = build_chart_data(dashboard)

    assert [p.date for p in data.daily_yield] == ["2024-01-01", "2024-01-02"]
    assert [p.cumulative_yield for p in data.daily_yield] == [1.0, 3.0]


def test_period_restarts_cumulative_yield() -> None:
    """Test the running yield total starts from zero at the window start."""
    returns = [
        {"date": f"2024-01-{day:02d}", "total_yield_usd": 1.0} for day in range(1, 11)
    ]

    data = build_chart_data({"daily_yield": {"daily_returns": returns}}, period="1W")

    assert [p.date for p in data.daily_yield][0] == "2024-01-04"
    assert [p.cumulative_yield for p in data.daily_yield] == [1.0, 2.0, 3.0, 4.0, 5.0, 6.0, 7.0]
    assert all(p.total_yield == 1.0 for p in data.daily_yield)


def test_daily_yield_override() -> None:
    override = [DailyYieldPoint(date="2024-01-01", total_yield=5.0, cumulative_yield=5.0)]

    data = build_chart_data(None, ChartOverrides(daily_yield_data=override))

    assert data.daily_yield == override
