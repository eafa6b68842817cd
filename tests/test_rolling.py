"""Tests for rolling metric series."""

from __future__ import annotations

from typing import Any

from analytics.contracts import ProtocolYield
from analytics.payloads import (
    DailyYieldRecord,
    DrawdownRecord,
    SharpeRecord,
    UnderwaterRecord,
    VolatilityRecord,
    decode_records,
)
from analytics.rolling import (
    build_daily_yield_series,
    build_drawdown_series,
    build_sharpe_series,
    build_underwater_series,
    build_volatility_series,
)


def test_sharpe_series_drops_absent_ratios() -> None:
    records = decode_records(
        SharpeRecord,
        [
            {"date": "2024-01-01", "rolling_sharpe_ratio": 1.4},
            {"date": "2024-01-02", "rolling_sharpe_ratio": None},
            {"date": "2024-01-03", "rolling_sharpe_ratio": "bad"},
        ],
    )

    series = build_sharpe_series(records)

    assert [(p.date, p.sharpe) for p in series] == [("2024-01-01", 1.4), ("2024-01-03", 0.0)]


def test_volatility_series() -> None:
    records = decode_records(
        VolatilityRecord,
        [
            {"date": "2024-01-01", "rolling_volatility_pct": 22.0},
            {"date": "2024-01-02"},
        ],
    )

    assert [(p.date, p.volatility) for p in build_volatility_series(records)] == [
        ("2024-01-01", 22.0)
    ]


def test_drawdown_series_keeps_every_date() -> None:
    records = decode_records(
        DrawdownRecord,
        [
            {"date": "2024-01-01", "drawdown_pct": -4.0},
            {"date": "2024-01-02"},
        ],
    )

    assert [(p.date, p.drawdown) for p in build_drawdown_series(records)] == [
        ("2024-01-01", -4.0),
        ("2024-01-02", 0.0),
    ]


def test_underwater_series() -> None:
    records = decode_records(
        UnderwaterRecord,
        [
            {"date": "2024-01-01", "underwater_pct": -2.5},
            {"date": "2024-01-02", "underwater_pct": 0, "recovery_point": True},
        ],
    )

    series = build_underwater_series(records)

    assert series[0].underwater == -2.5
    assert series[0].recovery is None
    assert series[1].recovery is True


def test_empty_inputs() -> None:
    assert build_sharpe_series([]) == []
    assert build_volatility_series([]) == []
    assert build_drawdown_series([]) == []
    assert build_underwater_series([]) == []
    assert build_daily_yield_series([]) == []


def protocol_row(day: str, protocol: str, chain: str, value: float) -> dict[str, Any]:
    return {"date": day, "protocol_name": protocol, "chain": chain, "yield_return_usd": value}


class TestDailyYieldSeries:
    def test_protocol_rows_are_grouped_by_date(self) -> None:
        """Test per-protocol rows sum into one point per day with a running total."""
        records = decode_records(
            DailyYieldRecord,
            [
                protocol_row("2024-01-02", "Aave", "eth", 5),
                protocol_row("2024-01-01", "Aave", "eth", 3),
                protocol_row("2024-01-02", "GMX", "arb", -2),
            ],
        )

        series = build_daily_yield_series(records)

        assert [p.date for p in series] == ["2024-01-01", "2024-01-02"]
        assert [p.total_yield for p in series] == [3.0, 3.0]
        assert [p.cumulative_yield for p in series] == [3.0, 6.0]
        assert [p.protocol_count for p in series] == [1, 2]
        assert series[1].protocols == (
            ProtocolYield(protocol="Aave", chain="eth", yield_usd=5.0),
            ProtocolYield(protocol="GMX", chain="arb", yield_usd=-2.0),
        )

    def test_reported_cumulative_wins_and_running_total_continues(self) -> None:
        records = decode_records(
            DailyYieldRecord,
            [
                {
                    "date": "2024-01-01",
                    "total_yield_usd": 4,
                    "cumulative_yield_usd": 100,
                    "protocol_count": 2,
                    "protocols": [
                        {"protocol_name": "Aave", "chain": "eth", "yield_return_usd": 4}
                    ],
                },
                {"date": "2024-01-02", "total_yield_usd": -1},
            ],
        )

        series = build_daily_yield_series(records)

        assert [p.cumulative_yield for p in series] == [100.0, 99.0]
        assert [p.protocol_count for p in series] == [2, 0]
        assert series[0].protocols == (ProtocolYield(protocol="Aave", chain="eth", yield_usd=4.0),)
        assert series[1].is_positive is False
