"""Tests for the chart data CLI."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from analytics import cli
from analytics.cli import build_parser, chart_layout, main
from analytics.dashboard import build_chart_data
from charting.contracts import Viewport
from charting.scheduler import AsyncioFrameScheduler, frame_scheduler
from core.config import ChartsCfg, HoverCfg

REPO_ROOT = Path(__file__).resolve().parents[1]


@pytest.fixture
def dashboard_file(tmp_path: Path) -> Path:
    """Write a small dashboard response to disk."""
    dashboard = {
        "trends": {
            "daily_totals": [
                {"date": "2024-01-01", "total_value_usd": 100},
                {"date": "2024-01-02", "total_value_usd": 80},
                {"date": "2024-01-03", "total_value_usd": 90},
                {"date": "2024-01-04", "total_value_usd": 110},
            ]
        },
        "allocation": {
            "allocation_data": [
                {"date": "2024-01-01", "btc": 60, "eth": 40},
                {"date": "2024-01-02", "btc": 50, "eth": 30, "stablecoin": 20},
            ]
        },
        "rolling_analytics": {
            "sharpe": {
                "rolling_sharpe_data": [
                    {"date": "2024-01-01", "rolling_sharpe_ratio": 0.8},
                    {"date": "2024-01-02", "rolling_sharpe_ratio": 1.6},
                ]
            }
        },
    }
    path = tmp_path / "dashboard.json"
    path.write_text(json.dumps(dashboard), encoding="utf-8")
    return path


def run_json(argv: list[str], capsys: pytest.CaptureFixture[str]) -> dict[str, Any]:
    assert main(argv) == 0
    return json.loads(capsys.readouterr().out)


def test_render_drawdown(dashboard_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    output = run_json(["render", "--input", str(dashboard_file), "--chart", "drawdown"], capsys)

    assert output["chart"] == "drawdown"
    assert output["points"] == 4
    assert [point["drawdown"] for point in output["series"]] == pytest.approx(
        [0.0, -20.0, -10.0, 0.0]
    )
    assert output["geometry"]["min_value"] == -20.0
    assert output["geometry"]["zero_line_y"] == 50.0
    assert output["geometry"]["line_path"].startswith("M 0 50 L")


def test_render_performance_labels(
    dashboard_file: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    output = run_json(
        ["render", "--input", str(dashboard_file), "--chart", "performance", "--period", "1M"],
        capsys,
    )

    assert output["points"] == 4
    assert output["axis_labels"] == ["$110", "$81", "$52"]
    assert output["series"][0]["defi_value"] == pytest.approx(65.0)


def test_render_allocation_geometry_per_bucket(
    dashboard_file: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    output = run_json(["render", "--input", str(dashboard_file), "--chart", "allocation"], capsys)

    assert set(output["geometry"]) == {"btc", "eth", "stablecoin", "defi", "altcoin"}
    assert output["series"][1]["stablecoin"] == 20.0


def test_render_with_config_dir(dashboard_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    output = run_json(
        [
            "--config-dir",
            str(REPO_ROOT),
            "render",
            "--input",
            str(dashboard_file),
            "--chart",
            "sharpe",
        ],
        capsys,
    )

    assert output["axis_labels"] == ["1.60", "1.20", "0.80"]


def test_recovery(dashboard_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    output = run_json(["recovery", "--input", str(dashboard_file)], capsys)

    summary = output["summary"]
    assert summary["max_drawdown"] == pytest.approx(-20.0)
    assert summary["total_recoveries"] == 1
    assert summary["average_recovery_days"] == 3
    assert summary["current_status"] == "At Peak"
    assert output["recovery_points"][0]["date"] == "2024-01-04"
    assert output["underwater_periods"][0]["recovered"] is True


def test_hover_performance(dashboard_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    output = run_json(
        ["hover", "--input", str(dashboard_file), "--chart", "performance", "--x", "800"], capsys
    )

    hover = output["hover"]
    assert hover["index"] == 3
    assert hover["x"] == 800.0
    assert hover["payload"]["date"] == "Jan 4, 2024"
    assert hover["payload"]["value"] == pytest.approx(110.0)


def test_hover_drawdown_uses_reference_series(
    dashboard_file: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    output = run_json(
        ["hover", "--input", str(dashboard_file), "--chart", "drawdown", "--x", "266"], capsys
    )

    hover = output["hover"]
    assert hover["index"] == 1
    assert hover["y"] == pytest.approx(300.0)
    assert hover["payload"]["peak_date"] == "2024-01-01"
    assert hover["payload"]["distance_from_peak"] == 1


def test_hover_empty_series(dashboard_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    output = run_json(
        ["hover", "--input", str(dashboard_file), "--chart", "volatility", "--x", "10"], capsys
    )

    assert output == {"chart": "volatility", "hover": None}


def test_missing_input_reports_error(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = main(["recovery", "--input", str(tmp_path / "missing.json")])

    assert exit_code == 1
    assert "Error:" in capsys.readouterr().err


def test_no_command_prints_help(capsys: pytest.CaptureFixture[str]) -> None:
    assert main([]) == 1
    assert "usage" in capsys.readouterr().out


def test_parser_rejects_unknown_chart() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args(["render", "--input", "x.json", "--chart", "pie"])


def test_chart_layout_unknown_chart() -> None:
    with pytest.raises(ValueError, match="Unknown chart type"):
        chart_layout("pie", build_chart_data(None), ChartsCfg(), Viewport())


@pytest.fixture
def month_file(tmp_path: Path) -> Path:
    """Write thirty daily totals, 2024-01-01 through 2024-01-30."""
    totals = [
        {"date": f"2024-01-{day:02d}", "total_value_usd": 100 + day} for day in range(1, 31)
    ]
    path = tmp_path / "month.json"
    path.write_text(json.dumps({"trends": {"daily_totals": totals}}), encoding="utf-8")
    return path


def test_render_period_limits_points(month_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """Test --period keeps only the last week of a month of data."""
    output = run_json(
        ["render", "--input", str(month_file), "--chart", "performance", "--period", "1W"],
        capsys,
    )

    assert output["points"] == 7
    assert output["series"][0]["date"] == "2024-01-24"
    assert output["series"][-1]["date"] == "2024-01-30"


def test_render_period_all_keeps_every_point(
    month_file: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    output = run_json(
        ["render", "--input", str(month_file), "--chart", "performance", "--period", "ALL"],
        capsys,
    )

    assert output["points"] == 30


def test_default_period_from_config(
    tmp_path: Path, month_file: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    """Test charts.default_period applies when --period is not given."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    base = (REPO_ROOT / "config" / "base.yaml").read_text(encoding="utf-8")
    (config_dir / "base.yaml").write_text(
        base.replace("default_period: 3M", "default_period: 1W"), encoding="utf-8"
    )

    output = run_json(
        [
            "--config-dir",
            str(tmp_path),
            "render",
            "--input",
            str(month_file),
            "--chart",
            "performance",
        ],
        capsys,
    )

    assert output["points"] == 7
    assert output["series"][0]["date"] == "2024-01-24"


def test_hover_uses_configured_frame_interval(
    tmp_path: Path,
    dashboard_file: Path,
    capsys: pytest.CaptureFixture[str],
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Test the hover command schedules frames at charts.hover.frame_interval_sec."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    (config_dir / "base.yaml").write_text(
        (REPO_ROOT / "config" / "base.yaml").read_text(encoding="utf-8"), encoding="utf-8"
    )
    (config_dir / "local.yaml").write_text(
        "charts:\n  hover:\n    frame_interval_sec: 0.005\n", encoding="utf-8"
    )
    intervals: list[float] = []

    def recording_scheduler(cfg: HoverCfg) -> AsyncioFrameScheduler:
        scheduler = frame_scheduler(cfg)
        intervals.append(scheduler.frame_interval_sec)
        return scheduler

    monkeypatch.setattr(cli, "frame_scheduler", recording_scheduler)

    output = run_json(
        [
            "--config-dir",
            str(tmp_path),
            "hover",
            "--input",
            str(dashboard_file),
            "--chart",
            "performance",
            "--x",
            "0",
        ],
        capsys,
    )

    assert intervals == [0.005]
    assert output["hover"]["index"] == 0


@pytest.fixture
def yield_file(tmp_path: Path) -> Path:
    """Write a dashboard carrying only per-protocol daily yield rows."""
    returns = [
        {"date": "2024-01-01", "protocol_name": "Aave", "chain": "eth", "yield_return_usd": 10},
        {"date": "2024-01-02", "protocol_name": "Aave", "chain": "eth", "yield_return_usd": -4},
        {"date": "2024-01-02", "protocol_name": "GMX", "chain": "arb", "yield_return_usd": -6},
    ]
    path = tmp_path / "yield.json"
    path.write_text(json.dumps({"daily_yield": {"daily_returns": returns}}), encoding="utf-8")
    return path


def test_render_daily_yield(yield_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    output = run_json(["render", "--input", str(yield_file), "--chart", "daily-yield"], capsys)

    assert output["points"] == 2
    assert [p["cumulative_yield"] for p in output["series"]] == [10.0, 0.0]
    assert output["geometry"]["zero_line_y"] == 150.0
    assert output["geometry"]["cumulative_line_path"] == "M 0 10 L 800 150"
    assert output["axis_labels"] == ["$10", "$0", "-$10"]


def test_hover_daily_yield(yield_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    output = run_json(
        ["hover", "--input", str(yield_file), "--chart", "daily-yield", "--x", "800"], capsys
    )

    hover = output["hover"]
    assert hover["index"] == 1
    assert hover["y"] == pytest.approx(290.0)
    assert hover["payload"]["total_yield"] == -10.0
    assert hover["payload"]["protocol_count"] == 2
    assert [p["protocol"] for p in hover["payload"]["protocols"]] == ["Aave", "GMX"]
