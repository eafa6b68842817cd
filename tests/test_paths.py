"""Tests for SVG path generation."""

from __future__ import annotations

from typing import Any

import pytest

from charting.paths import (
    generate_area_path,
    generate_band_path,
    generate_path,
    generate_scaled_path,
    project_x,
    project_y,
)

WIDTH = 800.0
HEIGHT = 300.0
PADDING = 10.0


def value_of(point: dict[str, Any]) -> Any:
    return point["value"]


def series(*values: Any) -> list[dict[str, Any]]:
    return [{"date": f"2024-01-{i + 1:02d}", "value": v} for i, v in enumerate(values)]


def test_empty_series_renders_nothing() -> None:
    """Test an empty series gives empty line and area paths."""
    assert generate_path([], value_of, WIDTH, HEIGHT, PADDING) == ""
    assert generate_area_path([], value_of, WIDTH, HEIGHT, PADDING) == ""
    assert generate_band_path([], value_of, value_of, WIDTH, HEIGHT, PADDING) == ""


def test_line_path_maps_min_and_max_to_padding() -> None:
    path = generate_path(series(0, 100), value_of, WIDTH, HEIGHT, PADDING)

    assert path == "M 0 290 L 800 10"


def test_area_path_closes_on_bottom_edge() -> None:
    path = generate_area_path(series(0, 100), value_of, WIDTH, HEIGHT, PADDING)

    assert path == "M 0 290 L 800 10 L 800 300 L 0 300 Z"


def test_single_point_series() -> None:
    """Test a single point renders at x=0 and the area closes at the baseline."""
    data = series(50)

    line = generate_path(data, value_of, WIDTH, HEIGHT, PADDING)
    area = generate_area_path(data, value_of, WIDTH, HEIGHT, PADDING)

    assert line == "M 0 150"
    assert "NaN" not in line and "nan" not in line
    assert area == "M 0 150 L 800 300 L 0 300 Z"


def test_flat_series_is_centered() -> None:
    path = generate_path(series(5, 5, 5), value_of, WIDTH, HEIGHT, PADDING)

    assert path == "M 0 150 L 400 150 L 800 150"


def test_sub_unit_range_keeps_minimum_on_bottom_edge() -> None:
    """Test a range below 1 is not centred like a flat series."""
    path = generate_path(series(1, 1.5), value_of, WIDTH, HEIGHT, PADDING)

    assert path == "M 0 290 L 800 150"


def test_malformed_values_plot_as_zero() -> None:
    path = generate_path(series(None, "abc", 100), value_of, WIDTH, HEIGHT, PADDING)

    assert path == "M 0 290 L 400 290 L 800 10"


def test_shared_bounds() -> None:
    path = generate_path(series(50), value_of, WIDTH, HEIGHT, PADDING, bounds=(0.0, 100.0))

    assert path == "M 0 150"


def test_paths_are_idempotent() -> None:
    """Test identical input gives identical strings."""
    data = series(12.3, 45.6, 7.89, 101.1)

    first = generate_area_path(data, value_of, WIDTH, HEIGHT, PADDING)
    second = generate_area_path(data, value_of, WIDTH, HEIGHT, PADDING)

    assert first == second


def test_band_path_between_curves() -> None:
    data = [{"upper": 100, "lower": 0}, {"upper": 100, "lower": 0}]

    path = generate_band_path(
        data,
        lambda p: p["upper"],
        lambda p: p["lower"],
        WIDTH,
        HEIGHT,
        PADDING,
    )

    assert path == "M 0 10 L 800 10 L 800 290 L 0 290 Z"


def test_scaled_path() -> None:
    assert generate_scaled_path([10.0, 20.0], WIDTH) == "M 0 10 L 800 20"
    assert generate_scaled_path([], WIDTH) == ""


def test_projection_helpers() -> None:
    assert project_x(0, 1, WIDTH) == 0.0
    assert project_x(2, 5, WIDTH) == 400.0
    assert project_y(100.0, 0.0, 100.0, HEIGHT, PADDING) == pytest.approx(10.0)
    assert project_y(0.0, 0.0, 100.0, HEIGHT, PADDING) == pytest.approx(290.0)
