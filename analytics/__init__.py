"""Portfolio chart series: decoding, transformation and tooltip payloads."""

from __future__ import annotations

__all__ = [
    "allocation",
    "contracts",
    "dashboard",
    "drawdown",
    "payloads",
    "rolling",
    "stacked",
    "tooltips",
]
