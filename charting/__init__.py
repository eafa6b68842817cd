"""Chart geometry: SVG paths, axis labels and hover resolution."""

from __future__ import annotations

__all__ = [
    "axis",
    "contracts",
    "geometry",
    "hover",
    "numeric",
    "paths",
    "scheduler",
]
