"""Configuration and logging setup."""

from __future__ import annotations

__all__ = ["config", "logging"]
