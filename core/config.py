from __future__ import annotations

from pathlib import Path
from typing import Any, cast

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AppCfg(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    env: str


class LoggingCfg(BaseModel):
    model_config = ConfigDict(extra="forbid")

    level: str = "INFO"
    json_output: bool = False
    log_dir: Path = Path("./var/log")

    @field_validator("level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()


class ViewportCfg(BaseModel):
    model_config = ConfigDict(extra="forbid")

    width: float = 800.0
    height: float = 300.0
    padding: float = 10.0


class DrawdownCfg(BaseModel):
    model_config = ConfigDict(extra="forbid")

    top_offset: float = 50.0
    default_min: float = -20.0
    axis_step: float = 5.0
    recovery_epsilon: float = 0.0005


class StackedCfg(BaseModel):
    model_config = ConfigDict(extra="forbid")

    fallback_ratio: float = Field(default=0.65, ge=0.0, le=1.0)


class HoverCfg(BaseModel):
    model_config = ConfigDict(extra="forbid")

    frame_interval_sec: float = Field(default=1.0 / 60.0, gt=0.0)


class ChartsCfg(BaseModel):
    model_config = ConfigDict(extra="forbid")

    viewport: ViewportCfg = Field(default_factory=ViewportCfg)
    axis_steps: int = Field(default=3, ge=1)
    default_period: str = "3M"
    drawdown: DrawdownCfg = Field(default_factory=DrawdownCfg)
    stacked: StackedCfg = Field(default_factory=StackedCfg)
    hover: HoverCfg = Field(default_factory=HoverCfg)


class Config(BaseModel):
    model_config = ConfigDict(extra="forbid")

    app: AppCfg
    logging: LoggingCfg = Field(default_factory=LoggingCfg)
    charts: ChartsCfg = Field(default_factory=ChartsCfg)


def _read_yaml(path: Path) -> dict[str, Any]:
    """Safe YAML read; returns {} if file missing/empty."""
    import yaml  # lazy import

    if not path.exists():
        return {}
    text = path.read_text(encoding="utf-8")
    data = yaml.safe_load(text)
    return data or {}


def default_config() -> Config:
    """Config with built-in chart defaults, for callers without a config dir."""

    return Config(app=AppCfg(name="folio-charts", env="dev"))


def load_config(base_dir: str | Path) -> Config:
    """Load config models from ./config/base.yaml and an optional local override."""

    base_path = Path(base_dir)
    base_yaml = base_path / "config" / "base.yaml"
    data = _read_yaml(base_yaml)
    if not data:
        msg = f"Missing or empty config file: {base_yaml}"
        raise FileNotFoundError(msg)

    local_yaml = base_path / "config" / "local.yaml"
    overrides = _read_yaml(local_yaml)
    for section, values in overrides.items():
        if isinstance(values, dict) and isinstance(data.get(section), dict):
            data[section].update(values)
        else:
            data[section] = values

    return cast(Config, Config.model_validate(data))
