"""Decoding of raw analytics-service records at the collaborator boundary.

The service names the same field several ways depending on the endpoint
(``category`` or ``protocol``, ``allocation_percentage`` or
``percentage_of_portfolio`` or ``percentage``, ...). The models below resolve
those variants once, coerce malformed numbers to 0 and hand the transformers a
single canonical record type per series.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, ClassVar, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator

from analytics.contracts import (
    ALLOCATION_BUCKETS,
    AllocationPoint,
    ProtocolYield,
    SourceValue,
    TimeSeriesPoint,
)
from charting.numeric import coerce_float, ensure_non_negative

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound="ApiRecord")


def _first_present(data: Mapping[str, Any], names: tuple[str, ...]) -> Any:
    for name in names:
        value = data.get(name)
        if value is not None:
            return value
    return None


def _optional_float(value: Any) -> float | None:
    if value is None:
        return None
    return coerce_float(value)


def _optional_bool(value: Any) -> bool | None:
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


class ApiRecord(BaseModel):
    """Base for raw records: resolves field-name variants before validation."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    # canonical field -> accepted source names, in precedence order
    FIELD_ALIASES: ClassVar[dict[str, tuple[str, ...]]] = {}

    date: str

    @model_validator(mode="before")
    @classmethod
    def _resolve_aliases(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        resolved = dict(data)
        for target, names in cls.FIELD_ALIASES.items():
            resolved[target] = _first_present(data, names)
        return resolved

    @field_validator("date", mode="before")
    @classmethod
    def _date_text(cls, value: Any) -> str:
        if isinstance(value, datetime):
            return value.date().isoformat()
        if isinstance(value, date):
            return value.isoformat()
        if value is None or not str(value).strip():
            raise ValueError("date is required")
        return str(value).strip()


class SourceEntry(BaseModel):
    """Protocol or category entry nested in a daily total."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    FIELD_ALIASES: ClassVar[dict[str, tuple[str, ...]]] = {
        "name": ("protocol", "category", "name"),
        "value": ("value_usd", "value"),
        "pnl": ("pnl_usd", "pnl"),
        "source_type": ("source_type", "sourceType"),
    }

    name: str = ""
    value: float = 0.0
    pnl: float = 0.0
    source_type: str | None = None
    category: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _resolve_aliases(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        resolved = dict(data)
        for target, names in cls.FIELD_ALIASES.items():
            resolved[target] = _first_present(data, names)
        if resolved.get("name") is None:
            resolved["name"] = ""
        return resolved

    @field_validator("value", "pnl", mode="before")
    @classmethod
    def _numeric(cls, value: Any) -> float:
        return coerce_float(value)

    @field_validator("name", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return str(value)

    def to_source_value(self) -> SourceValue:
        return SourceValue(
            name=self.name,
            value=self.value,
            pnl=self.pnl,
            source_type=self.source_type,
            category=self.category,
        )


class DailyTotalRecord(ApiRecord):
    """One day of the portfolio valuation series."""

    FIELD_ALIASES: ClassVar[dict[str, tuple[str, ...]]] = {
        "total_value_usd": ("total_value_usd", "value"),
        "change_percentage": ("change_percentage", "change"),
    }

    total_value_usd: float = 0.0
    change_percentage: float = 0.0
    benchmark: float | None = None
    protocols: list[SourceEntry] = []
    categories: list[SourceEntry] = []
    chains_count: int | None = None

    @field_validator("total_value_usd", "change_percentage", mode="before")
    @classmethod
    def _numeric(cls, value: Any) -> float:
        return coerce_float(value)

    @field_validator("benchmark", mode="before")
    @classmethod
    def _benchmark(cls, value: Any) -> float | None:
        return _optional_float(value)

    @field_validator("protocols", "categories", mode="before")
    @classmethod
    def _entries(cls, value: Any) -> Any:
        return [] if value is None else value

    def to_point(self) -> TimeSeriesPoint:
        return TimeSeriesPoint(
            date=self.date,
            value=self.total_value_usd,
            benchmark=self.benchmark,
            change=self.change_percentage,
            protocols=tuple(entry.to_source_value() for entry in self.protocols),
            categories=tuple(entry.to_source_value() for entry in self.categories),
        )


class AllocationRecord(ApiRecord):
    """Category allocation of one holding on one date.

    ``percentage`` is the pre-computed share of the portfolio; when it is 0 the
    share is derived from ``category_value / total_value``.
    """

    FIELD_ALIASES: ClassVar[dict[str, tuple[str, ...]]] = {
        "category": ("category", "protocol"),
        "percentage": ("allocation_percentage", "percentage_of_portfolio", "percentage"),
        "category_value": ("category_value_usd", "category_value"),
        "total_value": ("total_portfolio_value_usd", "total_value"),
    }

    category: str = ""
    percentage: float = 0.0
    category_value: float = 0.0
    total_value: float = 0.0

    @field_validator("category", mode="before")
    @classmethod
    def _category_text(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("percentage", "category_value", "total_value", mode="before")
    @classmethod
    def _numeric(cls, value: Any) -> float:
        return coerce_float(value)


class AggregatedAllocationRecord(ApiRecord):
    """Allocation already bucketed by the service."""

    btc: float = 0.0
    eth: float = 0.0
    stablecoin: float = 0.0
    defi: float = 0.0
    altcoin: float = 0.0

    @field_validator(*ALLOCATION_BUCKETS, mode="before")
    @classmethod
    def _share(cls, value: Any) -> float:
        return ensure_non_negative(coerce_float(value))

    def to_point(self) -> AllocationPoint:
        return AllocationPoint(
            date=self.date,
            btc=self.btc,
            eth=self.eth,
            stablecoin=self.stablecoin,
            defi=self.defi,
            altcoin=self.altcoin,
        )


class SharpeRecord(ApiRecord):
    FIELD_ALIASES: ClassVar[dict[str, tuple[str, ...]]] = {
        "sharpe": ("rolling_sharpe_ratio", "sharpe_value", "sharpe"),
    }

    sharpe: float | None = None

    @field_validator("sharpe", mode="before")
    @classmethod
    def _metric(cls, value: Any) -> float | None:
        return _optional_float(value)


class VolatilityRecord(ApiRecord):
    FIELD_ALIASES: ClassVar[dict[str, tuple[str, ...]]] = {
        "volatility": (
            "annualized_volatility_pct",
            "rolling_volatility_pct",
            "rolling_volatility_daily_pct",
            "volatility_value",
            "volatility",
        ),
    }

    volatility: float | None = None

    @field_validator("volatility", mode="before")
    @classmethod
    def _metric(cls, value: Any) -> float | None:
        return _optional_float(value)


class DrawdownRecord(ApiRecord):
    """Drawdown computed by the analytics service."""

    FIELD_ALIASES: ClassVar[dict[str, tuple[str, ...]]] = {
        "drawdown": ("drawdown", "drawdown_pct", "drawdown_value"),
        "portfolio_value": ("portfolio_value", "portfolio_value_usd"),
        "peak_value": ("peak_value", "running_peak_usd"),
    }

    drawdown: float | None = None
    portfolio_value: float = 0.0
    peak_value: float = 0.0
    is_underwater: bool | None = None

    @field_validator("drawdown", mode="before")
    @classmethod
    def _metric(cls, value: Any) -> float | None:
        return _optional_float(value)

    @field_validator("portfolio_value", "peak_value", mode="before")
    @classmethod
    def _numeric(cls, value: Any) -> float:
        return coerce_float(value)

    @field_validator("is_underwater", mode="before")
    @classmethod
    def _flag(cls, value: Any) -> bool | None:
        return _optional_bool(value)


class UnderwaterRecord(ApiRecord):
    FIELD_ALIASES: ClassVar[dict[str, tuple[str, ...]]] = {
        "underwater": ("underwater_pct", "underwater_value", "underwater"),
        "recovery_point": ("recovery_point", "recovery"),
    }

    underwater: float | None = None
    recovery_point: bool | None = None

    @field_validator("underwater", mode="before")
    @classmethod
    def _metric(cls, value: Any) -> float | None:
        return _optional_float(value)

    @field_validator("recovery_point", mode="before")
    @classmethod
    def _flag(cls, value: Any) -> bool | None:
        return _optional_bool(value)


class ProtocolYieldEntry(BaseModel):
    """Protocol breakdown entry nested in a daily yield record."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    FIELD_ALIASES: ClassVar[dict[str, tuple[str, ...]]] = {
        "protocol": ("protocol_name", "protocol", "name"),
        "yield_usd": ("yield_return_usd", "yield_usd", "value_usd"),
    }

    protocol: str = ""
    chain: str = ""
    yield_usd: float = 0.0

    @model_validator(mode="before")
    @classmethod
    def _resolve_aliases(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        resolved = dict(data)
        for target, names in cls.FIELD_ALIASES.items():
            resolved[target] = _first_present(data, names)
        return resolved

    @field_validator("protocol", "chain", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("yield_usd", mode="before")
    @classmethod
    def _numeric(cls, value: Any) -> float:
        return coerce_float(value)

    def to_protocol_yield(self) -> ProtocolYield:
        return ProtocolYield(protocol=self.protocol, chain=self.chain, yield_usd=self.yield_usd)


class DailyYieldRecord(ApiRecord):
    """Daily yield as reported by the service.

    The service sends either one summary row per day (``total_yield_usd``,
    optionally ``cumulative_yield_usd`` and a ``protocols`` breakdown) or one
    row per protocol position (``protocol_name``, ``chain``,
    ``yield_return_usd``). Both decode to this record.
    """

    FIELD_ALIASES: ClassVar[dict[str, tuple[str, ...]]] = {
        "total_yield": ("total_yield_usd", "total_yield"),
        "cumulative_yield": ("cumulative_yield_usd", "cumulative_yield"),
        "protocol": ("protocol_name", "protocol"),
        "yield_return": ("yield_return_usd", "yield_return"),
    }

    total_yield: float | None = None
    cumulative_yield: float | None = None
    protocol_count: int | None = None
    protocols: list[ProtocolYieldEntry] = []
    protocol: str | None = None
    chain: str = ""
    yield_return: float | None = None

    @field_validator("total_yield", "cumulative_yield", "yield_return", mode="before")
    @classmethod
    def _metric(cls, value: Any) -> float | None:
        return _optional_float(value)

    @field_validator("protocol_count", mode="before")
    @classmethod
    def _count(cls, value: Any) -> int | None:
        if value is None:
            return None
        return max(int(coerce_float(value)), 0)

    @field_validator("protocols", mode="before")
    @classmethod
    def _entries(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("chain", mode="before")
    @classmethod
    def _chain_text(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @property
    def is_protocol_row(self) -> bool:
        """True for a per-protocol row rather than a per-day summary."""
        return self.total_yield is None and self.protocol is not None

    @property
    def day_yield(self) -> float:
        """Contribution of this record to its day's total."""
        if self.total_yield is not None:
            return self.total_yield
        return self.yield_return if self.yield_return is not None else 0.0

    def breakdown(self) -> list[ProtocolYield]:
        if self.is_protocol_row:
            return [
                ProtocolYield(
                    protocol=self.protocol or "",
                    chain=self.chain,
                    yield_usd=self.day_yield,
                )
            ]
        return [entry.to_protocol_yield() for entry in self.protocols]


def _as_items(raw: Any) -> list[Any]:
    if raw is None:
        return []
    if isinstance(raw, (str, bytes, Mapping)) or not isinstance(raw, Iterable):
        logger.warning("expected a list of records, got %s", type(raw).__name__)
        return []
    return list(raw)


def decode_records(model: type[RecordT], raw: Iterable[Any] | None) -> list[RecordT]:
    """Validate raw records into ``model`` instances.

    Args:
        model: Record model to validate against
        raw: Raw records as received from the service (None when not loaded)

    Returns:
        Decoded records in input order; records that fail validation are
        logged and dropped
    """
    records: list[RecordT] = []
    for position, item in enumerate(_as_items(raw)):
        if isinstance(item, model):
            records.append(item)
            continue
        try:
            records.append(model.model_validate(item))
        except ValidationError as exc:
            logger.warning(
                "dropping malformed %s at position %d (%d errors)",
                model.__name__,
                position,
                exc.error_count(),
            )
    return records


def decode_portfolio_history(raw: Iterable[Any] | None) -> list[TimeSeriesPoint]:
    """Decode daily totals into a date-sorted valuation series."""
    points = [record.to_point() for record in decode_records(DailyTotalRecord, raw)]
    return sorted(points, key=lambda point: point.date)


@dataclass(frozen=True)
class AggregatedAllocations:
    """Allocation payload that arrived already bucketed."""

    points: tuple[AllocationPoint, ...]
    kind: Literal["aggregated"] = "aggregated"


@dataclass(frozen=True)
class AllocationTimeseries:
    """Allocation payload of per-category records that still need bucketing."""

    records: tuple[AllocationRecord, ...]
    kind: Literal["timeseries"] = "timeseries"


AllocationPayload = AggregatedAllocations | AllocationTimeseries

_TIMESERIES_KEYS = (
    "category",
    "protocol",
    "percentage",
    "percentage_of_portfolio",
    "allocation_percentage",
    "category_value",
    "category_value_usd",
)


def _looks_aggregated(item: Mapping[str, Any]) -> bool:
    has_buckets = any(
        isinstance(item.get(bucket), (int, float)) and not isinstance(item.get(bucket), bool)
        for bucket in ALLOCATION_BUCKETS
    )
    has_timeseries_keys = any(key in item for key in _TIMESERIES_KEYS)
    return has_buckets and not has_timeseries_keys


def decode_allocation_payload(raw: Iterable[Any] | None) -> AllocationPayload:
    """Decide once whether an allocation payload is aggregated or a timeseries.

    The first record decides the variant for the whole payload. Already-built
    ``AllocationPoint`` objects are treated as aggregated.
    """
    items = _as_items(raw)
    if not items:
        return AllocationTimeseries(records=())

    first = items[0]
    if isinstance(first, AllocationPoint):
        return AggregatedAllocations(
            points=tuple(item for item in items if isinstance(item, AllocationPoint))
        )
    if isinstance(first, Mapping) and _looks_aggregated(first):
        records = decode_records(AggregatedAllocationRecord, items)
        return AggregatedAllocations(points=tuple(record.to_point() for record in records))
    return AllocationTimeseries(records=tuple(decode_records(AllocationRecord, items)))
