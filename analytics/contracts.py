"""Canonical chart series contracts.

Every transformer in this package returns these types, whatever shape the
analytics service used for the raw records.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

AllocationBucket = Literal["btc", "eth", "stablecoin", "defi", "altcoin"]

ALLOCATION_BUCKETS: tuple[AllocationBucket, ...] = (
    "btc",
    "eth",
    "stablecoin",
    "defi",
    "altcoin",
)


@dataclass(frozen=True)
class SourceValue:
    """Value of one protocol or category entry on a given day.

    Attributes:
        name: Protocol or category name
        value: Value in USD
        pnl: Profit and loss in USD
        source_type: Holding source ("defi", "wallet", ...), if reported
        category: Asset category of a protocol entry, if reported
    """

    name: str
    value: float
    pnl: float = 0.0
    source_type: str | None = None
    category: str | None = None


@dataclass(frozen=True)
class TimeSeriesPoint:
    """One daily portfolio valuation.

    Attributes:
        date: ISO date string (YYYY-MM-DD)
        value: Total portfolio value in USD
        benchmark: Benchmark value on the same scale, if any
        change: Day-over-day change in percent
        protocols: Per-protocol breakdown
        categories: Per-category breakdown
    """

    date: str
    value: float
    benchmark: float | None = None
    change: float = 0.0
    protocols: tuple[SourceValue, ...] = ()
    categories: tuple[SourceValue, ...] = ()


@dataclass(frozen=True)
class AllocationPoint:
    """Share of each asset bucket on one date, in percent."""

    date: str
    btc: float = 0.0
    eth: float = 0.0
    stablecoin: float = 0.0
    defi: float = 0.0
    altcoin: float = 0.0

    def __post_init__(self) -> None:
        """Validate that no bucket is negative."""
        for bucket in ALLOCATION_BUCKETS:
            share = getattr(self, bucket)
            if share < 0:
                raise ValueError(f"{bucket} share must be non-negative, got {share}")

    @property
    def total(self) -> float:
        return self.btc + self.eth + self.stablecoin + self.defi + self.altcoin

    def shares(self) -> dict[AllocationBucket, float]:
        """Bucket shares keyed by bucket name, in canonical order."""
        return {bucket: getattr(self, bucket) for bucket in ALLOCATION_BUCKETS}


@dataclass(frozen=True)
class AllocationSlice:
    """Pie-chart entry for one non-empty bucket."""

    category: AllocationBucket
    value: float


@dataclass(frozen=True)
class DrawdownPoint:
    """Decline from the running peak on one date, as a non-positive percentage."""

    date: str
    drawdown: float


@dataclass(frozen=True)
class StackedPoint:
    """Portfolio value split into DeFi and wallet holdings.

    Attributes:
        date: ISO date string
        value: Total portfolio value reported by the service
        benchmark: Benchmark value, if any
        defi_value: Value held in DeFi positions
        wallet_value: Value held directly in wallets
        stacked_total_value: defi_value + wallet_value after scaling
    """

    date: str
    value: float
    benchmark: float | None
    defi_value: float
    wallet_value: float
    stacked_total_value: float


@dataclass(frozen=True)
class SharpePoint:
    date: str
    sharpe: float


@dataclass(frozen=True)
class VolatilityPoint:
    date: str
    volatility: float


@dataclass(frozen=True)
class UnderwaterPoint:
    """Underwater depth reported by the service.

    Attributes:
        date: ISO date string
        underwater: Depth below the prior peak, as a non-positive percentage
        recovery: True when the service flags the date as a recovery
    """

    date: str
    underwater: float
    recovery: bool | None = None


@dataclass(frozen=True)
class RecoveryPoint:
    """Drawdown point annotated with its position in a drawdown cycle.

    Attributes:
        date: ISO date string
        drawdown: Drawdown percentage
        is_recovery_point: True on the first point back at the peak
        peak_date: Date of the peak the drawdown is measured from
        days_from_peak: Calendar days since that peak (None if dates are unparseable)
        recovery_duration_days: Length of the completed cycle, on recovery points
        recovery_depth: Deepest drawdown of the completed cycle, on recovery points
    """

    date: str
    drawdown: float
    is_recovery_point: bool = False
    peak_date: str | None = None
    days_from_peak: int | None = None
    recovery_duration_days: int | None = None
    recovery_depth: float | None = None


DrawdownStatus = Literal["Underwater", "At Peak"]


@dataclass(frozen=True)
class RecoverySummary:
    """Aggregate drawdown and recovery statistics of a series."""

    max_drawdown: float = 0.0
    total_recoveries: int = 0
    average_recovery_days: int | None = None
    current_drawdown: float = 0.0
    current_status: DrawdownStatus = "At Peak"
    latest_peak_date: str | None = None
    latest_recovery_duration_days: int | None = None


@dataclass(frozen=True)
class UnderwaterPeriod:
    """Contiguous stretch of dates below the prior peak.

    Attributes:
        start: First underwater date
        end: Last underwater date
        trough_date: Date of the deepest drawdown in the stretch
        depth: Deepest drawdown in the stretch (negative percentage)
        recovered: True when the series returned to its peak afterwards
        points: Number of underwater points
    """

    start: str
    end: str
    trough_date: str
    depth: float
    recovered: bool
    points: int = field(default=1)


@dataclass(frozen=True)
class ProtocolYield:
    """Yield one protocol position earned on a given day."""

    protocol: str
    chain: str = ""
    yield_usd: float = 0.0


@dataclass(frozen=True)
class DailyYieldPoint:
    """Yield earned across all positions on one day.

    Attributes:
        date: ISO date string
        total_yield: Yield of the day in USD (negative on a loss)
        cumulative_yield: Running total of the daily yields in USD
        protocol_count: Number of protocols contributing on the day
        protocols: Per-protocol breakdown, in the order reported
    """

    date: str
    total_yield: float
    cumulative_yield: float = 0.0
    protocol_count: int = 0
    protocols: tuple[ProtocolYield, ...] = ()

    @property
    def is_positive(self) -> bool:
        return self.total_yield >= 0
