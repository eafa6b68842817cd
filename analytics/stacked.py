"""DeFi versus wallet composition of the portfolio value."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from analytics.contracts import SourceValue, StackedPoint, TimeSeriesPoint
from charting.numeric import coerce_float, ensure_non_negative

logger = logging.getLogger(__name__)

DEFAULT_FALLBACK_RATIO = 0.65


def _source_totals(entries: Iterable[SourceValue]) -> tuple[float, float]:
    """Sum entry values per source type; entries of other types are ignored."""
    defi = 0.0
    wallet = 0.0
    for entry in entries:
        source = entry.source_type.lower() if entry.source_type else None
        value = ensure_non_negative(coerce_float(entry.value))
        if source == "defi":
            defi += value
        elif source == "wallet":
            wallet += value
    return defi, wallet


def _scale_to_total(
    total_value: float,
    defi: float,
    wallet: float,
    fallback_ratio: float,
) -> tuple[float, float, float]:
    stacked_total = defi + wallet

    # Scale the components so they add up to the reported total
    if stacked_total > 0 and total_value > 0:
        scale = total_value / stacked_total
        defi *= scale
        wallet *= scale
        stacked_total = defi + wallet

    # No source breakdown: split deterministically
    if stacked_total == 0 and total_value > 0:
        defi = total_value * fallback_ratio
        wallet = ensure_non_negative(total_value - defi)
        stacked_total = defi + wallet

    if stacked_total == 0:
        stacked_total = ensure_non_negative(total_value)

    return defi, wallet, stacked_total


def build_stacked_portfolio_data(
    history: Sequence[TimeSeriesPoint],
    fallback_ratio: float = DEFAULT_FALLBACK_RATIO,
) -> list[StackedPoint]:
    """Split each day's value into DeFi and wallet holdings.

    Category entries are used first; protocol entries only when no category
    carries a usable source type. The components are scaled to the day's
    total, and a day without any source breakdown is split by
    ``fallback_ratio`` (DeFi share).

    Args:
        history: Portfolio valuations with their protocol/category breakdown
        fallback_ratio: DeFi share used when no source data exists (0..1)

    Returns:
        One stacked point per input point, in input order
    """
    if not 0.0 <= fallback_ratio <= 1.0:
        raise ValueError(f"fallback_ratio must be in [0, 1], got {fallback_ratio}")

    stacked: list[StackedPoint] = []
    fallback_days = 0

    for point in history:
        defi, wallet = _source_totals(point.categories)
        if defi == 0 and wallet == 0:
            defi, wallet = _source_totals(point.protocols)

        total_value = coerce_float(point.value)
        if defi == 0 and wallet == 0 and total_value > 0:
            fallback_days += 1

        defi, wallet, stacked_total = _scale_to_total(total_value, defi, wallet, fallback_ratio)
        stacked.append(
            StackedPoint(
                date=point.date,
                value=total_value,
                benchmark=point.benchmark,
                defi_value=defi,
                wallet_value=wallet,
                stacked_total_value=stacked_total,
            )
        )

    if fallback_days:
        logger.debug(
            "no source breakdown on %d of %d days, used fallback ratio %.2f",
            fallback_days,
            len(stacked),
            fallback_ratio,
        )
    return stacked


def stacked_total_value(point: StackedPoint) -> float:
    """Total plotted for ``point``: stacked total, else component sum, else raw value."""
    if point.stacked_total_value > 0:
        return point.stacked_total_value
    fallback = point.defi_value + point.wallet_value
    return fallback if fallback > 0 else point.value
