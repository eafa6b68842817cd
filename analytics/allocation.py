"""Asset allocation history: bucketing, share computation and normalization."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Sequence
from datetime import date, datetime

from analytics.contracts import (
    ALLOCATION_BUCKETS,
    AllocationBucket,
    AllocationPoint,
    AllocationSlice,
)
from analytics.payloads import (
    AggregatedAllocations,
    AllocationPayload,
    AllocationRecord,
    AllocationTimeseries,
)
from charting.numeric import normalize_to_percentages

logger = logging.getLogger(__name__)

# (substrings, bucket) in priority order; the first rule that matches wins
_BUCKET_RULES: tuple[tuple[tuple[str, ...], AllocationBucket], ...] = (
    (("btc", "bitcoin"), "btc"),
    (("eth", "ethereum"), "eth"),
    (("stable",), "stablecoin"),
    (("defi",), "defi"),
)


def classify_category(name: str | None) -> AllocationBucket:
    """Map a category or protocol name onto an allocation bucket.

    Matching is a case-insensitive substring test, so ``"Wrapped BTC"`` is
    BTC and ``"stETH"`` is ETH. Names matching no rule are altcoins.
    """
    key = (name or "").lower()
    for needles, bucket in _BUCKET_RULES:
        if any(needle in key for needle in needles):
            return bucket
    return "altcoin"


def compute_share(record: AllocationRecord) -> float:
    """Share of the portfolio held by ``record``, in percent.

    The reported percentage wins when it is non-zero; otherwise the share is
    derived from the category value and the portfolio total.
    """
    if math.isfinite(record.percentage) and record.percentage != 0:
        return record.percentage
    if record.total_value > 0:
        return record.category_value / record.total_value * 100.0
    return 0.0


def _parse_date(text: str) -> date | None:
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def _calendar_key(text: str) -> str:
    parsed = _parse_date(text)
    return parsed.isoformat() if parsed is not None else text


def _sort_key(key: str) -> tuple[bool, str]:
    # unparseable dates go last, in text order
    return (_parse_date(key) is None, key)


def build_allocation_history(records: Iterable[AllocationRecord]) -> list[AllocationPoint]:
    """Aggregate per-category allocation records into daily bucket shares.

    Args:
        records: Decoded allocation records, in any order

    Returns:
        One point per calendar date, ascending. Each point sums to 100 when
        at least one positive share was seen that day; dates whose records
        were all dropped are kept with every bucket at 0.
    """
    by_date: dict[str, dict[str, float]] = {}
    dropped = 0

    for record in records:
        key = _calendar_key(record.date)
        # create the day before filtering so it survives even if every record is dropped
        day = by_date.setdefault(key, {bucket: 0.0 for bucket in ALLOCATION_BUCKETS})

        share = compute_share(record)
        if not math.isfinite(share) or share <= 0:
            # negative shares are debt positions
            dropped += 1
            continue

        day[classify_category(record.category)] += share

    if dropped:
        logger.debug("skipped %d allocation records with non-positive share", dropped)

    history: list[AllocationPoint] = []
    for key in sorted(by_date, key=_sort_key):
        shares = normalize_to_percentages(by_date[key])
        history.append(AllocationPoint(date=key, **shares))
    return history


def resolve_allocation_history(payload: AllocationPayload) -> list[AllocationPoint]:
    """Turn a decoded allocation payload into the allocation history.

    Aggregated payloads pass through (sorted by date); timeseries payloads
    are bucketed and normalized.
    """
    if isinstance(payload, AggregatedAllocations):
        return sorted(payload.points, key=lambda point: _sort_key(point.date))
    if isinstance(payload, AllocationTimeseries):
        return build_allocation_history(payload.records)
    raise TypeError(f"Unsupported allocation payload: {type(payload).__name__}")


def current_allocation(history: Sequence[AllocationPoint]) -> AllocationPoint | None:
    """Most recent allocation point, or None for an empty history."""
    return history[-1] if history else None


def allocation_slices(point: AllocationPoint | None) -> list[AllocationSlice]:
    """Non-empty buckets of ``point`` as pie slices, largest first.

    Ties keep the canonical bucket order.
    """
    if point is None:
        return []
    slices = [
        AllocationSlice(category=bucket, value=share)
        for bucket, share in point.shares().items()
        if share > 0
    ]
    return sorted(slices, key=lambda entry: -entry.value)
