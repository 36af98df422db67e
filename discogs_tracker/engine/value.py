"""
Discogs Value Tracker — Collection Valuation

Sums the latest known price of every owned release. A release with no
observation is unpriced: it contributes zero and is listed by id so
reports can flag it.
"""

from __future__ import annotations

from decimal import Decimal
from statistics import median

import structlog

from discogs_tracker.schemas import CollectionValueSummary, FormatSubtotal, ValuedRelease
from discogs_tracker.store import PriceStore

logger = structlog.get_logger(__name__)

_ZERO = Decimal("0")


async def collection_value(
    store: PriceStore,
    by_format: bool = False,
    top_n: int | None = None,
) -> CollectionValueSummary:
    """
    Value summary of the owned collection.

    Args:
        store: Price store to read from.
        by_format: Include per-format count and value subtotals.
        top_n: Include the N most valuable releases (ties by release id asc).
    """
    owned = await store.owned_releases()
    latest = await store.recent_observations(per_release=1)

    valued: list[ValuedRelease] = []
    unpriced: list[int] = []
    for release in owned:
        history = latest.get(release.id)
        if not history:
            unpriced.append(release.id)
            continue
        valued.append(
            ValuedRelease(release=release, price=history[0].price, currency=history[0].currency)
        )

    prices = [v.price for v in valued]
    total = sum(prices, _ZERO)
    average = total / len(prices) if prices else _ZERO
    # statistics.median keeps Decimal inputs as Decimal
    middle = Decimal(median(prices)) if prices else _ZERO

    subtotals: list[FormatSubtotal] | None = None
    if by_format:
        counts: dict[str, int] = {}
        values: dict[str, Decimal] = {}
        for release in owned:
            counts[release.format] = counts.get(release.format, 0) + 1
            values.setdefault(release.format, _ZERO)
        for v in valued:
            values[v.release.format] += v.price
        subtotals = sorted(
            (FormatSubtotal(format=fmt, count=counts[fmt], value=values[fmt]) for fmt in counts),
            key=lambda s: (-s.value, s.format),
        )

    top: list[ValuedRelease] | None = None
    if top_n is not None:
        top = sorted(valued, key=lambda v: (-v.price, v.release.id))[:top_n]

    logger.info(
        "collection_value_computed",
        total_records=len(owned),
        priced=len(valued),
        unpriced=len(unpriced),
        total_value=str(total),
    )
    return CollectionValueSummary(
        total_records=len(owned),
        priced_count=len(valued),
        unpriced_release_ids=unpriced,
        total_value=total,
        average_value=average,
        median_value=middle,
        by_format=subtotals,
        top=top,
    )
