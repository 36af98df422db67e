"""
Discogs Value Tracker — Price Trend Classification

Compares the two most recent observations of every release.

Algorithm:
    1. Take the newest two observations per release (ties by insertion id).
    2. Skip releases with fewer than two, or whose previous price is zero.
    3. percent = (latest - previous) / previous * 100
    4. Direction by sign: UP > 0, DOWN < 0, STABLE == 0.
    5. Keep when |percent| >= min_percent_change; drop DOWN unless requested.
    6. Order by percent desc, then release id asc.
"""

from __future__ import annotations

from decimal import Decimal

import structlog

from discogs_tracker.config import TrendDirection, settings
from discogs_tracker.schemas import PriceObservation, Release, Trend
from discogs_tracker.store import PriceStore

logger = structlog.get_logger(__name__)

_HUNDRED = Decimal("100")


def classify(percent_change: Decimal) -> TrendDirection:
    if percent_change > 0:
        return TrendDirection.UP
    if percent_change < 0:
        return TrendDirection.DOWN
    return TrendDirection.STABLE


def build_trend(
    release: Release,
    latest: PriceObservation,
    previous: PriceObservation,
) -> Trend | None:
    """
    Trend between two observations, or None when previous price is zero.

    Pure function: no filtering by threshold or direction happens here.
    """
    if previous.price == 0:
        return None

    change = latest.price - previous.price
    percent_change = change / previous.price * _HUNDRED
    return Trend(
        release=release,
        latest=latest,
        previous=previous,
        change=change,
        percent_change=percent_change,
        direction=classify(percent_change),
    )


async def compute_trends(
    store: PriceStore,
    min_percent_change: float | Decimal | None = None,
    include_decreases: bool = False,
    format_filter: str | None = None,
) -> list[Trend]:
    """
    Releases whose price moved at least min_percent_change between their
    last two observations.

    Args:
        store: Price store to read from.
        min_percent_change: Threshold on |percent|; defaults to
            settings.MIN_PRICE_CHANGE_PERCENT.
        include_decreases: Keep DOWN trends as well as UP/STABLE.
        format_filter: Case-insensitive exact match on the release format.

    Returns:
        Trends ordered by percent change desc, then release id asc.
    """
    if min_percent_change is None:
        min_percent_change = settings.MIN_PRICE_CHANGE_PERCENT
    threshold = Decimal(str(min_percent_change))
    wanted_format = format_filter.lower() if format_filter else None

    history = await store.recent_observations(per_release=2)
    releases = {r.id: r for r in await store.list_releases()}

    trends: list[Trend] = []
    skipped_zero = 0
    for release_id, observations in history.items():
        if len(observations) < 2:
            continue
        release = releases.get(release_id)
        if release is None:
            continue
        if wanted_format and release.format.lower() != wanted_format:
            continue

        trend = build_trend(release, observations[0], observations[1])
        if trend is None:
            skipped_zero += 1
            continue
        if abs(trend.percent_change) < threshold:
            continue
        if trend.direction is TrendDirection.DOWN and not include_decreases:
            continue
        trends.append(trend)

    trends.sort(key=lambda t: (-t.percent_change, t.release.id))

    logger.info(
        "trends_computed",
        releases_with_history=len(history),
        trends=len(trends),
        skipped_zero_price=skipped_zero,
        threshold=str(threshold),
        include_decreases=include_decreases,
    )
    return trends
