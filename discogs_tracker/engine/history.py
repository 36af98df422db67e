"""
Discogs Value Tracker — Price History Summary

Observations of one release over a trailing window, oldest first, with
the first-to-last change.
"""

from __future__ import annotations

from decimal import Decimal

import structlog

from discogs_tracker.config import settings
from discogs_tracker.errors import NotFoundError
from discogs_tracker.schemas import PriceHistorySummary
from discogs_tracker.store import PriceStore

logger = structlog.get_logger(__name__)


async def price_history(
    store: PriceStore,
    release_id: int,
    days: int | None = None,
) -> PriceHistorySummary:
    """
    Raises:
        NotFoundError: If the release is not in the store.
    """
    if days is None:
        days = settings.HISTORY_WINDOW_DAYS

    release = await store.get_release(release_id)
    if release is None:
        logger.warning("price_history_unknown_release", release_id=release_id)
        raise NotFoundError(f"Release {release_id} is not tracked")

    observations = await store.observations_since(release_id, days)

    change: Decimal | None = None
    percent_change: Decimal | None = None
    if len(observations) >= 2:
        first, last = observations[0].price, observations[-1].price
        change = last - first
        if first != 0:
            percent_change = change / first * Decimal("100")

    logger.debug(
        "price_history_loaded",
        release_id=release_id,
        window_days=days,
        points=len(observations),
    )
    return PriceHistorySummary(
        release=release,
        window_days=days,
        observations=observations,
        change=change,
        percent_change=percent_change,
    )
