"""
Discogs Value Tracker — Demand & Sell-Candidate Scoring

Ranks releases by community demand (wants) against marketplace supply
(listings), using each release's latest observation.

    demand: wants_count desc, any release with history
    sell:   sell_score = wants / max(listings, 1) desc, owned releases only
    all:    demand rank for every candidate, sell rank for owned ones,
            ordered by demand rank

Ties always fall back to release id asc. An optional price-change floor
compares the two newest observations; a release with a single observation
counts as 0% change.
"""

from __future__ import annotations

from decimal import Decimal

import structlog

from discogs_tracker.config import DemandKind, settings
from discogs_tracker.schemas import DemandCandidate, DemandReport, PriceObservation, Release
from discogs_tracker.store import PriceStore

logger = structlog.get_logger(__name__)

_ZERO = Decimal("0")


def sell_score(wants_count: int, listing_count: int) -> Decimal:
    return Decimal(wants_count) / Decimal(max(listing_count, 1))


def recent_change_percent(history: list[PriceObservation]) -> Decimal:
    """Percent change between the newest two observations (newest first)."""
    if len(history) < 2 or history[1].price == 0:
        return _ZERO
    return (history[0].price - history[1].price) / history[1].price * Decimal("100")


def _candidate(release: Release, latest: PriceObservation) -> DemandCandidate:
    return DemandCandidate(
        release=release,
        price=latest.price,
        currency=latest.currency,
        wants_count=latest.wants_count,
        listing_count=latest.listing_count,
        sell_score=sell_score(latest.wants_count, latest.listing_count),
    )


def rank_candidates(
    candidates: list[DemandCandidate],
    kind: DemandKind,
    owned: set[int] | None = None,
) -> list[DemandCandidate]:
    """
    Order and annotate candidates for the requested ranking.

    Sell ranks are only given to releases in `owned` (all candidates when
    owned is None); under SELL the others are dropped.
    """
    sellable = [c for c in candidates if owned is None or c.release.id in owned]
    by_demand = sorted(candidates, key=lambda c: (-c.wants_count, c.release.id))
    by_sell = sorted(sellable, key=lambda c: (-c.sell_score, c.release.id))

    if kind is DemandKind.DEMAND:
        return [c.model_copy(update={"demand_rank": i}) for i, c in enumerate(by_demand, 1)]
    if kind is DemandKind.SELL:
        return [c.model_copy(update={"sell_rank": i}) for i, c in enumerate(by_sell, 1)]

    sell_ranks = {c.release.id: i for i, c in enumerate(by_sell, 1)}
    return [
        c.model_copy(update={"demand_rank": i, "sell_rank": sell_ranks.get(c.release.id)})
        for i, c in enumerate(by_demand, 1)
    ]


async def compute_demand(
    store: PriceStore,
    min_wants: int | None = None,
    kind: DemandKind = DemandKind.DEMAND,
    limit: int | None = None,
    owned_only: bool = False,
    min_price_change: float | Decimal | None = None,
) -> list[DemandCandidate]:
    """
    Candidates whose latest wants_count is at least min_wants.

    Args:
        store: Price store to read from.
        min_wants: Defaults to settings.DEFAULT_MIN_WANTS.
        kind: Which ranking to return. SELL only ranks owned releases.
        limit: Keep only the first N after ranking.
        owned_only: Restrict every ranking to releases in the collection.
        min_price_change: Keep releases whose last price change (percent)
            is at least this much.
    """
    if min_wants is None:
        min_wants = settings.DEFAULT_MIN_WANTS
    change_floor = Decimal(str(min_price_change)) if min_price_change is not None else None

    history = await store.recent_observations(per_release=2)
    releases = {r.id: r for r in await store.list_releases()}
    owned = await store.owned_release_ids()

    candidates = [
        _candidate(releases[release_id], observations[0])
        for release_id, observations in history.items()
        if release_id in releases
        and observations[0].wants_count >= min_wants
        and (not owned_only or release_id in owned)
        and (change_floor is None or recent_change_percent(observations) >= change_floor)
    ]
    ranked = rank_candidates(candidates, kind, owned)
    if limit is not None:
        ranked = ranked[:limit]

    logger.info(
        "demand_computed",
        kind=kind.value,
        min_wants=min_wants,
        min_price_change=str(change_floor) if change_floor is not None else None,
        candidates=len(candidates),
        returned=len(ranked),
    )
    return ranked


async def demand_report(
    store: PriceStore,
    min_wants: int | None = None,
    kind: DemandKind = DemandKind.DEMAND,
    limit: int | None = None,
    min_price_change: float | Decimal | None = None,
) -> DemandReport:
    """Demand ranking plus the folder breakdown and wantlist size shown with it."""
    if min_wants is None:
        min_wants = settings.DEFAULT_MIN_WANTS
    candidates = await compute_demand(
        store,
        min_wants=min_wants,
        kind=kind,
        limit=limit,
        min_price_change=min_price_change,
    )
    return DemandReport(
        kind=kind,
        min_wants=min_wants,
        candidates=candidates,
        folders=await store.folder_summary(),
        wantlist_count=await store.wantlist_count(),
    )
