"""
Discogs Value Tracker — Domain value objects

Immutable pydantic models passed between the client, the store, the sync
orchestrator and the analytics. Nothing here touches the database or HTTP.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from discogs_tracker.config import DemandKind, SyncPhase, TrendDirection

_FROZEN = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Stored facts
# ---------------------------------------------------------------------------


class Release(BaseModel):
    """A single Discogs catalog entry, keyed by its Discogs id."""

    model_config = _FROZEN

    id: int
    title: str
    artist: str
    year: int | None = None
    format: str
    thumb_url: str = ""
    added_date: str | None = Field(default=None, description="Date added on Discogs (ISO string)")


class PriceObservation(BaseModel):
    """One timestamped marketplace snapshot for a release. Append-only."""

    model_config = _FROZEN

    release_id: int
    price: Decimal
    currency: str
    condition: str
    observed_at: datetime
    listing_count: int = 0
    wants_count: int = 0


class CollectionMembership(BaseModel):
    """An owned copy: unique per (release, folder, instance)."""

    model_config = _FROZEN

    release_id: int
    folder_id: int
    instance_id: int | None = None


class WantlistEntry(BaseModel):
    """One wantlist row per release; re-adding overwrites."""

    model_config = _FROZEN

    release_id: int
    rating: int | None = None
    notes: str | None = None
    added_date: str | None = None


class Folder(BaseModel):
    """A user-defined collection folder."""

    model_config = _FROZEN

    id: int
    name: str
    count: int = 0


class MarketplaceStats(BaseModel):
    """Price fragment returned by a marketplace lookup (no timestamp yet)."""

    model_config = _FROZEN

    release_id: int
    price: Decimal
    currency: str
    condition: str
    listing_count: int
    wants_count: int = 0

    def to_observation(self, observed_at: datetime) -> PriceObservation:
        return PriceObservation(
            release_id=self.release_id,
            price=self.price,
            currency=self.currency,
            condition=self.condition,
            observed_at=observed_at,
            listing_count=self.listing_count,
            wants_count=self.wants_count,
        )


# ---------------------------------------------------------------------------
# Derived query results
# ---------------------------------------------------------------------------


class Trend(BaseModel):
    """Comparison of the two most recent observations of a release."""

    model_config = _FROZEN

    release: Release
    latest: PriceObservation
    previous: PriceObservation
    change: Decimal
    percent_change: Decimal
    direction: TrendDirection


class DemandCandidate(BaseModel):
    """A release ranked by community demand against marketplace supply."""

    model_config = _FROZEN

    release: Release
    price: Decimal
    currency: str
    wants_count: int
    listing_count: int
    sell_score: Decimal
    demand_rank: int | None = None
    sell_rank: int | None = None


class FormatSubtotal(BaseModel):
    model_config = _FROZEN

    format: str
    count: int
    value: Decimal


class ValuedRelease(BaseModel):
    model_config = _FROZEN

    release: Release
    price: Decimal
    currency: str


class CollectionValueSummary(BaseModel):
    """Latest-known value of every owned release."""

    model_config = _FROZEN

    total_records: int
    priced_count: int
    unpriced_release_ids: list[int] = Field(default_factory=list)
    total_value: Decimal
    average_value: Decimal
    median_value: Decimal
    by_format: list[FormatSubtotal] | None = None
    top: list[ValuedRelease] | None = None


class PriceHistorySummary(BaseModel):
    """Observations of one release over a trailing window."""

    model_config = _FROZEN

    release: Release
    window_days: int
    observations: list[PriceObservation]
    change: Decimal | None = None
    percent_change: Decimal | None = None


class FolderSummary(BaseModel):
    model_config = _FROZEN

    folder_id: int
    name: str
    item_count: int


class DemandReport(BaseModel):
    """Demand analysis result plus the collection summary shown alongside it."""

    model_config = _FROZEN

    kind: DemandKind
    min_wants: int
    candidates: list[DemandCandidate]
    folders: list[FolderSummary] = Field(default_factory=list)
    wantlist_count: int = 0


class SyncReport(BaseModel):
    """Counts reported when a sync run reaches Done (or stops early)."""

    phase: SyncPhase
    releases_seen: int = 0
    collection_items: int = 0
    wantlist_items: int = 0
    observations_appended: int = 0
    lookups_skipped: int = 0
    lookups_no_price: int = 0
    lookups_failed: int = 0
    pricing_failures: dict[int, str] = Field(default_factory=dict)
    fetch_failures: dict[str, str] = Field(default_factory=dict)
    cancelled: bool = False
    failure_reason: str | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None
