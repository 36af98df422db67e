"""
Discogs Value Tracker — Shared pytest Fixtures

- In-memory SQLite price store (aiosqlite + StaticPool, one DB per test)
- Release / observation factories
- An in-process fake catalog client for sync tests
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.pool import StaticPool

from discogs_tracker.schemas import (
    CollectionMembership,
    Folder,
    MarketplaceStats,
    PriceObservation,
    Release,
    WantlistEntry,
)
from discogs_tracker.store import PriceStore, create_db_engine
from discogs_tracker.utils.timeutil import utc_now


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def make_release(release_id: int, **overrides) -> Release:
    fields = {
        "id": release_id,
        "title": f"Title {release_id}",
        "artist": f"Artist {release_id}",
        "year": 1990,
        "format": "Vinyl",
    }
    fields.update(overrides)
    return Release(**fields)


def make_observation(
    release_id: int,
    price: str,
    observed_at: datetime | None = None,
    wants_count: int = 0,
    listing_count: int = 1,
) -> PriceObservation:
    return PriceObservation(
        release_id=release_id,
        price=Decimal(price),
        currency="USD",
        condition="Unknown",
        observed_at=observed_at or utc_now(),
        listing_count=listing_count,
        wants_count=wants_count,
    )


def hours_ago(n: float) -> datetime:
    return utc_now() - timedelta(hours=n)


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def store() -> AsyncGenerator[PriceStore, None]:
    """Fresh in-memory store with the schema created."""
    engine = create_db_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    price_store = PriceStore(engine)
    await price_store.init_schema()
    yield price_store
    await price_store.close()


# ---------------------------------------------------------------------------
# Fake catalog client
# ---------------------------------------------------------------------------


class FakeCatalog:
    """
    In-process stand-in for DiscogsClient.

    prices: release_id -> price string, None (nothing for sale) or an
    Exception instance to raise from the lookup.
    """

    def __init__(
        self,
        collection: list[Release] | None = None,
        wantlist: list[Release] | None = None,
        prices: dict[int, object] | None = None,
        lookup_delay: float = 0.0,
    ):
        self.collection = collection or []
        self.wantlist = wantlist or []
        self.prices = prices or {}
        self.lookup_delay = lookup_delay
        self.folders = [Folder(id=0, name="All", count=len(self.collection))]
        self.fail_collection: Exception | None = None
        self.fail_wantlist: Exception | None = None
        self.lookups: list[int] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.on_lookup = None

    async def list_folders(self) -> list[Folder]:
        return list(self.folders)

    async def list_collection(self, folder_id: int = 0) -> list[tuple[Release, CollectionMembership]]:
        if self.fail_collection is not None:
            raise self.fail_collection
        return [
            (r, CollectionMembership(release_id=r.id, folder_id=1, instance_id=r.id * 10))
            for r in self.collection
        ]

    async def list_wantlist(self) -> list[tuple[Release, WantlistEntry]]:
        if self.fail_wantlist is not None:
            raise self.fail_wantlist
        return [(r, WantlistEntry(release_id=r.id)) for r in self.wantlist]

    async def fetch_marketplace_stats(self, release_id: int) -> MarketplaceStats | None:
        self.lookups.append(release_id)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.lookup_delay)
            if self.on_lookup is not None:
                self.on_lookup(release_id)
            outcome = self.prices.get(release_id)
            if isinstance(outcome, Exception):
                raise outcome
            if outcome is None:
                return None
            return MarketplaceStats(
                release_id=release_id,
                price=Decimal(str(outcome)),
                currency="USD",
                condition="Unknown",
                listing_count=3,
                wants_count=100,
            )
        finally:
            self.in_flight -= 1


@pytest.fixture
def fake_catalog() -> FakeCatalog:
    return FakeCatalog(
        collection=[make_release(1), make_release(2), make_release(3)],
        wantlist=[make_release(3), make_release(4)],
        prices={1: "10.00", 2: "20.00", 3: "30.00", 4: "40.00"},
    )
