"""Tests for engine/value.py — collection valuation."""

from __future__ import annotations

from decimal import Decimal

import pytest

from conftest import hours_ago, make_observation, make_release
from discogs_tracker.engine.value import collection_value


async def _own(store, release_id: int, price: str | None = None, **release_fields) -> None:
    await store.upsert_release(make_release(release_id, **release_fields))
    await store.upsert_collection_membership(release_id, 0, release_id)
    if price is not None:
        await store.append_observation(make_observation(release_id, price))


@pytest.mark.asyncio
async def test_priced_and_unpriced_release(store) -> None:
    """A (Vinyl, 25.00) plus B (unpriced): total 25.00, B flagged."""
    await _own(store, 1, "25.00", format="Vinyl")
    await _own(store, 2, None, format="CD")

    summary = await collection_value(store, by_format=True)

    assert summary.total_records == 2
    assert summary.priced_count == 1
    assert summary.total_value == Decimal("25.00")
    assert summary.unpriced_release_ids == [2]
    subtotals = {s.format: (s.count, s.value) for s in summary.by_format}
    assert subtotals["Vinyl"] == (1, Decimal("25.00"))
    assert subtotals["CD"] == (1, Decimal("0"))


@pytest.mark.asyncio
async def test_uses_latest_price_only(store) -> None:
    await _own(store, 1)
    await store.append_observation(make_observation(1, "10.00", hours_ago(48)))
    await store.append_observation(make_observation(1, "14.00", hours_ago(1)))

    summary = await collection_value(store)

    assert summary.total_value == Decimal("14.00")
    assert summary.by_format is None
    assert summary.top is None


@pytest.mark.asyncio
async def test_average_and_median(store) -> None:
    for release_id, price in ((1, "10.00"), (2, "20.00"), (3, "60.00"), (4, "30.00")):
        await _own(store, release_id, price)

    summary = await collection_value(store)

    assert summary.total_value == Decimal("120.00")
    assert summary.average_value == Decimal("30")
    assert summary.median_value == Decimal("25")


@pytest.mark.asyncio
async def test_top_n_ties_by_release_id(store) -> None:
    await _own(store, 3, "50.00")
    await _own(store, 1, "50.00")
    await _own(store, 2, "70.00")

    summary = await collection_value(store, top_n=2)

    assert [v.release.id for v in summary.top] == [2, 1]


@pytest.mark.asyncio
async def test_wanted_only_releases_are_not_valued(store) -> None:
    await store.upsert_release(make_release(9))
    await store.upsert_wantlist_entry(9)
    await store.append_observation(make_observation(9, "99.00"))

    summary = await collection_value(store)

    assert summary.total_records == 0
    assert summary.total_value == Decimal("0")
