"""
Tests for the Discogs API client (discogs_tracker/pipeline/discogs.py).

Covers:
- Auth headers and credential handling
- Sequential, throttled pagination of collection and wantlist
- Marketplace stats: priced, nothing for sale, want-count fallback
- Error mapping: 401/404/429/500, transport failures, bad payloads
- Pure mapping of raw items to domain objects
"""

from __future__ import annotations

import time
from decimal import Decimal

import httpx
import pytest
import respx

from discogs_tracker.config import Settings, get_discogs_credentials
from discogs_tracker.errors import (
    AuthError,
    CatalogError,
    DecodeError,
    NotFoundError,
    RateLimitError,
    TransportError,
)
from discogs_tracker.pipeline.discogs import (
    UNKNOWN_ARTIST,
    UNKNOWN_FORMAT,
    CollectionItemData,
    DiscogsClient,
    WantItemData,
    entry_from_want,
    membership_from_collection_item,
    release_from_collection_item,
)

BASE_URL = "https://api.discogs.com"
USERNAME = "digger"
TOKEN = "secret-token"


def _client(page_delay: float = 0.0) -> DiscogsClient:
    return DiscogsClient(username=USERNAME, token=TOKEN, base_url=BASE_URL, page_delay=page_delay)


def _basic(release_id: int, **overrides) -> dict:
    basic = {
        "id": release_id,
        "title": f"Title {release_id}",
        "year": 1977,
        "thumb": f"https://img.example/{release_id}.jpg",
        "artists": [{"id": 1, "name": "Kraftwerk"}, {"id": 2, "name": "Other"}],
        "formats": [{"name": "Vinyl", "qty": "1"}, {"name": "CD"}],
    }
    basic.update(overrides)
    return basic


def _collection_page(page: int, pages: int, ids: list[int]) -> dict:
    return {
        "pagination": {"page": page, "pages": pages, "per_page": 100, "items": len(ids) * pages},
        "releases": [
            {
                "id": rid,
                "instance_id": rid * 10,
                "folder_id": 1,
                "date_added": "2024-01-02T03:04:05-08:00",
                "basic_information": _basic(rid),
            }
            for rid in ids
        ],
    }


# ---------------------------------------------------------------------------
# Test 1: Credentials and headers
# ---------------------------------------------------------------------------


def test_missing_credentials_raise_auth_error() -> None:
    """The credential provider refuses empty settings."""
    with pytest.raises(AuthError):
        get_discogs_credentials(Settings(DISCOGS_USERNAME="", DISCOGS_TOKEN=""))


def test_credentials_returned_when_configured() -> None:
    config = Settings(DISCOGS_USERNAME="digger", DISCOGS_TOKEN="abc")
    assert get_discogs_credentials(config) == ("digger", "abc")


@pytest.mark.asyncio
async def test_requests_carry_token_and_user_agent() -> None:
    with respx.mock(base_url=BASE_URL) as mock:
        route = mock.get(f"/users/{USERNAME}/collection/folders").mock(
            return_value=httpx.Response(200, json={"folders": [{"id": 0, "name": "All", "count": 3}]})
        )
        async with _client() as client:
            folders = await client.list_folders()

    request = route.calls.last.request
    assert request.headers["Authorization"] == f"Discogs token={TOKEN}"
    assert request.headers["User-Agent"] == "DiscogsCollectionTracker/1.0"
    assert [(f.id, f.name, f.count) for f in folders] == [(0, "All", 3)]


# ---------------------------------------------------------------------------
# Test 2: Pagination
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_collection_three_pages_three_requests_with_delay() -> None:
    """pages=3 yields exactly three sequential requests spaced by the page delay."""
    delay = 0.05
    request_times: list[float] = []
    pages = {1: [1, 2], 2: [3, 4], 3: [5]}

    def respond(request: httpx.Request) -> httpx.Response:
        request_times.append(time.monotonic())
        page = int(request.url.params["page"])
        assert request.url.params["per_page"] == "100"
        return httpx.Response(200, json=_collection_page(page, 3, pages[page]))

    with respx.mock(base_url=BASE_URL) as mock:
        route = mock.get(f"/users/{USERNAME}/collection/folders/0/releases").mock(side_effect=respond)
        async with _client(page_delay=delay) as client:
            items = await client.list_collection()

    assert route.call_count == 3
    assert [release.id for release, _ in items] == [1, 2, 3, 4, 5]
    gaps = [b - a for a, b in zip(request_times, request_times[1:])]
    # small tolerance for monotonic clock granularity
    assert all(gap >= delay * 0.9 for gap in gaps)


@pytest.mark.asyncio
async def test_single_page_makes_one_request() -> None:
    with respx.mock(base_url=BASE_URL) as mock:
        route = mock.get(f"/users/{USERNAME}/wants").mock(
            return_value=httpx.Response(
                200,
                json={
                    "pagination": {"page": 1, "pages": 1, "per_page": 100, "items": 1},
                    "wants": [
                        {"id": 9, "rating": 3, "notes": "", "date_added": "2024-05-01", "basic_information": _basic(9)}
                    ],
                },
            )
        )
        async with _client() as client:
            wants = await client.list_wantlist()

    assert route.call_count == 1
    release, entry = wants[0]
    assert release.id == 9
    assert entry.rating == 3
    assert entry.notes is None


@pytest.mark.asyncio
async def test_empty_page_stops_pagination() -> None:
    """A page with no items ends the walk even if more pages are reported."""
    with respx.mock(base_url=BASE_URL) as mock:
        route = mock.get(f"/users/{USERNAME}/collection/folders/0/releases").mock(
            return_value=httpx.Response(200, json=_collection_page(1, 5, []))
        )
        async with _client() as client:
            items = await client.list_collection()

    assert route.call_count == 1
    assert items == []


@pytest.mark.asyncio
async def test_failed_page_raises_without_partial_result() -> None:
    def respond(request: httpx.Request) -> httpx.Response:
        page = int(request.url.params["page"])
        if page == 2:
            return httpx.Response(500, text="upstream down")
        return httpx.Response(200, json=_collection_page(page, 3, [page]))

    with respx.mock(base_url=BASE_URL) as mock:
        mock.get(f"/users/{USERNAME}/collection/folders/0/releases").mock(side_effect=respond)
        async with _client() as client:
            with pytest.raises(CatalogError) as exc_info:
                await client.list_collection()

    assert exc_info.value.status_code == 500
    assert exc_info.value.body == "upstream down"


# ---------------------------------------------------------------------------
# Test 3: Marketplace stats
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_marketplace_stats_priced() -> None:
    with respx.mock(base_url=BASE_URL) as mock:
        mock.get("/marketplace/stats/111").mock(
            return_value=httpx.Response(
                200,
                json={"lowest_price": {"value": 12.3, "currency": "EUR"}, "num_for_sale": 4},
            )
        )
        mock.get("/releases/111").mock(
            return_value=httpx.Response(200, json={"id": 111, "community": {"want": 250, "have": 900}})
        )
        async with _client() as client:
            stats = await client.fetch_marketplace_stats(111)

    assert stats.price == Decimal("12.3")
    assert stats.currency == "EUR"
    assert stats.listing_count == 4
    assert stats.wants_count == 250
    assert stats.condition == "Unknown"


@pytest.mark.asyncio
async def test_marketplace_stats_nothing_for_sale_is_none() -> None:
    """num_for_sale == 0 means no price, even when lowest_price is present."""
    with respx.mock(base_url=BASE_URL, assert_all_called=False) as mock:
        mock.get("/marketplace/stats/5").mock(
            return_value=httpx.Response(
                200,
                json={"lowest_price": {"value": 9.99, "currency": "USD"}, "num_for_sale": 0},
            )
        )
        release_route = mock.get("/releases/5")
        async with _client() as client:
            stats = await client.fetch_marketplace_stats(5)

    assert stats is None
    assert not release_route.called


@pytest.mark.asyncio
async def test_marketplace_stats_missing_lowest_price_is_none() -> None:
    with respx.mock(base_url=BASE_URL) as mock:
        mock.get("/marketplace/stats/6").mock(
            return_value=httpx.Response(200, json={"lowest_price": None, "num_for_sale": 3})
        )
        async with _client() as client:
            assert await client.fetch_marketplace_stats(6) is None


@pytest.mark.asyncio
@pytest.mark.parametrize("num_for_sale", [0, 3])
async def test_marketplace_stats_null_price_value_is_none(num_for_sale: int) -> None:
    """A lowest_price block whose value is null means no price, not a bad payload."""
    with respx.mock(base_url=BASE_URL) as mock:
        mock.get("/marketplace/stats/8").mock(
            return_value=httpx.Response(
                200,
                json={"lowest_price": {"value": None, "currency": "USD"}, "num_for_sale": num_for_sale},
            )
        )
        async with _client() as client:
            assert await client.fetch_marketplace_stats(8) is None


@pytest.mark.asyncio
async def test_want_count_failure_degrades_to_zero() -> None:
    with respx.mock(base_url=BASE_URL) as mock:
        mock.get("/marketplace/stats/7").mock(
            return_value=httpx.Response(
                200,
                json={"lowest_price": {"value": "5.00", "currency": "USD"}, "num_for_sale": 2},
            )
        )
        mock.get("/releases/7").mock(return_value=httpx.Response(500))
        async with _client() as client:
            stats = await client.fetch_marketplace_stats(7)

    assert stats.price == Decimal("5.00")
    assert stats.wants_count == 0


# ---------------------------------------------------------------------------
# Test 4: Error mapping
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("status", "error_cls"),
    [(401, AuthError), (403, AuthError), (404, NotFoundError), (429, RateLimitError), (502, CatalogError)],
)
async def test_status_codes_map_to_errors(status: int, error_cls: type) -> None:
    with respx.mock(base_url=BASE_URL) as mock:
        route = mock.get("/marketplace/stats/1").mock(return_value=httpx.Response(status, text="nope"))
        async with _client() as client:
            with pytest.raises(error_cls) as exc_info:
                await client.fetch_marketplace_stats(1)

    assert exc_info.value.status_code == status
    assert route.call_count == 1  # no retries


@pytest.mark.asyncio
async def test_timeout_maps_to_transport_error() -> None:
    with respx.mock(base_url=BASE_URL) as mock:
        mock.get("/marketplace/stats/1").mock(side_effect=httpx.ConnectTimeout)
        async with _client() as client:
            with pytest.raises(TransportError):
                await client.fetch_marketplace_stats(1)


@pytest.mark.asyncio
async def test_invalid_json_maps_to_decode_error() -> None:
    with respx.mock(base_url=BASE_URL) as mock:
        mock.get("/marketplace/stats/1").mock(return_value=httpx.Response(200, text="<html>"))
        async with _client() as client:
            with pytest.raises(DecodeError):
                await client.fetch_marketplace_stats(1)


@pytest.mark.asyncio
async def test_unexpected_shape_maps_to_decode_error() -> None:
    with respx.mock(base_url=BASE_URL) as mock:
        mock.get(f"/users/{USERNAME}/collection/folders").mock(
            return_value=httpx.Response(200, json={"folders": [{"name": "no id"}]})
        )
        async with _client() as client:
            with pytest.raises(DecodeError):
                await client.list_folders()


# ---------------------------------------------------------------------------
# Test 5: Mapping
# ---------------------------------------------------------------------------


def test_release_mapping_takes_first_artist_and_format() -> None:
    item = CollectionItemData.model_validate(_collection_page(1, 1, [42])["releases"][0])

    release = release_from_collection_item(item)

    assert release.artist == "Kraftwerk"
    assert release.format == "Vinyl"
    assert release.year == 1977
    assert release.added_date == "2024-01-02T03:04:05-08:00"


def test_release_mapping_defaults() -> None:
    item = CollectionItemData.model_validate(
        {"id": 1, "basic_information": _basic(1, artists=[], formats=[], year=0, thumb=None)}
    )

    release = release_from_collection_item(item)

    assert release.artist == UNKNOWN_ARTIST
    assert release.format == UNKNOWN_FORMAT
    assert release.year is None
    assert release.thumb_url == ""


def test_membership_prefers_item_folder() -> None:
    item = CollectionItemData.model_validate(
        {"id": 1, "instance_id": 77, "folder_id": 3, "basic_information": _basic(1)}
    )
    assert membership_from_collection_item(item, 0).folder_id == 3

    no_folder = CollectionItemData.model_validate({"id": 1, "basic_information": _basic(1)})
    membership = membership_from_collection_item(no_folder, 0)
    assert membership.folder_id == 0
    assert membership.instance_id is None


def test_want_entry_mapping() -> None:
    item = WantItemData.model_validate(
        {"id": 9, "rating": 4, "notes": "first press", "date_added": "2024-05-01", "basic_information": _basic(9)}
    )
    entry = entry_from_want(item)
    assert (entry.release_id, entry.rating, entry.notes, entry.added_date) == (9, 4, "first press", "2024-05-01")
