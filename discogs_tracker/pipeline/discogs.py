"""
Discogs Value Tracker — Discogs API Client

Fetches the user's collection folders, collection and wantlist, and the
marketplace statistics used for price observations.

Base URL: https://api.discogs.com
Pagination: page + per_page (max 100 per page), sequential, throttled with
a fixed delay between page requests. Exactly one attempt per request:
retries are the caller's policy, not the client's.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, TypeVar

import httpx
import structlog
from pydantic import BaseModel, Field, ValidationError, field_validator

from discogs_tracker.config import get_discogs_credentials, settings
from discogs_tracker.errors import (
    AuthError,
    CatalogError,
    DecodeError,
    DiscogsTrackerError,
    NotFoundError,
    RateLimitError,
    TransportError,
)
from discogs_tracker.schemas import (
    CollectionMembership,
    Folder,
    MarketplaceStats,
    Release,
    WantlistEntry,
)
from discogs_tracker.utils.throttle import PageThrottle

logger = structlog.get_logger(__name__)

UNKNOWN_ARTIST = "Unknown Artist"
UNKNOWN_FORMAT = "Unknown Format"
ALL_FOLDER_ID = 0

# ---------------------------------------------------------------------------
# Pydantic Response Models
# ---------------------------------------------------------------------------


class DiscogsArtist(BaseModel):
    """Artist credit embedded in basic_information."""
    id: int | None = None
    name: str = ""


class DiscogsFormat(BaseModel):
    """Format entry (e.g. Vinyl, CD) embedded in basic_information."""
    name: str = ""
    qty: str | None = None
    descriptions: list[str] = Field(default_factory=list)


class BasicInformation(BaseModel):
    """Release summary shared by collection and wantlist items."""
    id: int
    title: str = ""
    year: int | None = None
    thumb: str | None = None
    artists: list[DiscogsArtist] = Field(default_factory=list)
    formats: list[DiscogsFormat] = Field(default_factory=list)


class Pagination(BaseModel):
    """Pagination block of every list endpoint."""
    page: int = 1
    pages: int = 1
    per_page: int = 100
    items: int = 0


class CollectionItemData(BaseModel):
    """One owned copy from /collection/folders/{id}/releases."""
    id: int
    instance_id: int | None = None
    folder_id: int | None = None
    rating: int | None = None
    date_added: str | None = None
    basic_information: BasicInformation


class CollectionPage(BaseModel):
    pagination: Pagination = Field(default_factory=Pagination)
    releases: list[CollectionItemData] = Field(default_factory=list)


class WantItemData(BaseModel):
    """One wantlist entry from /users/{username}/wants."""
    id: int
    rating: int | None = None
    notes: str | None = None
    date_added: str | None = None
    basic_information: BasicInformation


class WantlistPage(BaseModel):
    pagination: Pagination = Field(default_factory=Pagination)
    wants: list[WantItemData] = Field(default_factory=list)


class FolderData(BaseModel):
    id: int
    name: str = ""
    count: int = 0


class FoldersResponse(BaseModel):
    folders: list[FolderData] = Field(default_factory=list)


class LowestPrice(BaseModel):
    value: Decimal | None = None
    currency: str = Field(default_factory=lambda: settings.DEFAULT_CURRENCY)

    @field_validator("value", mode="before")
    @classmethod
    def parse_decimal(cls, v: Any) -> Decimal | None:
        """Convert through str so a float payload never leaks binary noise into money."""
        if v is None:
            return None
        try:
            return Decimal(str(v))
        except (InvalidOperation, ValueError) as e:
            raise ValueError(f"invalid price value: {v!r}") from e


class MarketplaceStatsResponse(BaseModel):
    """Response from /marketplace/stats/{release_id}."""
    lowest_price: LowestPrice | None = None
    num_for_sale: int | None = None
    blocked_from_sale: bool = False


class Community(BaseModel):
    want: int = 0
    have: int = 0


class ReleaseDetail(BaseModel):
    """Subset of /releases/{release_id} used for the community want count."""
    id: int | None = None
    community: Community | None = None


ModelT = TypeVar("ModelT", bound=BaseModel)


# ---------------------------------------------------------------------------
# Mapping: raw items -> domain objects
# ---------------------------------------------------------------------------


def _basic_to_release(basic: BasicInformation, added_date: str | None) -> Release:
    artist = basic.artists[0].name if basic.artists and basic.artists[0].name else UNKNOWN_ARTIST
    fmt = basic.formats[0].name if basic.formats and basic.formats[0].name else UNKNOWN_FORMAT
    return Release(
        id=basic.id,
        title=basic.title,
        artist=artist,
        # Discogs reports an unknown year as 0
        year=basic.year or None,
        format=fmt,
        thumb_url=basic.thumb or "",
        added_date=added_date,
    )


def release_from_collection_item(item: CollectionItemData) -> Release:
    """Canonical Release for an owned copy: first artist, first format."""
    return _basic_to_release(item.basic_information, item.date_added)


def membership_from_collection_item(
    item: CollectionItemData,
    folder_id: int,
) -> CollectionMembership:
    """
    Membership row for an owned copy.

    The item's own folder_id wins over the folder that was listed, so copies
    fetched through the "All" folder land in their real folder.
    """
    return CollectionMembership(
        release_id=item.basic_information.id,
        folder_id=item.folder_id if item.folder_id is not None else folder_id,
        instance_id=item.instance_id,
    )


def release_from_want(item: WantItemData) -> Release:
    """Canonical Release for a wantlist entry: first artist, first format."""
    return _basic_to_release(item.basic_information, item.date_added)


def entry_from_want(item: WantItemData) -> WantlistEntry:
    return WantlistEntry(
        release_id=item.basic_information.id,
        rating=item.rating,
        notes=item.notes or None,
        added_date=item.date_added,
    )


# ---------------------------------------------------------------------------
# API Client
# ---------------------------------------------------------------------------


def _error_for_status(status_code: int) -> type[CatalogError]:
    if status_code in (401, 403):
        return AuthError
    if status_code == 404:
        return NotFoundError
    if status_code == 429:
        return RateLimitError
    return CatalogError


class DiscogsClient:
    """
    Async client for the Discogs API.

    Usage:
        async with DiscogsClient() as client:
            owned = await client.list_collection()
            wants = await client.list_wantlist()
            stats = await client.fetch_marketplace_stats(249504)
    """

    def __init__(
        self,
        username: str | None = None,
        token: str | None = None,
        base_url: str | None = None,
        page_delay: float | None = None,
        per_page: int | None = None,
        timeout: float | None = None,
    ):
        if username is None or token is None:
            cfg_username, cfg_token = get_discogs_credentials()
            username = username or cfg_username
            token = token or cfg_token
        self._username = username
        self._token = token
        self._base_url = base_url or settings.DISCOGS_BASE_URL
        self._per_page = per_page or settings.DISCOGS_PER_PAGE
        self._timeout = timeout if timeout is not None else settings.REQUEST_TIMEOUT_SECONDS
        self._throttle = PageThrottle(
            page_delay if page_delay is not None else settings.PAGE_DELAY_SECONDS
        )
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> DiscogsClient:
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={
                "Authorization": f"Discogs token={self._token}",
                "User-Agent": settings.DISCOGS_USER_AGENT,
            },
            timeout=self._timeout,
        )
        return self

    async def __aexit__(self, *args: Any) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        path: str,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Single GET; maps transport, status and JSON failures to tracker errors."""
        assert self._client is not None, "Client not initialized. Use 'async with'."

        try:
            response = await self._client.get(path, params=params)
        except httpx.RequestError as e:
            logger.error(
                "discogs_request_error",
                path=path,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise TransportError(f"Request to {path} failed: {e}") from e

        if not response.is_success:
            logger.error(
                "discogs_http_error",
                path=path,
                status_code=response.status_code,
            )
            error_cls = _error_for_status(response.status_code)
            raise error_cls(
                f"Discogs API error {response.status_code} for {path}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            return response.json()
        except ValueError as e:
            logger.error("discogs_invalid_json", path=path, error=str(e))
            raise DecodeError(f"Malformed JSON from {path}") from e

    @staticmethod
    def _parse(model: type[ModelT], data: Any, path: str) -> ModelT:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            logger.error(
                "discogs_unexpected_payload",
                path=path,
                model=model.__name__,
                error_count=e.error_count(),
            )
            raise DecodeError(f"Unexpected payload from {path}: {e}") from e

    async def _fetch_pages(
        self,
        path: str,
        page_model: type[CollectionPage] | type[WantlistPage],
    ) -> list[Any]:
        """
        Walk pages 1..N sequentially.

        Stops once the current page reaches the reported page count (or a page
        comes back empty), so a misreported total can never loop forever.
        """
        entries: list[Any] = []
        page = 1

        while True:
            await self._throttle.wait()
            data = await self._request(path, params={"page": page, "per_page": self._per_page})
            parsed = self._parse(page_model, data, path)
            batch = parsed.releases if isinstance(parsed, CollectionPage) else parsed.wants
            entries.extend(batch)

            total_pages = parsed.pagination.pages
            logger.debug(
                "discogs_page_fetched",
                path=path,
                page=page,
                total_pages=total_pages,
                items=len(batch),
            )

            if page >= total_pages or not batch:
                break
            page += 1

        return entries

    # -----------------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------------

    async def list_folders(self) -> list[Folder]:
        """Fetch the user's collection folders (id 0 is "All")."""
        path = f"/users/{self._username}/collection/folders"
        data = await self._request(path)
        response = self._parse(FoldersResponse, data, path)

        logger.info("discogs_folders_fetched", count=len(response.folders))
        return [Folder(id=f.id, name=f.name, count=f.count) for f in response.folders]

    async def list_collection(
        self,
        folder_id: int = ALL_FOLDER_ID,
    ) -> list[tuple[Release, CollectionMembership]]:
        """
        Fetch every page of a collection folder.

        Args:
            folder_id: Discogs folder id; defaults to the "All" folder.

        Returns:
            (Release, CollectionMembership) per owned copy, in API order.
        """
        logger.info("discogs_fetch_collection", folder_id=folder_id)

        path = f"/users/{self._username}/collection/folders/{folder_id}/releases"
        items: list[CollectionItemData] = await self._fetch_pages(path, CollectionPage)

        logger.info(
            "discogs_fetch_collection_complete",
            folder_id=folder_id,
            items=len(items),
        )
        return [
            (release_from_collection_item(item), membership_from_collection_item(item, folder_id))
            for item in items
        ]

    async def list_wantlist(self) -> list[tuple[Release, WantlistEntry]]:
        """Fetch every page of the user's wantlist."""
        logger.info("discogs_fetch_wantlist")

        path = f"/users/{self._username}/wants"
        items: list[WantItemData] = await self._fetch_pages(path, WantlistPage)

        logger.info("discogs_fetch_wantlist_complete", items=len(items))
        return [(release_from_want(item), entry_from_want(item)) for item in items]

    async def fetch_marketplace_stats(self, release_id: int) -> MarketplaceStats | None:
        """
        Lowest marketplace price plus listing and want counts for a release.

        Returns:
            MarketplaceStats, or None when nothing is for sale (zero listings
            or no lowest price). None is not an error.

        Raises:
            CatalogError / TransportError / DecodeError on the stats request.
            The follow-up want-count request never raises: it degrades to 0.
        """
        path = f"/marketplace/stats/{release_id}"
        data = await self._request(path)
        stats = self._parse(MarketplaceStatsResponse, data, path)

        lowest = stats.lowest_price
        if lowest is None or lowest.value is None or not stats.num_for_sale:
            logger.debug(
                "discogs_no_marketplace_price",
                release_id=release_id,
                num_for_sale=stats.num_for_sale,
            )
            return None

        wants_count = await self._fetch_wants_count(release_id)

        return MarketplaceStats(
            release_id=release_id,
            price=lowest.value,
            currency=lowest.currency,
            condition=settings.UNPRICED_CONDITION,
            listing_count=stats.num_for_sale,
            wants_count=wants_count,
        )

    async def _fetch_wants_count(self, release_id: int) -> int:
        path = f"/releases/{release_id}"
        try:
            data = await self._request(path)
            detail = self._parse(ReleaseDetail, data, path)
        except DiscogsTrackerError as e:
            logger.warning(
                "discogs_wants_count_unavailable",
                release_id=release_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return 0
        return detail.community.want if detail.community else 0
