"""
Discogs Value Tracker — Exception hierarchy

Remote API boundary errors carry the HTTP status code and response body.
Store and pricing errors carry the release id they concern.
"""

from __future__ import annotations


class DiscogsTrackerError(Exception):
    """Base exception for the tracker."""


class CatalogError(DiscogsTrackerError):
    """Non-2xx response from the Discogs API."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: str = "",
    ):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class AuthError(CatalogError):
    """401/403 from the API, or credentials missing locally."""


class NotFoundError(CatalogError):
    """404 from the API, or a release unknown to the store."""


class RateLimitError(CatalogError):
    """429 from the API."""


class TransportError(DiscogsTrackerError):
    """Connection failure or timeout talking to the API."""


class DecodeError(DiscogsTrackerError):
    """Response body is not the JSON shape the endpoint promises."""


class IntegrityError(DiscogsTrackerError):
    """Write references a release that does not exist in the store."""

    def __init__(self, release_id: int, message: str | None = None):
        super().__init__(message or f"Release {release_id} does not exist in the store")
        self.release_id = release_id


class PricingError(DiscogsTrackerError):
    """A single marketplace lookup failed. Reported, never raised out of a sync."""

    def __init__(self, release_id: int, cause: Exception):
        super().__init__(f"Pricing failed for release {release_id}: {cause}")
        self.release_id = release_id
        self.cause = cause

