"""
Discogs Value Tracker — Configuration & Constants

Every threshold, cadence and API constant lives here. No hardcoded values
in business logic.

Usage:
    from discogs_tracker.config import settings
"""

from __future__ import annotations

from enum import Enum

from pydantic_settings import BaseSettings

from discogs_tracker.errors import AuthError


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class TrendDirection(str, Enum):
    """Sign of the change between the two most recent observations."""
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


class DemandKind(str, Enum):
    """Which ranking a demand analysis returns."""
    DEMAND = "demand"   # wants_count desc
    SELL = "sell"       # wants / max(listings, 1) desc
    ALL = "all"         # both ranks annotated


class SyncPhase(str, Enum):
    """Sync run state machine: FETCHING -> RECONCILING -> PRICING -> DONE."""
    PENDING = "pending"
    FETCHING = "fetching"
    RECONCILING = "reconciling"
    PRICING = "pricing"
    DONE = "done"
    FAILED = "failed"


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

class Settings(BaseSettings):
    """
    Central configuration for the Discogs Value Tracker.

    Loads from environment variables (or .env) with fallback defaults.
    """

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    # -----------------------------------------------------------------------
    # Discogs credentials & API
    # -----------------------------------------------------------------------
    DISCOGS_USERNAME: str = ""
    DISCOGS_TOKEN: str = ""
    DISCOGS_BASE_URL: str = "https://api.discogs.com"
    DISCOGS_USER_AGENT: str = "DiscogsCollectionTracker/1.0"
    DISCOGS_PER_PAGE: int = 100             # Discogs maximum page size
    PAGE_DELAY_SECONDS: float = 1.0         # Minimum gap between page requests
    REQUEST_TIMEOUT_SECONDS: float = 30.0

    # -----------------------------------------------------------------------
    # Database
    # -----------------------------------------------------------------------
    DATABASE_URL: str = "sqlite+aiosqlite:///data/prices.db"

    # -----------------------------------------------------------------------
    # Sync
    # -----------------------------------------------------------------------
    SYNC_WORKERS: int = 8                   # Concurrent marketplace lookups
    SYNC_BATCH_SIZE: int = 20               # Releases queued per pricing wave
    STALENESS_HOURS: int = 24               # Re-price only observations older than this
    SYNC_FOLDER_IDS: list[int] = [0]        # 0 = Discogs "All" folder
    UNPRICED_CONDITION: str = "Unknown"     # Stats endpoint does not report condition
    DEFAULT_CURRENCY: str = "USD"

    # -----------------------------------------------------------------------
    # Analytics defaults
    # -----------------------------------------------------------------------
    MIN_PRICE_CHANGE_PERCENT: float = 5.0
    DEFAULT_MIN_WANTS: int = 50
    HISTORY_WINDOW_DAYS: int = 30
    DEFAULT_TOP_N: int = 10

    # -----------------------------------------------------------------------
    # Logging
    # -----------------------------------------------------------------------
    LOG_LEVEL: str = "INFO"


def get_discogs_credentials(config: Settings | None = None) -> tuple[str, str]:
    """
    Credential provider for the Discogs client.

    Returns:
        (username, token) tuple.

    Raises:
        AuthError: If either value is not configured.
    """
    config = config or settings
    if not config.DISCOGS_USERNAME or not config.DISCOGS_TOKEN:
        raise AuthError(
            "Discogs credentials are not configured "
            "(set DISCOGS_USERNAME and DISCOGS_TOKEN)"
        )
    return config.DISCOGS_USERNAME, config.DISCOGS_TOKEN


# Singleton instance
settings = Settings()
