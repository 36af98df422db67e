"""
Models package — export all SQLAlchemy models.
"""

from discogs_tracker.models.base import Base
from discogs_tracker.models.collection import CollectionFolder, CollectionItem
from discogs_tracker.models.price_history import PriceHistory
from discogs_tracker.models.release import ReleaseRecord
from discogs_tracker.models.want import Want

__all__ = ["Base", "CollectionFolder", "CollectionItem", "PriceHistory", "ReleaseRecord", "Want"]
