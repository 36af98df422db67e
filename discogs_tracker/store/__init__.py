"""
Store package — engine setup and the price store.
"""

from discogs_tracker.store.database import create_db_engine, create_session_factory
from discogs_tracker.store.price_store import PriceStore

__all__ = ["PriceStore", "create_db_engine", "create_session_factory"]
