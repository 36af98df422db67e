"""
SQLAlchemy 2.0 async DeclarativeBase for the Discogs Value Tracker.

All models inherit from this Base.
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all tracker database models."""
    pass
