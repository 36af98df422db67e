"""
Discogs Value Tracker — Price History Model

Append-only log of marketplace snapshots per release.
Never updated; each pricing lookup appends a new row.
Used by engine/trends.py, engine/demand.py and engine/value.py.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DECIMAL, INTEGER, TIMESTAMP, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from discogs_tracker.models.base import Base


class PriceHistory(Base):
    """
    Append-only price snapshot per release.

    Keyed by an autoincrement id, which also breaks ties between two
    observations recorded in the same second.

    Index: (release_id, observed_at) supports latest-first and window scans.
    """

    __tablename__ = "price_history"

    id: Mapped[int] = mapped_column(INTEGER, primary_key=True, autoincrement=True)
    release_id: Mapped[int] = mapped_column(
        INTEGER,
        ForeignKey("releases.id"),
        nullable=False,
    )
    price: Mapped[Decimal] = mapped_column(
        DECIMAL(10, 2),
        nullable=False,
        comment="Lowest marketplace price at time of snapshot",
    )
    currency: Mapped[str] = mapped_column(String, nullable=False)
    condition: Mapped[str] = mapped_column(String, nullable=False)
    observed_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        comment="UTC timestamp, second precision",
    )
    listing_count: Mapped[int] = mapped_column(INTEGER, nullable=False, default=0)
    wants_count: Mapped[int] = mapped_column(INTEGER, nullable=False, default=0)

    __table_args__ = (
        Index("ix_price_history_release_observed", "release_id", "observed_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<PriceHistory release_id={self.release_id} price={self.price} "
            f"{self.currency} at={self.observed_at}>"
        )
