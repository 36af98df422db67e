"""
Discogs Value Tracker — Release Model

Current snapshot of every release the sync has seen in the collection or
wantlist. Rows are upserted, never deleted: removing a record on Discogs
does not purge its local price history.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import INTEGER, TIMESTAMP, String, func
from sqlalchemy.orm import Mapped, mapped_column

from discogs_tracker.models.base import Base


class ReleaseRecord(Base):
    """Release metadata keyed by the Discogs release id."""

    __tablename__ = "releases"

    id: Mapped[int] = mapped_column(
        INTEGER,
        primary_key=True,
        autoincrement=False,
        comment="Discogs release id (natural key)",
    )
    title: Mapped[str] = mapped_column(String, nullable=False)
    artist: Mapped[str] = mapped_column(String, nullable=False, comment="First credited artist")
    year: Mapped[int | None] = mapped_column(INTEGER, nullable=True)
    format: Mapped[str | None] = mapped_column(String, nullable=True, comment="First format name")
    thumb_url: Mapped[str | None] = mapped_column(String, nullable=True)
    added_date: Mapped[str | None] = mapped_column(
        String, nullable=True, comment="date_added as reported by Discogs"
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False,
        comment="UTC time of the last upsert",
    )

    def __repr__(self) -> str:
        return f"<ReleaseRecord id={self.id} artist={self.artist!r} title={self.title!r}>"
