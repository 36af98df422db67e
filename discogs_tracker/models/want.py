"""
Discogs Value Tracker — Wantlist Model

One row per release id; re-adding a want overwrites rating/notes.
"""

from __future__ import annotations

from sqlalchemy import INTEGER, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from discogs_tracker.models.base import Base


class Want(Base):
    """A wantlist entry keyed by release id."""

    __tablename__ = "wants"

    release_id: Mapped[int] = mapped_column(
        INTEGER,
        ForeignKey("releases.id"),
        primary_key=True,
        autoincrement=False,
    )
    rating: Mapped[int | None] = mapped_column(INTEGER, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    added_date: Mapped[str | None] = mapped_column(String, nullable=True)

    def __repr__(self) -> str:
        return f"<Want release_id={self.release_id} rating={self.rating}>"
