"""
Discogs Value Tracker — Collection Models

collection_items: owned copies, one row per (release, folder, instance).
collection_folders: snapshot of the user's folder list for naming in reports.
"""

from __future__ import annotations

from sqlalchemy import INTEGER, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from discogs_tracker.models.base import Base


class CollectionItem(Base):
    """
    An owned copy of a release.

    The unique constraint does not cover NULL instance ids (SQL treats NULLs
    as distinct), so the store checks for an existing row before inserting.
    """

    __tablename__ = "collection_items"

    id: Mapped[int] = mapped_column(INTEGER, primary_key=True, autoincrement=True)
    release_id: Mapped[int] = mapped_column(
        INTEGER, ForeignKey("releases.id"), nullable=False
    )
    folder_id: Mapped[int] = mapped_column(INTEGER, nullable=False, default=0)
    instance_id: Mapped[int | None] = mapped_column(INTEGER, nullable=True)

    __table_args__ = (
        UniqueConstraint("release_id", "folder_id", "instance_id", name="uq_collection_item"),
        Index("ix_collection_items_release_id", "release_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<CollectionItem release_id={self.release_id} folder_id={self.folder_id} "
            f"instance_id={self.instance_id}>"
        )


class CollectionFolder(Base):
    """Folder id -> name, refreshed on every sync."""

    __tablename__ = "collection_folders"

    id: Mapped[int] = mapped_column(INTEGER, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    count: Mapped[int] = mapped_column(INTEGER, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<CollectionFolder id={self.id} name={self.name!r} count={self.count}>"
