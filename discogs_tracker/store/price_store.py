"""
Discogs Value Tracker — Price Store

Durable storage for releases, collection/wantlist membership and the
append-only price history.

Rules:
    - Releases are upserted by Discogs id and never deleted.
    - Price observations are inserted only; there is no update or delete.
    - Every observation, membership and want must reference a stored release;
      this is checked before the insert and raises IntegrityError.
    - Each public write commits its own transaction; reconcile() writes the
      whole inventory in a single transaction.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable, Sequence

import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from discogs_tracker.errors import IntegrityError
from discogs_tracker.models import (
    CollectionFolder,
    CollectionItem,
    PriceHistory,
    ReleaseRecord,
    Want,
)
from discogs_tracker.schemas import (
    CollectionMembership,
    Folder,
    FolderSummary,
    PriceObservation,
    Release,
    WantlistEntry,
)
from discogs_tracker.store.database import create_session_factory
from discogs_tracker.store.migrations import upgrade_to_head
from discogs_tracker.utils.timeutil import ensure_utc_aware, to_storage, utc_now

logger = structlog.get_logger(__name__)


def _to_release(record: ReleaseRecord) -> Release:
    return Release(
        id=record.id,
        title=record.title,
        artist=record.artist,
        year=record.year,
        format=record.format or "",
        thumb_url=record.thumb_url or "",
        added_date=record.added_date,
    )


def _to_observation(row: PriceHistory) -> PriceObservation:
    return PriceObservation(
        release_id=row.release_id,
        price=row.price,
        currency=row.currency,
        condition=row.condition,
        observed_at=ensure_utc_aware(row.observed_at),
        listing_count=row.listing_count,
        wants_count=row.wants_count,
    )


# Newest first; the autoincrement id breaks same-second ties.
_NEWEST_FIRST = (PriceHistory.observed_at.desc(), PriceHistory.id.desc())
_OLDEST_FIRST = (PriceHistory.observed_at.asc(), PriceHistory.id.asc())


class PriceStore:
    """
    Async store over a SQLAlchemy engine.

    Usage:
        store = PriceStore(create_db_engine())
        await store.init_schema()
        await store.upsert_release(release)
        await store.append_observation(observation)
    """

    def __init__(self, engine: AsyncEngine):
        self._engine = engine
        self._session_factory = create_session_factory(engine)

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    async def init_schema(self) -> None:
        """Apply pending migrations. Idempotent and non-destructive."""
        async with self._engine.begin() as conn:
            await conn.run_sync(upgrade_to_head)
        logger.info("price_store_schema_ready")

    async def close(self) -> None:
        await self._engine.dispose()

    # -----------------------------------------------------------------------
    # Session-level helpers (no commit)
    # -----------------------------------------------------------------------

    async def _upsert_release(self, session: AsyncSession, release: Release) -> None:
        record = await session.get(ReleaseRecord, release.id)
        if record is None:
            record = ReleaseRecord(id=release.id)
            session.add(record)
        record.title = release.title
        record.artist = release.artist
        record.year = release.year
        record.format = release.format
        record.thumb_url = release.thumb_url
        record.added_date = release.added_date
        record.updated_at = utc_now()
        await session.flush()

    async def _require_release(self, session: AsyncSession, release_id: int) -> None:
        if await session.get(ReleaseRecord, release_id) is None:
            logger.warning("price_store_unknown_release", release_id=release_id)
            raise IntegrityError(release_id)

    async def _upsert_membership(
        self,
        session: AsyncSession,
        membership: CollectionMembership,
    ) -> bool:
        await self._require_release(session, membership.release_id)

        instance_clause = (
            CollectionItem.instance_id.is_(None)
            if membership.instance_id is None
            else CollectionItem.instance_id == membership.instance_id
        )
        stmt = select(CollectionItem.id).where(
            CollectionItem.release_id == membership.release_id,
            CollectionItem.folder_id == membership.folder_id,
            instance_clause,
        )
        if (await session.execute(stmt)).first() is not None:
            return False

        session.add(
            CollectionItem(
                release_id=membership.release_id,
                folder_id=membership.folder_id,
                instance_id=membership.instance_id,
            )
        )
        await session.flush()
        return True

    async def _upsert_want(self, session: AsyncSession, entry: WantlistEntry) -> None:
        await self._require_release(session, entry.release_id)

        want = await session.get(Want, entry.release_id)
        if want is None:
            want = Want(release_id=entry.release_id)
            session.add(want)
        want.rating = entry.rating
        want.notes = entry.notes
        want.added_date = entry.added_date
        await session.flush()

    async def _upsert_folder(self, session: AsyncSession, folder: Folder) -> None:
        record = await session.get(CollectionFolder, folder.id)
        if record is None:
            record = CollectionFolder(id=folder.id)
            session.add(record)
        record.name = folder.name
        record.count = folder.count
        await session.flush()

    # -----------------------------------------------------------------------
    # Writes
    # -----------------------------------------------------------------------

    async def upsert_release(self, release: Release) -> None:
        """Insert or overwrite a release's mutable fields; refreshes updated_at."""
        async with self._session_factory() as session:
            await self._upsert_release(session, release)
            await session.commit()

    async def append_observation(self, observation: PriceObservation) -> None:
        """
        Append one price observation.

        Raises:
            IntegrityError: If the release is not in the store.
        """
        async with self._session_factory() as session:
            await self._require_release(session, observation.release_id)
            session.add(
                PriceHistory(
                    release_id=observation.release_id,
                    price=observation.price,
                    currency=observation.currency,
                    condition=observation.condition,
                    observed_at=to_storage(observation.observed_at),
                    listing_count=observation.listing_count,
                    wants_count=observation.wants_count,
                )
            )
            await session.commit()

        logger.debug(
            "price_observation_appended",
            release_id=observation.release_id,
            price=str(observation.price),
            currency=observation.currency,
        )

    async def upsert_collection_membership(
        self,
        release_id: int,
        folder_id: int,
        instance_id: int | None = None,
    ) -> bool:
        """
        Record an owned copy. Duplicate (release, folder, instance) triples are no-ops.

        Returns:
            True if a new row was inserted.
        """
        membership = CollectionMembership(
            release_id=release_id, folder_id=folder_id, instance_id=instance_id
        )
        async with self._session_factory() as session:
            inserted = await self._upsert_membership(session, membership)
            await session.commit()
        return inserted

    async def upsert_wantlist_entry(
        self,
        release_id: int,
        rating: int | None = None,
        notes: str | None = None,
        added_date: str | None = None,
    ) -> None:
        """Add or overwrite the wantlist entry for a release (latest wins)."""
        entry = WantlistEntry(
            release_id=release_id, rating=rating, notes=notes, added_date=added_date
        )
        async with self._session_factory() as session:
            await self._upsert_want(session, entry)
            await session.commit()

    async def reconcile(
        self,
        collection: Sequence[tuple[Release, CollectionMembership]],
        wantlist: Sequence[tuple[Release, WantlistEntry]],
        folders: Iterable[Folder] = (),
    ) -> int:
        """
        Write a fetched inventory in one transaction.

        Re-running with identical input inserts nothing new.

        Returns:
            Number of new collection memberships inserted.
        """
        inserted = 0
        async with self._session_factory() as session:
            try:
                for folder in folders:
                    await self._upsert_folder(session, folder)
                for release, membership in collection:
                    await self._upsert_release(session, release)
                    if await self._upsert_membership(session, membership):
                        inserted += 1
                for release, entry in wantlist:
                    await self._upsert_release(session, release)
                    await self._upsert_want(session, entry)
                await session.commit()
            except Exception:
                await session.rollback()
                raise

        logger.info(
            "price_store_reconciled",
            collection_items=len(collection),
            wantlist_items=len(wantlist),
            new_memberships=inserted,
        )
        return inserted

    # -----------------------------------------------------------------------
    # Reads
    # -----------------------------------------------------------------------

    async def get_release(self, release_id: int) -> Release | None:
        async with self._session_factory() as session:
            record = await session.get(ReleaseRecord, release_id)
            return _to_release(record) if record is not None else None

    async def list_releases(self, search: str | None = None) -> list[Release]:
        """All stored releases ordered by artist then title, optionally filtered."""
        stmt = select(ReleaseRecord).order_by(ReleaseRecord.artist, ReleaseRecord.title)
        if search:
            pattern = f"%{search.lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(ReleaseRecord.artist).like(pattern),
                    func.lower(ReleaseRecord.title).like(pattern),
                )
            )
        async with self._session_factory() as session:
            records = (await session.execute(stmt)).scalars().all()
        return [_to_release(r) for r in records]

    async def owned_releases(self) -> list[Release]:
        """Releases with at least one collection membership, by release id."""
        owned_ids = select(CollectionItem.release_id).distinct()
        stmt = (
            select(ReleaseRecord)
            .where(ReleaseRecord.id.in_(owned_ids))
            .order_by(ReleaseRecord.id)
        )
        async with self._session_factory() as session:
            records = (await session.execute(stmt)).scalars().all()
        return [_to_release(r) for r in records]

    async def owned_release_ids(self) -> set[int]:
        stmt = select(CollectionItem.release_id).distinct()
        async with self._session_factory() as session:
            return set((await session.execute(stmt)).scalars().all())

    async def latest_observation(self, release_id: int) -> PriceObservation | None:
        """Most recent observation for a release, or None if it has no history."""
        stmt = (
            select(PriceHistory)
            .where(PriceHistory.release_id == release_id)
            .order_by(*_NEWEST_FIRST)
            .limit(1)
        )
        async with self._session_factory() as session:
            row = (await session.execute(stmt)).scalars().first()
        return _to_observation(row) if row is not None else None

    async def observations_since(
        self,
        release_id: int,
        window_days: int,
        now: datetime | None = None,
    ) -> list[PriceObservation]:
        """Observations in the trailing window, oldest first."""
        cutoff = to_storage(now or utc_now()) - timedelta(days=window_days)
        stmt = (
            select(PriceHistory)
            .where(
                PriceHistory.release_id == release_id,
                PriceHistory.observed_at >= cutoff,
            )
            .order_by(*_OLDEST_FIRST)
        )
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()
        return [_to_observation(r) for r in rows]

    async def recent_observations(
        self,
        per_release: int = 2,
    ) -> dict[int, list[PriceObservation]]:
        """
        The newest `per_release` observations of every release, newest first.

        Releases without history are absent from the result.
        """
        rn = (
            func.row_number()
            .over(partition_by=PriceHistory.release_id, order_by=_NEWEST_FIRST)
            .label("rn")
        )
        ranked = select(PriceHistory.id.label("history_id"), rn).subquery()
        stmt = (
            select(PriceHistory)
            .join(ranked, ranked.c.history_id == PriceHistory.id)
            .where(ranked.c.rn <= per_release)
            .order_by(PriceHistory.release_id, *_NEWEST_FIRST)
        )
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()

        history: dict[int, list[PriceObservation]] = {}
        for row in rows:
            history.setdefault(row.release_id, []).append(_to_observation(row))
        return history

    async def collection_count(self) -> int:
        async with self._session_factory() as session:
            return (await session.execute(select(func.count()).select_from(CollectionItem))).scalar_one()

    async def wantlist_count(self) -> int:
        async with self._session_factory() as session:
            return (await session.execute(select(func.count()).select_from(Want))).scalar_one()

    async def folder_summary(self) -> list[FolderSummary]:
        """Owned-copy counts per folder, named from the last folder snapshot."""
        stmt = (
            select(
                CollectionItem.folder_id,
                CollectionFolder.name,
                func.count(CollectionItem.id),
            )
            .outerjoin(CollectionFolder, CollectionFolder.id == CollectionItem.folder_id)
            .group_by(CollectionItem.folder_id, CollectionFolder.name)
            .order_by(CollectionItem.folder_id)
        )
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).all()
        return [
            FolderSummary(folder_id=folder_id, name=name or f"Folder {folder_id}", item_count=count)
            for folder_id, name, count in rows
        ]
