"""
Discogs Value Tracker — Sync Orchestrator

Drives one sync run through its phases:

    FETCHING -> RECONCILING -> PRICING -> DONE
    (FAILED reachable from any phase)

Fetching and reconciling are sequential. Pricing runs in waves of
batch_size releases: inside a wave, `workers` lookups pull release ids from
an asyncio.Queue and hand their outcomes to a single writer coroutine, so
store writes never interleave. Cancellation is checked between phases and
between waves; an in-flight wave always completes.
"""

from __future__ import annotations

import asyncio
from datetime import timedelta
from typing import Protocol, Sequence

import structlog

from discogs_tracker.config import SyncPhase, settings
from discogs_tracker.errors import DiscogsTrackerError, PricingError
from discogs_tracker.schemas import (
    CollectionMembership,
    Folder,
    MarketplaceStats,
    Release,
    SyncReport,
    WantlistEntry,
)
from discogs_tracker.store import PriceStore
from discogs_tracker.utils.timeutil import utc_now

logger = structlog.get_logger(__name__)

# Marks the end of a wave on the outcome queue
_WAVE_DONE = object()


class CatalogSource(Protocol):
    """What the orchestrator needs from a catalog client."""

    async def list_folders(self) -> list[Folder]: ...

    async def list_collection(self, folder_id: int = 0) -> list[tuple[Release, CollectionMembership]]: ...

    async def list_wantlist(self) -> list[tuple[Release, WantlistEntry]]: ...

    async def fetch_marketplace_stats(self, release_id: int) -> MarketplaceStats | None: ...


class SyncOrchestrator:
    """
    One-shot sync of collection, wantlist and marketplace prices.

    Usage:
        async with DiscogsClient() as client:
            orchestrator = SyncOrchestrator(client, store)
            report = await orchestrator.run()
    """

    def __init__(
        self,
        client: CatalogSource,
        store: PriceStore,
        workers: int | None = None,
        batch_size: int | None = None,
        staleness_hours: int | None = None,
        folder_ids: Sequence[int] | None = None,
        accept_partial: bool = False,
    ):
        self._client = client
        self._store = store
        self._workers = max(1, workers or settings.SYNC_WORKERS)
        self._batch_size = max(1, batch_size or settings.SYNC_BATCH_SIZE)
        self._staleness = timedelta(
            hours=staleness_hours if staleness_hours is not None else settings.STALENESS_HOURS
        )
        self._folder_ids = list(folder_ids if folder_ids is not None else settings.SYNC_FOLDER_IDS)
        self._accept_partial = accept_partial
        self._cancel_event = asyncio.Event()
        self.phase = SyncPhase.PENDING

    def cancel(self) -> None:
        """Request a stop at the next phase or wave boundary."""
        logger.info("sync_cancel_requested", phase=self.phase.value)
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    # -----------------------------------------------------------------------
    # Phase bookkeeping
    # -----------------------------------------------------------------------

    def _enter(self, report: SyncReport, phase: SyncPhase) -> None:
        self.phase = phase
        report.phase = phase
        logger.info("sync_phase", phase=phase.value)

    def _fail(self, report: SyncReport, reason: str) -> SyncReport:
        failed_in = self.phase
        self._enter(report, SyncPhase.FAILED)
        report.failure_reason = reason
        report.finished_at = utc_now()
        logger.error("sync_failed", failed_in=failed_in.value, reason=reason)
        return report

    def _stop_if_cancelled(self, report: SyncReport) -> bool:
        if not self.cancelled:
            return False
        report.cancelled = True
        self._fail(report, f"cancelled during {self.phase.value}")
        return True

    # -----------------------------------------------------------------------
    # Run
    # -----------------------------------------------------------------------

    async def run(self, force: bool = False) -> SyncReport:
        """
        Execute one sync run.

        Args:
            force: Price every release regardless of how fresh its latest
                observation is. Always appends, even if the price is unchanged.

        Returns:
            SyncReport. Phase is DONE, or FAILED with cancelled=True when the
            run was cancelled.

        Raises:
            Whatever a phase raised (after the report and the orchestrator
            phase are set to FAILED). Per-release lookup failures are only
            reported, and accept_partial lets a failed list fetch through.
        """
        report = SyncReport(phase=SyncPhase.PENDING, started_at=utc_now())
        logger.info(
            "sync_start",
            force=force,
            workers=self._workers,
            batch_size=self._batch_size,
            folder_ids=self._folder_ids,
            accept_partial=self._accept_partial,
        )

        self._enter(report, SyncPhase.FETCHING)
        try:
            folders, collection, wantlist = await self._fetch(report)
        except Exception as e:
            self._fail(report, f"{type(e).__name__}: {e}")
            raise

        if self._stop_if_cancelled(report):
            return report

        self._enter(report, SyncPhase.RECONCILING)
        try:
            await self._store.reconcile(collection, wantlist, folders)
        except Exception as e:
            self._fail(report, f"{type(e).__name__}: {e}")
            raise

        # Owned first, then wanted; a release in both is priced once
        release_ids = list(
            dict.fromkeys(
                [release.id for release, _ in collection] + [release.id for release, _ in wantlist]
            )
        )
        report.releases_seen = len(release_ids)
        report.collection_items = len(collection)
        report.wantlist_items = len(wantlist)

        if self._stop_if_cancelled(report):
            return report

        self._enter(report, SyncPhase.PRICING)
        try:
            to_price = release_ids if force else await self._stale_only(release_ids, report)

            for start in range(0, len(to_price), self._batch_size):
                if self._stop_if_cancelled(report):
                    return report
                wave = to_price[start:start + self._batch_size]
                await self._price_wave(wave, report)
        except Exception as e:
            self._fail(report, f"{type(e).__name__}: {e}")
            raise

        self._enter(report, SyncPhase.DONE)
        report.finished_at = utc_now()
        logger.info(
            "sync_complete",
            releases_seen=report.releases_seen,
            observations_appended=report.observations_appended,
            skipped=report.lookups_skipped,
            no_price=report.lookups_no_price,
            failed=report.lookups_failed,
        )
        return report

    # -----------------------------------------------------------------------
    # Fetching
    # -----------------------------------------------------------------------

    async def _fetch_list(self, report: SyncReport, name: str, fetch):
        """Run one list fetch; with accept_partial a catalog failure yields []."""
        try:
            return await fetch()
        except DiscogsTrackerError as e:
            if not self._accept_partial:
                raise
            logger.warning(
                "sync_fetch_partial",
                source=name,
                error=str(e),
                error_type=type(e).__name__,
            )
            report.fetch_failures[name] = f"{type(e).__name__}: {e}"
            return []

    async def _fetch(
        self,
        report: SyncReport,
    ) -> tuple[list[Folder], list[tuple[Release, CollectionMembership]], list[tuple[Release, WantlistEntry]]]:
        folders = await self._fetch_list(report, "folders", self._client.list_folders)

        collection: list[tuple[Release, CollectionMembership]] = []
        for folder_id in self._folder_ids:
            items = await self._fetch_list(
                report,
                f"collection:{folder_id}",
                lambda folder_id=folder_id: self._client.list_collection(folder_id),
            )
            collection.extend(items)

        wantlist = await self._fetch_list(report, "wantlist", self._client.list_wantlist)

        logger.info(
            "sync_fetch_complete",
            folders=len(folders),
            collection_items=len(collection),
            wantlist_items=len(wantlist),
        )
        return folders, collection, wantlist

    # -----------------------------------------------------------------------
    # Pricing
    # -----------------------------------------------------------------------

    async def _stale_only(self, release_ids: list[int], report: SyncReport) -> list[int]:
        """Drop releases whose latest observation is younger than the staleness window."""
        latest = await self._store.recent_observations(per_release=1)
        cutoff = utc_now() - self._staleness

        stale: list[int] = []
        for release_id in release_ids:
            history = latest.get(release_id)
            if history and history[0].observed_at > cutoff:
                report.lookups_skipped += 1
                continue
            stale.append(release_id)

        logger.info("sync_staleness_filter", to_price=len(stale), skipped=report.lookups_skipped)
        return stale

    async def _price_wave(self, wave: list[int], report: SyncReport) -> None:
        lookups: asyncio.Queue[int] = asyncio.Queue()
        for release_id in wave:
            lookups.put_nowait(release_id)
        outcomes: asyncio.Queue = asyncio.Queue()

        writer = asyncio.create_task(self._write_outcomes(outcomes, report))
        workers = [
            asyncio.create_task(self._lookup_worker(lookups, outcomes))
            for _ in range(min(self._workers, len(wave)))
        ]
        await asyncio.gather(*workers)
        await outcomes.put(_WAVE_DONE)
        await writer

        logger.debug(
            "sync_wave_complete",
            wave_size=len(wave),
            appended_total=report.observations_appended,
        )

    async def _lookup_worker(self, lookups: asyncio.Queue[int], outcomes: asyncio.Queue) -> None:
        while True:
            try:
                release_id = lookups.get_nowait()
            except asyncio.QueueEmpty:
                return
            try:
                stats = await self._client.fetch_marketplace_stats(release_id)
            except Exception as e:
                await outcomes.put((release_id, PricingError(release_id, e)))
            else:
                await outcomes.put((release_id, stats))

    async def _write_outcomes(self, outcomes: asyncio.Queue, report: SyncReport) -> None:
        """Single writer: the only coroutine that touches the store during pricing."""
        while True:
            item = await outcomes.get()
            if item is _WAVE_DONE:
                return
            release_id, outcome = item

            if isinstance(outcome, PricingError):
                self._record_failure(report, outcome)
            elif outcome is None:
                report.lookups_no_price += 1
            else:
                try:
                    await self._store.append_observation(outcome.to_observation(utc_now()))
                except Exception as e:
                    self._record_failure(report, PricingError(release_id, e))
                else:
                    report.observations_appended += 1

    @staticmethod
    def _record_failure(report: SyncReport, error: PricingError) -> None:
        logger.warning(
            "pricing_lookup_failed",
            release_id=error.release_id,
            error=str(error.cause),
            error_type=type(error.cause).__name__,
        )
        report.lookups_failed += 1
        report.pricing_failures[error.release_id] = f"{type(error.cause).__name__}: {error.cause}"
