"""
Discogs Value Tracker — Application Entrypoint

Configures structlog, opens the price store and runs one command.

Run via:
    python -m discogs_tracker.main sync
    python -m discogs_tracker.main trends --min-change 10 --all
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Sequence

import structlog

from discogs_tracker import __version__
from discogs_tracker.config import DemandKind, settings
from discogs_tracker.engine import collection_value, compute_trends, price_history
from discogs_tracker.engine.demand import demand_report
from discogs_tracker.errors import DiscogsTrackerError
from discogs_tracker.pipeline.discogs import DiscogsClient
from discogs_tracker.pipeline.sync import SyncOrchestrator
from discogs_tracker.reports import JsonReportSink, ReportSink
from discogs_tracker.store import PriceStore, create_db_engine


# ---------------------------------------------------------------------------
# Structlog Configuration
# ---------------------------------------------------------------------------


def _configure_logging(log_level: str = "INFO") -> None:
    """
    Structured JSON logging.

    Logs go to stderr so stdout carries only the JSON reports.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, log_level.upper()),
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="discogs-tracker",
        description="Track the marketplace value of a Discogs collection over time.",
    )
    parser.add_argument("--database-url", default=None, help="Overrides DATABASE_URL")
    parser.add_argument("--log-level", default=None, help="Overrides LOG_LEVEL")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Apply schema migrations")

    sync = sub.add_parser("sync", help="Fetch collection, wantlist and prices")
    sync.add_argument("--force", action="store_true", help="Re-price every release")
    sync.add_argument("--workers", type=int, default=settings.SYNC_WORKERS)
    sync.add_argument("--batch-size", type=int, default=settings.SYNC_BATCH_SIZE)
    sync.add_argument(
        "--accept-partial",
        action="store_true",
        help="Continue when a collection or wantlist fetch fails",
    )

    trends = sub.add_parser("trends", help="Releases whose price moved")
    trends.add_argument("--min-change", type=float, default=settings.MIN_PRICE_CHANGE_PERCENT)
    trends.add_argument("--all", action="store_true", help="Include price decreases")
    trends.add_argument("--format", default=None, help="Only this format (e.g. Vinyl)")

    demand = sub.add_parser("demand", help="High-demand and sell candidates")
    demand.add_argument("--min-wants", type=int, default=settings.DEFAULT_MIN_WANTS)
    demand.add_argument(
        "--type",
        dest="kind",
        choices=[k.value for k in DemandKind],
        default=DemandKind.DEMAND.value,
    )
    demand.add_argument("--limit", type=int, default=None)
    demand.add_argument(
        "--min-price-change",
        type=float,
        default=None,
        help="Only releases whose last price change is at least this percent",
    )

    value = sub.add_parser("value", help="Collection value summary")
    value.add_argument("--by-format", action="store_true")
    value.add_argument("--top", type=int, default=settings.DEFAULT_TOP_N)

    history = sub.add_parser("history", help="Price history of one release")
    history.add_argument("release_id", type=int)
    history.add_argument("--days", type=int, default=settings.HISTORY_WINDOW_DAYS)

    listing = sub.add_parser("list", help="Tracked releases")
    listing.add_argument("--search", default=None, help="Case-insensitive artist/title filter")

    return parser


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def run_command(args: argparse.Namespace, store: PriceStore, sink: ReportSink) -> None:
    """Dispatch one parsed command against an initialised store."""
    if args.command == "init-db":
        # main() has already created the schema
        sink.emit("init-db", await store.folder_summary())
    elif args.command == "sync":
        async with DiscogsClient() as client:
            orchestrator = SyncOrchestrator(
                client,
                store,
                workers=args.workers,
                batch_size=args.batch_size,
                accept_partial=args.accept_partial,
            )
            report = await orchestrator.run(force=args.force)
        sink.emit("sync", report)
    elif args.command == "trends":
        sink.emit(
            "trends",
            await compute_trends(
                store,
                min_percent_change=args.min_change,
                include_decreases=args.all,
                format_filter=args.format,
            ),
        )
    elif args.command == "demand":
        sink.emit(
            "demand",
            await demand_report(
                store,
                min_wants=args.min_wants,
                kind=DemandKind(args.kind),
                limit=args.limit,
                min_price_change=args.min_price_change,
            ),
        )
    elif args.command == "value":
        sink.emit("value", await collection_value(store, by_format=args.by_format, top_n=args.top))
    elif args.command == "history":
        sink.emit("history", await price_history(store, args.release_id, days=args.days))
    elif args.command == "list":
        sink.emit("list", await store.list_releases(search=args.search))
    else:
        raise ValueError(f"Unknown command: {args.command}")


async def main(argv: Sequence[str] | None = None, sink: ReportSink | None = None) -> int:
    """
    Application entrypoint.

    Execution order:
    1. Configure logging (structlog JSON on stderr)
    2. Create the engine and make sure the schema exists
    3. Run the command and emit its report
    """
    args = build_parser().parse_args(argv)
    _configure_logging(log_level=args.log_level or settings.LOG_LEVEL)
    logger = structlog.get_logger(__name__)

    logger.info("discogs_tracker_start", version=__version__, command=args.command)

    store = PriceStore(create_db_engine(args.database_url))
    try:
        await store.init_schema()
        await run_command(args, store, sink or JsonReportSink())
    except DiscogsTrackerError as e:
        logger.error(
            "discogs_tracker_command_failed",
            command=args.command,
            error=str(e),
            error_type=type(e).__name__,
        )
        return 1
    finally:
        await store.close()

    logger.info("discogs_tracker_done", command=args.command)
    return 0


# ---------------------------------------------------------------------------
# CLI Entry
# ---------------------------------------------------------------------------


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
