"""
Discogs Value Tracker — Database engine setup

Creates the async engine and session factory. SQLite connections get
foreign key enforcement switched on, and file databases get their parent
directory created on first use.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import structlog
from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from discogs_tracker.config import settings

logger = structlog.get_logger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection: Any, _connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(database_url: str | None = None, **engine_kwargs: Any) -> AsyncEngine:
    """
    Create the SQLAlchemy async engine.

    Args:
        database_url: Overrides settings.DATABASE_URL.
        **engine_kwargs: Passed through to create_async_engine (e.g. poolclass).

    Returns:
        AsyncEngine ready for PriceStore.
    """
    url = make_url(database_url or settings.DATABASE_URL)

    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)

    logger.info("database_engine_initializing", backend=url.get_backend_name(), database=url.database)

    engine = create_async_engine(url, echo=False, **engine_kwargs)

    if url.get_backend_name() == "sqlite":
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
