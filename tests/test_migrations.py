"""
Tests for alembic/versions — schema migrations.

Upgrades a temporary SQLite file to head, checks the tables match the ORM
models, then downgrades back to base.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect, text

from discogs_tracker.main import main
from discogs_tracker.models import Base
from discogs_tracker.store import PriceStore, create_db_engine

ROOT = Path(__file__).resolve().parent.parent


def _alembic_config(db_path: Path) -> Config:
    config = Config(str(ROOT / "alembic.ini"))
    config.set_main_option("script_location", str(ROOT / "alembic"))
    config.set_main_option("sqlalchemy.url", f"sqlite+aiosqlite:///{db_path}")
    return config


def _tables(db_path: Path) -> set[str]:
    engine = create_engine(f"sqlite:///{db_path}")
    try:
        return set(inspect(engine).get_table_names())
    finally:
        engine.dispose()


def test_upgrade_creates_model_tables(tmp_path: Path) -> None:
    db_path = tmp_path / "migrated.db"

    command.upgrade(_alembic_config(db_path), "head")

    assert set(Base.metadata.tables) <= _tables(db_path)


def test_upgrade_columns_match_models(tmp_path: Path) -> None:
    db_path = tmp_path / "migrated.db"
    command.upgrade(_alembic_config(db_path), "head")

    engine = create_engine(f"sqlite:///{db_path}")
    try:
        inspector = inspect(engine)
        for name, table in Base.metadata.tables.items():
            migrated = {c["name"] for c in inspector.get_columns(name)}
            assert migrated == set(table.columns.keys()), name
    finally:
        engine.dispose()


def test_downgrade_removes_tables(tmp_path: Path) -> None:
    db_path = tmp_path / "migrated.db"
    config = _alembic_config(db_path)
    command.upgrade(config, "head")

    command.downgrade(config, "base")

    assert _tables(db_path) & set(Base.metadata.tables) == set()


def _version(db_path: Path) -> str | None:
    engine = create_engine(f"sqlite:///{db_path}")
    try:
        with engine.connect() as conn:
            return conn.execute(text("SELECT version_num FROM alembic_version")).scalar()
    finally:
        engine.dispose()


class _NullSink:
    def emit(self, name, report) -> None:
        pass


def test_init_db_records_revision_and_upgrade_is_noop(tmp_path: Path) -> None:
    """A database created by the CLI accepts `alembic upgrade head` afterwards."""
    db_path = tmp_path / "cli.db"
    url = f"sqlite+aiosqlite:///{db_path}"

    assert asyncio.run(main(["--database-url", url, "init-db"], sink=_NullSink())) == 0
    assert _version(db_path) == "001_initial_schema"

    command.upgrade(_alembic_config(db_path), "head")

    assert _version(db_path) == "001_initial_schema"
    assert set(Base.metadata.tables) <= _tables(db_path)


@pytest.mark.asyncio
async def test_tables_without_revision_are_stamped(tmp_path: Path) -> None:
    """Tables built by a bare create_all are adopted instead of re-created."""
    db_path = tmp_path / "legacy.db"
    engine = create_db_engine(f"sqlite+aiosqlite:///{db_path}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    store = PriceStore(engine)
    await store.init_schema()
    await store.init_schema()
    await store.close()

    assert _version(db_path) == "001_initial_schema"
