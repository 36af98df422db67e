"""
Discogs Value Tracker — Schema migrations

init_schema() goes through alembic so every database carries an
alembic_version row and later revisions apply cleanly. A database built by
an older create_all (tables present, no version row) is stamped at head
instead of re-created.
"""

from __future__ import annotations

from pathlib import Path

import structlog
from alembic import command
from alembic.config import Config
from alembic.migration import MigrationContext
from sqlalchemy import inspect
from sqlalchemy.engine import Connection

logger = structlog.get_logger(__name__)

# Repository-level alembic/ directory (next to alembic.ini)
ALEMBIC_DIR = Path(__file__).resolve().parents[2] / "alembic"


def alembic_config(database_url: str | None = None) -> Config:
    config = Config()
    config.set_main_option("script_location", str(ALEMBIC_DIR))
    if database_url:
        # configparser interpolation: escape percent-encoded URL characters
        config.set_main_option("sqlalchemy.url", database_url.replace("%", "%%"))
    return config


def upgrade_to_head(connection: Connection) -> None:
    """
    Bring the schema on `connection` to the newest revision.

    Runs synchronously; call it through AsyncConnection.run_sync().
    """
    config = alembic_config()
    config.attributes["connection"] = connection

    current = MigrationContext.configure(connection).get_current_revision()
    if current is None and inspect(connection).has_table("releases"):
        logger.info("schema_stamped_existing_tables")
        command.stamp(config, "head")
        return

    command.upgrade(config, "head")
    logger.debug("schema_upgraded", from_revision=current)
