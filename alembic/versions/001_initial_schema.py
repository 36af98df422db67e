"""Initial schema — releases, price_history, collection, wants

Revision ID: 001_initial_schema
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- releases ---
    op.create_table(
        "releases",
        sa.Column("id", sa.INTEGER(), nullable=False, autoincrement=False, comment="Discogs release id (natural key)"),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("artist", sa.String(), nullable=False, comment="First credited artist"),
        sa.Column("year", sa.INTEGER(), nullable=True),
        sa.Column("format", sa.String(), nullable=True, comment="First format name"),
        sa.Column("thumb_url", sa.String(), nullable=True),
        sa.Column("added_date", sa.String(), nullable=True, comment="date_added as reported by Discogs"),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
            comment="UTC time of the last upsert",
        ),
        sa.PrimaryKeyConstraint("id"),
    )

    # --- price_history (append-only) ---
    op.create_table(
        "price_history",
        sa.Column("id", sa.INTEGER(), nullable=False, autoincrement=True),
        sa.Column("release_id", sa.INTEGER(), sa.ForeignKey("releases.id"), nullable=False),
        sa.Column("price", sa.DECIMAL(10, 2), nullable=False, comment="Lowest marketplace price at time of snapshot"),
        sa.Column("currency", sa.String(), nullable=False),
        sa.Column("condition", sa.String(), nullable=False),
        sa.Column("observed_at", sa.TIMESTAMP(timezone=True), nullable=False, comment="UTC timestamp, second precision"),
        sa.Column("listing_count", sa.INTEGER(), nullable=False, server_default="0"),
        sa.Column("wants_count", sa.INTEGER(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_price_history_release_observed", "price_history", ["release_id", "observed_at"]
    )

    # --- collection_items ---
    op.create_table(
        "collection_items",
        sa.Column("id", sa.INTEGER(), nullable=False, autoincrement=True),
        sa.Column("release_id", sa.INTEGER(), sa.ForeignKey("releases.id"), nullable=False),
        sa.Column("folder_id", sa.INTEGER(), nullable=False, server_default="0"),
        sa.Column("instance_id", sa.INTEGER(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("release_id", "folder_id", "instance_id", name="uq_collection_item"),
    )
    op.create_index("ix_collection_items_release_id", "collection_items", ["release_id"])

    # --- collection_folders ---
    op.create_table(
        "collection_folders",
        sa.Column("id", sa.INTEGER(), nullable=False, autoincrement=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("count", sa.INTEGER(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("id"),
    )

    # --- wants ---
    op.create_table(
        "wants",
        sa.Column("release_id", sa.INTEGER(), sa.ForeignKey("releases.id"), nullable=False, autoincrement=False),
        sa.Column("rating", sa.INTEGER(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("added_date", sa.String(), nullable=True),
        sa.PrimaryKeyConstraint("release_id"),
    )


def downgrade() -> None:
    op.drop_table("wants")
    op.drop_table("collection_folders")
    op.drop_index("ix_collection_items_release_id", table_name="collection_items")
    op.drop_table("collection_items")
    op.drop_index("ix_price_history_release_observed", table_name="price_history")
    op.drop_table("price_history")
    op.drop_table("releases")
