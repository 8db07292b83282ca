"""initial schema - locations, items, movement ledger, sync runs, daily snapshots

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "inventory_locations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("code", sa.String(50), nullable=False, unique=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("address", sa.String(500)),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime()),
    )

    op.create_table(
        "inventory_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("item_key", sa.String(64), nullable=False),
        sa.Column("model", sa.String(255)),
        sa.Column("capacity", sa.String(50)),
        sa.Column("color", sa.String(100)),
        sa.Column("sku", sa.String(255)),
        sa.Column("grade", sa.String(50)),
        sa.Column("lock_status", sa.String(50)),
        sa.Column("location_id", sa.Integer(), sa.ForeignKey("inventory_locations.id")),
        sa.Column("status", sa.String(20), nullable=False, server_default="in_stock"),
        sa.Column("first_seen_at", sa.DateTime(), nullable=False),
        sa.Column("last_seen_at", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime()),
        sa.Column("updated_at", sa.DateTime()),
    )
    op.create_index("ix_inventory_items_item_key", "inventory_items", ["item_key"], unique=True)
    op.create_index("ix_items_status", "inventory_items", ["status"])
    op.create_index("ix_items_location", "inventory_items", ["location_id"])

    op.create_table(
        "inventory_movements",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("item_id", sa.Integer(), sa.ForeignKey("inventory_items.id"), nullable=False),
        sa.Column("movement_type", sa.String(30), nullable=False),
        sa.Column("from_status", sa.String(20)),
        sa.Column("to_status", sa.String(20)),
        sa.Column("from_grade", sa.String(50)),
        sa.Column("to_grade", sa.String(50)),
        sa.Column("from_lock_status", sa.String(50)),
        sa.Column("to_lock_status", sa.String(50)),
        sa.Column("from_location_id", sa.Integer(), sa.ForeignKey("inventory_locations.id")),
        sa.Column("to_location_id", sa.Integer(), sa.ForeignKey("inventory_locations.id")),
        sa.Column("source", sa.String(30), nullable=False),
        sa.Column("performed_by", sa.String(255)),
        sa.Column("notes", sa.Text()),
        sa.Column("snapshot_data", sa.JSON()),
        sa.Column("performed_at", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime()),
    )
    op.create_index("ix_movements_item_time", "inventory_movements", ["item_id", "performed_at"])
    op.create_index("ix_movements_type", "inventory_movements", ["movement_type"])
    op.create_index("ix_movements_performed_at", "inventory_movements", ["performed_at"])

    op.create_table(
        "sync_runs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("source", sa.String(100), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("started_at", sa.DateTime(), nullable=False),
        sa.Column("completed_at", sa.DateTime()),
        sa.Column("items_processed", sa.Integer(), server_default="0"),
        sa.Column("items_added", sa.Integer(), server_default="0"),
        sa.Column("items_updated", sa.Integer(), server_default="0"),
        sa.Column("items_unchanged", sa.Integer(), server_default="0"),
        sa.Column("rows_skipped", sa.Integer(), server_default="0"),
        sa.Column("movements_created", sa.Integer(), server_default="0"),
        sa.Column("source_row_count", sa.Integer()),
        sa.Column("store_item_count", sa.Integer()),
        sa.Column("error_message", sa.Text()),
        sa.Column("error_details", sa.JSON()),
        sa.Column("created_at", sa.DateTime()),
    )
    op.create_index("ix_sync_runs_status", "sync_runs", ["status"])
    op.create_index("ix_sync_runs_started", "sync_runs", ["started_at"])
    op.create_index("ix_sync_runs_source_started", "sync_runs", ["source", "started_at"])

    op.create_table(
        "daily_snapshots",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("snapshot_date", sa.Date(), nullable=False),
        sa.Column("location_key", sa.String(50), nullable=False, server_default="all"),
        sa.Column("location_id", sa.Integer(), sa.ForeignKey("inventory_locations.id")),
        sa.Column("total_items", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("grade_breakdown", sa.JSON(), nullable=False),
        sa.Column("model_breakdown", sa.JSON(), nullable=False),
        sa.Column("lock_status_breakdown", sa.JSON(), nullable=False),
        sa.Column("daily_added", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("daily_shipped", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("daily_transferred", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("daily_status_changes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("full_snapshot", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime()),
        sa.Column("updated_at", sa.DateTime()),
    )
    op.create_index(
        "ix_snapshot_date_location", "daily_snapshots", ["snapshot_date", "location_key"], unique=True
    )


def downgrade() -> None:
    op.drop_table("daily_snapshots")
    op.drop_table("sync_runs")
    op.drop_table("inventory_movements")
    op.drop_table("inventory_items")
    op.drop_table("inventory_locations")
