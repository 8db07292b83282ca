"""shipped key list

Revision ID: 002_shipped_keys
Revises: 001_initial
Create Date: 2026-10-19
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "002_shipped_keys"
down_revision: Union[str, None] = "001_initial"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "shipped_keys",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("item_key", sa.String(64), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_shipped_keys_item_key", "shipped_keys", ["item_key"], unique=True)


def downgrade() -> None:
    op.drop_index("ix_shipped_keys_item_key", table_name="shipped_keys")
    op.drop_table("shipped_keys")
