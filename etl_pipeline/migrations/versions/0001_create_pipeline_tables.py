"""create raw_data and processed_data tables

Revision ID: 0001_create_pipeline_tables
Revises:
Create Date: 2026-10-17 09:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "0001_create_pipeline_tables"
down_revision = None
branch_labels = None
depends_on = None

JSON_PAYLOAD = sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), "postgresql")


def upgrade() -> None:
    op.create_table(
        "raw_data",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("data", JSON_PAYLOAD, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_raw_data_created_at", "raw_data", ["created_at"])

    op.create_table(
        "processed_data",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("title", sa.Text(), nullable=True),
        sa.Column("body", sa.Text(), nullable=True),
        sa.Column("processed_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_processed_data_processed_at", "processed_data", ["processed_at"])
    op.create_index("idx_processed_data_user_id", "processed_data", ["user_id"])


def downgrade() -> None:
    op.drop_index("idx_processed_data_user_id", table_name="processed_data")
    op.drop_index("idx_processed_data_processed_at", table_name="processed_data")
    op.drop_table("processed_data")
    op.drop_index("idx_raw_data_created_at", table_name="raw_data")
    op.drop_table("raw_data")
