"""init form submissions and install analytics

Revision ID: 0001_init
Revises:
Create Date: 2026-10-17
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    json_type = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")

    op.create_table(
        "form_submissions",
        sa.Column("id", sa.String(), primary_key=True),
        # Avoid index=True here because we create explicit indexes below.
        sa.Column("form_id", sa.String(), nullable=False),
        sa.Column("data", json_type, nullable=False),
        sa.Column("ip_address", sa.String(), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("processed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("error", sa.Text(), nullable=True),
    )
    op.create_index("idx_form_submissions_form_id", "form_submissions", ["form_id"])
    op.create_index("idx_form_submissions_submitted_at", "form_submissions", ["submitted_at"])

    op.create_table(
        "install_analytics",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("server_hash", sa.String(), nullable=False, unique=True),
        sa.Column("version", sa.String(), nullable=False),
        sa.Column("first_seen", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_seen", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ip_hash", sa.String(), nullable=False),
    )
    op.create_index("idx_install_analytics_last_seen", "install_analytics", ["last_seen"])
    op.create_index("idx_install_analytics_version", "install_analytics", ["version"])


def downgrade() -> None:
    op.drop_index("idx_install_analytics_version", table_name="install_analytics")
    op.drop_index("idx_install_analytics_last_seen", table_name="install_analytics")
    op.drop_table("install_analytics")
    op.drop_index("idx_form_submissions_submitted_at", table_name="form_submissions")
    op.drop_index("idx_form_submissions_form_id", table_name="form_submissions")
    op.drop_table("form_submissions")
