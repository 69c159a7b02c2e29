"""initial schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-17 00:00:00
"""
from alembic import op
import sqlalchemy as sa

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

GLOBAL_STATS_ID = "00000000-0000-0000-0000-000000000001"

def upgrade():
    op.create_table(
        "reports",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("phone_key", sa.String(128), nullable=False),
        sa.Column("reason", sa.String(128), nullable=False),
        sa.Column("custom_reason", sa.String(200)),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("reporter_ip", sa.String(45)),
        sa.Column("reporter_user_agent", sa.String(512)),
        sa.Column("reporter_country", sa.String(8)),
        sa.Column("reporter_city", sa.String(128)),
        sa.Column("reporter_timezone", sa.String(64)),
    )
    op.create_index("ix_reports_phone_key_created_at", "reports", ["phone_key", "created_at"])

    stats = op.create_table(
        "report_stats",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("total_reports", sa.Integer, nullable=False, server_default="0"),
        sa.Column("last_updated", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    # Seed the single stats row so report writers always have a row to lock
    op.bulk_insert(stats, [{"id": GLOBAL_STATS_ID, "total_reports": 0}])

def downgrade():
    op.drop_table("report_stats")

    op.drop_index("ix_reports_phone_key_created_at", table_name="reports")
    op.drop_table("reports")
