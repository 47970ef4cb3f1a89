"""Create scheduler, notification and self-review tables.

Revision ID: 001_scheduler_core
Revises:
Create Date: 2025-08-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "001_scheduler_core"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "scheduled_tasks",
        sa.Column("id", sa.String(100), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("type", sa.String(30), nullable=False),
        sa.Column("schedule", sa.String(50), nullable=False),
        sa.Column("next_run", sa.DateTime(), nullable=False),
        sa.Column("last_run", sa.DateTime(), nullable=True),
        sa.Column("status", sa.String(20), server_default="active", nullable=False),
        sa.Column("metadata", postgresql.JSONB(), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_scheduled_tasks_type", "scheduled_tasks", ["type"])
    op.create_index("idx_scheduled_tasks_due", "scheduled_tasks", ["status", "next_run"])

    op.create_table(
        "admin_notifications",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("type", sa.String(20), server_default="info", nullable=True),
        sa.Column("priority", sa.String(20), server_default="medium", nullable=True),
        sa.Column("is_read", sa.Boolean(), server_default="false", nullable=True),
        sa.Column("action_url", sa.Text(), nullable=True),
        sa.Column("action_label", sa.String(100), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_admin_notifications_is_read", "admin_notifications", ["is_read"])
    op.create_index("idx_admin_notifications_created", "admin_notifications", ["created_at"])

    op.create_table(
        "self_review_periods",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("start_date", sa.DateTime(), nullable=False),
        sa.Column("end_date", sa.DateTime(), nullable=False),
        sa.Column("type", sa.String(20), server_default="biweekly", nullable=True),
        sa.Column("status", sa.String(20), server_default="pending", nullable=True),
        sa.Column("scope", postgresql.JSONB(), nullable=True),
        sa.Column("analysis_results", postgresql.JSONB(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_self_review_periods_start_date", "self_review_periods", ["start_date"])
    op.create_index("ix_self_review_periods_status", "self_review_periods", ["status"])


def downgrade() -> None:
    op.drop_index("ix_self_review_periods_status", table_name="self_review_periods")
    op.drop_index("ix_self_review_periods_start_date", table_name="self_review_periods")
    op.drop_table("self_review_periods")
    op.drop_index("idx_admin_notifications_created", table_name="admin_notifications")
    op.drop_index("ix_admin_notifications_is_read", table_name="admin_notifications")
    op.drop_table("admin_notifications")
    op.drop_index("idx_scheduled_tasks_due", table_name="scheduled_tasks")
    op.drop_index("ix_scheduled_tasks_type", table_name="scheduled_tasks")
    op.drop_table("scheduled_tasks")
