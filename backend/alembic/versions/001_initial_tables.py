"""initial tables read by the scheduler

Revision ID: 001_initial_tables
Revises:
Create Date: 2026-09-28
"""

import sqlalchemy as sa

from alembic import op

revision = "001_initial_tables"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "profiles",
        sa.Column("user_id", sa.String(36), primary_key=True),
        sa.Column("notify_briefing", sa.Boolean(), nullable=True),
        sa.Column("notify_habits", sa.Boolean(), nullable=True),
        sa.Column("briefing_hour", sa.Integer(), nullable=True),
        sa.Column("notify_advance_minutes", sa.Integer(), nullable=True),
        sa.Column("timezone", sa.String(64), nullable=True),
    )

    op.create_table(
        "habits",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("micro_action", sa.Text(), nullable=True),
        sa.Column("preferred_time", sa.String(8), nullable=True),
        sa.Column("days_of_week", sa.JSON(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_index("ix_habits_user_id", "habits", ["user_id"])

    op.create_table(
        "daily_executions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column(
            "habit_id",
            sa.String(36),
            sa.ForeignKey("habits.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("execution_date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.UniqueConstraint("habit_id", "execution_date", name="uq_daily_execution_habit_date"),
    )
    op.create_index("ix_daily_executions_user_id", "daily_executions", ["user_id"])

    op.create_table(
        "evening_briefings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("briefing_date", sa.Date(), nullable=False),
        sa.UniqueConstraint("user_id", "briefing_date", name="uq_evening_briefing_user_date"),
    )
    op.create_index("ix_evening_briefings_user_id", "evening_briefings", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_evening_briefings_user_id", "evening_briefings")
    op.drop_table("evening_briefings")
    op.drop_index("ix_daily_executions_user_id", "daily_executions")
    op.drop_table("daily_executions")
    op.drop_index("ix_habits_user_id", "habits")
    op.drop_table("habits")
    op.drop_table("profiles")
