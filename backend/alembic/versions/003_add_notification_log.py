"""add notification sent-log

Revision ID: 003_add_notification_log
Revises: 002_add_push_subscriptions
Create Date: 2026-10-05
"""

import sqlalchemy as sa

from alembic import op

revision = "003_add_notification_log"
down_revision = "002_add_push_subscriptions"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "notification_log",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("tag", sa.String(100), nullable=False),
        sa.Column("local_date", sa.Date(), nullable=False),
        sa.Column(
            "sent_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("user_id", "tag", "local_date", name="uq_notification_log_user_tag_date"),
    )
    op.create_index("ix_notification_log_user_id", "notification_log", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_notification_log_user_id", "notification_log")
    op.drop_table("notification_log")
