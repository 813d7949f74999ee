"""Push recipients (user_push_tokens) and the delivery ledger (notification_history).

- user_push_tokens: one row per app user; token, enabled flag, category filter, preferred slot.
- notification_history: append-only (user_id, project_id, notified_at). No unique constraint:
  concurrent runs may insert the same pair and readers treat rows as a set.
Indexes support: "enabled users at hour H, minute in [M-7, M+7]" and "already notified of these projects?".
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "user_push_tokens",
        sa.Column("user_id", sa.String(64), primary_key=True),
        sa.Column("push_token", sa.String(256), nullable=False),
        sa.Column("notifications_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("category_preferences", sa.JSON(), nullable=True),
        sa.Column("notification_hour", sa.Integer(), nullable=True),
        sa.Column("notification_minute", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), onupdate=sa.func.now(), nullable=False),
    )
    op.create_index("ix_user_push_tokens_notifications_enabled", "user_push_tokens", ["notifications_enabled"])
    op.create_index(
        "ix_user_push_tokens_schedule",
        "user_push_tokens",
        ["notifications_enabled", "notification_hour", "notification_minute"],
    )

    op.create_table(
        "notification_history",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("project_id", sa.String(64), nullable=False),
        sa.Column("notified_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_notification_history_user_id", "notification_history", ["user_id"])
    op.create_index("ix_notification_history_user_project", "notification_history", ["user_id", "project_id"])


def downgrade() -> None:
    op.drop_index("ix_notification_history_user_project", table_name="notification_history")
    op.drop_index("ix_notification_history_user_id", table_name="notification_history")
    op.drop_table("notification_history")
    op.drop_index("ix_user_push_tokens_schedule", table_name="user_push_tokens")
    op.drop_index("ix_user_push_tokens_notifications_enabled", table_name="user_push_tokens")
    op.drop_table("user_push_tokens")
