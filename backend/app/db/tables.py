"""
Single source of truth for database tables that exist after migrations.

scripts/check_backend.py compares these against the live schema.
"""
# All tables that exist in the DB. Must match models and migrations.
ALL_TABLE_NAMES = (
    "user_push_tokens",
    "notification_history",
)
