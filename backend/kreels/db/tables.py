"""
Single source of truth for database tables that exist after migrations.

Use these names when writing raw SQL (e.g. TRUNCATE). alembic/env.py asserts the
registered models match this list.
"""
ALL_TABLE_NAMES = (
    "users",
    "follows",
    "club_members",
    "notifications",
    "notification_settings",
    "push_tokens",
)
