"""
Single source of truth for database tables that exist after migrations.

Use these names when writing raw SQL. alembic/env.py asserts the registered models match.
"""
ALL_TABLE_NAMES = (
    "users",
    "events",
    "rsvps",
    "reminder_records",
    "restaurants",
    "polls",
    "restaurant_votes",
    "date_suggestions",
    "date_votes",
    "poll_excluded_restaurants",
    "activity_log",
    "api_rate_limits",
)
