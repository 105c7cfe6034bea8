"""Initial schema: members, events, RSVPs, reminder ledger, polls, activity log, rate limits

Revision ID: 001
Revises:
Create Date: (run alembic upgrade head)

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("phone_number", sa.String(20), nullable=True),
        sa.Column("sms_opt_in", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("sms_opt_out_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="invited"),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_phone_number", "users", ["phone_number"])

    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("restaurant_name", sa.String(255), nullable=False),
        sa.Column("restaurant_address", sa.String(512), nullable=True),
        sa.Column("event_date", sa.String(10), nullable=False),
        sa.Column("event_time", sa.String(5), nullable=False, server_default="18:00"),
        sa.Column("status", sa.String(16), nullable=False, server_default="upcoming"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_events_event_date", "events", ["event_date"])
    op.create_index("ix_events_status", "events", ["status"])

    op.create_table(
        "rsvps",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("status", sa.String(8), nullable=False),
        sa.Column("comments", sa.Text(), nullable=True),
        sa.Column("admin_override", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("admin_override_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("admin_override_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_via_calendar", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("event_id", "user_id", name="uq_rsvps_event_user"),
    )
    op.create_index("ix_rsvps_event_id", "rsvps", ["event_id"])
    op.create_index("ix_rsvps_user_id", "rsvps", ["user_id"])

    op.create_table(
        "reminder_records",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("reminder_type", sa.String(64), nullable=False),
        sa.Column("channel", sa.String(8), nullable=False, server_default="sms"),
        sa.Column("sent_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("event_id", "user_id", "reminder_type", name="uq_reminder_records_event_user_type"),
    )
    op.create_index("ix_reminder_records_event_id", "reminder_records", ["event_id"])
    op.create_index("ix_reminder_records_user_id", "reminder_records", ["user_id"])

    op.create_table(
        "restaurants",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("address", sa.String(512), nullable=True),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        "polls",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="active"),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("closed_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("winning_restaurant_id", sa.Integer(), sa.ForeignKey("restaurants.id"), nullable=True),
        sa.Column("winning_date_id", sa.Integer(), nullable=True),
        sa.Column("created_event_id", sa.Integer(), sa.ForeignKey("events.id"), nullable=True),
    )
    op.create_index("ix_polls_status", "polls", ["status"])

    op.create_table(
        "restaurant_votes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("poll_id", sa.Integer(), sa.ForeignKey("polls.id"), nullable=False),
        sa.Column("restaurant_id", sa.Integer(), sa.ForeignKey("restaurants.id"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("poll_id", "restaurant_id", "user_id", name="uq_restaurant_votes_poll_restaurant_user"),
    )
    op.create_index("ix_restaurant_votes_poll_id", "restaurant_votes", ["poll_id"])
    op.create_index("ix_restaurant_votes_restaurant_id", "restaurant_votes", ["restaurant_id"])

    op.create_table(
        "date_suggestions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("poll_id", sa.Integer(), sa.ForeignKey("polls.id"), nullable=False),
        sa.Column("suggested_date", sa.String(10), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_date_suggestions_poll_id", "date_suggestions", ["poll_id"])
    # polls.winning_date_id <-> date_suggestions.poll_id is circular; add the FK once both exist
    op.create_foreign_key(
        "fk_polls_winning_date_id", "polls", "date_suggestions", ["winning_date_id"], ["id"]
    )

    op.create_table(
        "date_votes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("poll_id", sa.Integer(), sa.ForeignKey("polls.id"), nullable=False),
        sa.Column("date_suggestion_id", sa.Integer(), sa.ForeignKey("date_suggestions.id"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("date_suggestion_id", "user_id", name="uq_date_votes_suggestion_user"),
    )
    op.create_index("ix_date_votes_poll_id", "date_votes", ["poll_id"])
    op.create_index("ix_date_votes_date_suggestion_id", "date_votes", ["date_suggestion_id"])

    op.create_table(
        "poll_excluded_restaurants",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("poll_id", sa.Integer(), sa.ForeignKey("polls.id"), nullable=False),
        sa.Column("restaurant_id", sa.Integer(), sa.ForeignKey("restaurants.id"), nullable=False),
        sa.UniqueConstraint("poll_id", "restaurant_id", name="uq_poll_excluded_restaurants_poll_restaurant"),
    )
    op.create_index("ix_poll_excluded_restaurants_poll_id", "poll_excluded_restaurants", ["poll_id"])

    op.create_table(
        "activity_log",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("action_type", sa.String(32), nullable=False),
        sa.Column("action_details", sa.Text(), nullable=True),
        sa.Column("route", sa.String(255), nullable=True),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column("user_agent", sa.String(512), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_activity_log_user_id", "activity_log", ["user_id"])
    op.create_index("ix_activity_log_action_type", "activity_log", ["action_type"])

    op.create_table(
        "api_rate_limits",
        sa.Column("scope", sa.String(64), primary_key=True),
        sa.Column("identifier", sa.String(255), primary_key=True),
        sa.Column("window_start", sa.BigInteger(), primary_key=True),
        sa.Column("request_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("expires_at", sa.BigInteger(), nullable=False),
    )
    op.create_index("ix_api_rate_limits_expires_at", "api_rate_limits", ["expires_at"])


def downgrade() -> None:
    op.drop_table("api_rate_limits")
    op.drop_table("activity_log")
    op.drop_table("poll_excluded_restaurants")
    op.drop_table("date_votes")
    op.drop_constraint("fk_polls_winning_date_id", "polls", type_="foreignkey")
    op.drop_table("date_suggestions")
    op.drop_table("restaurant_votes")
    op.drop_table("polls")
    op.drop_table("restaurants")
    op.drop_table("reminder_records")
    op.drop_table("rsvps")
    op.drop_table("events")
    op.drop_table("users")
