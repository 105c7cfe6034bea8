"""Sent-reminder ledger. Existence of a row is the only dedup signal; rows are insert-if-absent, never updated.

reminder_type: offset label ('24h', '2h'), 'invite', or a one-off 'adhoc:<token>' per broadcast.
"""
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.sql import func

from meatup.db.base import Base


class ReminderRecord(Base):
    __tablename__ = "reminder_records"
    __table_args__ = (
        UniqueConstraint("event_id", "user_id", "reminder_type", name="uq_reminder_records_event_user_type"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    reminder_type = Column(String(64), nullable=False)
    channel = Column(String(8), nullable=False, default="sms")  # sms | email
    sent_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
