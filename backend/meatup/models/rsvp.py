"""One RSVP per (event, user). Admin override markers are cleared by the member's next response."""
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, false
from sqlalchemy.sql import func

from meatup.db.base import Base


class Rsvp(Base):
    __tablename__ = "rsvps"
    __table_args__ = (UniqueConstraint("event_id", "user_id", name="uq_rsvps_event_user"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(String(8), nullable=False)  # yes | no | maybe
    comments = Column(Text, nullable=True)
    admin_override = Column(Boolean, nullable=False, default=False, server_default=false())
    admin_override_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    admin_override_at = Column(DateTime(timezone=True), nullable=True)
    updated_via_calendar = Column(Boolean, nullable=False, default=False, server_default=false())
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
