"""Club dinner. Date and time are civil values in the club zone; the instant is always recomputed."""
from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.sql import func

from meatup.db.base import Base


class Event(Base):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    restaurant_name = Column(String(255), nullable=False)
    restaurant_address = Column(String(512), nullable=True)
    event_date = Column(String(10), nullable=False, index=True)  # YYYY-MM-DD
    event_time = Column(String(5), nullable=False, default="18:00")  # HH:MM, 24-hour
    status = Column(String(16), nullable=False, default="upcoming", index=True)  # upcoming | completed | cancelled
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
