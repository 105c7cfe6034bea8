"""Polls and votes. A poll goes active -> closed once; closing may create the event reminders key off."""
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.sql import func

from meatup.db.base import Base


class Restaurant(Base):
    __tablename__ = "restaurants"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    address = Column(String(512), nullable=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class Poll(Base):
    __tablename__ = "polls"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    status = Column(String(16), nullable=False, default="active", index=True)  # active | closed
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    closed_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    closed_at = Column(DateTime(timezone=True), nullable=True)
    winning_restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=True)
    # circular with date_suggestions.poll_id
    winning_date_id = Column(
        Integer, ForeignKey("date_suggestions.id", use_alter=True, name="fk_polls_winning_date_id"), nullable=True
    )
    created_event_id = Column(Integer, ForeignKey("events.id"), nullable=True)


class RestaurantVote(Base):
    __tablename__ = "restaurant_votes"
    __table_args__ = (
        UniqueConstraint("poll_id", "restaurant_id", "user_id", name="uq_restaurant_votes_poll_restaurant_user"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    poll_id = Column(Integer, ForeignKey("polls.id"), nullable=False, index=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class DateSuggestion(Base):
    __tablename__ = "date_suggestions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    poll_id = Column(Integer, ForeignKey("polls.id"), nullable=False, index=True)
    suggested_date = Column(String(10), nullable=False)  # YYYY-MM-DD
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class DateVote(Base):
    __tablename__ = "date_votes"
    __table_args__ = (
        UniqueConstraint("date_suggestion_id", "user_id", name="uq_date_votes_suggestion_user"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    poll_id = Column(Integer, ForeignKey("polls.id"), nullable=False, index=True)
    date_suggestion_id = Column(Integer, ForeignKey("date_suggestions.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class PollExcludedRestaurant(Base):
    __tablename__ = "poll_excluded_restaurants"
    __table_args__ = (
        UniqueConstraint("poll_id", "restaurant_id", name="uq_poll_excluded_restaurants_poll_restaurant"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    poll_id = Column(Integer, ForeignKey("polls.id"), nullable=False, index=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False)
