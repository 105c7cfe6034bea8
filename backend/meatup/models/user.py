"""Club member. Phone is stored normalized (E.164) or NULL.

SMS eligibility = status 'active' AND sms_opt_in AND sms_opt_out_at IS NULL AND phone_number IS NOT NULL.
"""
from sqlalchemy import Boolean, Column, DateTime, Integer, String, false
from sqlalchemy.sql import func

from meatup.db.base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=True)
    phone_number = Column(String(20), nullable=True, index=True)
    sms_opt_in = Column(Boolean, nullable=False, default=False, server_default=false())
    sms_opt_out_at = Column(DateTime(timezone=True), nullable=True)  # NULL = not opted out
    status = Column(String(16), nullable=False, default="invited")  # active | invited | inactive
    is_admin = Column(Boolean, nullable=False, default=False, server_default=false())
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
