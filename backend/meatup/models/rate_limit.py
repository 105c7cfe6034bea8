"""Fixed-window request counter. window_start and expires_at are epoch seconds; expired rows are cleaned lazily."""
from sqlalchemy import BigInteger, Column, Integer, String

from meatup.db.base import Base


class ApiRateLimit(Base):
    __tablename__ = "api_rate_limits"

    scope = Column(String(64), primary_key=True)
    identifier = Column(String(255), primary_key=True)
    window_start = Column(BigInteger, primary_key=True)
    request_count = Column(Integer, nullable=False, default=0)
    expires_at = Column(BigInteger, nullable=False, index=True)
