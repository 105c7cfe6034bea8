"""
Fixed-window rate limiting backed by api_rate_limits.

One row per (scope, identifier, window_start); each request upserts and increments it. Rows carry
an expiry two windows out and are deleted lazily. Storage errors fail open: a broken counter must
not take the webhooks down with it.
"""
import logging
import time
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from meatup.core.constants import RATE_LIMIT_WINDOW_SECONDS
from meatup.db.upsert import dialect_insert
from meatup.models.rate_limit import ApiRateLimit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_at: int  # epoch seconds


def enforce_rate_limit(
    db: Session,
    scope: str,
    identifier: str,
    limit: int,
    window_seconds: int = RATE_LIMIT_WINDOW_SECONDS,
    now: float | None = None,
) -> RateLimitResult:
    now_s = int(now if now is not None else time.time())
    window_start = (now_s // window_seconds) * window_seconds
    reset_at = window_start + window_seconds
    expires_at = window_start + window_seconds * 2

    try:
        stmt = dialect_insert(db, ApiRateLimit).values(
            scope=scope,
            identifier=identifier,
            window_start=window_start,
            request_count=1,
            expires_at=expires_at,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["scope", "identifier", "window_start"],
            set_={
                "request_count": ApiRateLimit.request_count + 1,
                "expires_at": stmt.excluded.expires_at,
            },
        )
        db.execute(stmt)
        used = (
            db.query(ApiRateLimit.request_count)
            .filter(
                ApiRateLimit.scope == scope,
                ApiRateLimit.identifier == identifier,
                ApiRateLimit.window_start == window_start,
            )
            .scalar()
        ) or 0
        db.query(ApiRateLimit).filter(ApiRateLimit.expires_at < now_s).delete(synchronize_session=False)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Rate limit check failed for %s/%s (allowing): %s", scope, identifier, e)
        return RateLimitResult(allowed=True, remaining=limit, reset_at=reset_at)

    return RateLimitResult(allowed=used <= limit, remaining=max(0, limit - used), reset_at=reset_at)
