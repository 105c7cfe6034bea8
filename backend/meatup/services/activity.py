"""Activity log for admin analytics. Writing it must never break the request that triggered it."""
import json
import logging
from typing import Any

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from meatup.models.activity_log import ActivityLog

logger = logging.getLogger(__name__)

ACTIVITY_RSVP = "rsvp"
ACTIVITY_UPDATE_RSVP = "update_rsvp"
ACTIVITY_ADMIN_OVERRIDE_RSVP = "admin_override_rsvp"
ACTIVITY_CLOSE_POLL = "close_poll"


def client_ip(request: Request | None, trust_forwarded: bool = False) -> str | None:
    """Socket peer address; proxy headers are read only when trust_forwarded is set."""
    if request is None:
        return None
    if trust_forwarded:
        forwarded = request.headers.get("CF-Connecting-IP") or request.headers.get("X-Forwarded-For")
        if forwarded:
            return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def log_activity(
    db: Session,
    user_id: int,
    action_type: str,
    details: dict[str, Any] | str | None = None,
    route: str | None = None,
    request: Request | None = None,
    trust_forwarded: bool = False,
) -> None:
    """Insert and commit one activity_log row. Call after the main work has been committed."""
    if isinstance(details, dict):
        details = json.dumps(details)
    try:
        db.add(
            ActivityLog(
                user_id=user_id,
                action_type=action_type,
                action_details=details,
                route=route or (request.url.path if request is not None else None),
                ip_address=client_ip(request, trust_forwarded),
                user_agent=request.headers.get("User-Agent") if request is not None else None,
            )
        )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Failed to log activity %s for user %s: %s", action_type, user_id, e)
