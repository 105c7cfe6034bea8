"""
RSVP reconciliation: SMS replies, calendar replies and the website all converge on one row per
(event, user).

A member's own response always supersedes an earlier admin override (the override markers are
cleared). Callers own the transaction: these functions flush, they do not commit.
"""
import logging
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from meatup.core.constants import RSVP_STATUSES
from meatup.core.errors import PayloadValidationError
from meatup.db.upsert import insert_ignore
from meatup.models.rsvp import Rsvp
from meatup.services.reply_parser import PARTSTAT_TO_RSVP

logger = logging.getLogger(__name__)

RSVP_CREATED = "created"
RSVP_UPDATED = "updated"


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


# Sentinel: "comments not supplied" (leave as is) vs None (clear them)
UNSET = _Unset()


def status_from_partstat(partstat: str | None) -> str:
    return PARTSTAT_TO_RSVP.get((partstat or "").upper(), "maybe")


def _check_status(status: str) -> str:
    status = (status or "").strip().lower()
    if status not in RSVP_STATUSES:
        raise PayloadValidationError("Invalid RSVP status", status=status)
    return status


def get_rsvp(db: Session, event_id: int, user_id: int) -> Rsvp | None:
    return db.query(Rsvp).filter(Rsvp.event_id == event_id, Rsvp.user_id == user_id).first()


def upsert_rsvp(
    db: Session,
    event_id: int,
    user_id: int,
    status: str,
    comments=UNSET,
    via_calendar: bool = False,
) -> str:
    """
    Create or update the member's RSVP. Returns "created" or "updated".
    An insert lost to a concurrent writer (unique (event_id, user_id)) falls through to the update.
    """
    status = _check_status(status)
    existing = get_rsvp(db, event_id, user_id)
    if existing is None:
        values = {
            "event_id": event_id,
            "user_id": user_id,
            "status": status,
            "admin_override": False,
            "updated_via_calendar": via_calendar,
        }
        if not isinstance(comments, _Unset):
            values["comments"] = comments
        if insert_ignore(db, Rsvp, values, ["event_id", "user_id"]):
            return RSVP_CREATED
        logger.info("RSVP insert for event %s user %s lost a race; updating instead", event_id, user_id)
        existing = get_rsvp(db, event_id, user_id)

    existing.status = status
    existing.admin_override = False
    existing.admin_override_by = None
    existing.admin_override_at = None
    if via_calendar:
        existing.updated_via_calendar = True
    if not isinstance(comments, _Unset):
        existing.comments = comments
    db.flush()
    return RSVP_UPDATED


def admin_override_rsvp(
    db: Session,
    event_id: int,
    user_id: int,
    status: str,
    admin_id: int,
    now: datetime | None = None,
) -> str:
    """Admin sets a member's RSVP by hand; marks the row as overridden until the member answers again."""
    status = _check_status(status)
    now = now or datetime.now(timezone.utc)
    existing = get_rsvp(db, event_id, user_id)
    result = RSVP_UPDATED
    if existing is None:
        values = {
            "event_id": event_id,
            "user_id": user_id,
            "status": status,
            "admin_override": True,
            "admin_override_by": admin_id,
            "admin_override_at": now,
            "updated_via_calendar": False,
        }
        if insert_ignore(db, Rsvp, values, ["event_id", "user_id"]):
            return RSVP_CREATED
        existing = get_rsvp(db, event_id, user_id)

    existing.status = status
    existing.admin_override = True
    existing.admin_override_by = admin_id
    existing.admin_override_at = now
    existing.updated_via_calendar = False
    db.flush()
    return result
