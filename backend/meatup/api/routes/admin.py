"""
Admin actions: close a poll into an event, view vote leaders, SMS broadcasts, RSVP overrides.
All routes require require_admin.
"""
import logging
from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, Depends, Form, Request
from sqlalchemy.orm import Session

from meatup.api.deps import get_app_settings, get_email_sender, get_sms_sender, get_task_queue, require_admin
from meatup.config import Settings
from meatup.core.constants import DEFAULT_EVENT_TIME, RECIPIENT_SCOPES
from meatup.core.errors import ConfigurationError, NotFoundError, PayloadValidationError
from meatup.db.session import get_db
from meatup.models.event import Event
from meatup.models.user import User
from meatup.services.activity import ACTIVITY_ADMIN_OVERRIDE_RSVP, ACTIVITY_CLOSE_POLL, log_activity
from meatup.services.poll_service import ClosePollRequest, PollClosureCoordinator, get_active_poll_leaders
from meatup.services.reminder_dispatcher import EmailSender, ReminderDispatcher, SmsSender
from meatup.services.rsvp_service import admin_override_rsvp
from meatup.services.task_queue import TaskQueue

router = APIRouter()
logger = logging.getLogger(__name__)


# --- Polls ---


@router.get("/polls/active")
def active_poll_leaders(
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
) -> dict[str, Any]:
    leaders = get_active_poll_leaders(db)
    poll = leaders.active_poll
    return {
        "active_poll": {"id": poll.id, "title": poll.title, "status": poll.status} if poll else None,
        "top_restaurant": asdict(leaders.top_restaurant) if leaders.top_restaurant else None,
        "top_date": asdict(leaders.top_date) if leaders.top_date else None,
    }


@router.post("/polls/{poll_id}/close")
def close_poll(
    poll_id: int,
    request: Request,
    winning_restaurant_id: int | None = Form(None),
    winning_date_id: int | None = Form(None),
    create_event: bool = Form(False),
    send_invites: bool = Form(False),
    event_time: str = Form(DEFAULT_EVENT_TIME),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    task_queue: TaskQueue = Depends(get_task_queue),
    email_sender: EmailSender = Depends(get_email_sender),
    admin: User = Depends(require_admin),
) -> dict[str, Any]:
    coordinator = PollClosureCoordinator(db, settings, task_queue, email_sender)
    result = coordinator.close_poll(
        ClosePollRequest(
            poll_id=poll_id,
            admin_id=admin.id,
            winning_restaurant_id=winning_restaurant_id,
            winning_date_id=winning_date_id,
            create_event=create_event,
            send_invites=send_invites,
            event_time=(event_time or DEFAULT_EVENT_TIME).strip(),
        )
    )
    log_activity(
        db,
        admin.id,
        ACTIVITY_CLOSE_POLL,
        {"poll_id": poll_id, "event_id": result.event_id},
        request=request,
        trust_forwarded=settings.trusted_proxy_headers,
    )
    return {
        "success": True,
        "poll_id": result.poll_id,
        "event_id": result.event_id,
        "invites_queued": result.invites_queued,
    }


# --- Events ---


def _get_event(db: Session, event_id: int) -> Event:
    event = db.query(Event).filter(Event.id == event_id).first()
    if not event:
        raise NotFoundError("Event not found", event_id=event_id)
    return event


@router.post("/events/{event_id}/sms-reminders")
def send_sms_reminder(
    event_id: int,
    message: str | None = Form(None),
    recipient_scope: str = Form("all"),
    recipient_user_id: int | None = Form(None),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    sms_sender: SmsSender = Depends(get_sms_sender),
    admin: User = Depends(require_admin),
) -> dict[str, Any]:
    if recipient_scope not in RECIPIENT_SCOPES:
        raise PayloadValidationError("Invalid recipient scope", recipient_scope=recipient_scope)
    if recipient_scope == "specific" and not recipient_user_id:
        raise PayloadValidationError("Select a member to send a specific reminder")
    event = _get_event(db, event_id)
    result = ReminderDispatcher(db, settings, sms_sender).send_adhoc_reminder(
        event,
        custom_message=message,
        scope=recipient_scope,
        recipient_user_id=recipient_user_id,
    )
    if result.skipped_reason:
        raise ConfigurationError(result.errors[0] if result.errors else "SMS is not configured")
    logger.info("Admin %s sent ad-hoc SMS for event %s to %s members", admin.id, event_id, result.sent)
    return {"success": True, **result.as_dict()}


@router.post("/events/{event_id}/rsvps/{user_id}")
def override_rsvp(
    event_id: int,
    user_id: int,
    request: Request,
    status: str = Form(...),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    admin: User = Depends(require_admin),
) -> dict[str, Any]:
    _get_event(db, event_id)
    if not db.query(User.id).filter(User.id == user_id).first():
        raise NotFoundError("User not found", user_id=user_id)
    outcome = admin_override_rsvp(db, event_id, user_id, status, admin.id)
    db.commit()
    log_activity(
        db,
        admin.id,
        ACTIVITY_ADMIN_OVERRIDE_RSVP,
        {"event_id": event_id, "user_id": user_id, "status": status},
        request=request,
        trust_forwarded=settings.trusted_proxy_headers,
    )
    return {"success": True, "result": outcome, "status": status.strip().lower()}
