"""
Authenticated inbound replies -> RSVP changes.

Called by the webhook routes after signature checks. SMS handling always produces a reply text
for the member; calendar handling returns the JSON body for the provider or raises a MeatupError.
"""
import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import Request
from sqlalchemy import func
from sqlalchemy.orm import Session

from meatup.config import Settings
from meatup.core.constants import CHANNEL_SMS, EVENT_STATUS_UPCOMING
from meatup.core.errors import NotFoundError, PayloadValidationError
from meatup.core.legacy_events import resolve_legacy_event_id
from meatup.models.event import Event
from meatup.models.reminder_record import ReminderRecord
from meatup.models.user import User
from meatup.services.activity import ACTIVITY_RSVP, ACTIVITY_UPDATE_RSVP, log_activity
from meatup.services.clock import get_zone, today_in_zone
from meatup.services.reply_parser import (
    InboundEmail,
    SmsReply,
    extract_email_address,
    extract_event_id,
    normalize_phone_number,
    parse_calendar_reply,
    parse_sms_reply,
)
from meatup.services.rsvp_service import RSVP_CREATED, status_from_partstat, upsert_rsvp
from meatup.services.sms import SMS_INSTRUCTIONS

logger = logging.getLogger(__name__)

MSG_BAD_NUMBER = "We couldn't read your phone number."
MSG_NO_ACCOUNT = "We couldn't find your account. Update your phone number in your profile."
MSG_SMS_DISABLED = "SMS reminders are disabled for your account."
MSG_OPTED_OUT = "You are opted out of SMS. Update your profile if you'd like reminders again."
MSG_NO_EVENT = "We couldn't find an upcoming event to RSVP for."


def _rsvp_target_event(db: Session, user_id: int, today: str) -> int | None:
    """Event of the member's latest SMS reminder if it is still ahead, else the next upcoming event."""
    latest = (
        db.query(ReminderRecord.event_id)
        .join(Event, Event.id == ReminderRecord.event_id)
        .filter(
            ReminderRecord.user_id == user_id,
            ReminderRecord.channel == CHANNEL_SMS,
            Event.status == EVENT_STATUS_UPCOMING,
            Event.event_date >= today,
        )
        .order_by(ReminderRecord.sent_at.desc(), ReminderRecord.id.desc())
        .first()
    )
    if latest:
        return latest.event_id
    upcoming = (
        db.query(Event.id)
        .filter(Event.status == EVENT_STATUS_UPCOMING, Event.event_date >= today)
        .order_by(Event.event_date.asc(), Event.event_time.asc(), Event.id.asc())
        .first()
    )
    return upcoming.id if upcoming else None


def handle_sms_reply(
    db: Session,
    settings: Settings,
    from_raw: str | None,
    body: str | None,
    now: datetime | None = None,
    request: Request | None = None,
) -> str:
    """Apply an inbound SMS and return the text to send back."""
    now = now or datetime.now(timezone.utc)
    phone = normalize_phone_number(from_raw)
    if not phone:
        return MSG_BAD_NUMBER

    user = db.query(User).filter(User.phone_number == phone).first()
    if not user:
        logger.info("Inbound SMS from unknown number")
        return MSG_NO_ACCOUNT

    reply = parse_sms_reply(body)
    if reply is SmsReply.OPT_OUT:
        user.sms_opt_in = False
        user.sms_opt_out_at = now
        db.commit()
        logger.info("User %s opted out of SMS", user.id)
        return f"You are opted out of {settings.club_name} SMS. Update your profile to re-enable."
    if reply is None or reply is SmsReply.HELP:
        return SMS_INSTRUCTIONS
    if not user.sms_opt_in:
        return MSG_SMS_DISABLED
    if user.sms_opt_out_at is not None:
        return MSG_OPTED_OUT

    today = today_in_zone(get_zone(settings.app_timezone), now).isoformat()
    event_id = _rsvp_target_event(db, user.id, today)
    if event_id is None:
        return MSG_NO_EVENT

    outcome = upsert_rsvp(db, event_id, user.id, reply.value)
    db.commit()
    log_activity(
        db,
        user.id,
        ACTIVITY_RSVP if outcome == RSVP_CREATED else ACTIVITY_UPDATE_RSVP,
        {"event_id": event_id, "status": reply.value, "via": "sms"},
        request=request,
        trust_forwarded=settings.trusted_proxy_headers,
    )
    return f"Thanks! Your RSVP is set to {'Yes' if reply is SmsReply.YES else 'No'}."


def handle_calendar_reply(
    db: Session,
    settings: Settings,
    email: InboundEmail,
    request: Request | None = None,
) -> dict[str, Any]:
    """
    Apply a calendar accept/decline. Returns the success body; raises NotFoundError for an unknown
    member or event and PayloadValidationError for a malformed UID.
    """
    parsed = parse_calendar_reply(email.subject, email.text, email.html, settings.calendar_uid_domain)
    if parsed is None:
        logger.info("No calendar RSVP data found in email")
        return {"message": "No RSVP data found"}

    address = extract_email_address(email.sender)
    user = db.query(User).filter(func.lower(User.email) == address).first() if address else None
    if not user:
        logger.info("Calendar reply from unknown address")
        raise NotFoundError("User not found", email=address)

    parsed_id = extract_event_id(parsed.event_uid)
    if parsed_id is None:
        raise PayloadValidationError("Invalid event UID format", uid=parsed.event_uid)
    event_id = resolve_legacy_event_id(parsed_id)
    if event_id != parsed_id:
        logger.info("Redirecting calendar RSVP from event %s to event %s", parsed_id, event_id)

    event = db.query(Event).filter(Event.id == event_id).first()
    if not event:
        raise NotFoundError("Event not found", event_id=parsed_id)

    status = status_from_partstat(parsed.partstat)
    outcome = upsert_rsvp(db, event.id, user.id, status, via_calendar=True)
    db.commit()
    logger.info("%s RSVP for user %s on event %s as %s", outcome.capitalize(), user.id, event.id, status)
    log_activity(
        db,
        user.id,
        ACTIVITY_RSVP if outcome == RSVP_CREATED else ACTIVITY_UPDATE_RSVP,
        {"event_id": event.id, "status": status, "via": "calendar"},
        request=request,
        trust_forwarded=settings.trusted_proxy_headers,
    )
    return {
        "success": True,
        "message": "RSVP updated successfully",
        "data": {"user": user.email, "event": event.restaurant_name, "status": status},
    }
