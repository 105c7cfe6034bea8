"""
Reminder dispatch: scheduled SMS reminders, ad-hoc SMS broadcasts and calendar invites.

Every path goes through deliver(): send to one recipient, and only on a confirmed send write the
reminder_records row (insert-if-absent) and commit. A failed send writes nothing, so the next sweep
retries it while the window is still open. One recipient's failure never stops the batch.

Ordering is send-then-record: a crash between the provider call and the commit can repeat that
one send on the next sweep.
"""
import logging
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Protocol
from zoneinfo import ZoneInfo

from sqlalchemy import and_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session

from meatup.config import Settings
from meatup.core.constants import (
    ADHOC_REMINDER_PREFIX,
    CHANNEL_EMAIL,
    CHANNEL_SMS,
    EVENT_STATUS_UPCOMING,
    RECIPIENT_SCOPES,
    REMINDER_TYPE_INVITE,
    USER_STATUS_ACTIVE,
)
from meatup.db.upsert import insert_ignore
from meatup.models.event import Event
from meatup.models.reminder_record import ReminderRecord
from meatup.models.rsvp import Rsvp
from meatup.models.user import User
from meatup.services.clock import get_zone
from meatup.services.email_invites import send_invite
from meatup.services.reminder_window import due_reminders, offsets_from_settings, window_from_settings
from meatup.services.sms import SendResult, build_reminder_message

logger = logging.getLogger(__name__)


class SmsSender(Protocol):
    def is_configured(self) -> bool: ...

    def send(self, to: str, body: str) -> SendResult: ...


class EmailSender(Protocol):
    def is_configured(self) -> bool: ...

    def send(self, to: str, subject: str, html_body: str, text_body: str, attachments=None) -> SendResult: ...


@dataclass(frozen=True)
class Recipient:
    user_id: int
    address: str  # phone number or email, depending on channel
    rsvp_status: str | None = None


@dataclass
class DispatchResult:
    sent: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)
    skipped_reason: str | None = None

    def merge(self, other: "DispatchResult") -> None:
        self.sent += other.sent
        self.failed += other.failed
        self.errors.extend(other.errors)

    def as_dict(self) -> dict:
        out = {"sent": self.sent, "failed": self.failed, "errors": list(self.errors)}
        if self.skipped_reason:
            out["skipped"] = self.skipped_reason
        return out


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReminderDispatcher:
    def __init__(
        self,
        db: Session,
        settings: Settings,
        sms_sender: SmsSender | None = None,
        email_sender: EmailSender | None = None,
    ) -> None:
        self.db = db
        self.settings = settings
        self.sms = sms_sender
        self.email = email_sender
        self.zone: ZoneInfo = get_zone(settings.app_timezone)

    def _sms_configured(self) -> bool:
        return self.sms is not None and self.sms.is_configured()

    # --- Shared primitive ---

    def deliver(
        self,
        event: Event,
        reminder_type: str,
        channel: str,
        recipients: Iterable[Recipient],
        send_one: Callable[[Recipient], SendResult],
    ) -> DispatchResult:
        result = DispatchResult()
        for recipient in recipients:
            try:
                outcome = send_one(recipient)
            except Exception as e:
                logger.exception("Send to user %s for event %s raised: %s", recipient.user_id, event.id, e)
                outcome = SendResult(False, str(e))
            if not outcome.success:
                result.failed += 1
                result.errors.append(f"{recipient.address}: {outcome.error}")
                logger.error("%s %s failed for %s: %s", channel, reminder_type, recipient.address, outcome.error)
                continue

            result.sent += 1
            try:
                insert_ignore(
                    self.db,
                    ReminderRecord,
                    {
                        "event_id": event.id,
                        "user_id": recipient.user_id,
                        "reminder_type": reminder_type,
                        "channel": channel,
                        "sent_at": _utcnow(),
                    },
                    ["event_id", "user_id", "reminder_type"],
                )
                self.db.commit()
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.exception("Could not record %s for user %s event %s: %s", reminder_type, recipient.user_id, event.id, e)
                result.errors.append(f"{recipient.address}: sent but not recorded")
        return result

    # --- Recipient selection ---

    def _sms_recipient_query(self, event_id: int) -> Query:
        return (
            self.db.query(User.id, User.phone_number, Rsvp.status)
            .outerjoin(Rsvp, and_(Rsvp.user_id == User.id, Rsvp.event_id == event_id))
            .filter(
                User.status == USER_STATUS_ACTIVE,
                User.sms_opt_in.is_(True),
                User.sms_opt_out_at.is_(None),
                User.phone_number.isnot(None),
            )
            .order_by(User.id.asc())
        )

    def _without_record(self, query: Query, event_id: int, reminder_type: str) -> Query:
        already = self.db.query(ReminderRecord.id).filter(
            ReminderRecord.user_id == User.id,
            ReminderRecord.event_id == event_id,
            ReminderRecord.reminder_type == reminder_type,
        )
        return query.filter(~already.exists())

    def scheduled_recipients(self, event_id: int, reminder_type: str) -> list[Recipient]:
        rows = self._without_record(self._sms_recipient_query(event_id), event_id, reminder_type).all()
        return [Recipient(user_id=uid, address=phone, rsvp_status=status) for uid, phone, status in rows]

    def scoped_recipients(self, event_id: int, scope: str, recipient_user_id: int | None = None) -> list[Recipient]:
        q = self._sms_recipient_query(event_id)
        if scope in ("yes", "no", "maybe"):
            q = q.filter(Rsvp.status == scope)
        elif scope == "pending":
            q = q.filter(Rsvp.id.is_(None))
        elif scope == "specific":
            if not recipient_user_id:
                return []
            q = q.filter(User.id == recipient_user_id)
        return [Recipient(user_id=uid, address=phone, rsvp_status=status) for uid, phone, status in q.all()]

    def _sms_sender_for(self, event: Event, now: datetime, custom_message: str | None = None):
        def send_one(recipient: Recipient) -> SendResult:
            body = build_reminder_message(
                restaurant_name=event.restaurant_name,
                event_date=event.event_date,
                event_time=event.event_time,
                zone=self.zone,
                now=now,
                rsvp_status=recipient.rsvp_status,
                club_name=self.settings.club_name,
                base_url=self.settings.public_base_url,
                custom_message=custom_message,
            )
            return self.sms.send(recipient.address, body)

        return send_one

    # --- Operations ---

    def send_scheduled_reminders(self, now: datetime | None = None) -> DispatchResult:
        """One sweep: every due (event, offset) pair to every eligible recipient without a record."""
        now = now or _utcnow()
        if not self._sms_configured():
            logger.warning("Twilio credentials are missing; skipping SMS reminders.")
            return DispatchResult(skipped_reason="sms_not_configured")

        events = self.db.query(Event).filter(Event.status == EVENT_STATUS_UPCOMING).all()
        total = DispatchResult()
        if not events:
            return total
        due = due_reminders(
            events,
            now,
            self.zone,
            offsets=offsets_from_settings(self.settings),
            window=window_from_settings(self.settings),
        )
        for item in due:
            recipients = self.scheduled_recipients(item.event.id, item.offset.label)
            if not recipients:
                continue
            batch = self.deliver(item.event, item.offset.label, CHANNEL_SMS, recipients, self._sms_sender_for(item.event, now))
            logger.info(
                "Reminder %s for event %s: sent=%s failed=%s",
                item.offset.label,
                item.event.id,
                batch.sent,
                batch.failed,
            )
            total.merge(batch)
        return total

    def send_adhoc_reminder(
        self,
        event: Event,
        custom_message: str | None = None,
        scope: str = "all",
        recipient_user_id: int | None = None,
        now: datetime | None = None,
    ) -> DispatchResult:
        if not self._sms_configured():
            return DispatchResult(errors=["Twilio credentials are missing."], skipped_reason="sms_not_configured")
        if scope not in RECIPIENT_SCOPES:
            scope = "all"
        now = now or _utcnow()
        reminder_type = f"{ADHOC_REMINDER_PREFIX}{uuid.uuid4().hex}"
        recipients = self.scoped_recipients(event.id, scope, recipient_user_id)
        result = self.deliver(event, reminder_type, CHANNEL_SMS, recipients, self._sms_sender_for(event, now, custom_message))
        logger.info("Ad-hoc SMS for event %s (scope=%s): sent=%s failed=%s", event.id, scope, result.sent, result.failed)
        return result

    def send_event_invites(self, event_id: int, now: datetime | None = None) -> DispatchResult:
        """Calendar invite to every active member; members already invited to this event are skipped."""
        if self.email is None or not self.email.is_configured():
            logger.warning("Resend API key is missing; skipping invites for event %s", event_id)
            return DispatchResult(errors=["Email is not configured."], skipped_reason="email_not_configured")
        event = self.db.query(Event).filter(Event.id == event_id).first()
        if not event:
            logger.warning("Invites requested for missing event %s", event_id)
            return DispatchResult(errors=[f"Event {event_id} not found."])

        q = self.db.query(User.id, User.email).filter(
            User.status == USER_STATUS_ACTIVE,
            User.email.isnot(None),
            User.email != "",
        )
        q = self._without_record(q, event.id, REMINDER_TYPE_INVITE).order_by(User.id.asc())
        recipients = [Recipient(user_id=uid, address=email) for uid, email in q.all()]

        def send_one(recipient: Recipient) -> SendResult:
            return send_invite(self.email, event, recipient.address, self.zone, self.settings, now=now)

        result = self.deliver(event, REMINDER_TYPE_INVITE, CHANNEL_EMAIL, recipients, send_one)
        logger.info("Invites for event %s: sent=%s failed=%s", event.id, result.sent, result.failed)
        return result
