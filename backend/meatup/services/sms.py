"""
SMS over Twilio's REST API (httpx), the reminder message text and TwiML replies.

The client never raises for delivery problems: every outcome is a SendResult so a batch can
count failures and move on.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from xml.sax.saxutils import escape
from zoneinfo import ZoneInfo

import httpx

from meatup.config import Settings
from meatup.services.clock import event_instant, format_date_label, format_time_label, relative_day_label

logger = logging.getLogger(__name__)

TWILIO_API_BASE = "https://api.twilio.com/2010-04-01"
SMS_INSTRUCTIONS = "Reply YES or NO to RSVP. Reply STOP to opt out."

_RSVP_LABELS = {"yes": "Yes", "no": "No", "maybe": "Maybe"}
_XML_ENTITIES = {'"': "&quot;", "'": "&apos;"}


@dataclass(frozen=True)
class SendResult:
    success: bool
    error: str | None = None


class TwilioSmsClient:
    """Twilio Messages API client. Pass `transport` to run against httpx.MockTransport in tests."""

    def __init__(
        self,
        settings: Settings,
        *,
        transport: httpx.BaseTransport | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._settings = settings
        self._transport = transport
        self._timeout = timeout

    def is_configured(self) -> bool:
        return self._settings.twilio_configured()

    def send(self, to: str, body: str) -> SendResult:
        if not self.is_configured():
            return SendResult(False, "Missing Twilio credentials.")
        sid = self._settings.twilio_account_sid
        url = f"{TWILIO_API_BASE}/Accounts/{sid}/Messages.json"
        data = {"To": to, "From": self._settings.twilio_from_number, "Body": body}
        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as c:
                r = c.post(url, data=data, auth=(sid, self._settings.twilio_auth_token))
        except httpx.HTTPError as e:
            logger.warning("Twilio request failed for %s: %s", to, e)
            return SendResult(False, str(e))
        if not r.is_success:
            return SendResult(False, f"Twilio API error: {r.status_code} {r.text[:500] if r.text else ''}".strip())
        return SendResult(True)


def rsvp_label(status: str | None) -> str:
    return _RSVP_LABELS.get(status or "", "Pending")


def build_reminder_message(
    *,
    restaurant_name: str,
    event_date: str,
    event_time: str | None,
    zone: ZoneInfo,
    now: datetime,
    rsvp_status: str | None,
    club_name: str,
    base_url: str,
    custom_message: str | None = None,
) -> str:
    """
    '<Club>: Reminder for tomorrow at 6:00 PM at Gibson's. Your RSVP: Pending. Details: ... Reply YES ...'
    A custom message goes right after the club prefix.
    """
    at = event_instant(event_date, event_time, zone)
    day = relative_day_label(at, now, zone) or format_date_label(at, zone)
    reminder = f"Reminder for {day} at {format_time_label(at, zone)} at {restaurant_name}."
    custom = (custom_message or "").strip()
    if custom:
        reminder = f"{custom} {reminder}"
    return (
        f"{club_name}: {reminder} Your RSVP: {rsvp_label(rsvp_status)}. "
        f"Details: {base_url}/dashboard/events {SMS_INSTRUCTIONS}"
    )


def build_sms_response(message: str | None = None) -> str:
    """TwiML document with zero or one <Message>."""
    inner = f"<Message>{escape(message, _XML_ENTITIES)}</Message>" if message else ""
    return f'<?xml version="1.0" encoding="UTF-8"?><Response>{inner}</Response>'
