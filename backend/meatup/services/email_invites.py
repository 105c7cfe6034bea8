"""
Calendar invites by email: a personalised ICS (icalendar) per attendee, sent through Resend's HTTP API.

The invite UID is stable per event (event-<id>@<uid domain>) so a later update or a calendar reply
always refers to the same event. Start and end are written in UTC from the club clock.
"""
import base64
import html
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any
from zoneinfo import ZoneInfo

import httpx
from icalendar import Alarm, Calendar, Event as CalendarEvent, vCalAddress, vText

from meatup.config import Settings
from meatup.core.constants import EVENT_DURATION_HOURS
from meatup.models.event import Event
from meatup.services.clock import event_instant, to_zone
from meatup.services.sms import SendResult

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"


@dataclass(frozen=True)
class EmailAttachment:
    filename: str
    content: bytes
    content_type: str


class ResendEmailClient:
    """Resend /emails client. Pass `transport` to run against httpx.MockTransport in tests."""

    def __init__(
        self,
        settings: Settings,
        *,
        transport: httpx.BaseTransport | None = None,
        timeout: float = 15.0,
    ) -> None:
        self._settings = settings
        self._transport = transport
        self._timeout = timeout

    def is_configured(self) -> bool:
        return bool(self._settings.resend_api_key)

    def send(
        self,
        to: str,
        subject: str,
        html_body: str,
        text_body: str,
        attachments: list[EmailAttachment] | None = None,
    ) -> SendResult:
        if not self.is_configured():
            return SendResult(False, "Missing Resend API key.")
        payload: dict[str, Any] = {
            "from": self._settings.email_from,
            "to": [to],
            "subject": subject,
            "html": html_body,
            "text": text_body,
            "reply_to": self._settings.email_reply_to,
        }
        if attachments:
            payload["attachments"] = [
                {
                    "filename": a.filename,
                    "content": base64.b64encode(a.content).decode("ascii"),
                    "content_type": a.content_type,
                }
                for a in attachments
            ]
        headers = {"Authorization": f"Bearer {self._settings.resend_api_key}"}
        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as c:
                r = c.post(RESEND_API_URL, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.warning("Resend request failed for %s: %s", to, e)
            return SendResult(False, str(e))
        if not r.is_success:
            return SendResult(False, f"Resend API error: {r.status_code} {r.text[:500] if r.text else ''}".strip())
        return SendResult(True)


def invite_uid(event_id: int, uid_domain: str) -> str:
    return f"event-{event_id}@{uid_domain}"


def build_invite_ics(
    event: Event,
    attendee_email: str,
    zone: ZoneInfo,
    settings: Settings,
    now: datetime | None = None,
) -> bytes:
    start = event_instant(event.event_date, event.event_time, zone)
    end = start + timedelta(hours=EVENT_DURATION_HOURS)
    location = event.restaurant_name
    if event.restaurant_address:
        location = f"{event.restaurant_name}, {event.restaurant_address}"
    description = f"Join us at {event.restaurant_name}!"
    if event.restaurant_address:
        description += f"\n\nLocation: {event.restaurant_address}"
    description += f"\n\nRSVP and view details at {settings.public_base_url}/dashboard/events"

    cal = Calendar()
    cal.add("prodid", f"-//{settings.club_name}//Event Invite//EN")
    cal.add("version", "2.0")
    cal.add("calscale", "GREGORIAN")
    cal.add("method", "REQUEST")

    vevent = CalendarEvent()
    vevent.add("uid", invite_uid(event.id, settings.calendar_uid_domain))
    vevent.add("dtstamp", now or datetime.now(timezone.utc))
    vevent.add("dtstart", start)
    vevent.add("dtend", end)
    vevent.add("summary", f"{settings.club_name} - {event.restaurant_name}")
    vevent.add("description", description)
    vevent.add("location", location)
    vevent.add("status", "CONFIRMED")
    vevent.add("sequence", 0)

    organizer = vCalAddress(f"mailto:{settings.email_reply_to}")
    organizer.params["cn"] = vText(settings.club_name)
    vevent.add("organizer", organizer, encode=0)

    attendee = vCalAddress(f"mailto:{attendee_email}")
    attendee.params["cn"] = vText(attendee_email)
    attendee.params["role"] = vText("REQ-PARTICIPANT")
    attendee.params["partstat"] = vText("NEEDS-ACTION")
    attendee.params["rsvp"] = vText("TRUE")
    vevent.add("attendee", attendee, encode=0)

    alarm = Alarm()
    alarm.add("action", "DISPLAY")
    alarm.add("trigger", timedelta(hours=-24))
    alarm.add("description", f"Reminder: {event.restaurant_name} tomorrow")
    vevent.add_component(alarm)

    cal.add_component(vevent)
    return cal.to_ical()


def build_invite_email(event: Event, zone: ZoneInfo, settings: Settings) -> tuple[str, str, str]:
    """(subject, html, text) for the invite; the ICS attachment carries the structured data."""
    local = to_zone(event_instant(event.event_date, event.event_time, zone), zone)
    hour = local.hour % 12 or 12
    when = f"{local:%A, %B} {local.day}, {local.year} at {hour}:{local.minute:02d} {'AM' if local.hour < 12 else 'PM'}"
    subject = f"Save the Date: {settings.club_name} at {event.restaurant_name}"
    rsvp_url = f"{settings.public_base_url}/dashboard/rsvp"

    text_lines = [f"You're invited to {settings.club_name}!", "", event.restaurant_name]
    if event.restaurant_address:
        text_lines.append(event.restaurant_address)
    text_lines += [when, "", f"RSVP: {rsvp_url}", "Accept or decline the attached invite to RSVP from your calendar."]

    address_html = f"<p>{html.escape(event.restaurant_address)}</p>" if event.restaurant_address else ""
    html_body = (
        f"<h2>Save the Date!</h2>"
        f"<p><strong>{html.escape(event.restaurant_name)}</strong></p>"
        f"{address_html}"
        f"<p>{html.escape(when)}</p>"
        f'<p><a href="{html.escape(rsvp_url)}">RSVP Now</a></p>'
        f"<p>Accept or decline the attached invite to RSVP from your calendar.</p>"
    )
    return subject, html_body, "\n".join(text_lines)


def send_invite(
    client: ResendEmailClient,
    event: Event,
    email: str,
    zone: ZoneInfo,
    settings: Settings,
    now: datetime | None = None,
) -> SendResult:
    subject, html_body, text_body = build_invite_email(event, zone, settings)
    ics = build_invite_ics(event, email, zone, settings, now=now)
    attachment = EmailAttachment("invite.ics", ics, "text/calendar; method=REQUEST")
    return client.send(email, subject, html_body, text_body, [attachment])
