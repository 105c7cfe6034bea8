"""
Inbound reply parsing: SMS bodies, phone numbers, calendar-reply emails.

Pure functions over strings. Inbound webhook JSON is validated into the typed models below at the
route boundary; nothing past this module sees a raw payload dict.
"""
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from meatup.core.errors import PayloadValidationError

OPT_OUT_KEYWORDS = frozenset({"stop", "stopall", "unsubscribe", "cancel", "end", "quit"})
HELP_KEYWORDS = frozenset({"help", "info"})
YES_KEYWORDS = frozenset({"y", "yes"})
NO_KEYWORDS = frozenset({"n", "no"})

PARTSTAT_VALUES = ("ACCEPTED", "DECLINED", "TENTATIVE", "NEEDS-ACTION")
PARTSTAT_TO_RSVP = {
    "ACCEPTED": "yes",
    "DECLINED": "no",
    "TENTATIVE": "maybe",
    "NEEDS-ACTION": "maybe",
}

EMAIL_RECEIVED = "email.received"

_NON_LETTERS = re.compile(r"[^a-z]")
_FIRST_WORD = re.compile(r"[a-z]+")
_NON_DIGITS = re.compile(r"\D")
_NON_DIGITS_OR_PLUS = re.compile(r"[^\d+]")
_PARTSTAT = re.compile(r"PARTSTAT[:=](ACCEPTED|DECLINED|TENTATIVE|NEEDS-ACTION)")
_EVENT_ID_FROM_UID = re.compile(r"^event-(\d+)(?:-\d+)?@")
_ANGLE_ADDRESS = re.compile(r"<([^<>]+)>")


class SmsReply(str, Enum):
    YES = "yes"
    NO = "no"
    OPT_OUT = "opt_out"
    HELP = "help"


@dataclass(frozen=True)
class CalendarReply:
    event_uid: str
    partstat: str


# --- Phone numbers ---


def normalize_phone_number(raw: str | None) -> str | None:
    """
    Canonical E.164 form or None.
    '+' input keeps its digits (at least 11 characters including the '+'); 10 digits get +1;
    11 digits starting with 1 get '+'.
    """
    trimmed = (raw or "").strip()
    if not trimmed:
        return None
    if trimmed.startswith("+"):
        kept = _NON_DIGITS_OR_PLUS.sub("", trimmed)
        return kept if len(kept) >= 11 else None
    digits = _NON_DIGITS.sub("", trimmed)
    if len(digits) == 10:
        return f"+1{digits}"
    if len(digits) == 11 and digits.startswith("1"):
        return f"+{digits}"
    return None


# --- SMS replies ---


def parse_sms_reply(body: str | None) -> SmsReply | None:
    normalized = (body or "").strip().lower()
    if not normalized:
        return None
    condensed = _NON_LETTERS.sub("", normalized)
    if condensed in OPT_OUT_KEYWORDS or normalized in OPT_OUT_KEYWORDS:
        return SmsReply.OPT_OUT
    if condensed in HELP_KEYWORDS or normalized in HELP_KEYWORDS:
        return SmsReply.HELP

    first = _FIRST_WORD.search(normalized)
    token = first.group(0) if first else condensed
    if token in YES_KEYWORDS:
        return SmsReply.YES
    if token in NO_KEYWORDS:
        return SmsReply.NO
    return None


# --- Calendar replies ---


def uid_pattern(uid_domain: str) -> re.Pattern[str]:
    """UID:event-<id>[-<stamp>]@<domain>, the domain not running on into a longer host name."""
    return re.compile(r"UID:(event-\d+(?:-\d+)?@" + re.escape(uid_domain) + r")(?!\.?[A-Za-z0-9-])")


def _partstat_from_subject(subject: str) -> str:
    lowered = subject.lower()
    if "accept" in lowered:
        return "ACCEPTED"
    if "declin" in lowered:
        return "DECLINED"
    if "tentative" in lowered or "maybe" in lowered:
        return "TENTATIVE"
    return "NEEDS-ACTION"


def parse_calendar_reply(
    subject: str | None,
    text: str | None,
    html: str | None,
    uid_domain: str,
) -> CalendarReply | None:
    """
    Find the event UID and participation status in a calendar reply.
    Searches text then html as plain strings (markup is never interpreted). Returns None when
    no UID for our domain is present.
    """
    content = (text or "") + (html or "")
    uid_match = uid_pattern(uid_domain).search(content)
    if not uid_match:
        return None
    partstat_match = _PARTSTAT.search(content)
    if partstat_match:
        partstat = partstat_match.group(1)
    else:
        partstat = _partstat_from_subject(subject or "")
    return CalendarReply(event_uid=uid_match.group(1), partstat=partstat)


def extract_event_id(uid: str) -> int | None:
    match = _EVENT_ID_FROM_UID.match(uid or "")
    if not match:
        return None
    return int(match.group(1))


def extract_email_address(sender: str | None) -> str:
    """'Ann <Ann@Example.com>' -> 'ann@example.com'; a bare address is lowercased."""
    raw = (sender or "").strip()
    match = _ANGLE_ADDRESS.search(raw)
    if match:
        raw = match.group(1)
    return raw.strip().lower()


# --- Inbound email webhook payload ---


class InboundEmail(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    sender: str = Field(alias="from")
    subject: str | None = None
    text: str | None = None
    html: str | None = None


class EmailReceivedWebhook(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: Literal["email.received"]
    data: InboundEmail


class IgnoredWebhook(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: str


def parse_email_webhook(payload: dict[str, Any]) -> EmailReceivedWebhook | IgnoredWebhook:
    """Tag the verified payload: an email.received with its fields, or an event we ignore."""
    event_type = payload.get("type")
    try:
        if event_type == EMAIL_RECEIVED:
            return EmailReceivedWebhook.model_validate(payload)
        return IgnoredWebhook.model_validate(payload)
    except ValidationError as e:
        raise PayloadValidationError("Invalid webhook payload", detail=str(e.errors()[:3])) from e
