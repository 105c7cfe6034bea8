"""
Club time zone clock: civil event date/time in the configured IANA zone -> absolute instant.

Instants are never stored. They are recomputed from (event_date, event_time, zone) because the
zone's UTC offset depends on the calendar date (DST). Conversion only asks the zone how a UTC
instant is observed locally (zoneinfo), then corrects the guess; no offset tables are kept here.
"""
import logging
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from meatup.config import DEFAULT_TIMEZONE
from meatup.core.constants import DEFAULT_EVENT_TIME

logger = logging.getLogger(__name__)


def get_zone(name: str | None) -> ZoneInfo:
    """Resolve the club zone; an empty or unknown name falls back to the default zone."""
    if name:
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Unknown APP_TIMEZONE %r; falling back to %s", name, DEFAULT_TIMEZONE)
    return ZoneInfo(DEFAULT_TIMEZONE)


def parse_civil_date(event_date: str) -> tuple[int, int, int]:
    year, month, day = (int(part) for part in event_date.strip().split("-"))
    return year, month, day


def parse_civil_time(event_time: str | None) -> tuple[int, int]:
    parts = (event_time or DEFAULT_EVENT_TIME).strip().split(":")
    if len(parts) != 2:
        raise ValueError(f"invalid event time {event_time!r}")
    return int(parts[0]), int(parts[1])


def _zone_delta(instant: datetime, zone: ZoneInfo) -> timedelta:
    """Civil fields of `instant` as observed in `zone`, read back as UTC, minus the instant."""
    observed = instant.astimezone(zone)
    return observed.replace(tzinfo=timezone.utc) - instant


def event_instant(event_date: str, event_time: str | None, zone: ZoneInfo) -> datetime:
    """
    Absolute instant (aware, UTC) of a civil date + time-of-day in `zone`.

    Start from a UTC guess built from the civil fields, see how the zone renders it, and subtract
    the difference. The second pass converges when the guess and the answer sit on opposite sides
    of a DST transition. A wall time inside a spring-forward gap rolls forward by the gap
    (02:30 -> 03:30), the same instant ZoneInfo gives for fold=0.
    """
    year, month, day = parse_civil_date(event_date)
    hour, minute = parse_civil_time(event_time)
    guess = datetime(year, month, day, hour, minute, tzinfo=timezone.utc)

    guess_delta = _zone_delta(guess, zone)
    first = guess - guess_delta
    first_delta = _zone_delta(first, zone)
    second = guess - first_delta
    if _zone_delta(second, zone) == first_delta:
        return second
    # Spring-forward gap: neither offset reproduces the wall time; the pre-transition one is smaller
    return guess - min(guess_delta, first_delta)


def as_utc(instant: datetime) -> datetime:
    """Naive datetimes (e.g. read back from SQLite) are taken as UTC."""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


def to_zone(instant: datetime, zone: ZoneInfo) -> datetime:
    return as_utc(instant).astimezone(zone)


def today_in_zone(zone: ZoneInfo, now: datetime) -> date:
    return to_zone(now, zone).date()


def is_in_future(event_date: str, event_time: str | None, zone: ZoneInfo, now: datetime) -> bool:
    return event_instant(event_date, event_time, zone) > as_utc(now)


def format_date_label(instant: datetime, zone: ZoneInfo) -> str:
    """'Mar 5'"""
    local = to_zone(instant, zone)
    return f"{local:%b} {local.day}"


def format_time_label(instant: datetime, zone: ZoneInfo) -> str:
    """'6:00 PM'"""
    local = to_zone(instant, zone)
    hour = local.hour % 12 or 12
    suffix = "AM" if local.hour < 12 else "PM"
    return f"{hour}:{local.minute:02d} {suffix}"


def relative_day_label(instant: datetime, now: datetime, zone: ZoneInfo) -> str | None:
    """'today' / 'tomorrow' by calendar day in the club zone, else None."""
    event_day = to_zone(instant, zone).date()
    today = today_in_zone(zone, now)
    if event_day == today:
        return "today"
    if event_day == today + timedelta(days=1):
        return "tomorrow"
    return None
