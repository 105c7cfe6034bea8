"""
Reminder windowing: which named offsets (24h, 2h, ...) are due for which events right now.

An offset is due iff  target - window < (event_instant - now) <= target.
The interval is half-open so a sweep cadence shorter than the window always lands in it once per
crossing; the reminder_records ledger absorbs the repeat selections of faster cadences.
"""
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from meatup.config import Settings
from meatup.models.event import Event
from meatup.services.clock import as_utc, event_instant

logger = logging.getLogger(__name__)

DEFAULT_WINDOW = timedelta(minutes=15)


@dataclass(frozen=True)
class ReminderOffset:
    label: str  # reminder_type stored in reminder_records, e.g. "24h"
    lead: timedelta


DEFAULT_OFFSETS: tuple[ReminderOffset, ...] = (
    ReminderOffset("24h", timedelta(hours=24)),
    ReminderOffset("2h", timedelta(hours=2)),
)


@dataclass(frozen=True)
class DueReminder:
    event: Event
    offset: ReminderOffset
    event_at: datetime


def offsets_from_settings(settings: Settings) -> tuple[ReminderOffset, ...]:
    return tuple(ReminderOffset(f"{h}h", timedelta(hours=h)) for h in settings.reminder_offsets_hours)


def window_from_settings(settings: Settings) -> timedelta:
    return timedelta(minutes=settings.reminder_window_minutes)


def is_within_window(diff: timedelta, target: timedelta, window: timedelta) -> bool:
    return target - window < diff <= target


def due_reminders(
    events: Iterable[Event],
    now: datetime,
    zone: ZoneInfo,
    offsets: Sequence[ReminderOffset] = DEFAULT_OFFSETS,
    window: timedelta = DEFAULT_WINDOW,
) -> list[DueReminder]:
    now = as_utc(now)
    due: list[DueReminder] = []
    for event in events:
        try:
            at = event_instant(event.event_date, event.event_time, zone)
        except ValueError as e:
            logger.warning("Skipping event %s: bad date/time %r %r (%s)", event.id, event.event_date, event.event_time, e)
            continue
        diff = at - now
        for offset in offsets:
            if is_within_window(diff, offset.lead, window):
                due.append(DueReminder(event=event, offset=offset, event_at=at))
    return due
