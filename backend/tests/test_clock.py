from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from meatup.services.clock import (
    event_instant,
    format_date_label,
    format_time_label,
    get_zone,
    is_in_future,
    relative_day_label,
    to_zone,
)

NY = ZoneInfo("America/New_York")


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def test_summer_and_winter_offsets():
    assert event_instant("2026-07-04", "18:00", NY) == utc(2026, 7, 4, 22, 0)
    assert event_instant("2026-01-15", "18:00", NY) == utc(2026, 1, 15, 23, 0)


def test_missing_time_defaults_to_six_pm():
    assert event_instant("2026-07-04", None, NY) == event_instant("2026-07-04", "18:00", NY)
    assert event_instant("2026-07-04", "", NY) == utc(2026, 7, 4, 22, 0)


@pytest.mark.parametrize(
    "event_date,event_time",
    [
        ("2026-03-08", "00:30"),
        ("2026-03-08", "03:00"),
        ("2026-03-08", "18:00"),
        ("2026-03-07", "18:00"),
        ("2026-11-01", "00:15"),
        ("2026-11-01", "01:30"),
        ("2026-11-01", "02:00"),
        ("2026-11-01", "18:00"),
        ("2026-12-31", "23:59"),
    ],
)
def test_round_trip_through_zone(event_date, event_time):
    local = to_zone(event_instant(event_date, event_time, NY), NY)
    assert local.strftime("%Y-%m-%d") == event_date
    assert local.strftime("%H:%M") == event_time


def test_spring_forward_gap_rolls_forward():
    # 02:30 does not exist on 2026-03-08 in New York
    instant = event_instant("2026-03-08", "02:30", NY)
    assert instant == utc(2026, 3, 8, 7, 30)
    assert to_zone(instant, NY).strftime("%H:%M") == "03:30"


def test_fall_back_ambiguity_resolves_to_first_occurrence():
    assert event_instant("2026-11-01", "01:30", NY) == utc(2026, 11, 1, 5, 30)


def test_other_zones():
    assert event_instant("2026-07-04", "18:00", ZoneInfo("Europe/London")) == utc(2026, 7, 4, 17, 0)
    assert event_instant("2026-07-04", "18:00", ZoneInfo("UTC")) == utc(2026, 7, 4, 18, 0)
    assert event_instant("2026-07-04", "09:00", ZoneInfo("Asia/Kolkata")) == utc(2026, 7, 4, 3, 30)


def test_unknown_zone_falls_back_to_default():
    assert get_zone("Mars/Olympus_Mons").key == "America/New_York"
    assert get_zone("").key == "America/New_York"
    assert get_zone("America/Chicago").key == "America/Chicago"


def test_is_in_future_is_strict():
    at = event_instant("2026-07-04", "18:00", NY)
    assert not is_in_future("2026-07-04", "18:00", NY, at)
    assert is_in_future("2026-07-04", "18:00", NY, utc(2026, 7, 4, 21, 59))


def test_labels():
    at = event_instant("2026-03-05", "18:00", NY)
    assert format_date_label(at, NY) == "Mar 5"
    assert format_time_label(at, NY) == "6:00 PM"
    assert format_time_label(event_instant("2026-03-05", "00:05", NY), NY) == "12:05 AM"
    assert format_time_label(event_instant("2026-03-05", "12:30", NY), NY) == "12:30 PM"


def test_relative_day_label_uses_club_calendar_day():
    at = event_instant("2026-07-04", "18:00", NY)
    assert relative_day_label(at, utc(2026, 7, 4, 12, 0), NY) == "today"
    # 01:00 UTC on the 4th is still the 3rd in New York
    assert relative_day_label(at, utc(2026, 7, 4, 1, 0), NY) == "tomorrow"
    assert relative_day_label(at, utc(2026, 7, 1, 12, 0), NY) is None
