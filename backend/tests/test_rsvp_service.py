from datetime import datetime, timezone

import pytest

from meatup.core.errors import PayloadValidationError
from meatup.models import Rsvp
from meatup.services.rsvp_service import admin_override_rsvp, status_from_partstat, upsert_rsvp
from tests.factories import add_event, add_user


def _rsvps(db):
    db.expire_all()
    return db.query(Rsvp).all()


def test_first_response_creates_then_updates(db):
    user = add_user(db)
    event = add_event(db)
    assert upsert_rsvp(db, event.id, user.id, "yes") == "created"
    db.commit()
    assert upsert_rsvp(db, event.id, user.id, "no") == "updated"
    db.commit()
    rows = _rsvps(db)
    assert len(rows) == 1
    assert rows[0].status == "no"
    assert rows[0].updated_via_calendar is False


def test_member_response_clears_admin_override(db):
    admin = add_user(db, email="admin@example.com", phone=None, is_admin=True)
    user = add_user(db)
    event = add_event(db)
    admin_override_rsvp(db, event.id, user.id, "no", admin.id, now=datetime(2026, 6, 1, tzinfo=timezone.utc))
    db.commit()
    row = _rsvps(db)[0]
    assert row.admin_override is True
    assert row.admin_override_by == admin.id

    upsert_rsvp(db, event.id, user.id, "yes", via_calendar=True)
    db.commit()
    row = _rsvps(db)[0]
    assert row.status == "yes"
    assert row.admin_override is False
    assert row.admin_override_by is None
    assert row.admin_override_at is None
    assert row.updated_via_calendar is True


def test_admin_override_clears_calendar_flag(db):
    admin = add_user(db, email="admin@example.com", phone=None, is_admin=True)
    user = add_user(db)
    event = add_event(db)
    upsert_rsvp(db, event.id, user.id, "yes", via_calendar=True)
    db.commit()
    assert admin_override_rsvp(db, event.id, user.id, "maybe", admin.id) == "updated"
    db.commit()
    row = _rsvps(db)[0]
    assert (row.status, row.admin_override, row.updated_via_calendar) == ("maybe", True, False)


def test_non_calendar_update_keeps_calendar_flag(db):
    user = add_user(db)
    event = add_event(db)
    upsert_rsvp(db, event.id, user.id, "yes", via_calendar=True)
    upsert_rsvp(db, event.id, user.id, "no")
    db.commit()
    assert _rsvps(db)[0].updated_via_calendar is True


def test_comments_only_change_when_supplied(db):
    user = add_user(db)
    event = add_event(db)
    upsert_rsvp(db, event.id, user.id, "yes", comments="bringing a guest")
    upsert_rsvp(db, event.id, user.id, "no")
    db.commit()
    assert _rsvps(db)[0].comments == "bringing a guest"
    upsert_rsvp(db, event.id, user.id, "no", comments=None)
    db.commit()
    assert _rsvps(db)[0].comments is None


def test_invalid_status_rejected(db):
    user = add_user(db)
    event = add_event(db)
    with pytest.raises(PayloadValidationError):
        upsert_rsvp(db, event.id, user.id, "attending")


def test_status_from_partstat():
    assert status_from_partstat("ACCEPTED") == "yes"
    assert status_from_partstat("DECLINED") == "no"
    assert status_from_partstat("TENTATIVE") == "maybe"
    assert status_from_partstat("NEEDS-ACTION") == "maybe"
    assert status_from_partstat("DELEGATED") == "maybe"
    assert status_from_partstat(None) == "maybe"
