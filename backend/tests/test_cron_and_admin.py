from meatup.models import ActivityLog, Event, Poll, ReminderRecord, Rsvp
from tests.factories import ADMIN_TOKEN, CRON_SECRET, add_event, add_poll_with_votes, add_user, make_settings

FUTURE_DATE = "2099-01-15"


def _admin_headers(admin, token=ADMIN_TOKEN):
    return {"X-Admin-Token": token, "X-Admin-User-Id": str(admin.id)}


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


# --- Cron trigger ---


def test_cron_requires_secret(client):
    assert client.post("/api/cron/reminders").status_code == 401
    response = client.post("/api/cron/reminders", headers={"X-Cron-Secret": "wrong"})
    assert response.status_code == 401
    assert response.json() == {"error": "Invalid cron secret"}


def test_cron_without_configured_secret(app, client):
    app.state.settings = make_settings(cron_secret="")
    response = client.post("/api/cron/reminders", headers={"X-Cron-Secret": CRON_SECRET})
    assert response.status_code == 500


def test_cron_runs_sweep(client):
    response = client.post("/api/cron/reminders", headers={"X-Cron-Secret": CRON_SECRET})
    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert (body["sent"], body["failed"], body["errors"]) == (0, 0, [])
    assert "ran_at" in body


def test_cron_reports_unconfigured_sms(client, sms_sender):
    sms_sender.configured = False
    body = client.post("/api/cron/reminders", headers={"X-Cron-Secret": CRON_SECRET}).json()
    assert body["ok"] is True
    assert body["skipped"] == "sms_not_configured"


# --- Admin guard ---


def test_admin_guard(app, client, db):
    member = add_user(db, email="member@example.com", phone="+15551230002")
    admin = add_user(db, email="admin@example.com", phone="+15551230003", is_admin=True)
    url = "/api/admin/polls/active"

    assert client.get(url, headers=_admin_headers(admin, token="nope")).status_code == 401
    assert client.get(url, headers={"X-Admin-Token": ADMIN_TOKEN}).status_code == 401
    assert client.get(url, headers=_admin_headers(member)).status_code == 403
    assert client.get(url, headers=_admin_headers(admin)).status_code == 200

    app.state.settings = make_settings(admin_api_token="")
    response = client.get(url, headers=_admin_headers(admin))
    assert response.status_code == 500
    assert response.json() == {"error": "Admin API not configured"}


def test_inactive_admin_is_forbidden(client, db):
    admin = add_user(db, email="admin@example.com", is_admin=True, status="inactive")
    assert client.get("/api/admin/polls/active", headers=_admin_headers(admin)).status_code == 403


# --- Polls ---


def test_active_poll_leaders_route(client, db):
    voters = [add_user(db), add_user(db, email="admin@example.com", phone="+15551230002", is_admin=True)]
    poll, restaurant, date = add_poll_with_votes(db, voters, suggested_date=FUTURE_DATE)
    body = client.get("/api/admin/polls/active", headers=_admin_headers(voters[1])).json()
    assert body["active_poll"] == {"id": poll.id, "title": "Summer dinner", "status": "active"}
    assert body["top_restaurant"] == {
        "id": restaurant.id,
        "name": "Gibson's",
        "address": "1028 N Rush St",
        "vote_count": 2,
    }
    assert body["top_date"] == {"id": date.id, "suggested_date": FUTURE_DATE, "vote_count": 2}


def test_close_poll_route(client, db, email_sender, task_queue):
    voters = [add_user(db), add_user(db, email="admin@example.com", phone="+15551230002", is_admin=True)]
    poll, restaurant, date = add_poll_with_votes(db, voters, suggested_date=FUTURE_DATE)
    form = {
        "winning_restaurant_id": str(restaurant.id),
        "winning_date_id": str(date.id),
        "create_event": "true",
        "send_invites": "true",
        "event_time": "19:30",
    }
    response = client.post(f"/api/admin/polls/{poll.id}/close", data=form, headers=_admin_headers(voters[1]))
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["invites_queued"] is True

    event = db.query(Event).filter(Event.id == body["event_id"]).one()
    assert event.event_time == "19:30"
    assert len(email_sender.sent) == 2
    assert db.query(ActivityLog).filter(ActivityLog.action_type == "close_poll").count() == 1

    again = client.post(f"/api/admin/polls/{poll.id}/close", data=form, headers=_admin_headers(voters[1]))
    assert again.status_code == 400
    assert again.json() == {"error": "Poll is no longer active"}
    assert db.query(Event).count() == 1


def test_close_unknown_poll(client, db):
    admin = add_user(db, is_admin=True)
    response = client.post("/api/admin/polls/999/close", data={}, headers=_admin_headers(admin))
    assert response.status_code == 404
    assert db.query(Poll).count() == 0


# --- Event actions ---


def test_adhoc_sms_route(client, db, sms_sender):
    admin = add_user(db, is_admin=True)
    add_user(db, email="bob@example.com", phone="+15551230002")
    event = add_event(db, event_date=FUTURE_DATE)

    response = client.post(
        f"/api/admin/events/{event.id}/sms-reminders",
        data={"message": "Dress code: jackets.", "recipient_scope": "all"},
        headers=_admin_headers(admin),
    )
    assert response.status_code == 200
    assert response.json() == {"success": True, "sent": 2, "failed": 0, "errors": []}
    assert all("Dress code: jackets." in body for _, body in sms_sender.sent)
    assert db.query(ReminderRecord).count() == 2


def test_adhoc_sms_route_validation(client, db, sms_sender):
    admin = add_user(db, is_admin=True)
    event = add_event(db, event_date=FUTURE_DATE)
    headers = _admin_headers(admin)
    url = f"/api/admin/events/{event.id}/sms-reminders"

    assert client.post(url, data={"recipient_scope": "everyone"}, headers=headers).status_code == 400
    assert client.post(url, data={"recipient_scope": "specific"}, headers=headers).status_code == 400
    assert client.post("/api/admin/events/999/sms-reminders", data={}, headers=headers).status_code == 404

    sms_sender.configured = False
    response = client.post(url, data={}, headers=headers)
    assert response.status_code == 500
    assert response.json() == {"error": "Twilio credentials are missing."}


def test_rsvp_override_route(client, db):
    admin = add_user(db, is_admin=True)
    member = add_user(db, email="bob@example.com", phone="+15551230002")
    event = add_event(db, event_date=FUTURE_DATE)

    response = client.post(
        f"/api/admin/events/{event.id}/rsvps/{member.id}",
        data={"status": "Maybe"},
        headers=_admin_headers(admin),
    )
    assert response.status_code == 200
    assert response.json() == {"success": True, "result": "created", "status": "maybe"}

    rsvp = db.query(Rsvp).filter(Rsvp.user_id == member.id).one()
    assert rsvp.status == "maybe"
    assert rsvp.admin_override is True
    assert rsvp.admin_override_by == admin.id

    bad = client.post(
        f"/api/admin/events/{event.id}/rsvps/{member.id}",
        data={"status": "later"},
        headers=_admin_headers(admin),
    )
    assert bad.status_code == 400
    missing = client.post(
        f"/api/admin/events/{event.id}/rsvps/999",
        data={"status": "yes"},
        headers=_admin_headers(admin),
    )
    assert missing.status_code == 404
