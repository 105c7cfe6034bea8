from datetime import datetime, timezone

import pytest

from meatup.core.errors import BusinessRuleError, NotFoundError, PayloadValidationError
from meatup.models import DateSuggestion, Event, Poll, PollExcludedRestaurant, ReminderRecord, Restaurant, RestaurantVote
from meatup.services.poll_service import ClosePollRequest, PollClosureCoordinator, get_active_poll_leaders
from tests.factories import FakeEmailSender, add_poll_with_votes, add_user

NOW = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def voters(db):
    return [
        add_user(db, email="ann@example.com", phone="+15551230001"),
        add_user(db, email="bob@example.com", phone="+15551230002", is_admin=True),
    ]


@pytest.fixture
def coordinator(db, settings, task_queue, email_sender):
    return PollClosureCoordinator(db, settings, task_queue, email_sender)


def _request(poll, restaurant, date, admin, **kw):
    values = dict(
        poll_id=poll.id,
        admin_id=admin.id,
        winning_restaurant_id=restaurant.id,
        winning_date_id=date.id,
        create_event=True,
    )
    values.update(kw)
    return ClosePollRequest(**values)


def test_active_poll_leaders(db, voters):
    poll, restaurant, date = add_poll_with_votes(db, voters)
    runner_up = Restaurant(name="Bavette's", address="218 W Kinzie St")
    excluded = Restaurant(name="Excluded Steakhouse")
    db.add_all([runner_up, excluded])
    db.flush()
    db.add(RestaurantVote(poll_id=poll.id, restaurant_id=runner_up.id, user_id=voters[0].id))
    # Ties the leader, but excluded from this poll
    for u in voters:
        db.add(RestaurantVote(poll_id=poll.id, restaurant_id=excluded.id, user_id=u.id))
    db.add(PollExcludedRestaurant(poll_id=poll.id, restaurant_id=excluded.id))
    db.commit()

    leaders = get_active_poll_leaders(db)
    assert leaders.active_poll.id == poll.id
    assert leaders.top_restaurant.id == restaurant.id
    assert leaders.top_restaurant.vote_count == 2
    assert leaders.top_date.id == date.id
    assert leaders.top_date.suggested_date == "2026-07-04"


def test_leaders_without_votes_or_poll(db, voters):
    assert get_active_poll_leaders(db).active_poll is None
    add_poll_with_votes(db, voters, restaurant_votes=0, date_votes=0)
    leaders = get_active_poll_leaders(db)
    assert leaders.active_poll is not None
    assert leaders.top_restaurant is None
    assert leaders.top_date is None


def test_close_creates_event_and_queues_invites(db, voters, coordinator, task_queue, email_sender):
    poll, restaurant, date = add_poll_with_votes(db, voters)
    result = coordinator.close_poll(_request(poll, restaurant, date, voters[1], send_invites=True), now=NOW)

    assert result.invites_queued is True
    event = db.query(Event).filter(Event.id == result.event_id).one()
    assert (event.restaurant_name, event.event_date, event.event_time) == ("Gibson's", "2026-07-04", "18:00")

    db.expire_all()
    closed = db.query(Poll).filter(Poll.id == poll.id).one()
    assert closed.status == "closed"
    assert closed.closed_by == voters[1].id
    assert closed.created_event_id == event.id
    assert closed.winning_date_id == date.id

    assert task_queue.completed == [f"invites-event-{event.id}"]
    assert sorted(m["to"] for m in email_sender.sent) == ["ann@example.com", "bob@example.com"]
    assert db.query(ReminderRecord).filter(ReminderRecord.reminder_type == "invite").count() == 2


def test_close_without_event(db, voters, coordinator, task_queue):
    poll, restaurant, date = add_poll_with_votes(db, voters)
    result = coordinator.close_poll(
        ClosePollRequest(poll_id=poll.id, admin_id=voters[1].id), now=NOW
    )
    assert result.event_id is None
    assert result.invites_queued is False
    assert task_queue.completed == []
    db.expire_all()
    assert db.query(Poll.status).filter(Poll.id == poll.id).scalar() == "closed"


def test_zero_vote_winner_is_rejected(db, voters, coordinator):
    poll, restaurant, date = add_poll_with_votes(db, voters, date_votes=0)
    with pytest.raises(BusinessRuleError, match="at least 1 vote"):
        coordinator.close_poll(_request(poll, restaurant, date, voters[1]), now=NOW)
    assert db.query(Event).count() == 0
    assert db.query(Poll.status).filter(Poll.id == poll.id).scalar() == "active"


def test_past_date_is_rejected(db, voters, coordinator):
    poll, restaurant, date = add_poll_with_votes(db, voters, suggested_date="2026-05-01")
    with pytest.raises(BusinessRuleError, match="in the past"):
        coordinator.close_poll(_request(poll, restaurant, date, voters[1]), now=NOW)


def test_date_from_another_poll_is_rejected(db, voters, coordinator):
    poll, restaurant, _ = add_poll_with_votes(db, voters)
    other = Poll(title="Other", status="closed")
    db.add(other)
    db.flush()
    foreign = DateSuggestion(poll_id=other.id, suggested_date="2026-08-01")
    db.add(foreign)
    db.commit()
    with pytest.raises(BusinessRuleError, match="does not belong"):
        coordinator.close_poll(_request(poll, restaurant, foreign, voters[1]), now=NOW)


def test_excluded_restaurant_is_rejected(db, voters, coordinator):
    poll, restaurant, date = add_poll_with_votes(db, voters)
    db.add(PollExcludedRestaurant(poll_id=poll.id, restaurant_id=restaurant.id))
    db.commit()
    with pytest.raises(BusinessRuleError, match="excluded"):
        coordinator.close_poll(_request(poll, restaurant, date, voters[1]), now=NOW)


def test_invites_need_an_address(db, voters, coordinator):
    poll, restaurant, date = add_poll_with_votes(db, voters, address=None)
    with pytest.raises(BusinessRuleError, match="missing an address"):
        coordinator.close_poll(_request(poll, restaurant, date, voters[1], send_invites=True), now=NOW)
    # Without invites the same winner is fine
    result = coordinator.close_poll(_request(poll, restaurant, date, voters[1]), now=NOW)
    assert result.event_id is not None


def test_request_validation(db, voters, coordinator):
    poll, restaurant, date = add_poll_with_votes(db, voters)
    with pytest.raises(PayloadValidationError, match="required"):
        coordinator.close_poll(_request(poll, restaurant, date, voters[1], winning_date_id=None), now=NOW)
    with pytest.raises(PayloadValidationError, match="Invalid event time"):
        coordinator.close_poll(_request(poll, restaurant, date, voters[1], event_time="25:00"), now=NOW)
    with pytest.raises(BusinessRuleError, match="not found"):
        coordinator.close_poll(_request(poll, restaurant, date, voters[1], winning_restaurant_id=9999), now=NOW)
    with pytest.raises(NotFoundError):
        coordinator.close_poll(ClosePollRequest(poll_id=9999, admin_id=voters[1].id), now=NOW)


def test_second_close_is_rejected(db, voters, coordinator):
    poll, restaurant, date = add_poll_with_votes(db, voters)
    coordinator.close_poll(_request(poll, restaurant, date, voters[1]), now=NOW)
    with pytest.raises(BusinessRuleError, match="no longer active"):
        coordinator.close_poll(_request(poll, restaurant, date, voters[0]), now=NOW)
    assert db.query(Event).count() == 1


def test_concurrent_close_discards_the_loser(db, voters, coordinator, monkeypatch):
    poll, restaurant, date = add_poll_with_votes(db, voters)
    validate = coordinator._validated_event

    def validate_then_lose_race(req, now):
        event = validate(req, now)
        # Another admin closes the poll after our checks passed
        db.query(Poll).filter(Poll.id == poll.id).update({Poll.status: "closed"}, synchronize_session=False)
        db.commit()
        return event

    monkeypatch.setattr(coordinator, "_validated_event", validate_then_lose_race)
    with pytest.raises(BusinessRuleError, match="no longer active"):
        coordinator.close_poll(_request(poll, restaurant, date, voters[1], send_invites=True), now=NOW)

    assert db.query(Event).count() == 0
    assert db.query(Poll.created_event_id).filter(Poll.id == poll.id).scalar() is None


def test_failed_invite_task_does_not_undo_close(db, voters, settings, task_queue):
    poll, restaurant, date = add_poll_with_votes(db, voters)
    email = FakeEmailSender(fail_addresses={"ann@example.com"})
    result = PollClosureCoordinator(db, settings, task_queue, email).close_poll(
        _request(poll, restaurant, date, voters[1], send_invites=True), now=NOW
    )
    assert result.invites_queued is True
    assert [m["to"] for m in email.sent] == ["bob@example.com"]
    db.expire_all()
    assert db.query(Poll.status).filter(Poll.id == poll.id).scalar() == "closed"
