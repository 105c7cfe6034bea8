"""
Poll leaders and poll closure.

close_poll validates against a fresh read of the votes for this poll, then in one transaction
creates the event and flips the poll from active to closed with a conditional UPDATE. Two admins
closing the same poll race on that UPDATE: exactly one sees a row change, the other rolls back
(including its event insert) and gets "Poll is no longer active".
Invites are enqueued only after the commit.
"""
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import and_, func
from sqlalchemy.orm import Session

from meatup.config import Settings
from meatup.core.constants import DEFAULT_EVENT_TIME, EVENT_STATUS_UPCOMING, POLL_STATUS_ACTIVE, POLL_STATUS_CLOSED
from meatup.core.errors import BusinessRuleError, NotFoundError, PayloadValidationError
from meatup.models.event import Event
from meatup.models.poll import DateSuggestion, DateVote, Poll, PollExcludedRestaurant, Restaurant, RestaurantVote
from meatup.services.clock import get_zone, is_in_future
from meatup.services.email_invites import ResendEmailClient
from meatup.services.reminder_dispatcher import EmailSender, ReminderDispatcher
from meatup.services.task_queue import TaskQueue

logger = logging.getLogger(__name__)

_EVENT_TIME = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


@dataclass(frozen=True)
class RestaurantLeader:
    id: int
    name: str
    address: str | None
    vote_count: int


@dataclass(frozen=True)
class DateLeader:
    id: int
    suggested_date: str
    vote_count: int


@dataclass(frozen=True)
class PollLeaders:
    active_poll: Poll | None
    top_restaurant: RestaurantLeader | None
    top_date: DateLeader | None


@dataclass(frozen=True)
class ClosePollRequest:
    poll_id: int
    admin_id: int
    winning_restaurant_id: int | None = None
    winning_date_id: int | None = None
    create_event: bool = False
    send_invites: bool = False
    event_time: str = DEFAULT_EVENT_TIME


@dataclass(frozen=True)
class ClosePollResult:
    poll_id: int
    event_id: int | None
    invites_queued: bool


def _restaurant_votes_query(db: Session, poll_id: int):
    vote_count = func.count(RestaurantVote.user_id)
    return (
        db.query(Restaurant.id, Restaurant.name, Restaurant.address, vote_count.label("vote_count"))
        .outerjoin(RestaurantVote, and_(RestaurantVote.restaurant_id == Restaurant.id, RestaurantVote.poll_id == poll_id))
        .group_by(Restaurant.id, Restaurant.name, Restaurant.address)
    ), vote_count


def _date_votes_query(db: Session, poll_id: int):
    vote_count = func.count(DateVote.id)
    return (
        db.query(DateSuggestion.id, DateSuggestion.suggested_date, vote_count.label("vote_count"))
        .outerjoin(DateVote, and_(DateVote.date_suggestion_id == DateSuggestion.id, DateVote.poll_id == poll_id))
        .filter(DateSuggestion.poll_id == poll_id)
        .group_by(DateSuggestion.id, DateSuggestion.suggested_date)
    ), vote_count


def get_active_poll(db: Session) -> Poll | None:
    return (
        db.query(Poll)
        .filter(Poll.status == POLL_STATUS_ACTIVE)
        .order_by(Poll.created_at.desc(), Poll.id.desc())
        .first()
    )


def get_active_poll_leaders(db: Session) -> PollLeaders:
    """Most-voted restaurant (not excluded from the poll) and date for the newest active poll."""
    poll = get_active_poll(db)
    if poll is None:
        return PollLeaders(None, None, None)

    q, r_votes = _restaurant_votes_query(db, poll.id)
    top_r = (
        q.outerjoin(
            PollExcludedRestaurant,
            and_(PollExcludedRestaurant.restaurant_id == Restaurant.id, PollExcludedRestaurant.poll_id == poll.id),
        )
        .filter(PollExcludedRestaurant.id.is_(None))
        .having(r_votes > 0)
        .order_by(r_votes.desc(), Restaurant.id.asc())
        .first()
    )
    q, d_votes = _date_votes_query(db, poll.id)
    top_d = q.having(d_votes > 0).order_by(d_votes.desc(), DateSuggestion.id.asc()).first()

    return PollLeaders(
        active_poll=poll,
        top_restaurant=RestaurantLeader(top_r.id, top_r.name, top_r.address, int(top_r.vote_count)) if top_r else None,
        top_date=DateLeader(top_d.id, top_d.suggested_date, int(top_d.vote_count)) if top_d else None,
    )


class PollClosureCoordinator:
    def __init__(
        self,
        db: Session,
        settings: Settings,
        task_queue: TaskQueue,
        email_sender: EmailSender | None = None,
    ) -> None:
        self.db = db
        self.settings = settings
        self.task_queue = task_queue
        self.email_sender = email_sender or ResendEmailClient(settings)
        self.zone = get_zone(settings.app_timezone)

    def _validated_event(self, req: ClosePollRequest, now: datetime) -> Event:
        if not req.winning_restaurant_id or not req.winning_date_id:
            raise PayloadValidationError("Winning restaurant and date are required to create an event")
        if not _EVENT_TIME.match(req.event_time or ""):
            raise PayloadValidationError("Invalid event time", event_time=req.event_time)

        excluded = (
            self.db.query(PollExcludedRestaurant.id)
            .filter(
                PollExcludedRestaurant.poll_id == req.poll_id,
                PollExcludedRestaurant.restaurant_id == req.winning_restaurant_id,
            )
            .first()
        )
        q, _ = _restaurant_votes_query(self.db, req.poll_id)
        restaurant = q.filter(Restaurant.id == req.winning_restaurant_id).first()
        date_row = (
            self.db.query(DateSuggestion.id, DateSuggestion.poll_id, DateSuggestion.suggested_date)
            .filter(DateSuggestion.id == req.winning_date_id)
            .first()
        )
        if restaurant is None or date_row is None:
            raise BusinessRuleError("Selected restaurant or date not found")
        if excluded is not None:
            raise BusinessRuleError("Selected restaurant is excluded from this poll")
        if date_row.poll_id != req.poll_id:
            raise BusinessRuleError("Selected date does not belong to this poll")

        q, _ = _date_votes_query(self.db, req.poll_id)
        date_votes = q.filter(DateSuggestion.id == req.winning_date_id).first()
        date_vote_count = int(date_votes.vote_count) if date_votes else 0

        if not is_in_future(date_row.suggested_date, req.event_time, self.zone, now):
            raise BusinessRuleError("Cannot create event for a date in the past")
        if int(restaurant.vote_count) == 0 or date_vote_count == 0:
            raise BusinessRuleError("Cannot create event: winning options must have at least 1 vote")
        if req.send_invites and not restaurant.address:
            raise BusinessRuleError(
                "Cannot send calendar invites: restaurant is missing an address. Please add an address first."
            )
        return Event(
            restaurant_name=restaurant.name,
            restaurant_address=restaurant.address,
            event_date=date_row.suggested_date,
            event_time=req.event_time,
            status=EVENT_STATUS_UPCOMING,
        )

    def close_poll(self, req: ClosePollRequest, now: datetime | None = None) -> ClosePollResult:
        now = now or datetime.now(timezone.utc)
        poll = self.db.query(Poll).filter(Poll.id == req.poll_id).first()
        if poll is None:
            raise NotFoundError("Poll not found", poll_id=req.poll_id)
        if poll.status != POLL_STATUS_ACTIVE:
            raise BusinessRuleError("Poll is no longer active")

        event = self._validated_event(req, now) if req.create_event else None

        event_id = None
        if event is not None:
            self.db.add(event)
            self.db.flush()
            event_id = event.id

        updated = (
            self.db.query(Poll)
            .filter(Poll.id == req.poll_id, Poll.status == POLL_STATUS_ACTIVE)
            .update(
                {
                    Poll.status: POLL_STATUS_CLOSED,
                    Poll.closed_by: req.admin_id,
                    Poll.closed_at: now,
                    Poll.winning_restaurant_id: req.winning_restaurant_id,
                    Poll.winning_date_id: req.winning_date_id,
                    Poll.created_event_id: event_id,
                },
                synchronize_session=False,
            )
        )
        if updated == 0:
            self.db.rollback()
            logger.info("Poll %s was closed concurrently; discarding this close", req.poll_id)
            raise BusinessRuleError("Poll is no longer active")
        self.db.commit()
        logger.info("Poll %s closed by user %s (event %s)", req.poll_id, req.admin_id, event_id)

        invites_queued = False
        if event_id is not None and req.send_invites:
            self.task_queue.enqueue(f"invites-event-{event_id}", self._invite_task(event_id))
            invites_queued = True
        return ClosePollResult(poll_id=req.poll_id, event_id=event_id, invites_queued=invites_queued)

    def _invite_task(self, event_id: int):
        settings = self.settings
        email_sender = self.email_sender

        def send_invites(db: Session) -> None:
            dispatcher = ReminderDispatcher(db, settings, email_sender=email_sender)
            result = dispatcher.send_event_invites(event_id)
            if result.errors:
                logger.warning("Invites for event %s finished with errors: %s", event_id, result.errors)

        return send_invites
