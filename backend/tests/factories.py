"""Row builders and fakes shared by the tests."""
import base64
from dataclasses import dataclass, field

from meatup.config import Settings
from meatup.models import DateSuggestion, DateVote, Event, Poll, Restaurant, RestaurantVote, User
from meatup.services.sms import SendResult

SVIX_SECRET = "whsec_" + base64.b64encode(b"meatup-test-webhook-signing-key!").decode("ascii")
TWILIO_TOKEN = "twilio-test-token"
ADMIN_TOKEN = "admin-test-token"
CRON_SECRET = "cron-test-secret"


def make_settings(**overrides) -> Settings:
    values = {
        "database_url": "sqlite://",
        "app_timezone": "America/New_York",
        "public_base_url": "https://meatup.club",
        "calendar_uid_domain": "meatup.club",
        "twilio_account_sid": "AC_test",
        "twilio_auth_token": TWILIO_TOKEN,
        "twilio_from_number": "+15550000000",
        "resend_api_key": "re_test",
        "resend_webhook_secret": SVIX_SECRET,
        "cron_secret": CRON_SECRET,
        "admin_api_token": ADMIN_TOKEN,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@dataclass
class FakeSmsSender:
    configured: bool = True
    fail_numbers: set = field(default_factory=set)
    sent: list = field(default_factory=list)

    def is_configured(self) -> bool:
        return self.configured

    def send(self, to: str, body: str) -> SendResult:
        if to in self.fail_numbers:
            return SendResult(False, "carrier rejected")
        self.sent.append((to, body))
        return SendResult(True)


@dataclass
class FakeEmailSender:
    configured: bool = True
    fail_addresses: set = field(default_factory=set)
    sent: list = field(default_factory=list)

    def is_configured(self) -> bool:
        return self.configured

    def send(self, to, subject, html_body, text_body, attachments=None) -> SendResult:
        if to in self.fail_addresses:
            return SendResult(False, "mailbox unavailable")
        self.sent.append({"to": to, "subject": subject, "attachments": attachments or []})
        return SendResult(True)


def add_user(db, email="ann@example.com", phone="+15551230001", **kw) -> User:
    values = {
        "email": email,
        "name": email.split("@")[0].title(),
        "phone_number": phone,
        "sms_opt_in": True,
        "status": "active",
        "is_admin": False,
    }
    values.update(kw)
    user = User(**values)
    db.add(user)
    db.commit()
    return user


def add_event(db, event_date="2026-07-04", event_time="18:00", **kw) -> Event:
    values = {
        "restaurant_name": "Gibson's",
        "restaurant_address": "1028 N Rush St, Chicago",
        "event_date": event_date,
        "event_time": event_time,
        "status": "upcoming",
    }
    values.update(kw)
    event = Event(**values)
    db.add(event)
    db.commit()
    return event


def add_poll_with_votes(db, voters, suggested_date="2026-07-04", address="1028 N Rush St", restaurant_votes=None, date_votes=None):
    """Active poll with one restaurant and one date. Vote counts default to one vote per voter."""
    poll = Poll(title="Summer dinner", status="active")
    restaurant = Restaurant(name="Gibson's", address=address)
    db.add_all([poll, restaurant])
    db.flush()
    date = DateSuggestion(poll_id=poll.id, suggested_date=suggested_date)
    db.add(date)
    db.flush()
    r_voters = voters if restaurant_votes is None else voters[:restaurant_votes]
    d_voters = voters if date_votes is None else voters[:date_votes]
    for u in r_voters:
        db.add(RestaurantVote(poll_id=poll.id, restaurant_id=restaurant.id, user_id=u.id))
    for u in d_voters:
        db.add(DateVote(poll_id=poll.id, date_suggestion_id=date.id, user_id=u.id))
    db.commit()
    return poll, restaurant, date
