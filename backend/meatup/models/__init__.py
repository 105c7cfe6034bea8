from meatup.models.activity_log import ActivityLog
from meatup.models.event import Event
from meatup.models.poll import DateSuggestion, DateVote, Poll, PollExcludedRestaurant, Restaurant, RestaurantVote
from meatup.models.rate_limit import ApiRateLimit
from meatup.models.reminder_record import ReminderRecord
from meatup.models.rsvp import Rsvp
from meatup.models.user import User

__all__ = [
    "ActivityLog",
    "ApiRateLimit",
    "DateSuggestion",
    "DateVote",
    "Event",
    "Poll",
    "PollExcludedRestaurant",
    "ReminderRecord",
    "Restaurant",
    "RestaurantVote",
    "Rsvp",
    "User",
]
