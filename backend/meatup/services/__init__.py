from meatup.services.clock import event_instant, get_zone
from meatup.services.poll_service import ClosePollRequest, ClosePollResult, PollClosureCoordinator, get_active_poll_leaders
from meatup.services.reminder_dispatcher import DispatchResult, ReminderDispatcher
from meatup.services.rsvp_service import admin_override_rsvp, upsert_rsvp

__all__ = [
    "event_instant",
    "get_zone",
    "ClosePollRequest",
    "ClosePollResult",
    "PollClosureCoordinator",
    "get_active_poll_leaders",
    "DispatchResult",
    "ReminderDispatcher",
    "admin_override_rsvp",
    "upsert_rsvp",
]
