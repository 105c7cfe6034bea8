"""
Centralized constants for scheduling, reminders and statuses.

Change job IDs, labels or defaults here instead of scattering literals across services and routes.
"""
# Scheduler job IDs (must match ids used in main.py add_job)
REMINDER_SWEEP_JOB_ID = "sms_reminder_sweep"

DEFAULT_EVENT_TIME = "18:00"

# Event lifecycle
EVENT_STATUS_UPCOMING = "upcoming"
EVENT_STATUS_COMPLETED = "completed"
EVENT_STATUS_CANCELLED = "cancelled"

# User lifecycle; only active users receive anything
USER_STATUS_ACTIVE = "active"
USER_STATUS_INVITED = "invited"
USER_STATUS_INACTIVE = "inactive"

# Poll lifecycle: active -> closed, one-way
POLL_STATUS_ACTIVE = "active"
POLL_STATUS_CLOSED = "closed"

RSVP_STATUSES = ("yes", "no", "maybe")

# reminder_records.reminder_type for non-offset deliveries
REMINDER_TYPE_INVITE = "invite"
ADHOC_REMINDER_PREFIX = "adhoc:"

CHANNEL_SMS = "sms"
CHANNEL_EMAIL = "email"

# Ad-hoc broadcast scopes
RECIPIENT_SCOPES = ("all", "yes", "no", "maybe", "pending", "specific")

# Inbound rate limiting (fixed window)
RATE_LIMIT_WINDOW_SECONDS = 60
RATE_LIMIT_SCOPE_SMS = "webhook_sms"
RATE_LIMIT_SCOPE_EMAIL = "webhook_email"

# Calendar invite: event length
EVENT_DURATION_HOURS = 2
