"""
In-process reminder sweep for single-host deployments (SCHEDULER_ENABLED=true).
Production normally drives the same sweep from POST /api/cron/reminders or scripts/run_reminder_sweep.py.
"""
import logging
from datetime import datetime, timezone

from sqlalchemy.orm import sessionmaker

from meatup.config import Settings
from meatup.services.reminder_dispatcher import DispatchResult, EmailSender, ReminderDispatcher, SmsSender

logger = logging.getLogger(__name__)


def run_reminder_sweep(
    session_factory: sessionmaker,
    settings: Settings,
    sms_sender: SmsSender,
    email_sender: EmailSender | None = None,
    now: datetime | None = None,
) -> DispatchResult | None:
    db = session_factory()
    try:
        result = ReminderDispatcher(db, settings, sms_sender, email_sender).send_scheduled_reminders(
            now or datetime.now(timezone.utc)
        )
        if result.sent or result.failed:
            logger.info("Reminder job: sent=%s failed=%s", result.sent, result.failed)
        return result
    except Exception as e:
        logger.exception("Reminder job failed: %s", e)
        db.rollback()
        return None
    finally:
        db.close()
