"""
Reminder sweep trigger for an external scheduler (platform cron, uptime pinger).

Always answers 200 once authenticated: failures are logged and reported in the summary, never
thrown back at the scheduler.
"""
import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, Header
from sqlalchemy.orm import Session

from meatup.api.deps import get_app_settings, get_email_sender, get_sms_sender, secrets_match
from meatup.config import Settings
from meatup.core.errors import AuthenticationError, ConfigurationError
from meatup.db.session import get_db
from meatup.services.reminder_dispatcher import EmailSender, ReminderDispatcher, SmsSender

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/reminders")
def run_reminders(
    x_cron_secret: str | None = Header(None, alias="X-Cron-Secret"),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    sms_sender: SmsSender = Depends(get_sms_sender),
    email_sender: EmailSender = Depends(get_email_sender),
) -> dict[str, Any]:
    if not settings.cron_secret:
        logger.error("CRON_SECRET not configured")
        raise ConfigurationError("Cron trigger not configured")
    if not secrets_match(x_cron_secret, settings.cron_secret):
        raise AuthenticationError("Invalid cron secret")

    started = datetime.now(timezone.utc)
    try:
        result = ReminderDispatcher(db, settings, sms_sender, email_sender).send_scheduled_reminders(started)
    except Exception as e:
        logger.exception("Reminder sweep failed: %s", e)
        db.rollback()
        return {"ok": False, "error": str(e), "ran_at": started.isoformat()}
    logger.info("Reminder sweep: sent=%s failed=%s", result.sent, result.failed)
    return {"ok": True, "ran_at": started.isoformat(), **result.as_dict()}
