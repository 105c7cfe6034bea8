#!/usr/bin/env python3
"""
Run one reminder sweep and exit. For platform cron jobs that run a command instead of calling
POST /api/cron/reminders:
  cd backend && python scripts/run_reminder_sweep.py
"""
import logging
import sys
from pathlib import Path

backend_dir = Path(__file__).resolve().parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))


def main() -> int:
    from meatup.config import get_settings
    from meatup.db.session import build_engine, build_session_factory
    from meatup.scheduler.reminder_job import run_reminder_sweep
    from meatup.services.email_invites import ResendEmailClient
    from meatup.services.sms import TwilioSmsClient

    settings = get_settings()
    logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
    session_factory = build_session_factory(build_engine(settings))
    result = run_reminder_sweep(session_factory, settings, TwilioSmsClient(settings), ResendEmailClient(settings))
    if result is None:
        print("Reminder sweep failed; see log.")
        return 1
    print(f"Reminder sweep: sent={result.sent} failed={result.failed}")
    for err in result.errors:
        print("  •", err)
    return 0


if __name__ == "__main__":
    sys.exit(main())
