#!/usr/bin/env python3
"""
Quick checks so the backend can start and deliver. Run from backend/:
  python scripts/check_backend.py
"""
import os
import sys
from pathlib import Path

# Run from backend/
backend_dir = Path(__file__).resolve().parent.parent
os.chdir(backend_dir)
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))


def main():
    errors = []
    warnings = []

    # 1) .env
    env_file = backend_dir / ".env"
    if not env_file.exists():
        warnings.append("backend/.env missing; settings come from the environment only.")
    else:
        print("OK  .env exists")

    # 2) Settings and zone
    try:
        from meatup.config import get_settings
        from meatup.services.clock import get_zone

        settings = get_settings()
        zone = get_zone(settings.app_timezone)
        print(f"OK  Settings loaded (zone {zone.key})")
    except Exception as e:
        print("FAIL Settings:", e)
        return 1

    # 3) DB connection
    try:
        from sqlalchemy import text
        from meatup.db.session import build_engine

        with build_engine(settings).connect() as conn:
            conn.execute(text("SELECT 1"))
        print("OK  Database connection (DATABASE_URL)")
    except Exception as e:
        errors.append(f"Database: {e}")
        print("FAIL Database:", e)

    # 4) Delivery and webhook secrets
    if not settings.twilio_configured():
        warnings.append("Twilio not configured: SMS reminders are skipped and the SMS webhook answers 500.")
    if not settings.resend_api_key:
        warnings.append("RESEND_API_KEY not set: calendar invites are skipped.")
    if not settings.resend_webhook_secret:
        warnings.append("RESEND_WEBHOOK_SECRET not set: the email RSVP webhook answers 500.")
    if not settings.cron_secret:
        warnings.append("CRON_SECRET not set: POST /api/cron/reminders answers 500.")
    if not settings.admin_api_token:
        warnings.append("ADMIN_API_TOKEN not set: admin routes answer 500.")

    # 5) App import (catches missing deps, bad imports)
    try:
        from meatup.main import app  # noqa: F401
        print("OK  App import (meatup.main)")
    except Exception as e:
        errors.append(f"App import: {e}")
        print("FAIL App import:", e)

    for w in warnings:
        print("WARN", w)
    if errors:
        print("\n---")
        for e in errors:
            print("•", e)
        return 1

    print("\nAll checks passed. Start with: uvicorn meatup.main:app --reload")
    return 0


if __name__ == "__main__":
    sys.exit(main())
