"""
FastAPI app entrypoint: inbound webhooks, the reminder trigger and admin actions.

Run: uvicorn meatup.main:app
"""
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from apscheduler.schedulers.background import BackgroundScheduler
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import sessionmaker

# Load .env from backend/ before any app code
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from meatup.api.routes import admin, cron, webhooks
from meatup.config import Settings, get_settings
from meatup.core.constants import REMINDER_SWEEP_JOB_ID
from meatup.core.errors import MeatupError, error_to_http
from meatup.db.session import build_engine, build_session_factory
from meatup.scheduler.reminder_job import run_reminder_sweep
from meatup.services.email_invites import ResendEmailClient
from meatup.services.reminder_dispatcher import EmailSender, SmsSender
from meatup.services.sms import TwilioSmsClient
from meatup.services.task_queue import TaskQueue, ThreadTaskQueue

logger = logging.getLogger(__name__)


def _lifespan_for(settings: Settings):
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        scheduler = None
        if settings.scheduler_enabled:
            scheduler = BackgroundScheduler()
            scheduler.add_job(
                run_reminder_sweep,
                "interval",
                minutes=settings.reminder_interval_minutes,
                id=REMINDER_SWEEP_JOB_ID,
                args=[app.state.session_factory, settings, app.state.sms_sender, app.state.email_sender],
                max_instances=1,
                coalesce=True,
            )
            scheduler.start()
            app.state.scheduler = scheduler
            logger.info("Reminder sweep scheduled every %s minutes", settings.reminder_interval_minutes)
        logger.info("Backend ready (%s, zone %s)", settings.club_name, settings.app_timezone)
        yield
        if scheduler is not None:
            scheduler.shutdown(wait=False)

    return lifespan


def create_app(
    settings: Settings | None = None,
    session_factory: sessionmaker | None = None,
    sms_sender: SmsSender | None = None,
    email_sender: EmailSender | None = None,
    task_queue: TaskQueue | None = None,
) -> FastAPI:
    """Build the app. Tests pass their own settings, session factory and fake senders."""
    settings = settings or get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if session_factory is None:
        session_factory = build_session_factory(build_engine(settings))

    app = FastAPI(title="Meatup Notify", version="0.1.0", lifespan=_lifespan_for(settings))
    app.state.settings = settings
    app.state.session_factory = session_factory
    app.state.sms_sender = sms_sender or TwilioSmsClient(settings)
    app.state.email_sender = email_sender or ResendEmailClient(settings)
    app.state.task_queue = task_queue or ThreadTaskQueue(session_factory)

    @app.exception_handler(MeatupError)
    async def meatup_error_handler(request: Request, exc: MeatupError) -> JSONResponse:
        status, body = error_to_http(exc)
        if status >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=status, content=body)

    app.include_router(webhooks.router, prefix="/api/webhooks", tags=["webhooks"])
    app.include_router(cron.router, prefix="/api/cron", tags=["cron"])
    app.include_router(admin.router, prefix="/api/admin", tags=["admin"])

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()
