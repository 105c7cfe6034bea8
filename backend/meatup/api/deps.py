"""
Request dependencies: settings, collaborators and the admin guard.

Collaborators (senders, task queue) live on app.state so tests can swap in fakes via create_app.
"""
import hmac
import logging

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from meatup.config import Settings
from meatup.core.constants import USER_STATUS_ACTIVE
from meatup.core.errors import AuthenticationError, AuthorizationError, ConfigurationError
from meatup.db.session import get_db
from meatup.models.user import User
from meatup.services.reminder_dispatcher import EmailSender, SmsSender
from meatup.services.task_queue import TaskQueue

logger = logging.getLogger(__name__)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_sms_sender(request: Request) -> SmsSender:
    return request.app.state.sms_sender


def get_email_sender(request: Request) -> EmailSender:
    return request.app.state.email_sender


def get_task_queue(request: Request) -> TaskQueue:
    return request.app.state.task_queue


def secrets_match(provided: str | None, expected: str) -> bool:
    if not provided:
        return False
    return hmac.compare_digest(provided.strip().encode("utf-8"), expected.encode("utf-8"))


def require_admin(
    x_admin_token: str | None = Header(None, alias="X-Admin-Token"),
    x_admin_user_id: int | None = Header(None, alias="X-Admin-User-Id"),
    settings: Settings = Depends(get_app_settings),
    db: Session = Depends(get_db),
) -> User:
    """Shared admin token plus the acting admin's user id. Returns the admin user."""
    if not settings.admin_api_token:
        logger.error("ADMIN_API_TOKEN not configured")
        raise ConfigurationError("Admin API not configured")
    if not secrets_match(x_admin_token, settings.admin_api_token):
        raise AuthenticationError("Invalid admin token")
    if x_admin_user_id is None:
        raise AuthenticationError("Missing admin user")
    admin = db.query(User).filter(User.id == x_admin_user_id).first()
    if not admin or not admin.is_admin or admin.status != USER_STATUS_ACTIVE:
        raise AuthorizationError("Only admins can perform this action")
    return admin
