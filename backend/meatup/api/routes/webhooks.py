"""
Inbound webhooks: Twilio SMS replies and Resend inbound email (calendar replies).

Both are rate limited per client IP and authenticated before anything touches member data.
"""
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, Response
from sqlalchemy.orm import Session

from meatup.api.deps import get_app_settings
from meatup.config import Settings
from meatup.core.constants import RATE_LIMIT_SCOPE_EMAIL, RATE_LIMIT_SCOPE_SMS
from meatup.core.errors import MeatupError, RateLimitedError, error_to_http
from meatup.db.session import get_db
from meatup.services.activity import client_ip
from meatup.services.inbound_auth import TWILIO_SIGNATURE_HEADER, verify_email_webhook, verify_twilio_signature
from meatup.services.inbound_replies import handle_calendar_reply, handle_sms_reply
from meatup.services.rate_limit import enforce_rate_limit
from meatup.services.reply_parser import IgnoredWebhook, parse_email_webhook
from meatup.services.sms import build_sms_response

router = APIRouter()
logger = logging.getLogger(__name__)

TWIML_MEDIA_TYPE = "text/xml"


def _twiml(message: str | None = None, status_code: int = 200) -> Response:
    return Response(content=build_sms_response(message), media_type=TWIML_MEDIA_TYPE, status_code=status_code)


def _check_rate_limit(db: Session, settings: Settings, scope: str, request: Request) -> None:
    ip = client_ip(request, settings.trusted_proxy_headers) or "unknown"
    result = enforce_rate_limit(db, scope, ip, settings.inbound_rate_limit_per_minute)
    if not result.allowed:
        logger.warning("Rate limit exceeded on %s for %s", scope, ip)
        raise RateLimitedError("Too many requests", retry_at=result.reset_at)


def signing_url(request: Request, settings: Settings) -> str:
    """URL Twilio signed: the public URL when one is configured (proxy deployments), else the request URL."""
    if settings.public_base_url:
        url = f"{settings.public_base_url}{request.url.path}"
        if request.url.query:
            url += f"?{request.url.query}"
        return url
    return str(request.url)


@router.post("/sms")
async def sms_webhook(
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> Response:
    if not settings.twilio_auth_token:
        logger.error("TWILIO_AUTH_TOKEN not configured; rejecting inbound SMS")
        return Response("SMS webhook not configured", status_code=500, media_type="text/plain")
    try:
        await run_in_threadpool(_check_rate_limit, db, settings, RATE_LIMIT_SCOPE_SMS, request)
    except RateLimitedError:
        return Response("Too many requests", status_code=429, media_type="text/plain")

    form = await request.form()
    params = [(key, value) for key, value in form.multi_items() if isinstance(value, str)]
    signature = request.headers.get(TWILIO_SIGNATURE_HEADER)
    if not verify_twilio_signature(signing_url(request, settings), params, signature, settings.twilio_auth_token):
        logger.warning("Inbound SMS rejected: invalid signature")
        return Response("Invalid signature", status_code=401, media_type="text/plain")

    fields = dict(params)
    try:
        reply = await run_in_threadpool(
            handle_sms_reply, db, settings, fields.get("From"), fields.get("Body"), None, request
        )
    except Exception as e:
        logger.exception("Inbound SMS failed: %s", e)
        db.rollback()
        return _twiml(status_code=500)
    return _twiml(reply)


def _process_email(db: Session, settings: Settings, raw_body: bytes, headers: dict[str, str], request: Request):
    payload = verify_email_webhook(raw_body, headers, settings.resend_webhook_secret)
    webhook = parse_email_webhook(payload)
    if isinstance(webhook, IgnoredWebhook):
        logger.info("Ignoring email webhook of type %s", webhook.type)
        return {"message": "Ignored: not an email.received event"}
    return handle_calendar_reply(db, settings, webhook.data, request=request)


@router.post("/email-rsvp")
async def email_rsvp_webhook(
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> JSONResponse:
    raw_body = await request.body()
    headers = {name: value for name, value in request.headers.items()}
    try:
        if settings.resend_webhook_secret:
            await run_in_threadpool(_check_rate_limit, db, settings, RATE_LIMIT_SCOPE_EMAIL, request)
        body = await run_in_threadpool(_process_email, db, settings, raw_body, headers, request)
    except MeatupError as e:
        status, content = error_to_http(e)
        return JSONResponse(status_code=status, content=content)
    except Exception as e:
        logger.exception("Email webhook error: %s", e)
        db.rollback()
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "Failed to process email webhook", "message": str(e)},
        )
    return JSONResponse(content=body)
