"""
Inbound webhook authentication. Both schemes fail closed: anything that cannot be verified is rejected.

SMS (Twilio): HMAC-SHA1 over the full request URL followed by every form parameter, sorted by key,
each appended as key+value; base64 digest compared with the X-Twilio-Signature header.

Email (Resend inbound, signed with Svix): svix-id / svix-timestamp / svix-signature headers checked
by the svix library against the shared secret (includes the timestamp tolerance check).
"""
from __future__ import annotations

import base64
import hashlib
import hmac
import logging
from collections.abc import Iterable, Mapping
from typing import Any

from svix.webhooks import Webhook, WebhookVerificationError

from meatup.core.errors import AuthenticationError, ConfigurationError, PayloadValidationError

logger = logging.getLogger(__name__)

TWILIO_SIGNATURE_HEADER = "X-Twilio-Signature"
SVIX_HEADERS = ("svix-id", "svix-timestamp", "svix-signature")


def compute_twilio_signature(url: str, params: Iterable[tuple[str, str]], auth_token: str) -> str:
    data = url
    # sorted() is stable: repeated keys keep their submission order
    for key, value in sorted(params, key=lambda item: item[0]):
        data += f"{key}{value}"
    digest = hmac.new(auth_token.encode("utf-8"), data.encode("utf-8"), hashlib.sha1).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_twilio_signature(
    url: str,
    params: Iterable[tuple[str, str]],
    signature: str | None,
    auth_token: str | None,
) -> bool:
    """True only when a token is configured, a signature was sent, and they match."""
    if not signature or not auth_token:
        return False
    expected = compute_twilio_signature(url, params, auth_token)
    return hmac.compare_digest(expected, signature.strip())


def verify_email_webhook(payload: str | bytes, headers: Mapping[str, str], secret: str | None) -> dict[str, Any]:
    """
    Verify a signed inbound-email webhook and return the decoded JSON payload.
    Raises ConfigurationError when no secret is configured, AuthenticationError for a bad or missing
    signature and PayloadValidationError for a verified body that is not a JSON object.
    """
    if not secret:
        logger.error("RESEND_WEBHOOK_SECRET not configured")
        raise ConfigurationError("Webhook not configured")

    svix_headers = {name: headers.get(name) for name in SVIX_HEADERS}
    if not all(svix_headers.values()):
        logger.warning("Email webhook rejected: missing signature headers")
        raise AuthenticationError("Missing signature headers")

    try:
        webhook = Webhook(secret)
    except Exception as e:
        logger.error("RESEND_WEBHOOK_SECRET is not a valid signing secret: %s", e)
        raise ConfigurationError("Webhook not configured") from e

    try:
        verified = webhook.verify(payload, svix_headers)
    except WebhookVerificationError as e:
        logger.warning("Email webhook signature verification failed: %s", e)
        raise AuthenticationError("Invalid signature") from e
    if not isinstance(verified, dict):
        raise PayloadValidationError("Invalid webhook payload", detail="expected a JSON object")
    return verified
