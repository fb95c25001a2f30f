"""Webhook signature verification.

The task service signs each delivery with the channel's secret: the
``x-signature`` header carries the hex HMAC-SHA256 of the raw body.
"""
from __future__ import annotations
import hashlib
import hmac
import logging
from typing import Optional

from ..config import WebhookChannel, WebhookSettings
from ..errors import ForbiddenError

logger = logging.getLogger(__name__)


def compute_signature(raw_body: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()


def verify(raw_body: bytes, provided_signature: str, channel_secret: str) -> bool:
    expected = compute_signature(raw_body, channel_secret)
    return hmac.compare_digest(expected.encode("utf-8"), provided_signature.encode("utf-8"))


def authenticate_request(
    raw_body: bytes,
    signature: Optional[str],
    webhook_id: Optional[str],
    webhooks: WebhookSettings,
) -> Optional[WebhookChannel]:
    """Return the matched channel, or None when verification is disabled.

    Raises ForbiddenError for a missing signature, missing or unknown channel
    id, or a signature mismatch.
    """
    if not webhooks.channels:
        logger.warning("No webhook secret configured, skipping signature verification")
        return None
    if signature is None:
        raise ForbiddenError("MISSING_SIGNATURE", "Missing signature")
    if webhook_id is None:
        raise ForbiddenError("MISSING_WEBHOOK_ID", "Missing webhook_id")
    channel = webhooks.channel(webhook_id)
    if channel is None:
        raise ForbiddenError("UNKNOWN_WEBHOOK", "Unknown webhook ID")
    if not verify(raw_body, signature, channel.secret):
        raise ForbiddenError("INVALID_SIGNATURE", "Invalid signature")
    logger.debug("Webhook signature verified for webhook %s", webhook_id)
    return channel
