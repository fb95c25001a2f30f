"""Startup check of the remote webhook subscriptions.

Every webhook the task service has pointed at our endpoint must be one of
the configured channels and must be active. Problems abort startup.
"""
from __future__ import annotations
import logging
from typing import Any, Dict, List, Protocol

from ..config import Settings
from ..errors import ConfigError

logger = logging.getLogger(__name__)


class WebhookAdmin(Protocol):
    async def list_webhooks(self, workspace_id: str) -> List[Dict[str, Any]]: ...
    async def activate_webhook(self, webhook_id: str) -> None: ...


async def ensure_webhooks(admin: WebhookAdmin, settings: Settings) -> List[str]:
    """Return the ids of the matching webhooks after activating any inactive ones."""
    endpoint_url = settings.webhooks.endpoint_url
    logger.info("Checking webhooks for endpoint %s in workspace %s", endpoint_url, settings.workspace.id)

    existing = await admin.list_webhooks(settings.workspace.id)
    matching = [w for w in existing if str(w.get("endpoint")) == endpoint_url]
    if not matching:
        raise ConfigError(
            f"Required webhook not found for endpoint: {endpoint_url}. Create a webhook that points to this "
            "endpoint and includes the taskCreated, taskUpdated and taskTagUpdated events."
        )

    ids: List[str] = []
    for webhook in matching:
        webhook_id = str(webhook.get("id"))
        if settings.webhooks.channel(webhook_id) is None:
            raise ConfigError(f"Webhook {webhook_id} is not configured; add its id and secret to the configuration")
        status = webhook.get("status")
        if status != "active":
            logger.warning("Webhook %s is not active (status: %s), activating", webhook_id, status)
            await admin.activate_webhook(webhook_id)
            logger.info("Webhook %s activated", webhook_id)
        ids.append(webhook_id)
    logger.info("All %d webhook(s) for %s are active", len(ids), endpoint_url)
    return ids
