import json
import logging
from typing import Optional

from fastapi import Depends, Header, Request
from fastapi.responses import PlainTextResponse
from prometheus_client import Counter

from ..config import Settings
from ..domain.records import WebhookEvent
from ..errors import ForbiddenError, ValidationAppError
from ..ports.record_gateway import RecordGateway
from ..services.event_router import EventRouter
from ..services.signature_service import authenticate_request

logger = logging.getLogger(__name__)

WEBHOOK_EVENT_COUNT = Counter(
    "taskflow_webhook_events_total", "Accepted webhook deliveries by routing outcome", ["event", "outcome"]
)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_gateway(request: Request) -> RecordGateway:
    return request.app.state.gateway


def get_event_router(request: Request) -> EventRouter:
    return request.app.state.event_router


async def receive_webhook(
    request: Request,
    x_signature: Optional[str] = Header(default=None),
    settings: Settings = Depends(get_settings),
    gateway: RecordGateway = Depends(get_gateway),
    event_router: EventRouter = Depends(get_event_router),
):
    """Authenticate, parse and dispatch one delivery; answers "ok" once all automation work settled."""
    raw = await request.body()
    try:
        body = json.loads(raw)
    except ValueError as e:
        logger.error("Error parsing JSON payload: %s", e)
        raise ValidationAppError("INVALID_JSON", "Invalid JSON payload")
    if not isinstance(body, dict):
        logger.error("Invalid payload structure, expected an object")
        raise ForbiddenError("INVALID_PAYLOAD", "Invalid payload structure")

    webhook_id = body.get("webhook_id")
    try:
        authenticate_request(raw, x_signature, None if webhook_id is None else str(webhook_id), settings.webhooks)
    except ForbiddenError as e:
        logger.error("Rejected webhook %s: %s", webhook_id, e.message)
        raise

    event = WebhookEvent.from_payload(body)
    logger.info("event=%s task=%s payloadSize=%d", event.event, event.record_id, len(raw))
    outcome = await event_router.route(event, gateway.get_record)
    event_label = event.event_type.value if event.event_type else "other"
    WEBHOOK_EVENT_COUNT.labels(event=event_label, outcome=outcome.label).inc()
    return PlainTextResponse("ok")
