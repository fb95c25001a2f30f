from __future__ import annotations
import logging
from datetime import datetime
from typing import Callable

from ..config import Settings
from ..domain.records import Record, WebhookEvent
from ..domain.timeutil import utcnow
from ..ports.record_gateway import RecordGateway

logger = logging.getLogger(__name__)


class RecordTimestampUseCase:
    """Stamps newly created log records with their creation time."""

    def __init__(self, gateway: RecordGateway, settings: Settings, clock: Callable[[], datetime] = utcnow):
        self.gateway = gateway
        self.type_id = settings.workspace.task_type_ids.record
        self.timestamp_field = settings.workspace.custom_field_ids.timestamp
        self.clock = clock

    def is_relevant_create(self, record: Record, event: WebhookEvent) -> bool:
        return record.type_id == self.type_id

    async def on_created(self, record: Record, event: WebhookEvent) -> bool:
        now = self.clock()
        logger.info("Stamping record %s (%s) with %s", record.id, record.name, now)
        return await self.gateway.set_date_field(record.id, self.timestamp_field, now)
