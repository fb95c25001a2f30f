from __future__ import annotations
import logging
from typing import Optional

from ..domain.enums import TaskStatus
from ..domain.records import Record, WebhookEvent
from ..ports.record_gateway import RecordGateway
from ..services.derivation import MissingPreviousStatusError, calculate_task_status

logger = logging.getLogger(__name__)

DATE_FIELDS = ("start_date", "due_date")


def parse_task_status(value: Optional[str]) -> Optional[TaskStatus]:
    """Read a status string; unknown strings count as absent."""
    if value is None:
        return None
    try:
        return TaskStatus.from_wire(value)
    except ValueError as e:
        logger.warning("Could not parse status string %r: %s", value, e)
        return None


class TaskDatesUseCase:
    """Moves plain tasks between backlog and to do as dates come and go."""

    def __init__(self, gateway: RecordGateway):
        self.gateway = gateway

    def is_relevant_create(self, record: Record, event: WebhookEvent) -> bool:
        return True

    def is_relevant_update(self, record: Record, event: WebhookEvent) -> bool:
        return any(item.field in DATE_FIELDS for item in event.history_items)

    async def _recompute(self, record: Record) -> Optional[bool]:
        previous = parse_task_status(record.status)
        try:
            status = calculate_task_status(record.start_date, record.due_date, previous)
        except MissingPreviousStatusError:
            logger.warning("Task %s has no usable status (%r), leaving it untouched", record.id, record.status)
            return None
        logger.info(
            "Task %s status: %s -> %s", record.id, previous.display_name if previous else None, status.display_name
        )
        return await self.gateway.set_status(record.id, status.value)

    async def on_created(self, record: Record, event: WebhookEvent) -> Optional[bool]:
        logger.info("New task %s (%s): start %s, due %s", record.id, record.name, record.start_date, record.due_date)
        return await self._recompute(record)

    async def on_updated(self, record: Record, event: WebhookEvent) -> None:
        for item in event.history_items:
            if item.field in DATE_FIELDS:
                logger.info("Task %s %s changed from %s to %s", record.id, item.field, item.before, item.after)
                await self._recompute(record)
