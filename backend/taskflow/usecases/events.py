from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Tuple

from ..config import Settings
from ..domain.enums import EventStatus, RelevanceUnit
from ..domain.records import Record, WebhookEvent
from ..domain.timeutil import utcnow
from ..ports.record_gateway import RecordGateway
from ..services import derivation
from ..services.fanout import FanoutResult, gather_settled

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EventFields:
    start_time: Optional[datetime]
    end_time: Optional[datetime]
    status: EventStatus
    relevance_date: Optional[datetime]


class EventFieldsUseCase:
    """Keeps start/end time, status and relevance date of "event" tasks in sync."""

    def __init__(self, gateway: RecordGateway, settings: Settings, clock: Callable[[], datetime] = utcnow):
        self.gateway = gateway
        self.type_id = settings.workspace.task_type_ids.event
        self.fields = settings.workspace.custom_field_ids
        self.clock = clock

    # --- guards ----------------------------------------------------------

    def is_event(self, record: Record) -> bool:
        return record.type_id == self.type_id

    def is_relevant_create(self, record: Record, event: WebhookEvent) -> bool:
        if not self.is_event(record):
            return False
        return (
            record.start_date is not None
            or record.due_date is not None
            or record.custom_value(self.fields.relevance_num) is not None
            or record.custom_value(self.fields.relevance_unit) is not None
        )

    def is_relevant_update(self, record: Record, event: WebhookEvent) -> bool:
        if not self.is_event(record):
            return False
        return any(
            item.field in ("start_date", "due_date")
            or item.is_custom(self.fields.relevance_num)
            or item.is_custom(self.fields.relevance_unit)
            for item in event.history_items
        )

    # --- derivation ------------------------------------------------------

    def relevance_values(self, record: Record) -> Tuple[Optional[int], Optional[RelevanceUnit]]:
        """Relevance number and unit; both custom fields must exist on the task."""
        if not (record.has_custom_field(self.fields.relevance_num) and record.has_custom_field(self.fields.relevance_unit)):
            return None, None
        raw_num = record.custom_value(self.fields.relevance_num)
        try:
            num = int(str(raw_num).strip()) if raw_num is not None else None
        except ValueError:
            logger.warning("Invalid relevance number %r on task %s", raw_num, record.id)
            num = None
        raw_unit = record.custom_value(self.fields.relevance_unit)
        unit = None
        if raw_unit is not None:
            try:
                unit = RelevanceUnit.from_index(int(raw_unit))
            except (TypeError, ValueError) as e:
                logger.warning("Invalid relevance unit on task %s: %s", record.id, e)
        return num, unit

    def derive(self, record: Record, now: datetime) -> EventFields:
        num, unit = self.relevance_values(record)
        start_time = derivation.calculate_start_time(record.start_date, record.due_date)
        end_time = derivation.calculate_end_time(record.due_date)
        return EventFields(
            start_time=start_time,
            end_time=end_time,
            status=derivation.calculate_status(start_time, end_time, now),
            relevance_date=derivation.calculate_relevance_date(start_time, end_time, num, unit),
        )

    # --- handlers --------------------------------------------------------

    def _set_start(self, record_id: str, value: Optional[datetime]):
        return ("start_time", self.gateway.set_date_field(record_id, self.fields.start_time, value))

    def _set_end(self, record_id: str, value: Optional[datetime]):
        return ("end_time", self.gateway.set_date_field(record_id, self.fields.end_time, value))

    def _set_relevance(self, record_id: str, value: Optional[datetime]):
        return ("relevance_date", self.gateway.set_date_field(record_id, self.fields.relevance_date, value))

    def _set_status(self, record_id: str, status: EventStatus):
        return ("status", self.gateway.set_status(record_id, status.value))

    async def on_created(self, record: Record, event: WebhookEvent) -> FanoutResult:
        derived = self.derive(record, self.clock())
        logger.info(
            "New event %s (%s) is %s: start %s, end %s, relevant from %s",
            record.id, record.name, derived.status.display_name,
            derived.start_time, derived.end_time, derived.relevance_date,
        )
        ops = []
        if derived.start_time is not None:
            ops.append(self._set_start(record.id, derived.start_time))
        if derived.end_time is not None:
            ops.append(self._set_end(record.id, derived.end_time))
        ops.append(self._set_status(record.id, derived.status))
        if derived.relevance_date is not None:
            ops.append(self._set_relevance(record.id, derived.relevance_date))
        return await gather_settled(ops)

    async def on_updated(self, record: Record, event: WebhookEvent) -> FanoutResult:
        total = FanoutResult()
        for item in event.history_items:
            derived = self.derive(record, self.clock())
            if item.field == "start_date":
                logger.info("Event %s start date changed from %s to %s", record.id, item.before, item.after)
                ops = [
                    self._set_start(record.id, derived.start_time),
                    self._set_status(record.id, derived.status),
                    self._set_relevance(record.id, derived.relevance_date),
                ]
            elif item.field == "due_date":
                logger.info("Event %s due date changed from %s to %s", record.id, item.before, item.after)
                ops = []
                # an explicit start date owns the start time
                if record.start_date is None:
                    ops.append(self._set_start(record.id, derived.start_time))
                ops += [
                    self._set_end(record.id, derived.end_time),
                    self._set_status(record.id, derived.status),
                    self._set_relevance(record.id, derived.relevance_date),
                ]
            elif item.is_custom(self.fields.relevance_num):
                logger.info("Event %s relevance number changed from %s to %s", record.id, item.before, item.after)
                ops = [self._set_relevance(record.id, derived.relevance_date)]
            elif item.is_custom(self.fields.relevance_unit):
                logger.info("Event %s relevance unit changed from %s to %s", record.id, item.before, item.after)
                ops = [
                    self._set_status(record.id, derived.status),
                    self._set_relevance(record.id, derived.relevance_date),
                ]
            else:
                continue
            result = await gather_settled(ops)
            total.succeeded += result.succeeded
            total.failed += result.failed
        return total
