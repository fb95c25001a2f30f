"""Event routing.

Fetches the task snapshot once per webhook and runs the first rule, in table
order, whose event type matches and whose guard accepts the snapshot.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, List, Optional

from ..config import Settings
from ..domain.enums import WebhookEventType
from ..domain.records import Record, WebhookEvent
from ..domain.timeutil import utcnow
from ..ports.record_gateway import RecordGateway
from ..usecases.events import EventFieldsUseCase
from ..usecases.meetings import MeetingCascadeUseCase
from ..usecases.purchase_tags import PurchaseTagUseCase
from ..usecases.records import RecordTimestampUseCase
from ..usecases.task_dates import TaskDatesUseCase

logger = logging.getLogger(__name__)

Guard = Callable[[Record, WebhookEvent], bool]
Handler = Callable[[Record, WebhookEvent], Awaitable[Any]]
FetchRecord = Callable[[str], Awaitable[Optional[Record]]]


@dataclass(frozen=True)
class Rule:
    name: str
    event_type: WebhookEventType
    guard: Guard
    handler: Handler


@dataclass(frozen=True)
class RoutingOutcome:
    event: str
    record_id: Optional[str]
    rule: Optional[str] = None
    reason: Optional[str] = None
    result: Any = None

    @property
    def matched(self) -> bool:
        return self.rule is not None

    @property
    def label(self) -> str:
        return self.rule or "unmatched"


class EventRouter:
    def __init__(self, rules: List[Rule]):
        self.rules = list(rules)

    def candidates(self, event_type: WebhookEventType) -> List[Rule]:
        return [rule for rule in self.rules if rule.event_type is event_type]

    async def route(self, event: WebhookEvent, fetch_record: FetchRecord) -> RoutingOutcome:
        if event.event_type is None:
            logger.info("Unhandled event type %r", event.event)
            return RoutingOutcome(event.event, event.record_id, reason="unsupported event")
        if event.record_id is None:
            logger.info("Event %s carries no task id", event.event)
            return RoutingOutcome(event.event, None, reason="no task id")

        record = await fetch_record(event.record_id)
        if record is None:
            return RoutingOutcome(event.event, event.record_id, reason="task unavailable")
        logger.info("Handling %s for %s (%s), status %r", event.event, record.id, record.name, record.status)

        for rule in self.candidates(event.event_type):
            if rule.guard(record, event):
                logger.info("Rule %s matched task %s", rule.name, record.id)
                result = await rule.handler(record, event)
                return RoutingOutcome(event.event, record.id, rule=rule.name, result=result)

        logger.info("%s for task %s: no automations triggered", event.event, record.id)
        return RoutingOutcome(event.event, record.id, reason="no rule matched")


def build_router(gateway: RecordGateway, settings: Settings, clock: Callable[[], datetime] = utcnow) -> EventRouter:
    events = EventFieldsUseCase(gateway, settings, clock)
    records = RecordTimestampUseCase(gateway, settings, clock)
    task_dates = TaskDatesUseCase(gateway)
    meetings = MeetingCascadeUseCase(gateway, settings, task_dates)
    purchase_tags = PurchaseTagUseCase(gateway, settings)

    created, updated, tagged = WebhookEventType.CREATED, WebhookEventType.UPDATED, WebhookEventType.TAG_UPDATED
    return EventRouter([
        Rule("event_created", created, events.is_relevant_create, events.on_created),
        Rule("record_created", created, records.is_relevant_create, records.on_created),
        Rule("task_dates_created", created, task_dates.is_relevant_create, task_dates.on_created),
        Rule("meeting_updated", updated, meetings.is_relevant_update, meetings.on_updated),
        Rule("event_updated", updated, events.is_relevant_update, events.on_updated),
        Rule("task_dates_updated", updated, task_dates.is_relevant_update, task_dates.on_updated),
        Rule("purchase_tag_sync", tagged, purchase_tags.is_relevant, purchase_tags.on_tag_updated),
    ])
