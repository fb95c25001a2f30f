from __future__ import annotations
import logging
from typing import List, Optional, Union

from ..config import Settings
from ..domain.records import Record, WebhookEvent
from ..domain.timeutil import parse_timestamp
from ..ports.record_gateway import RecordGateway
from ..services.cascade_service import CascadeReport, CascadeService, newly_added_ids
from ..services.fanout import FanoutResult
from .task_dates import TaskDatesUseCase

logger = logging.getLogger(__name__)


class MeetingCascadeUseCase:
    """Keeps pre-meeting tasks due no later than their meeting.

    A due date change on the meeting propagates to the linked pre-meeting
    tasks; tasks newly linked to a dated meeting are pulled in to its due date.
    The meeting itself still gets the plain task date-status recompute.
    """

    def __init__(self, gateway: RecordGateway, settings: Settings, task_dates: Optional[TaskDatesUseCase] = None):
        self.cascades = CascadeService(gateway)
        self.task_dates = task_dates or TaskDatesUseCase(gateway)
        self.type_id = settings.workspace.task_type_ids.meeting
        self.pre_meeting_field = settings.workspace.custom_field_ids.pre_meeting_tasks

    def is_meeting(self, record: Record) -> bool:
        return record.type_id == self.type_id

    def is_relevant_update(self, record: Record, event: WebhookEvent) -> bool:
        if not self.is_meeting(record):
            return False
        return any(
            item.field == "due_date" or item.is_custom(self.pre_meeting_field) for item in event.history_items
        )

    async def on_updated(self, meeting: Record, event: WebhookEvent) -> List[Union[CascadeReport, FanoutResult]]:
        results: List[Union[CascadeReport, FanoutResult]] = []
        for item in event.history_items:
            if item.field == "due_date":
                logger.info("Meeting %s due date changed from %s to %s", meeting.id, item.before, item.after)
                results.append(
                    await self.cascades.propagate_due_date(
                        meeting.related_ids(self.pre_meeting_field),
                        previous_due=parse_timestamp(item.before),
                        new_due=parse_timestamp(item.after),
                    )
                )
            elif item.is_custom(self.pre_meeting_field):
                added = newly_added_ids(item.before, item.after)
                logger.info("Meeting %s gained %d pre-meeting task(s): %s", meeting.id, len(added), added)
                results.append(await self.cascades.initialize_linked(added, meeting.due_date))
        if self.task_dates.is_relevant_update(meeting, event):
            await self.task_dates.on_updated(meeting, event)
        return results
