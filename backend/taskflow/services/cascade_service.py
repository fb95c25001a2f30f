"""Cascade update orchestration.

A cascade starts from one anchor record and fans out conditional writes to
its dependents. Decisions are pure helpers; the ``CascadeService`` methods do
the I/O: fresh snapshots for every dependent, then all qualifying writes at
once through ``gather_settled`` so one failure never blocks the rest.
"""
from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..domain.records import Record, extract_ids
from ..ports.record_gateway import RecordGateway
from .fanout import FanoutResult, gather_settled

logger = logging.getLogger(__name__)


class DueDateDecision(str, Enum):
    EXACT_MATCH = "exact_match"
    EARLIER_OR_EMPTY = "earlier_or_empty"
    SKIP = "skip"


@dataclass
class CascadeReport:
    decisions: Dict[str, DueDateDecision] = field(default_factory=dict)
    unreachable: List[str] = field(default_factory=list)
    writes: FanoutResult = field(default_factory=FanoutResult)

    def count(self, decision: DueDateDecision) -> int:
        return sum(1 for d in self.decisions.values() if d is decision)


# ---------------------------------------------------------------------------
# Decisions (pure)
# ---------------------------------------------------------------------------

def plan_due_date_update(
    current: Optional[datetime],
    previous_anchor: Optional[datetime],
    new_anchor: Optional[datetime],
) -> DueDateDecision:
    """Decide whether a dependent follows its anchor's due date change.

    An exact match with the anchor's previous due date (both empty counts)
    always follows, even to an empty date. Otherwise the dependent only moves
    when the new date is set and it has no date or a later one.
    """
    if current == previous_anchor:
        return DueDateDecision.EXACT_MATCH
    if new_anchor is not None and (current is None or new_anchor < current):
        return DueDateDecision.EARLIER_OR_EMPTY
    return DueDateDecision.SKIP


def should_initialize_linked_task(current: Optional[datetime], anchor_due: datetime) -> bool:
    return current is None or anchor_due < current


def newly_added_ids(before: Any, after: Any) -> List[str]:
    previous = set(extract_ids(before))
    added: List[str] = []
    for record_id in extract_ids(after):
        if record_id not in previous and record_id not in added:
            added.append(record_id)
    return added


def is_in_list(record: Record, list_id: str) -> bool:
    """Membership shows up either as the home list or as an extra location."""
    return record.list_id == list_id or list_id in record.location_ids


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------

class CascadeService:
    def __init__(self, gateway: RecordGateway):
        self.gateway = gateway

    async def _fetch_all(self, record_ids: Sequence[str]) -> List[Tuple[str, Optional[Record]]]:
        snapshots = await asyncio.gather(
            *(self.gateway.get_record(rid) for rid in record_ids), return_exceptions=True
        )
        fetched: List[Tuple[str, Optional[Record]]] = []
        for record_id, snapshot in zip(record_ids, snapshots):
            if isinstance(snapshot, Exception):
                logger.error("Fetching task %s raised: %r", record_id, snapshot)
                snapshot = None
            fetched.append((record_id, snapshot))
        return fetched

    async def propagate_due_date(
        self,
        dependent_ids: Sequence[str],
        previous_due: Optional[datetime],
        new_due: Optional[datetime],
    ) -> CascadeReport:
        report = CascadeReport()
        if not dependent_ids:
            logger.info("No dependent tasks to evaluate")
            return report

        writes = []
        for record_id, snapshot in await self._fetch_all(dependent_ids):
            if snapshot is None:
                logger.error("Failed to fetch dependent task %s, skipping", record_id)
                report.unreachable.append(record_id)
                continue
            decision = plan_due_date_update(snapshot.due_date, previous_due, new_due)
            report.decisions[record_id] = decision
            logger.info(
                "Dependent %s: %s (current: %s, previous: %s, new: %s)",
                record_id, decision.value, snapshot.due_date, previous_due, new_due,
            )
            if decision is not DueDateDecision.SKIP:
                writes.append((f"set_due_date:{record_id}", self.gateway.set_due_date(record_id, new_due)))

        report.writes = await gather_settled(writes)
        logger.info(
            "Due date cascade done: %d exact match, %d earlier/empty, %d skipped",
            report.count(DueDateDecision.EXACT_MATCH),
            report.count(DueDateDecision.EARLIER_OR_EMPTY),
            report.count(DueDateDecision.SKIP),
        )
        return report

    async def initialize_linked(self, added_ids: Sequence[str], anchor_due: Optional[datetime]) -> FanoutResult:
        if anchor_due is None:
            logger.info("Anchor has no due date, skipping newly linked tasks")
            return FanoutResult()
        if not added_ids:
            return FanoutResult()

        writes = []
        for record_id, snapshot in await self._fetch_all(added_ids):
            if snapshot is None:
                logger.error("Failed to fetch newly linked task %s, skipping", record_id)
                continue
            if should_initialize_linked_task(snapshot.due_date, anchor_due):
                logger.info("Newly linked task %s takes due date %s (was %s)", record_id, anchor_due, snapshot.due_date)
                writes.append((f"set_due_date:{record_id}", self.gateway.set_due_date(record_id, anchor_due)))
            else:
                logger.info("Keeping due date %s for newly linked task %s", snapshot.due_date, record_id)
        return await gather_settled(writes)

    async def sync_list_membership(self, record: Record, list_id: str, member: bool) -> Optional[bool]:
        """Add or remove ``record`` from ``list_id``; None when already in place."""
        if is_in_list(record, list_id) == member:
            logger.info("Task %s already %s list %s", record.id, "in" if member else "absent from", list_id)
            return None
        if member:
            return await self.gateway.add_to_list(list_id, record.id)
        return await self.gateway.remove_from_list(list_id, record.id)
