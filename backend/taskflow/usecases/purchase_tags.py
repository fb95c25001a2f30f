from __future__ import annotations
import logging
from typing import Any, List, Optional

from ..config import Settings
from ..domain.records import FieldChange, Record, WebhookEvent
from ..ports.record_gateway import RecordGateway
from ..services.cascade_service import CascadeService

logger = logging.getLogger(__name__)

TAG_ADDED = "tag"
TAG_REMOVED = "tag_removed"


def _tag_names(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(tag["name"]) for tag in value if isinstance(tag, dict) and tag.get("name") is not None]


class PurchaseTagUseCase:
    """Mirrors the purchase tag as membership of the shopping list."""

    def __init__(self, gateway: RecordGateway, settings: Settings):
        self.cascades = CascadeService(gateway)
        self.tag_name = settings.workspace.tag_names.purchase
        self.list_id = settings.workspace.list_ids.shopping

    def membership_change(self, item: FieldChange) -> Optional[bool]:
        """True for an added purchase tag, False for a removed one, else None."""
        if item.field == TAG_ADDED and self.tag_name in _tag_names(item.after):
            return True
        if item.field == TAG_REMOVED and self.tag_name in _tag_names(item.before):
            return False
        return None

    def is_relevant(self, record: Record, event: WebhookEvent) -> bool:
        return any(self.membership_change(item) is not None for item in event.history_items)

    async def on_tag_updated(self, record: Record, event: WebhookEvent) -> List[Optional[bool]]:
        outcomes: List[Optional[bool]] = []
        for item in event.history_items:
            member = self.membership_change(item)
            if member is None:
                continue
            logger.info("Purchase tag %r %s task %s", self.tag_name, "added to" if member else "removed from", record.id)
            outcomes.append(await self.cascades.sync_list_membership(record, self.list_id, member))
        return outcomes
