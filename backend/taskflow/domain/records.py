"""Snapshots of task records and inbound webhook events.

Both are built from raw JSON once per request and never persisted.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from .enums import WebhookEventType
from .timeutil import parse_timestamp


@dataclass(frozen=True)
class Record:
    id: str
    name: Optional[str] = None
    type_id: Optional[str] = None
    status: Optional[str] = None
    start_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    custom_fields: Dict[str, Any] = field(default_factory=dict)
    list_id: Optional[str] = None
    location_ids: FrozenSet[str] = frozenset()

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Record":
        status = data.get("status")
        if isinstance(status, dict):
            status = status.get("status")
        custom_fields = {
            str(cf["id"]): cf.get("value")
            for cf in (data.get("custom_fields") or [])
            if isinstance(cf, dict) and cf.get("id") is not None
        }
        list_info = data.get("list") or {}
        list_id = list_info.get("id") if isinstance(list_info, dict) else None
        return cls(
            id=str(data["id"]),
            name=data.get("name"),
            type_id=_opt_str(data.get("custom_item_id")),
            status=status,
            start_date=parse_timestamp(data.get("start_date")),
            due_date=parse_timestamp(data.get("due_date")),
            custom_fields=custom_fields,
            list_id=_opt_str(list_id),
            location_ids=frozenset(
                str(loc["id"]) for loc in (data.get("locations") or []) if isinstance(loc, dict) and loc.get("id") is not None
            ),
        )

    def has_custom_field(self, field_id: str) -> bool:
        return field_id in self.custom_fields

    def custom_value(self, field_id: str) -> Any:
        return self.custom_fields.get(field_id)

    def related_ids(self, field_id: str) -> List[str]:
        """Ids stored in a relationship custom field (a list of ``{id: ...}``)."""
        return extract_ids(self.custom_value(field_id))


@dataclass(frozen=True)
class FieldChange:
    field: str
    before: Any = None
    after: Any = None
    custom_field_id: Optional[str] = None

    @classmethod
    def from_payload(cls, item: Dict[str, Any]) -> "FieldChange":
        custom_field = item.get("custom_field")
        cf_id = custom_field.get("id") if isinstance(custom_field, dict) else None
        return cls(
            field=str(item.get("field")),
            before=item.get("before"),
            after=item.get("after"),
            custom_field_id=_opt_str(cf_id),
        )

    def is_custom(self, field_id: str) -> bool:
        return self.field == "custom_field" and self.custom_field_id == field_id


@dataclass(frozen=True)
class WebhookEvent:
    event: str
    event_type: Optional[WebhookEventType]
    record_id: Optional[str]
    webhook_id: Optional[str]
    history_items: Tuple[FieldChange, ...] = ()

    @classmethod
    def from_payload(cls, body: Dict[str, Any]) -> "WebhookEvent":
        event = str(body.get("event") or "unknown")
        try:
            event_type: Optional[WebhookEventType] = WebhookEventType.from_wire(event)
        except ValueError:
            event_type = None
        record_id = body.get("task_id")
        if record_id is None and isinstance(body.get("task"), dict):
            record_id = body["task"].get("id")
        raw_items = body.get("history_items")
        if not isinstance(raw_items, list):
            raw_items = []
        items = tuple(FieldChange.from_payload(item) for item in raw_items if isinstance(item, dict))
        return cls(
            event=event,
            event_type=event_type,
            record_id=_opt_str(record_id),
            webhook_id=_opt_str(body.get("webhook_id")),
            history_items=items,
        )

    def changes(self, field_name: str) -> List[FieldChange]:
        return [item for item in self.history_items if item.field == field_name]

    def custom_changes(self, field_id: str) -> List[FieldChange]:
        return [item for item in self.history_items if item.is_custom(field_id)]


def extract_ids(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    ids: List[str] = []
    for item in value:
        if isinstance(item, dict):
            if item.get("id") is not None:
                ids.append(str(item["id"]))
        elif item is not None:
            ids.append(str(item))
    return ids


def _opt_str(value: Any) -> Optional[str]:
    return None if value is None else str(value)
