"""ClickUp REST implementation of the record gateway.

One ``httpx.AsyncClient`` is shared for the process lifetime; its timeout
bounds every remote call. Record reads and field writes never raise: a non-2xx
answer or a transport error is logged with the record id and operation and
reported as ``None``/``False``. Nothing is retried.
"""
from __future__ import annotations
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx
from prometheus_client import Counter

from ..config import Settings
from ..domain.records import Record
from ..domain.timeutil import to_millis
from ..errors import RemoteApiError
from ..ports.record_gateway import RecordGateway

logger = logging.getLogger(__name__)

REMOTE_CALL_COUNT = Counter(
    "taskflow_remote_calls_total", "Calls issued to the task service", ["operation", "outcome"]
)


def build_client(settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=settings.api_base_url,
        headers={"Authorization": settings.token, "Content-Type": "application/json"},
        timeout=settings.http_timeout_seconds,
        transport=transport,
    )


class ClickUpGateway(RecordGateway):
    def __init__(self, client: httpx.AsyncClient):
        self._client = client

    # --- reads -----------------------------------------------------------

    async def get_record(self, record_id: str) -> Optional[Record]:
        response = await self._send("get_task", record_id, "GET", f"/task/{record_id}")
        if response is None:
            return None
        try:
            return Record.from_api(response.json())
        except (ValueError, KeyError, TypeError) as e:
            logger.error("Unreadable task payload for %s: %s", record_id, e)
            return None

    # --- writes ----------------------------------------------------------

    async def set_status(self, record_id: str, status: str) -> bool:
        ok = await self._ok("set_status", record_id, "PUT", f"/task/{record_id}", json={"status": status})
        if ok:
            logger.info("Updated status for task %s to %r", record_id, status)
        return ok

    async def set_due_date(self, record_id: str, due_date: Optional[datetime]) -> bool:
        value = to_millis(due_date) if due_date is not None else None
        ok = await self._ok("set_due_date", record_id, "PUT", f"/task/{record_id}", json={"due_date": value})
        if ok:
            logger.info("Set due date for task %s to %s", record_id, due_date)
        return ok

    async def set_date_field(self, record_id: str, field_id: str, value: Optional[datetime]) -> bool:
        path = f"/task/{record_id}/field/{field_id}"
        if value is None:
            ok = await self._ok("clear_field", record_id, "DELETE", path)
        else:
            body = {"value": to_millis(value), "value_options": {"time": True}}
            ok = await self._ok("set_field", record_id, "POST", path, json=body)
        if ok:
            logger.info("Set field %s for task %s to %s", field_id, record_id, value)
        return ok

    async def add_to_list(self, list_id: str, record_id: str) -> bool:
        ok = await self._ok("add_to_list", record_id, "POST", f"/list/{list_id}/task/{record_id}")
        if ok:
            logger.info("Added task %s to list %s", record_id, list_id)
        return ok

    async def remove_from_list(self, list_id: str, record_id: str) -> bool:
        ok = await self._ok("remove_from_list", record_id, "DELETE", f"/list/{list_id}/task/{record_id}")
        if ok:
            logger.info("Removed task %s from list %s", record_id, list_id)
        return ok

    # --- webhook administration (startup only, raises) -------------------

    async def list_webhooks(self, workspace_id: str) -> List[Dict[str, Any]]:
        response = await self._client.get(f"/team/{workspace_id}/webhook")
        if not response.is_success:
            raise RemoteApiError("list_webhooks", response.status_code, response.text)
        return list(response.json().get("webhooks") or [])

    async def activate_webhook(self, webhook_id: str) -> None:
        response = await self._client.put(f"/webhook/{webhook_id}", json={"status": "active"})
        if not response.is_success:
            raise RemoteApiError("activate_webhook", response.status_code, response.text)

    # --- plumbing --------------------------------------------------------

    async def _ok(self, operation: str, record_id: str, method: str, path: str, **kwargs) -> bool:
        return await self._send(operation, record_id, method, path, **kwargs) is not None

    async def _send(self, operation: str, record_id: str, method: str, path: str, **kwargs) -> Optional[httpx.Response]:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            REMOTE_CALL_COUNT.labels(operation=operation, outcome="error").inc()
            logger.error("%s for task %s failed: %s", operation, record_id, e)
            return None
        if not response.is_success:
            REMOTE_CALL_COUNT.labels(operation=operation, outcome="rejected").inc()
            logger.error(
                "%s for task %s failed. Status: %s, Response: %s",
                operation, record_id, response.status_code, response.text,
            )
            return None
        REMOTE_CALL_COUNT.labels(operation=operation, outcome="ok").inc()
        return response
