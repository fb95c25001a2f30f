import os, sys
import copy
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

# Ensure the backend root is importable without an install
backend_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if backend_root not in sys.path:
    sys.path.insert(0, backend_root)

from taskflow.config import settings_from_dict  # noqa: E402
from taskflow.domain.records import Record  # noqa: E402
from taskflow.main import create_app  # noqa: E402

SAMPLE_CONFIG: Dict[str, Any] = {
    "token": "pk_test",
    "api_base_url": "https://api.test/v2",
    "webhooks": {
        "endpoint_base_url": "https://hooks.test",
        "endpoint_route": "/clickup/webhook",
        "list": [{"id": "wh-1", "secret": "s3cret"}],
    },
    "workspace": {
        "id": "team-1",
        "task_type_ids": {"event": "1001", "record": "1002", "meeting": "1003"},
        "list_ids": {"shopping": "list-shop"},
        "custom_field_ids": {
            "start_time": "cf-start",
            "end_time": "cf-end",
            "relevance_num": "cf-rel-num",
            "relevance_unit": "cf-rel-unit",
            "relevance_date": "cf-rel-date",
            "timestamp": "cf-timestamp",
            "pre_meeting_tasks": "cf-pre-meeting",
        },
        "tag_names": {"purchase": "purchase"},
    },
}


class FakeGateway:
    """In-memory record gateway recording every write."""

    def __init__(self, tasks: Optional[Dict[str, Dict[str, Any]]] = None, failing: Optional[set] = None):
        self.tasks = tasks or {}
        self.failing = failing or set()
        self.fetches: List[str] = []
        self.calls: List[tuple] = []

    async def get_record(self, record_id: str) -> Optional[Record]:
        self.fetches.append(record_id)
        data = self.tasks.get(record_id)
        return Record.from_api(data) if data is not None else None

    def _write(self, *call) -> bool:
        self.calls.append(call)
        return call[1] not in self.failing

    async def set_status(self, record_id, status):
        return self._write("set_status", record_id, status)

    async def set_due_date(self, record_id, due_date):
        return self._write("set_due_date", record_id, due_date)

    async def set_date_field(self, record_id, field_id, value):
        return self._write("set_date_field", record_id, field_id, value)

    async def add_to_list(self, list_id, record_id):
        return self._write("add_to_list", record_id, list_id)

    async def remove_from_list(self, list_id, record_id):
        return self._write("remove_from_list", record_id, list_id)

    def calls_named(self, name: str) -> List[tuple]:
        return [c for c in self.calls if c[0] == name]


@pytest.fixture
def raw_config():
    return copy.deepcopy(SAMPLE_CONFIG)


@pytest.fixture
def settings(raw_config):
    return settings_from_dict(raw_config)


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def client(settings, gateway):
    return TestClient(create_app(settings, gateway=gateway))
