from __future__ import annotations
from datetime import datetime
from typing import Protocol, Optional

from ..domain.records import Record


class RecordGateway(Protocol):
    """Abstracts the remote task store for testability.

    Every method logs its own failures and reports them through the return
    value; none of them raise on a non-2xx response or a transport error.
    """

    async def get_record(self, record_id: str) -> Optional[Record]:
        """Return a fresh snapshot, or None when the fetch failed."""
        ...

    async def set_status(self, record_id: str, status: str) -> bool:
        ...

    async def set_due_date(self, record_id: str, due_date: Optional[datetime]) -> bool:
        """Write the built-in due date; None clears it."""
        ...

    async def set_date_field(self, record_id: str, field_id: str, value: Optional[datetime]) -> bool:
        """Write a date custom field with time enabled; None clears it."""
        ...

    async def add_to_list(self, list_id: str, record_id: str) -> bool:
        ...

    async def remove_from_list(self, list_id: str, record_id: str) -> bool:
        ...
