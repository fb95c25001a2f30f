"""Domain enumerations with a fixed wire representation.

Each enum maps one-to-one onto the string the task service uses in API
payloads and webhook history items. ``from_wire`` fails loudly on unknown
strings; callers that want "absent" semantics catch ``ValueError`` themselves.
"""
from enum import Enum


class _WireEnum(str, Enum):

    @classmethod
    def from_wire(cls, value: str):
        for member in cls:
            if member.value == value:
                return member
        raise ValueError(f"Invalid {cls.__name__}: {value!r}")

    @property
    def display_name(self) -> str:
        return self.name[0] + self.name[1:].lower().replace("_", " ")

    def __str__(self) -> str:
        return self.value


class TaskStatus(_WireEnum):
    BACKLOG = "backlog"
    TO_DO = "to do"
    IN_PROGRESS = "in progress"
    COMPLETE = "complete"


class EventStatus(_WireEnum):
    NOT_SCHEDULED = "not scheduled"
    UPCOMING = "upcoming"
    OCCURRING = "occurring"
    OCCURRED = "occurred"


class RelevanceUnit(_WireEnum):
    DAYS = "days"
    WEEKS = "weeks"
    MONTHS = "months"

    @classmethod
    def from_index(cls, index: int) -> "RelevanceUnit":
        """Drop-down custom fields report the selected option by position."""
        members = list(cls)
        if not isinstance(index, int) or isinstance(index, bool) or not 0 <= index < len(members):
            raise ValueError(f"Invalid relevance unit index: {index!r}")
        return members[index]

    @property
    def days(self) -> int:
        # months are approximated as 30 days
        return {"days": 1, "weeks": 7, "months": 30}[self.value]


class WebhookEventType(_WireEnum):
    CREATED = "taskCreated"
    UPDATED = "taskUpdated"
    TAG_UPDATED = "taskTagUpdated"
