from datetime import datetime, timedelta, timezone

import pytest

from taskflow.domain.enums import EventStatus, RelevanceUnit, TaskStatus
from taskflow.domain.timeutil import REFERENCE_TZ
from taskflow.services.derivation import (
    MissingPreviousStatusError,
    calculate_end_time,
    calculate_relevance_date,
    calculate_start_time,
    calculate_status,
    calculate_task_status,
)

TIMED = datetime(2025, 3, 10, 14, 30, tzinfo=REFERENCE_TZ)
DATE_ONLY = datetime(2025, 3, 10, 4, 0, tzinfo=REFERENCE_TZ)
LATER_DATE_ONLY = datetime(2025, 3, 12, 4, 0, tzinfo=REFERENCE_TZ)
MIDNIGHT = datetime(2025, 3, 10, tzinfo=REFERENCE_TZ)


class TestStartTime:
    def test_explicit_time_kept(self):
        assert calculate_start_time(TIMED, None) == TIMED

    def test_date_only_start_normalized_to_midnight(self):
        assert calculate_start_time(DATE_ONLY, LATER_DATE_ONLY) == MIDNIGHT

    def test_no_start_uses_date_only_due(self):
        assert calculate_start_time(None, LATER_DATE_ONLY) == datetime(2025, 3, 12, tzinfo=REFERENCE_TZ)

    def test_no_start_and_timed_due_has_no_start(self):
        assert calculate_start_time(None, TIMED) is None

    def test_nothing_set(self):
        assert calculate_start_time(None, None) is None


class TestEndTime:
    def test_explicit_time_kept(self):
        assert calculate_end_time(TIMED) == TIMED

    def test_date_only_ends_next_midnight(self):
        assert calculate_end_time(DATE_ONLY) == datetime(2025, 3, 11, tzinfo=REFERENCE_TZ)

    def test_none(self):
        assert calculate_end_time(None) is None


class TestStatus:
    start = datetime(2025, 3, 10, 10, tzinfo=timezone.utc)
    end = datetime(2025, 3, 10, 12, tzinfo=timezone.utc)

    def test_not_scheduled(self):
        assert calculate_status(None, None, self.start) is EventStatus.NOT_SCHEDULED

    def test_only_end(self):
        assert calculate_status(None, self.end, self.end - timedelta(seconds=1)) is EventStatus.UPCOMING
        assert calculate_status(None, self.end, self.end) is EventStatus.OCCURRED

    def test_only_start(self):
        assert calculate_status(self.start, None, self.start - timedelta(seconds=1)) is EventStatus.UPCOMING
        assert calculate_status(self.start, None, self.start) is EventStatus.OCCURRING

    def test_both_boundaries_inclusive(self):
        assert calculate_status(self.start, self.end, self.start) is EventStatus.OCCURRING
        assert calculate_status(self.start, self.end, self.end) is EventStatus.OCCURRED

    def test_monotonic_in_now(self):
        order = [EventStatus.UPCOMING, EventStatus.OCCURRING, EventStatus.OCCURRED]
        now = self.start - timedelta(hours=2)
        seen = []
        while now <= self.end + timedelta(hours=2):
            seen.append(order.index(calculate_status(self.start, self.end, now)))
            now += timedelta(minutes=15)
        assert seen == sorted(seen)
        assert set(seen) == {0, 1, 2}


class TestRelevanceDate:
    def test_prefers_start(self):
        end = TIMED + timedelta(hours=2)
        assert calculate_relevance_date(TIMED, end, 2, RelevanceUnit.DAYS) == TIMED - timedelta(days=2)

    def test_falls_back_to_end(self):
        assert calculate_relevance_date(None, TIMED, 1, RelevanceUnit.WEEKS) == TIMED - timedelta(days=7)

    def test_months_are_thirty_days(self):
        assert calculate_relevance_date(TIMED, None, 2, RelevanceUnit.MONTHS) == TIMED - timedelta(days=60)

    @pytest.mark.parametrize("num,unit", [(None, RelevanceUnit.DAYS), (3, None), (None, None)])
    def test_incomplete_pair(self, num, unit):
        assert calculate_relevance_date(TIMED, TIMED, num, unit) is None

    def test_no_anchor(self):
        assert calculate_relevance_date(None, None, 3, RelevanceUnit.DAYS) is None


class TestTaskStatus:
    @pytest.mark.parametrize("start,due", [(TIMED, None), (None, TIMED), (TIMED, TIMED)])
    def test_backlog_with_a_date_moves_to_do(self, start, due):
        assert calculate_task_status(start, due, TaskStatus.BACKLOG) is TaskStatus.TO_DO

    @pytest.mark.parametrize("previous", [TaskStatus.TO_DO, TaskStatus.IN_PROGRESS, TaskStatus.COMPLETE])
    def test_losing_all_dates_moves_to_backlog(self, previous):
        assert calculate_task_status(None, None, previous) is TaskStatus.BACKLOG

    def test_otherwise_keeps_previous(self):
        assert calculate_task_status(TIMED, None, TaskStatus.IN_PROGRESS) is TaskStatus.IN_PROGRESS
        assert calculate_task_status(None, None, TaskStatus.BACKLOG) is TaskStatus.BACKLOG

    @pytest.mark.parametrize("start,due", [(None, None), (TIMED, None)])
    def test_missing_previous_status_is_a_defined_failure(self, start, due):
        with pytest.raises(MissingPreviousStatusError):
            calculate_task_status(start, due, None)


def test_derivations_are_idempotent():
    for _ in range(2):
        assert calculate_start_time(DATE_ONLY, None) == MIDNIGHT
        assert calculate_end_time(DATE_ONLY) == datetime(2025, 3, 11, tzinfo=REFERENCE_TZ)
        assert calculate_status(MIDNIGHT, None, TIMED) is EventStatus.OCCURRING
        assert calculate_task_status(TIMED, None, TaskStatus.BACKLOG) is TaskStatus.TO_DO
