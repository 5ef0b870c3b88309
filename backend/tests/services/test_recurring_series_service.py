from datetime import time, timedelta
from typing import Callable
from unittest.mock import patch

import pytest
from sched_helpers import (
    MONDAY,
    NEXT_MONDAY,
    OTHER_STUDENT,
    STUDENT,
    TEACHER,
    THURSDAY,
    utc,
)
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import (
    LessonConflictException,
    RepositoryException,
    ServiceException,
    ValidationException,
)
from app.domain.intervals import Interval
from app.models.event_outbox import EventOutbox
from app.models.lesson import Lesson
from app.models.recurring_series import RecurringSeries
from app.services.holiday_service import HolidayService
from app.services.lesson_service import LessonService
from app.services.recurring_series_service import RecurringSeriesService, expand_candidates

FOLLOWING_THURSDAY = THURSDAY + timedelta(weeks=1)


def _generate(db: Session, **overrides):
    params = dict(
        title="Piano",
        teacher_id=TEACHER,
        student_id=STUDENT,
        start_at=utc(MONDAY, 10),
        duration_minutes=60,
        interval_weeks=1,
        count=4,
        by_day=[1, 4],
        enforce_availability=False,
    )
    params.update(overrides)
    return RecurringSeriesService(db).generate_series(**params)


class TestExpandCandidates:
    def test_monday_thursday_pattern(self) -> None:
        candidates = expand_candidates(utc(MONDAY, 10), 60, 1, 4, [1, 4])
        assert [c.start for c in candidates] == [
            utc(MONDAY, 10),
            utc(THURSDAY, 10),
            utc(NEXT_MONDAY, 10),
            utc(FOLLOWING_THURSDAY, 10),
        ]
        assert candidates[0] == Interval(utc(MONDAY, 10), utc(MONDAY, 11))

    def test_days_before_anchor_are_not_produced(self) -> None:
        # Sunday of the anchor week precedes the Monday anchor
        candidates = expand_candidates(utc(MONDAY, 10), 60, 1, 2, [0, 1])
        assert [c.start for c in candidates] == [
            utc(MONDAY, 10),
            utc(MONDAY + timedelta(days=6), 10),
        ]

    def test_interval_weeks_skips_weeks(self) -> None:
        candidates = expand_candidates(utc(MONDAY, 10), 30, 2, 3, [1])
        assert [c.start.date() for c in candidates] == [
            MONDAY,
            MONDAY + timedelta(weeks=2),
            MONDAY + timedelta(weeks=4),
        ]

    def test_empty_by_day_uses_anchor_weekday(self) -> None:
        candidates = expand_candidates(utc(THURSDAY, 9), 45, 1, 2, [])
        assert [c.start for c in candidates] == [utc(THURSDAY, 9), utc(FOLLOWING_THURSDAY, 9)]

    def test_duplicate_days_are_ignored(self) -> None:
        candidates = expand_candidates(utc(MONDAY, 10), 60, 1, 2, [1, 1])
        assert [c.start.date() for c in candidates] == [MONDAY, NEXT_MONDAY]


class TestGenerateSeries:
    def test_all_occurrences_created(self, db: Session) -> None:
        result = _generate(db)

        assert len(result.created) == 4
        assert result.skipped == []
        assert {lesson.recurring_series_id for lesson in result.created} == {result.series.id}
        assert db.query(Lesson).count() == 4

    def test_teacher_conflict_skips_one_occurrence(
        self, db: Session, make_lesson: Callable[..., Lesson]
    ) -> None:
        make_lesson(TEACHER, OTHER_STUDENT, utc(THURSDAY, 10, 30), utc(THURSDAY, 11, 30))

        result = _generate(db)

        assert len(result.created) == 3
        assert len(result.skipped) == 1
        assert result.skipped[0].reason == "teacher_conflict"
        assert result.skipped[0].candidate.start == utc(THURSDAY, 10)
        assert result.candidate_count == 4

    def test_student_conflict(self, db: Session, make_lesson: Callable[..., Lesson]) -> None:
        make_lesson("teacher-9", STUDENT, utc(MONDAY, 10), utc(MONDAY, 11))
        result = _generate(db, count=1)
        assert [s.reason for s in result.skipped] == ["student_conflict"]
        assert result.created == []

    def test_cancelled_lesson_does_not_block(
        self, db: Session, make_lesson: Callable[..., Lesson]
    ) -> None:
        make_lesson(TEACHER, OTHER_STUDENT, utc(MONDAY, 10), utc(MONDAY, 11), status="cancelled")
        result = _generate(db, count=1)
        assert len(result.created) == 1

    def test_holiday_skips_occurrence(self, db: Session) -> None:
        HolidayService(db).upsert_holidays({NEXT_MONDAY: "Winter break"})

        result = _generate(db)

        assert len(result.created) == 3
        assert [(s.reason, s.candidate.start) for s in result.skipped] == [
            ("holiday", utc(NEXT_MONDAY, 10))
        ]

    def test_skipped_occurrences_are_not_replaced(self, db: Session) -> None:
        HolidayService(db).upsert_holidays({MONDAY: "Closed"})
        result = _generate(db, count=2)
        assert result.candidate_count == 2
        assert [lesson.start_at for lesson in result.created] == [utc(THURSDAY, 10)]

    def test_unavailable_teacher_when_enforced(
        self, db: Session, set_availability: Callable[..., None]
    ) -> None:
        set_availability(TEACHER, [(1, time(9), time(12))])
        set_availability(STUDENT, [(1, time(9), time(12)), (4, time(9), time(12))])

        result = _generate(db, enforce_availability=True)

        assert [lesson.start_at for lesson in result.created] == [
            utc(MONDAY, 10),
            utc(NEXT_MONDAY, 10),
        ]
        assert [s.reason for s in result.skipped] == ["teacher_unavailable", "teacher_unavailable"]

    def test_unavailable_student_when_enforced(
        self, db: Session, set_availability: Callable[..., None]
    ) -> None:
        set_availability(TEACHER, [(1, time(9), time(12))])
        set_availability(STUDENT, [(1, time(10), time(10, 30))])
        result = _generate(db, count=1, enforce_availability=True)
        assert [s.reason for s in result.skipped] == ["student_unavailable"]

    def test_availability_ignored_when_not_enforced(self, db: Session) -> None:
        result = _generate(db, count=2)
        assert len(result.created) == 2

    def test_series_row_records_pattern(self, db: Session) -> None:
        result = _generate(db, by_day=[4, 1, 4])
        assert result.series.by_day == [1, 4]
        assert result.series.count == 4
        assert result.series.teacher_id == TEACHER

    @pytest.mark.parametrize(
        "overrides, code",
        [
            ({"interval_weeks": 0}, "INVALID_INTERVAL"),
            ({"count": 0}, "INVALID_COUNT"),
            ({"count": 101}, "INVALID_COUNT"),
            ({"by_day": [7]}, "INVALID_DAY_OF_WEEK"),
            ({"duration_minutes": 5}, "INVALID_DURATION"),
            ({"title": "  "}, "MISSING_TITLE"),
            ({"student_id": TEACHER}, "SAME_PARTICIPANT"),
        ],
    )
    def test_validation(self, db: Session, overrides: dict, code: str) -> None:
        with pytest.raises(ValidationException) as exc_info:
            _generate(db, **overrides)
        assert exc_info.value.code == code
        assert db.query(Lesson).count() == 0


class TestSeriesBufferAndAtomicity:
    def test_booking_buffer_applies_like_single_lessons(
        self, db: Session, make_lesson: Callable[..., Lesson]
    ) -> None:
        make_lesson(TEACHER, OTHER_STUDENT, utc(MONDAY, 9), utc(MONDAY, 10))

        with patch.object(settings, "booking_buffer_minutes", 15):
            with pytest.raises(LessonConflictException):
                LessonService(db).create_lesson("Piano", TEACHER, STUDENT, utc(MONDAY, 10), 60)
            result = _generate(db, count=1, by_day=[1])

        assert result.created == []
        assert [s.reason for s in result.skipped] == ["teacher_conflict"]

    def test_persistence_failure_rolls_back_whole_series(self, db: Session) -> None:
        service = RecurringSeriesService(db)
        real_create = service.lesson_repository.create
        calls = {"n": 0}

        def failing_create(**kwargs):
            calls["n"] += 1
            if calls["n"] == 3:
                raise RepositoryException("disk full")
            return real_create(**kwargs)

        service.lesson_repository.create = failing_create  # type: ignore[method-assign]

        with pytest.raises(ServiceException):
            service.generate_series(
                title="Piano",
                teacher_id=TEACHER,
                student_id=STUDENT,
                start_at=utc(MONDAY, 10),
                duration_minutes=60,
                count=4,
                by_day=[1, 4],
                enforce_availability=False,
            )

        assert db.query(Lesson).count() == 0
        assert db.query(RecurringSeries).count() == 0
        assert db.query(EventOutbox).count() == 0
