from datetime import time, timedelta
from typing import Callable

import pytest
from sched_helpers import MONDAY, STUDENT, TEACHER, TUESDAY, utc
from sqlalchemy.orm import Session

from app.core.exceptions import ValidationException
from app.models.scheduling_log import SchedulingLog
from app.repositories.scheduling_log_repository import SchedulingLogRepository
from app.services.slot_suggestion_service import SlotSuggestionService


@pytest.fixture
def mutual_monday(set_availability: Callable[..., None]) -> None:
    """Teacher free Mon 09-12, student Mon 10-13: the shared window is 10-12."""
    set_availability(TEACHER, [(1, time(9), time(12))])
    set_availability(STUDENT, [(1, time(10), time(13))])


def _starts(result) -> list:
    return [s.start for s in result.suggestions]


@pytest.mark.usefixtures("mutual_monday")
class TestSuggestSlots:
    def test_greedy_walks_the_mutual_window(self, db: Session) -> None:
        result = SlotSuggestionService(db).suggest_slots(
            TEACHER, STUDENT, 60, step_minutes=30, days=1, from_=utc(MONDAY, 0)
        )
        assert result.algorithm == "greedy"
        assert _starts(result) == [utc(MONDAY, 10), utc(MONDAY, 10, 30), utc(MONDAY, 11)]
        assert all(s.end - s.start == timedelta(hours=1) for s in result.suggestions)

    def test_buffer_pads_both_sides(self, db: Session) -> None:
        result = SlotSuggestionService(db).suggest_slots(
            TEACHER,
            STUDENT,
            60,
            step_minutes=30,
            buffer_minutes=15,
            days=1,
            from_=utc(MONDAY, 0),
        )
        assert _starts(result) == [utc(MONDAY, 10, 15), utc(MONDAY, 10, 45)]

    def test_max_suggestions_caps_result(self, db: Session) -> None:
        result = SlotSuggestionService(db).suggest_slots(
            TEACHER, STUDENT, 60, step_minutes=15, max_suggestions=2, days=1, from_=utc(MONDAY, 0)
        )
        assert _starts(result) == [utc(MONDAY, 10), utc(MONDAY, 10, 15)]

    def test_backtracking_prefers_aligned_starts(self, db: Session) -> None:
        result = SlotSuggestionService(db).suggest_slots(
            TEACHER,
            STUDENT,
            60,
            step_minutes=30,
            days=1,
            algorithm="backtracking",
            from_=utc(MONDAY, 0),
        )
        assert result.algorithm == "backtracking"
        assert _starts(result) == [utc(MONDAY, 10), utc(MONDAY, 11), utc(MONDAY, 10, 30)]

    def test_no_suggestion_before_from(self, db: Session) -> None:
        result = SlotSuggestionService(db).suggest_slots(
            TEACHER, STUDENT, 60, step_minutes=30, days=1, from_=utc(MONDAY, 10, 40)
        )
        assert _starts(result) == [utc(MONDAY, 10, 40)]

    def test_existing_lesson_shrinks_window(
        self, db: Session, make_lesson: Callable[..., object]
    ) -> None:
        make_lesson(TEACHER, "student-9", utc(MONDAY, 10), utc(MONDAY, 11))
        result = SlotSuggestionService(db).suggest_slots(
            TEACHER, STUDENT, 60, step_minutes=30, days=1, from_=utc(MONDAY, 0)
        )
        assert _starts(result) == [utc(MONDAY, 11)]

    def test_horizon_excludes_later_days(self, db: Session) -> None:
        result = SlotSuggestionService(db).suggest_slots(
            TEACHER, STUDENT, 60, step_minutes=30, days=1, from_=utc(TUESDAY, 0)
        )
        assert result.suggestions == []
        assert result.window.end == utc(TUESDAY, 0) + timedelta(days=1)

    def test_successful_run_is_logged(self, db: Session) -> None:
        SlotSuggestionService(db).suggest_slots(
            TEACHER, STUDENT, 60, step_minutes=30, days=1, from_=utc(MONDAY, 0)
        )
        logs = SchedulingLogRepository(db).recent_for_teacher(TEACHER)
        assert len(logs) == 1
        assert logs[0].algorithm == "greedy"
        assert logs[0].student_id == STUDENT
        assert len(logs[0].suggestions) == 3

    def test_empty_run_is_not_logged(self, db: Session) -> None:
        SlotSuggestionService(db).suggest_slots(
            TEACHER, STUDENT, 60, step_minutes=30, days=1, from_=utc(TUESDAY, 0)
        )
        assert db.query(SchedulingLog).count() == 0


class TestSuggestValidation:
    @pytest.mark.parametrize(
        "kwargs, code",
        [
            ({"duration_minutes": 10}, "INVALID_DURATION"),
            ({"duration_minutes": 300}, "INVALID_DURATION"),
            ({"step_minutes": 1}, "INVALID_STEP"),
            ({"buffer_minutes": -5}, "INVALID_BUFFER"),
            ({"days": 0}, "INVALID_HORIZON"),
            ({"max_suggestions": 0}, "INVALID_LIMIT"),
            ({"algorithm": "annealing"}, "INVALID_ALGORITHM"),
            ({"teacher_id": ""}, "MISSING_ID"),
        ],
    )
    def test_rejects_bad_input(self, db: Session, kwargs: dict, code: str) -> None:
        params = {
            "teacher_id": TEACHER,
            "student_id": STUDENT,
            "duration_minutes": 60,
            "from_": utc(MONDAY, 0),
        }
        params.update(kwargs)
        with pytest.raises(ValidationException) as exc_info:
            SlotSuggestionService(db).suggest_slots(**params)
        assert exc_info.value.code == code
