from datetime import time, timedelta
from typing import Callable
from unittest.mock import patch

import pytest
from sched_helpers import MONDAY, NEXT_MONDAY, STUDENT, SUNDAY, TEACHER, TUESDAY, utc
from sqlalchemy.orm import Session

from app.core.exceptions import ValidationException, WeeklyRuleOverlapException
from app.domain.intervals import Interval
from app.models.event_outbox import EventOutbox
from app.services.availability_service import (
    AvailabilityService,
    ExceptionInput,
    WeeklyRuleInput,
)
from app.services.holiday_service import HolidayService


class TestWeeklyRuleValidation:
    def test_touching_rules_are_allowed(self) -> None:
        rules = AvailabilityService.validate_weekly_rules(
            [
                WeeklyRuleInput(1, time(12), time(14)),
                WeeklyRuleInput(1, time(10), time(12)),
            ]
        )
        assert [r.start_time for r in rules] == [time(10), time(12)]

    def test_overlapping_rules_rejected(self) -> None:
        with pytest.raises(WeeklyRuleOverlapException) as exc_info:
            AvailabilityService.validate_weekly_rules(
                [
                    WeeklyRuleInput(1, time(10), time(12)),
                    WeeklyRuleInput(1, time(11), time(13)),
                ]
            )
        assert exc_info.value.code == "WEEKLY_RULE_OVERLAP"
        assert exc_info.value.details["day_of_week"] == 1

    def test_midnight_end_is_end_of_day(self) -> None:
        rules = AvailabilityService.validate_weekly_rules([WeeklyRuleInput(5, time(20), time(0))])
        assert len(rules) == 1

    @pytest.mark.parametrize("day", [-1, 7])
    def test_bad_day_of_week(self, day: int) -> None:
        with pytest.raises(ValidationException) as exc_info:
            AvailabilityService.validate_weekly_rules([WeeklyRuleInput(day, time(9), time(10))])
        assert exc_info.value.code == "INVALID_DAY_OF_WEEK"

    def test_end_before_start(self) -> None:
        with pytest.raises(ValidationException):
            AvailabilityService.validate_weekly_rules([WeeklyRuleInput(1, time(12), time(9))])


class TestReplaceAvailability:
    def test_replace_is_wholesale(self, db: Session) -> None:
        service = AvailabilityService(db)
        service.replace_availability(
            TEACHER,
            [WeeklyRuleInput(1, time(9), time(12)), WeeklyRuleInput(3, time(9), time(12))],
            [ExceptionInput(TUESDAY, [(utc(TUESDAY, 14), utc(TUESDAY, 15))])],
        )
        snapshot = service.replace_availability(TEACHER, [WeeklyRuleInput(2, time(8), time(9))])

        assert [r.day_of_week for r in snapshot.weekly_rules] == [2]
        assert snapshot.exceptions == []
        stored = service.get_availability(TEACHER)
        assert len(stored.weekly_rules) == 1
        assert stored.exceptions == []

    def test_duplicate_exception_dates_are_combined(self, db: Session) -> None:
        service = AvailabilityService(db)
        snapshot = service.replace_availability(
            TEACHER,
            [],
            [
                ExceptionInput(TUESDAY, [(utc(TUESDAY, 9), utc(TUESDAY, 10))]),
                ExceptionInput(TUESDAY, [(utc(TUESDAY, 14), utc(TUESDAY, 15))]),
            ],
        )
        assert len(snapshot.exceptions) == 1
        assert len(snapshot.exceptions[0].slots) == 2

    def test_invalid_payload_changes_nothing(self, db: Session) -> None:
        service = AvailabilityService(db)
        service.replace_availability(TEACHER, [WeeklyRuleInput(1, time(9), time(12))])
        with pytest.raises(WeeklyRuleOverlapException):
            service.replace_availability(
                TEACHER,
                [WeeklyRuleInput(2, time(9), time(12)), WeeklyRuleInput(2, time(11), time(13))],
            )
        assert [r.day_of_week for r in service.get_availability(TEACHER).weekly_rules] == [1]

    def test_exception_slot_must_lie_on_its_date(self, db: Session) -> None:
        service = AvailabilityService(db)
        with pytest.raises(ValidationException) as exc_info:
            service.replace_availability(
                TEACHER,
                [WeeklyRuleInput(1, time(9), time(12))],
                [ExceptionInput(TUESDAY, [(utc(MONDAY, 14), utc(MONDAY, 15))])],
            )
        assert exc_info.value.code == "SLOT_OUTSIDE_DATE"
        assert exc_info.value.details["date"] == TUESDAY.isoformat()
        assert service.get_availability(TEACHER).exceptions == []

    def test_exception_slot_may_end_at_midnight(self, db: Session) -> None:
        snapshot = AvailabilityService(db).replace_availability(
            TEACHER,
            [],
            [ExceptionInput(TUESDAY, [(utc(TUESDAY, 22), utc(TUESDAY + timedelta(days=1), 0))])],
        )
        assert len(snapshot.exceptions) == 1

    def test_replace_publishes_event(self, db: Session) -> None:
        AvailabilityService(db).replace_availability(TEACHER, [WeeklyRuleInput(1, time(9), time(12))])
        events = db.query(EventOutbox).filter_by(event_type="event:AvailabilityUpdated").all()
        assert len(events) == 1
        assert events[0].aggregate_id == TEACHER
        assert events[0].payload["weekly_rule_count"] == 1


class TestFreeIntervals:
    def test_weekly_rule_expands_on_matching_days(
        self, db: Session, set_availability: Callable[..., None]
    ) -> None:
        set_availability(TEACHER, [(1, time(9), time(12))])
        free = AvailabilityService(db).compute_free_intervals(
            TEACHER, utc(SUNDAY, 0), utc(NEXT_MONDAY, 0)
        )
        assert free == [Interval(utc(MONDAY, 9), utc(MONDAY, 12))]

    def test_holiday_removes_the_whole_day(
        self, db: Session, set_availability: Callable[..., None]
    ) -> None:
        set_availability(TEACHER, [(1, time(9), time(12))])
        HolidayService(db).upsert_holidays({MONDAY: "Closed"})

        free = AvailabilityService(db).compute_free_intervals(
            TEACHER, utc(SUNDAY, 0), utc(NEXT_MONDAY, 23)
        )

        assert free == [Interval(utc(NEXT_MONDAY, 9), utc(NEXT_MONDAY, 12))]

    def test_exception_overrides_weekly_pattern(
        self, db: Session, set_availability: Callable[..., None]
    ) -> None:
        set_availability(
            TEACHER,
            [(1, time(9), time(12))],
            [(MONDAY, [(utc(MONDAY, 15), utc(MONDAY, 17))])],
        )
        free = AvailabilityService(db).compute_free_intervals(
            TEACHER, utc(MONDAY, 0), utc(TUESDAY, 0)
        )
        assert free == [Interval(utc(MONDAY, 15), utc(MONDAY, 17))]

    def test_empty_exception_blocks_the_day(
        self, db: Session, set_availability: Callable[..., None]
    ) -> None:
        set_availability(TEACHER, [(1, time(9), time(12))], [(MONDAY, [])])
        free = AvailabilityService(db).compute_free_intervals(
            TEACHER, utc(MONDAY, 0), utc(TUESDAY, 0)
        )
        assert free == []

    def test_lessons_are_subtracted_for_either_role(
        self,
        db: Session,
        set_availability: Callable[..., None],
        make_lesson: Callable[..., object],
    ) -> None:
        set_availability(TEACHER, [(1, time(9), time(17))])
        make_lesson(TEACHER, STUDENT, utc(MONDAY, 10), utc(MONDAY, 11))
        make_lesson("teacher-9", TEACHER, utc(MONDAY, 13), utc(MONDAY, 14))
        make_lesson(TEACHER, STUDENT, utc(MONDAY, 15), utc(MONDAY, 16), status="cancelled")

        free = AvailabilityService(db).compute_free_intervals(
            TEACHER, utc(MONDAY, 0), utc(TUESDAY, 0)
        )

        assert free == [
            Interval(utc(MONDAY, 9), utc(MONDAY, 10)),
            Interval(utc(MONDAY, 11), utc(MONDAY, 13)),
            Interval(utc(MONDAY, 14), utc(MONDAY, 17)),
        ]

    def test_result_is_clipped_to_range(
        self, db: Session, set_availability: Callable[..., None]
    ) -> None:
        set_availability(TEACHER, [(1, time(9), time(12))])
        free = AvailabilityService(db).compute_free_intervals(
            TEACHER, utc(MONDAY, 10), utc(MONDAY, 11)
        )
        assert free == [Interval(utc(MONDAY, 10), utc(MONDAY, 11))]

    def test_business_hours_clip_windows(
        self, db: Session, set_availability: Callable[..., None]
    ) -> None:
        set_availability(TEACHER, [(1, time(6), time(22))])
        with patch("app.services.availability_service.settings") as mock_settings:
            mock_settings.business_open_hour = 8
            mock_settings.business_close_hour = 20
            mock_settings.business_days_open = [1, 2, 3, 4, 5]
            free = AvailabilityService(db).compute_open_windows(
                TEACHER, utc(SUNDAY, 0), utc(TUESDAY, 0)
            )
        assert free == [Interval(utc(MONDAY, 8), utc(MONDAY, 20))]

    def test_invalid_range(self, db: Session) -> None:
        with pytest.raises(ValidationException) as exc_info:
            AvailabilityService(db).compute_free_intervals(
                TEACHER, utc(MONDAY, 10), utc(MONDAY, 10)
            )
        assert exc_info.value.code == "INVALID_TIME_RANGE"
