# backend/app/services/availability_service.py
"""
Availability Service

This service owns a user's availability pattern and resolves it into
concrete free intervals:

1. weekly rules are expanded into day windows for every date in the range;
2. a date with an exception uses the exception slots instead (override, not merge);
3. holiday dates are cut out entirely;
4. windows are merged and clipped to business hours and to the range;
5. the user's scheduled and completed lessons are subtracted.

Nothing is cached: every call reads the current rules, exceptions, holidays
and lessons.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime, time, timedelta
import logging
from typing import Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import ValidationException, WeeklyRuleOverlapException
from ..core.locks import participant_locks
from ..domain.intervals import Interval, clip, intersect_all, merge, subtract_all
from ..events.availability_events import AvailabilityUpdated
from ..events.publisher import EventPublisher
from ..models.availability import AvailabilityException, WeeklyRule
from ..repositories.availability_repository import AvailabilityRepository
from ..repositories.factory import RepositoryFactory
from ..repositories.holiday_repository import HolidayRepository
from ..repositories.lesson_repository import LessonRepository
from ..utils.time_utils import (
    combine_utc,
    day_of_week,
    day_start_utc,
    ensure_utc,
    iter_dates,
    minutes_to_time_str,
    time_to_minutes,
)
from .base import BaseService

logger = logging.getLogger(__name__)


class WeeklyRuleInput(NamedTuple):
    day_of_week: int
    start_time: time
    end_time: time


class ExceptionInput(NamedTuple):
    date: date
    slots: Sequence[Tuple[datetime, datetime]]


class AvailabilitySnapshot(NamedTuple):
    user_id: str
    weekly_rules: List[WeeklyRule]
    exceptions: List[AvailabilityException]


def _rule_minutes(rule: WeeklyRuleInput | WeeklyRule) -> Tuple[int, int]:
    return time_to_minutes(rule.start_time), time_to_minutes(rule.end_time, is_end_time=True)


class AvailabilityService(BaseService):
    """
    Service layer for availability operations.

    Handles validation and wholesale replacement of weekly rules and date
    exceptions, and resolves free intervals for conflict-aware scheduling.
    """

    def __init__(
        self,
        db: Session,
        availability_repository: Optional[AvailabilityRepository] = None,
        holiday_repository: Optional[HolidayRepository] = None,
        lesson_repository: Optional[LessonRepository] = None,
        event_publisher: Optional[EventPublisher] = None,
    ):
        super().__init__(db)
        self.logger = logging.getLogger(__name__)
        self.repository = (
            availability_repository or RepositoryFactory.create_availability_repository(db)
        )
        self.holiday_repository = holiday_repository or RepositoryFactory.create_holiday_repository(db)
        self.lesson_repository = lesson_repository or RepositoryFactory.create_lesson_repository(db)
        self.event_publisher = event_publisher or EventPublisher(
            RepositoryFactory.create_event_outbox_repository(db)
        )

    # ------------------------------------------------------------------ validation

    @staticmethod
    def validate_weekly_rules(rules: Iterable[WeeklyRuleInput]) -> List[WeeklyRuleInput]:
        """
        Check day range, time order and same-day overlaps.

        Touching rules (10:00-12:00 and 12:00-14:00) are allowed. An end time
        of 00:00 means end of day.

        Raises:
            ValidationException: bad day or end not after start
            WeeklyRuleOverlapException: two rules of one day overlap
        """
        by_day: Dict[int, List[WeeklyRuleInput]] = defaultdict(list)
        for rule in rules:
            if not 0 <= rule.day_of_week <= 6:
                raise ValidationException(
                    f"day_of_week must be between 0 (Sunday) and 6 (Saturday), got {rule.day_of_week}",
                    code="INVALID_DAY_OF_WEEK",
                )
            start_min, end_min = _rule_minutes(rule)
            if end_min <= start_min:
                raise ValidationException(
                    f"Weekly rule end {rule.end_time} must be after start {rule.start_time}",
                    code="INVALID_TIME_RANGE",
                )
            by_day[rule.day_of_week].append(rule)

        ordered: List[WeeklyRuleInput] = []
        for day in sorted(by_day):
            day_rules = sorted(by_day[day], key=_rule_minutes)
            for previous, current in zip(day_rules, day_rules[1:]):
                prev_start, prev_end = _rule_minutes(previous)
                cur_start, cur_end = _rule_minutes(current)
                if cur_start < prev_end:
                    raise WeeklyRuleOverlapException(
                        day,
                        f"{minutes_to_time_str(cur_start)}-{minutes_to_time_str(cur_end)}",
                        f"{minutes_to_time_str(prev_start)}-{minutes_to_time_str(prev_end)}",
                    )
            ordered.extend(day_rules)
        return ordered

    @staticmethod
    def normalize_exceptions(
        exceptions: Iterable[ExceptionInput],
    ) -> Dict[date, List[Tuple[datetime, datetime]]]:
        """
        Combine duplicate dates and validate every slot; instants become UTC.

        Each slot must fall within its own UTC date (ending at the following
        midnight is allowed).
        """
        combined: Dict[date, List[Tuple[datetime, datetime]]] = {}
        for exception in exceptions:
            slots = combined.setdefault(exception.date, [])
            day_start = day_start_utc(exception.date)
            day_end = day_start + timedelta(days=1)
            for start, end in exception.slots:
                start_utc, end_utc = ensure_utc(start), ensure_utc(end)
                if end_utc <= start_utc:
                    raise ValidationException(
                        f"Exception slot on {exception.date} must end after it starts",
                        code="INVALID_TIME_RANGE",
                        details={"start": start_utc.isoformat(), "end": end_utc.isoformat()},
                    )
                if start_utc < day_start or end_utc > day_end:
                    raise ValidationException(
                        f"Exception slot must lie within {exception.date}",
                        code="SLOT_OUTSIDE_DATE",
                        details={
                            "date": exception.date.isoformat(),
                            "start": start_utc.isoformat(),
                            "end": end_utc.isoformat(),
                        },
                    )
                slots.append((start_utc, end_utc))
        return combined

    # ------------------------------------------------------------------ read/write

    @BaseService.measure_operation("get_availability")
    def get_availability(self, user_id: str) -> AvailabilitySnapshot:
        return AvailabilitySnapshot(
            user_id=user_id,
            weekly_rules=self.repository.get_weekly_rules(user_id),
            exceptions=self.repository.get_exceptions(user_id),
        )

    @BaseService.measure_operation("replace_availability")
    def replace_availability(
        self,
        user_id: str,
        weekly_rules: Iterable[WeeklyRuleInput],
        exceptions: Iterable[ExceptionInput] = (),
    ) -> AvailabilitySnapshot:
        """
        Replace the user's weekly rules and exceptions as one atomic swap.

        Everything is validated before any row is touched.
        """
        if not user_id:
            raise ValidationException("user_id is required", code="MISSING_USER_ID")
        rules = self.validate_weekly_rules(weekly_rules)
        exception_map = self.normalize_exceptions(exceptions)

        with participant_locks(user_id):
            with self.transaction():
                new_rules, new_exceptions = self.repository.replace_for_user(
                    user_id,
                    [(r.day_of_week, r.start_time, r.end_time) for r in rules],
                    exception_map,
                )
                self.event_publisher.publish(
                    AvailabilityUpdated(
                        user_id=user_id,
                        weekly_rule_count=len(new_rules),
                        exception_dates=sorted(exception_map),
                    )
                )

        self.log_operation(
            "replace_availability",
            user_id=user_id,
            weekly_rules=len(new_rules),
            exceptions=len(new_exceptions),
        )
        return AvailabilitySnapshot(user_id, new_rules, new_exceptions)

    # ------------------------------------------------------------------ resolution

    @staticmethod
    def _validate_range(range_start: datetime, range_end: datetime) -> Interval:
        start, end = ensure_utc(range_start), ensure_utc(range_end)
        if end <= start:
            raise ValidationException(
                "Range end must be after range start",
                code="INVALID_TIME_RANGE",
                details={"start": start.isoformat(), "end": end.isoformat()},
            )
        return Interval(start, end)

    @staticmethod
    def _business_windows(first_day: date, last_day: date) -> List[Interval]:
        open_days = set(settings.business_days_open)
        return [
            Interval(
                combine_utc(current, settings.business_open_hour * 60),
                combine_utc(current, settings.business_close_hour * 60),
            )
            for current in iter_dates(first_day, last_day)
            if day_of_week(current) in open_days
        ]

    @BaseService.measure_operation("compute_open_windows")
    def compute_open_windows(
        self, user_id: str, range_start: datetime, range_end: datetime
    ) -> List[Interval]:
        """
        Windows in which the user is willing to teach or learn, before lessons.

        Rules, exceptions, holidays and business hours are applied; existing
        lessons are not subtracted.
        """
        bounds = self._validate_range(range_start, range_end)
        first_day = bounds.start.date()
        last_day = (bounds.end - timedelta(microseconds=1)).date()
        # exception slots on the previous date may spill past midnight into the range
        lookback_day = first_day - timedelta(days=1)

        exceptions = self.repository.get_exceptions(user_id, lookback_day, last_day)
        exception_dates = {exception.date for exception in exceptions}
        holidays = self.holiday_repository.get_dates_between(lookback_day, last_day)

        rules_by_day: Dict[int, List[WeeklyRule]] = defaultdict(list)
        for rule in self.repository.get_weekly_rules(user_id):
            rules_by_day[rule.day_of_week].append(rule)

        windows: List[Interval] = []
        for current in iter_dates(first_day, last_day):
            if current in exception_dates or current in holidays:
                continue
            for rule in rules_by_day.get(day_of_week(current), []):
                start_min, end_min = _rule_minutes(rule)
                if end_min > start_min:
                    windows.append(
                        Interval(combine_utc(current, start_min), combine_utc(current, end_min))
                    )

        for exception in exceptions:
            for slot in exception.slots:
                windows.append(Interval(slot.start_at, slot.end_at))

        opened = intersect_all(merge(windows), self._business_windows(lookback_day, last_day))
        holiday_cuts = [
            Interval(day_start_utc(h), day_start_utc(h + timedelta(days=1))) for h in holidays
        ]
        return clip(subtract_all(opened, holiday_cuts), bounds)

    @BaseService.measure_operation("compute_free_intervals")
    def compute_free_intervals(
        self, user_id: str, range_start: datetime, range_end: datetime
    ) -> List[Interval]:
        """
        Free intervals of a user over [range_start, range_end), sorted ascending.

        Open windows minus every scheduled or completed lesson the user takes
        part in, as teacher or student.
        """
        open_windows = self.compute_open_windows(user_id, range_start, range_end)
        if not open_windows:
            return []
        busy = [
            Interval(lesson.start_at, lesson.end_at)
            for lesson in self.lesson_repository.get_blocking_lessons(
                [user_id], open_windows[0].start, open_windows[-1].end
            )
        ]
        return subtract_all(open_windows, busy)
