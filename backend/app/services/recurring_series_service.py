# backend/app/services/recurring_series_service.py
"""
Recurring Series Service

Expands an anchor lesson and a weekly pattern into concrete lessons.

Candidates are produced week by week starting from the Sunday of the
anchor's week, advancing interval_weeks at a time, one candidate per
selected weekday at the anchor's time of day. Candidates earlier than the
anchor are never produced. Generation stops once `count` candidates exist;
skipped candidates are not made up for later.

Each candidate becomes a lesson or is skipped with a reason. Partial series
are a normal result, not an error; the whole pass commits as one unit.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
import logging
from typing import Dict, List, Optional, Sequence, Set

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.constants import MAX_SERIES_COUNT, MAX_SERIES_INTERVAL_WEEKS
from ..core.exceptions import ValidationException
from ..core.locks import participant_locks
from ..domain.intervals import Interval, contains, pad
from ..events.publisher import EventPublisher
from ..models.lesson import Lesson, LessonStatus
from ..models.recurring_series import RecurringSeries
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from ..repositories.holiday_repository import HolidayRepository
from ..repositories.lesson_repository import LessonRepository
from ..utils.time_utils import day_of_week, day_start_utc, ensure_utc, week_start_sunday
from .availability_service import AvailabilityService
from .base import BaseService
from .conflict_checker import ConflictChecker
from .lesson_service import lesson_created_event, validate_lesson_fields

logger = logging.getLogger(__name__)


class SkipReason:
    HOLIDAY = "holiday"
    SERIES_CONFLICT = "series_conflict"
    TEACHER_CONFLICT = "teacher_conflict"
    STUDENT_CONFLICT = "student_conflict"
    TEACHER_UNAVAILABLE = "teacher_unavailable"
    STUDENT_UNAVAILABLE = "student_unavailable"


@dataclass
class SkippedOccurrence:
    candidate: Interval
    reason: str


@dataclass
class SeriesResult:
    series: RecurringSeries
    created: List[Lesson] = field(default_factory=list)
    skipped: List[SkippedOccurrence] = field(default_factory=list)

    @property
    def candidate_count(self) -> int:
        return len(self.created) + len(self.skipped)


def expand_candidates(
    start_at: datetime,
    duration_minutes: int,
    interval_weeks: int,
    count: int,
    by_day: Sequence[int],
) -> List[Interval]:
    """
    Candidate occurrences in chronological order.

    by_day uses 0=Sunday; duplicates are ignored and an empty list means the
    anchor's own weekday.
    """
    anchor = ensure_utc(start_at)
    days = sorted(set(by_day)) or [day_of_week(anchor.date())]
    time_of_day = anchor - day_start_utc(anchor.date())
    duration = timedelta(minutes=duration_minutes)

    candidates: List[Interval] = []
    week = week_start_sunday(anchor.date())
    while len(candidates) < count:
        for day in days:
            start = day_start_utc(week + timedelta(days=day)) + time_of_day
            if start < anchor:
                continue
            candidates.append(Interval(start, start + duration))
            if len(candidates) == count:
                break
        week += timedelta(weeks=interval_weeks)
    return candidates


class RecurringSeriesService(BaseService):
    def __init__(
        self,
        db: Session,
        lesson_repository: Optional[LessonRepository] = None,
        holiday_repository: Optional[HolidayRepository] = None,
        availability_service: Optional[AvailabilityService] = None,
        conflict_checker: Optional[ConflictChecker] = None,
        event_publisher: Optional[EventPublisher] = None,
    ):
        super().__init__(db)
        self.lesson_repository = lesson_repository or RepositoryFactory.create_lesson_repository(db)
        self.series_repository = RepositoryFactory.create_recurring_series_repository(db)
        self.holiday_repository = holiday_repository or RepositoryFactory.create_holiday_repository(db)
        self.availability_service = availability_service or AvailabilityService(db)
        self.conflict_checker = conflict_checker or ConflictChecker(db, self.lesson_repository)
        self.event_publisher = event_publisher or EventPublisher(
            RepositoryFactory.create_event_outbox_repository(db)
        )

    @staticmethod
    def _validate(interval_weeks: int, count: int, by_day: Sequence[int]) -> None:
        if not 1 <= interval_weeks <= MAX_SERIES_INTERVAL_WEEKS:
            raise ValidationException(
                f"interval_weeks must be between 1 and {MAX_SERIES_INTERVAL_WEEKS}",
                code="INVALID_INTERVAL",
            )
        if not 1 <= count <= MAX_SERIES_COUNT:
            raise ValidationException(
                f"count must be between 1 and {MAX_SERIES_COUNT}", code="INVALID_COUNT"
            )
        for day in by_day:
            if not 0 <= day <= 6:
                raise ValidationException(
                    f"by_day entries must be between 0 (Sunday) and 6 (Saturday), got {day}",
                    code="INVALID_DAY_OF_WEEK",
                )

    def _holiday_dates(self, candidates: List[Interval]) -> Set[date]:
        first = candidates[0].start.date()
        last = (candidates[-1].end - timedelta(microseconds=1)).date()
        return self.holiday_repository.get_dates_between(first, last)

    def _open_windows(self, user_id: str, candidates: List[Interval]) -> List[Interval]:
        return self.availability_service.compute_open_windows(
            user_id, candidates[0].start, candidates[-1].end
        )

    @staticmethod
    def _within(windows: List[Interval], candidate: Interval) -> bool:
        return any(contains(window, candidate) for window in windows)

    @BaseService.measure_operation("generate_series")
    def generate_series(
        self,
        title: str,
        teacher_id: str,
        student_id: str,
        start_at: datetime,
        duration_minutes: int,
        interval_weeks: int = 1,
        count: int = 1,
        by_day: Optional[Sequence[int]] = None,
        enforce_availability: bool = True,
    ) -> SeriesResult:
        """
        Generate and commit a recurring series.

        Skip reasons, checked in this order: holiday, series_conflict,
        teacher_conflict, student_conflict, teacher_unavailable,
        student_unavailable. The availability checks only apply when
        enforce_availability is set. Conflict checks use the same booking
        buffer as single lessons.

        The series row and every created lesson commit in one transaction;
        a persistence failure rolls all of them back and raises
        ServiceException.

        Returns:
            SeriesResult where len(created) + len(skipped) == count
        """
        validate_lesson_fields(title, teacher_id, student_id, duration_minutes)
        days = list(by_day or [])
        self._validate(interval_weeks, count, days)

        candidates = expand_candidates(start_at, duration_minutes, interval_weeks, count, days)
        anchor = ensure_utc(start_at)
        buffer_minutes = settings.booking_buffer_minutes

        with participant_locks(teacher_id, student_id):
            with self.transaction():
                series = self.series_repository.create(
                    title=title.strip(),
                    teacher_id=teacher_id,
                    student_id=student_id,
                    start_at=anchor,
                    duration_minutes=duration_minutes,
                    interval_weeks=interval_weeks,
                    count=count,
                    by_day=sorted(set(days)),
                )
                result = SeriesResult(series=series)

                holidays = self._holiday_dates(candidates)
                open_windows: Dict[str, List[Interval]] = {}
                if enforce_availability:
                    open_windows[teacher_id] = self._open_windows(teacher_id, candidates)
                    open_windows[student_id] = self._open_windows(student_id, candidates)

                for candidate in candidates:
                    reason = self._skip_reason(
                        candidate,
                        teacher_id,
                        student_id,
                        result.created,
                        holidays,
                        open_windows,
                        buffer_minutes,
                    )
                    if reason is not None:
                        result.skipped.append(SkippedOccurrence(candidate, reason))
                        continue

                    lesson = self.lesson_repository.create(
                        title=series.title,
                        teacher_id=teacher_id,
                        student_id=student_id,
                        start_at=candidate.start,
                        end_at=candidate.end,
                        duration_minutes=duration_minutes,
                        status=LessonStatus.SCHEDULED.value,
                        recurring_series_id=series.id,
                    )
                    self.event_publisher.publish(lesson_created_event(lesson))
                    result.created.append(lesson)

        for _ in result.created:
            prometheus_metrics.record_series_occurrence("created")
        for skipped in result.skipped:
            prometheus_metrics.record_series_occurrence(skipped.reason)
        self.log_operation(
            "generate_series",
            series_id=series.id,
            created_count=len(result.created),
            skipped_count=len(result.skipped),
        )
        return result

    def _skip_reason(
        self,
        candidate: Interval,
        teacher_id: str,
        student_id: str,
        accepted: List[Lesson],
        holidays: Set[date],
        open_windows: Dict[str, List[Interval]],
        buffer_minutes: int = 0,
    ) -> Optional[str]:
        touched_days = {
            candidate.start.date(),
            (candidate.end - timedelta(microseconds=1)).date(),
        }
        if touched_days & holidays:
            return SkipReason.HOLIDAY
        padded = pad(candidate, buffer_minutes)
        if self.conflict_checker.has_conflict(
            teacher_id, padded, accepted
        ) or self.conflict_checker.has_conflict(student_id, padded, accepted):
            return SkipReason.SERIES_CONFLICT

        conflicts = self.conflict_checker.check_participants(
            teacher_id, student_id, candidate, buffer_minutes=buffer_minutes
        )
        if conflicts.teacher:
            return SkipReason.TEACHER_CONFLICT
        if conflicts.student:
            return SkipReason.STUDENT_CONFLICT

        if open_windows:
            if not self._within(open_windows[teacher_id], candidate):
                return SkipReason.TEACHER_UNAVAILABLE
            if not self._within(open_windows[student_id], candidate):
                return SkipReason.STUDENT_UNAVAILABLE
        return None
