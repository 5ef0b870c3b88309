# backend/app/services/lesson_service.py
"""
Lesson Service

Booking lifecycle for single lessons: create (the confirm step after a
suggestion), reschedule, status changes, soft cancel and purge.

Every write that can make a lesson block time runs under both participants'
calendar locks and re-checks conflicts inside the same transaction that
commits it, so two concurrent confirmations of one slot cannot both succeed.
"""

from datetime import datetime, timedelta
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.constants import MAX_LESSON_DURATION, MAX_TITLE_LENGTH, MIN_LESSON_DURATION
from ..core.exceptions import ConflictException, NotFoundException, ValidationException
from ..core.locks import participant_locks
from ..domain.intervals import Interval
from ..events.lesson_events import LessonCancelled, LessonChanged, LessonCreated
from ..events.publisher import EventPublisher
from ..models.lesson import BLOCKING_STATUSES, Lesson, LessonStatus
from ..repositories.factory import RepositoryFactory
from ..repositories.lesson_repository import LessonRepository
from ..utils.time_utils import ensure_utc
from .base import BaseService
from .conflict_checker import ConflictChecker

logger = logging.getLogger(__name__)


def lesson_created_event(lesson: Lesson) -> LessonCreated:
    return LessonCreated(
        lesson_id=lesson.id,
        teacher_id=lesson.teacher_id,
        student_id=lesson.student_id,
        start_at=lesson.start_at,
        end_at=lesson.end_at,
        status=lesson.status,
        recurring_series_id=lesson.recurring_series_id,
    )


def validate_lesson_fields(
    title: str, teacher_id: str, student_id: str, duration_minutes: int
) -> None:
    """Shared checks for ad-hoc lessons and series occurrences."""
    if not title or not title.strip():
        raise ValidationException("title is required", code="MISSING_TITLE")
    if len(title) > MAX_TITLE_LENGTH:
        raise ValidationException(
            f"title must be at most {MAX_TITLE_LENGTH} characters", code="INVALID_TITLE"
        )
    if not teacher_id or not student_id:
        raise ValidationException("teacher_id and student_id are required", code="MISSING_ID")
    if teacher_id == student_id:
        raise ValidationException(
            "teacher and student must be different users", code="SAME_PARTICIPANT"
        )
    if not MIN_LESSON_DURATION <= duration_minutes <= MAX_LESSON_DURATION:
        raise ValidationException(
            f"duration_minutes must be between {MIN_LESSON_DURATION} and {MAX_LESSON_DURATION}",
            code="INVALID_DURATION",
        )


def _parse_status(status: str) -> str:
    try:
        return LessonStatus(status).value
    except ValueError:
        raise ValidationException(
            f"status must be one of {[s.value for s in LessonStatus]}", code="INVALID_STATUS"
        ) from None


class LessonService(BaseService):
    """Service layer for lesson booking operations."""

    def __init__(
        self,
        db: Session,
        repository: Optional[LessonRepository] = None,
        conflict_checker: Optional[ConflictChecker] = None,
        event_publisher: Optional[EventPublisher] = None,
    ):
        super().__init__(db)
        self.repository = repository or RepositoryFactory.create_lesson_repository(db)
        self.conflict_checker = conflict_checker or ConflictChecker(db, self.repository)
        self.event_publisher = event_publisher or EventPublisher(
            RepositoryFactory.create_event_outbox_repository(db)
        )

    def get_lesson(self, lesson_id: str) -> Lesson:
        lesson = self.repository.get_by_id(lesson_id)
        if lesson is None:
            raise NotFoundException(f"Lesson {lesson_id} not found", code="LESSON_NOT_FOUND")
        return lesson

    @BaseService.measure_operation("list_lessons")
    def list_lessons(
        self,
        teacher_id: Optional[str] = None,
        student_id: Optional[str] = None,
        status: Optional[str] = None,
        start_from: Optional[datetime] = None,
        start_to: Optional[datetime] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Lesson]:
        return self.repository.list_lessons(
            teacher_id=teacher_id,
            student_id=student_id,
            status=_parse_status(status) if status else None,
            start_from=ensure_utc(start_from) if start_from else None,
            start_to=ensure_utc(start_to) if start_to else None,
            limit=limit,
            offset=offset,
        )

    @BaseService.measure_operation("create_lesson")
    def create_lesson(
        self,
        title: str,
        teacher_id: str,
        student_id: str,
        start_at: datetime,
        duration_minutes: int,
        status: str = LessonStatus.SCHEDULED.value,
        buffer_minutes: Optional[int] = None,
    ) -> Lesson:
        """
        Commit a lesson after re-checking both calendars.

        Raises:
            ValidationException: malformed input
            LessonConflictException: the slot is no longer free
            ResourceBusyException: a participant calendar stayed locked too long
        """
        validate_lesson_fields(title, teacher_id, student_id, duration_minutes)
        status_value = _parse_status(status)
        start = ensure_utc(start_at)
        candidate = Interval(start, start + timedelta(minutes=duration_minutes))
        buffer = settings.booking_buffer_minutes if buffer_minutes is None else buffer_minutes

        with participant_locks(teacher_id, student_id):
            with self.transaction():
                if status_value in BLOCKING_STATUSES:
                    self.conflict_checker.ensure_available(
                        teacher_id, student_id, candidate, buffer_minutes=buffer
                    )
                lesson = self.repository.create(
                    title=title.strip(),
                    teacher_id=teacher_id,
                    student_id=student_id,
                    start_at=candidate.start,
                    end_at=candidate.end,
                    duration_minutes=duration_minutes,
                    status=status_value,
                )
                self.event_publisher.publish(lesson_created_event(lesson))

        self.log_operation(
            "create_lesson",
            lesson_id=lesson.id,
            teacher_id=teacher_id,
            student_id=student_id,
            start_at=candidate.start.isoformat(),
        )
        return lesson

    @BaseService.measure_operation("update_lesson")
    def update_lesson(
        self,
        lesson_id: str,
        title: Optional[str] = None,
        start_at: Optional[datetime] = None,
        duration_minutes: Optional[int] = None,
        status: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Lesson:
        """
        Reschedule, retitle or change the status of a lesson.

        When the result blocks time and either its interval changed or it was
        previously cancelled, conflicts are re-checked with the lesson itself
        excluded.
        """
        lesson = self.get_lesson(lesson_id)

        with participant_locks(lesson.teacher_id, lesson.student_id):
            self.db.refresh(lesson)
            if expected_version is not None and lesson.version != expected_version:
                raise ConflictException(
                    "The lesson was modified by another request, please reload and retry",
                    code="STALE_VERSION",
                    details={"current_version": lesson.version},
                )

            changes: Dict[str, Any] = {}
            if title is not None and title.strip() != lesson.title:
                validate_lesson_fields(
                    title, lesson.teacher_id, lesson.student_id, lesson.duration_minutes
                )
                changes["title"] = title.strip()

            new_duration = duration_minutes if duration_minutes is not None else lesson.duration_minutes
            if not MIN_LESSON_DURATION <= new_duration <= MAX_LESSON_DURATION:
                raise ValidationException(
                    f"duration_minutes must be between {MIN_LESSON_DURATION} and {MAX_LESSON_DURATION}",
                    code="INVALID_DURATION",
                )
            new_start = ensure_utc(start_at) if start_at is not None else lesson.start_at
            new_end = new_start + timedelta(minutes=new_duration)
            if new_start != lesson.start_at or new_end != lesson.end_at:
                changes.update(start_at=new_start, end_at=new_end, duration_minutes=new_duration)

            new_status = _parse_status(status) if status is not None else lesson.status
            if new_status != lesson.status:
                changes["status"] = new_status

            if not changes:
                return lesson

            recheck = new_status in BLOCKING_STATUSES and (
                "start_at" in changes or lesson.status not in BLOCKING_STATUSES
            )
            previous_status = lesson.status
            with self.transaction():
                if recheck:
                    self.conflict_checker.ensure_available(
                        lesson.teacher_id,
                        lesson.student_id,
                        Interval(new_start, new_end),
                        exclude_lesson_id=lesson.id,
                        buffer_minutes=settings.booking_buffer_minutes,
                    )
                for key, value in changes.items():
                    setattr(lesson, key, value)
                self.repository.flush()

                if new_status == LessonStatus.CANCELLED.value and previous_status != new_status:
                    self.event_publisher.publish(
                        LessonCancelled(
                            lesson_id=lesson.id,
                            teacher_id=lesson.teacher_id,
                            student_id=lesson.student_id,
                            start_at=lesson.start_at,
                        )
                    )
                else:
                    self.event_publisher.publish(
                        LessonChanged(
                            lesson_id=lesson.id,
                            teacher_id=lesson.teacher_id,
                            student_id=lesson.student_id,
                            start_at=lesson.start_at,
                            end_at=lesson.end_at,
                            status=lesson.status,
                            version=lesson.version,
                            changed_fields=sorted(changes),
                        )
                    )

        self.log_operation("update_lesson", lesson_id=lesson.id, changed=sorted(changes))
        return lesson

    @BaseService.measure_operation("cancel_lesson")
    def cancel_lesson(self, lesson_id: str) -> Lesson:
        """Soft cancel; the lesson stays for history but no longer blocks time."""
        return self.update_lesson(lesson_id, status=LessonStatus.CANCELLED.value)

    @BaseService.measure_operation("purge_lesson")
    def purge_lesson(self, lesson_id: str) -> None:
        """Hard delete, for explicit administrative removal."""
        lesson = self.get_lesson(lesson_id)
        with participant_locks(lesson.teacher_id, lesson.student_id):
            with self.transaction():
                event = LessonCancelled(
                    lesson_id=lesson.id,
                    teacher_id=lesson.teacher_id,
                    student_id=lesson.student_id,
                    start_at=lesson.start_at,
                    purged=True,
                )
                self.repository.delete(lesson.id)
                self.event_publisher.publish(event)
        self.log_operation("purge_lesson", lesson_id=lesson_id)
