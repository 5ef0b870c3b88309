# backend/app/services/conflict_checker.py
"""
Conflict Checker Service

Handles all lesson conflict detection including:
- Pure overlap tests of a candidate against a set of lessons
- Loading a participant's committed lessons for a candidate window
- Raising a LESSON_CONFLICT error before any write would double-book

Booking confirmation, lesson updates and recurring series generation all go
through check_participants so every writer applies the same rule.
"""

from dataclasses import dataclass, field
import logging
from typing import Any, Dict, Iterable, List, Optional, Protocol

from sqlalchemy.orm import Session

from ..core.exceptions import LessonConflictException
from ..domain.intervals import Interval, overlaps, pad
from ..models.lesson import BLOCKING_STATUSES, Lesson
from ..repositories import RepositoryFactory
from ..repositories.lesson_repository import LessonRepository
from .base import BaseService

logger = logging.getLogger(__name__)


class LessonLike(Protocol):
    id: Any
    teacher_id: Any
    student_id: Any
    start_at: Any
    end_at: Any
    status: Any


@dataclass
class ParticipantConflicts:
    """Conflicting lessons split by the participant they collide with."""

    teacher: List[Lesson] = field(default_factory=list)
    student: List[Lesson] = field(default_factory=list)

    @property
    def has_any(self) -> bool:
        return bool(self.teacher or self.student)

    def to_details(self) -> Dict[str, Any]:
        return {
            "teacher_conflicts": [_describe(lesson) for lesson in self.teacher],
            "student_conflicts": [_describe(lesson) for lesson in self.student],
        }


def _describe(lesson: LessonLike) -> Dict[str, Any]:
    return {
        "lesson_id": lesson.id,
        "start_at": lesson.start_at.isoformat(),
        "end_at": lesson.end_at.isoformat(),
        "status": lesson.status,
    }


class ConflictChecker(BaseService):
    """
    Service for checking lesson conflicts.

    The static helpers are side-effect free; check_participants loads the
    committed lessons it needs from the repository.
    """

    def __init__(self, db: Session, repository: Optional[LessonRepository] = None):
        """
        Initialize conflict checker service.

        Args:
            db: Database session
            repository: Optional LessonRepository instance
        """
        super().__init__(db)
        self.logger = logging.getLogger(__name__)
        self.repository = repository or RepositoryFactory.create_lesson_repository(db)

    @staticmethod
    def find_conflicts(
        participant_id: str, candidate: Interval, existing_lessons: Iterable[LessonLike]
    ) -> List[LessonLike]:
        """Blocking lessons of the participant (as teacher or student) that overlap candidate."""
        found = []
        for lesson in existing_lessons:
            if lesson.status not in BLOCKING_STATUSES:
                continue
            if participant_id not in (lesson.teacher_id, lesson.student_id):
                continue
            if overlaps(candidate, Interval(lesson.start_at, lesson.end_at)):
                found.append(lesson)
        return found

    @staticmethod
    def has_conflict(
        participant_id: str, candidate: Interval, existing_lessons: Iterable[LessonLike]
    ) -> bool:
        return bool(ConflictChecker.find_conflicts(participant_id, candidate, existing_lessons))

    @BaseService.measure_operation("check_participants")
    def check_participants(
        self,
        teacher_id: str,
        student_id: str,
        candidate: Interval,
        exclude_lesson_id: Optional[str] = None,
        buffer_minutes: int = 0,
    ) -> ParticipantConflicts:
        """
        Check a candidate lesson against both participants' committed lessons.

        Args:
            teacher_id: Teacher of the candidate lesson
            student_id: Student of the candidate lesson
            candidate: The lesson interval [start, end)
            exclude_lesson_id: Lesson being rescheduled, ignored
            buffer_minutes: Required gap around existing lessons

        Returns:
            ParticipantConflicts; empty when the slot is free
        """
        window = pad(candidate, buffer_minutes)
        lessons = self.repository.get_blocking_lessons(
            [teacher_id, student_id], window.start, window.end, exclude_lesson_id
        )
        result = ParticipantConflicts(
            teacher=self.find_conflicts(teacher_id, window, lessons),
            student=self.find_conflicts(student_id, window, lessons),
        )
        if result.has_any:
            self.logger.warning(
                f"Found {len(result.teacher)} teacher and {len(result.student)} student "
                f"conflicts for {candidate.start.isoformat()}-{candidate.end.isoformat()}"
            )
        return result

    def ensure_available(
        self,
        teacher_id: str,
        student_id: str,
        candidate: Interval,
        exclude_lesson_id: Optional[str] = None,
        buffer_minutes: int = 0,
    ) -> None:
        """Raise LessonConflictException when either participant is already booked."""
        conflicts = self.check_participants(
            teacher_id, student_id, candidate, exclude_lesson_id, buffer_minutes
        )
        if conflicts.has_any:
            who = "teacher" if conflicts.teacher else "student"
            raise LessonConflictException(
                f"The {who} already has a lesson in this time slot",
                details=conflicts.to_details(),
            )
