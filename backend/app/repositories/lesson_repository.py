# backend/app/repositories/lesson_repository.py
"""
Lesson Repository

Data access for lessons, including the range queries used by conflict
checking and availability resolution. Only scheduled and completed lessons
block calendar time.
"""

from datetime import datetime
import logging
from typing import Iterable, List, Optional, cast

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.lesson import BLOCKING_STATUSES, Lesson
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class LessonRepository(BaseRepository[Lesson]):
    def __init__(self, db: Session):
        super().__init__(db, Lesson)
        self.logger = logging.getLogger(__name__)

    def get_blocking_lessons(
        self,
        user_ids: Iterable[str],
        range_start: datetime,
        range_end: datetime,
        exclude_lesson_id: Optional[str] = None,
    ) -> List[Lesson]:
        """
        Lessons that occupy time for any of the users and intersect [range_start, range_end).

        Args:
            user_ids: Participants to check, as teacher or student
            range_start: Inclusive lower bound
            range_end: Exclusive upper bound
            exclude_lesson_id: Lesson being rescheduled, ignored in the result

        Returns:
            Lessons ordered by start time
        """
        ids = [uid for uid in user_ids if uid]
        if not ids:
            return []
        try:
            query = self.db.query(Lesson).filter(
                or_(Lesson.teacher_id.in_(ids), Lesson.student_id.in_(ids)),
                Lesson.status.in_(BLOCKING_STATUSES),
                Lesson.start_at < range_end,
                Lesson.end_at > range_start,
            )
            if exclude_lesson_id:
                query = query.filter(Lesson.id != exclude_lesson_id)
            return cast(List[Lesson], query.order_by(Lesson.start_at, Lesson.id).all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting lessons for conflict check: {str(e)}")
            raise RepositoryException(f"Failed to get conflict lessons: {str(e)}")

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
        query = self._build_query()
        if teacher_id:
            query = query.filter(Lesson.teacher_id == teacher_id)
        if student_id:
            query = query.filter(Lesson.student_id == student_id)
        if status:
            query = query.filter(Lesson.status == status)
        if start_from:
            query = query.filter(Lesson.start_at >= start_from)
        if start_to:
            query = query.filter(Lesson.start_at < start_to)
        query = query.order_by(Lesson.start_at, Lesson.id).offset(offset).limit(limit)
        return cast(List[Lesson], self._execute_query(query))
