# backend/app/repositories/lesson_request_repository.py
"""
Lesson Request Repository

Listing queries for the request inbox (teacher side) and the requester's
own history (student side). Newest requests come first.
"""

import logging
from typing import Dict, List, Optional, cast

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.lesson_request import LessonRequest, LessonRequestStatus
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class LessonRequestRepository(BaseRepository[LessonRequest]):
    def __init__(self, db: Session):
        super().__init__(db, LessonRequest)

    def list_requests(
        self,
        teacher_id: Optional[str] = None,
        student_id: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 100,
    ) -> List[LessonRequest]:
        query = self._build_query()
        if teacher_id:
            query = query.filter(LessonRequest.teacher_id == teacher_id)
        if student_id:
            query = query.filter(LessonRequest.student_id == student_id)
        if status:
            query = query.filter(LessonRequest.status == status)
        query = query.order_by(LessonRequest.created_at.desc(), LessonRequest.id.desc()).limit(limit)
        return cast(List[LessonRequest], self._execute_query(query))

    def status_counts(self, student_id: str) -> Dict[str, int]:
        """Requests per status for one student; missing statuses map to 0."""
        try:
            rows = (
                self.db.query(LessonRequest.status, func.count(LessonRequest.id))
                .filter(LessonRequest.student_id == student_id)
                .group_by(LessonRequest.status)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error counting lesson requests: {str(e)}")
            raise RepositoryException(f"Failed to count lesson requests: {str(e)}")
        counts = {s.value: 0 for s in LessonRequestStatus}
        counts.update({status: int(total) for status, total in rows})
        return counts
