# backend/app/repositories/enrollment_repository.py
"""
Enrollment Repository

Counting and FIFO queries for the capacity manager. Waitlist order is
(created_at, id) ascending.
"""

import logging
from typing import Dict, List, Optional, Sequence, cast

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.enrollment import ACTIVE_STATUSES, Enrollment, EnrollmentStatus
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class EnrollmentRepository(BaseRepository[Enrollment]):
    def __init__(self, db: Session):
        super().__init__(db, Enrollment)

    def get_active(self, course_id: str, user_id: str) -> Optional[Enrollment]:
        try:
            return cast(
                Optional[Enrollment],
                self.db.query(Enrollment)
                .filter(
                    Enrollment.course_id == course_id,
                    Enrollment.user_id == user_id,
                    Enrollment.status.in_(ACTIVE_STATUSES),
                )
                .first(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting active enrollment: {str(e)}")
            raise RepositoryException(f"Failed to get enrollment: {str(e)}")

    def count_approved(self, course_id: str) -> int:
        return self.count(course_id=course_id, status=EnrollmentStatus.APPROVED.value)

    def next_waitlisted(self, course_id: str, limit: int = 1) -> List[Enrollment]:
        """Oldest waitlisted enrollments first."""
        query = (
            self._build_query()
            .filter(
                Enrollment.course_id == course_id,
                Enrollment.status == EnrollmentStatus.WAITLISTED.value,
            )
            .order_by(Enrollment.created_at, Enrollment.id)
            .limit(limit)
        )
        return cast(List[Enrollment], self._execute_query(query))

    def roster(self, course_id: str, include_inactive: bool = False) -> List[Enrollment]:
        query = self._build_query().filter(Enrollment.course_id == course_id)
        if not include_inactive:
            query = query.filter(Enrollment.status.in_(ACTIVE_STATUSES))
        return cast(
            List[Enrollment],
            self._execute_query(query.order_by(Enrollment.created_at, Enrollment.id)),
        )

    def list_for_user(self, user_id: str) -> List[Enrollment]:
        """Every enrollment of one user, oldest first."""
        query = self._build_query().filter(Enrollment.user_id == user_id)
        return cast(
            List[Enrollment],
            self._execute_query(query.order_by(Enrollment.created_at, Enrollment.id)),
        )

    def approved_counts(self, course_ids: Sequence[str]) -> Dict[str, int]:
        """Approved enrollment count per course; courses without approvals map to 0."""
        if not course_ids:
            return {}
        try:
            rows = (
                self.db.query(Enrollment.course_id, func.count(Enrollment.id))
                .filter(
                    Enrollment.course_id.in_(list(course_ids)),
                    Enrollment.status == EnrollmentStatus.APPROVED.value,
                )
                .group_by(Enrollment.course_id)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error counting approved enrollments: {str(e)}")
            raise RepositoryException(f"Failed to count enrollments: {str(e)}")
        counts = {course_id: 0 for course_id in course_ids}
        counts.update({course_id: int(total) for course_id, total in rows})
        return counts
