# backend/app/services/enrollment_service.py
"""
Enrollment Service

Capacity manager for course enrollments. All mutations of one course run
under that course's lock, and the status change plus any waitlist promotion
commit in a single transaction, so the approved count never exceeds a
non-null capacity.
"""

import logging
from typing import Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from ..core.constants import MAX_TITLE_LENGTH
from ..core.exceptions import (
    BusinessRuleException,
    CapacityExceededException,
    DuplicateEnrollmentException,
    NotFoundException,
    ValidationException,
)
from ..core.locks import course_lock
from ..events.enrollment_events import EnrollmentStatusChanged
from ..events.publisher import EventPublisher
from ..models.course import Course
from ..models.enrollment import TERMINAL_STATUSES, Enrollment, EnrollmentStatus
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.course_repository import CourseRepository
from ..repositories.enrollment_repository import EnrollmentRepository
from ..repositories.factory import RepositoryFactory
from ..utils.time_utils import utcnow
from .base import BaseService

logger = logging.getLogger(__name__)

SETTABLE_STATUSES = (
    EnrollmentStatus.APPROVED.value,
    EnrollmentStatus.WAITLISTED.value,
    EnrollmentStatus.REJECTED.value,
)


def _validate_capacity(capacity: Optional[int]) -> None:
    if capacity is not None and capacity < 0:
        raise ValidationException("capacity must be zero or positive", code="INVALID_CAPACITY")


class EnrollmentService(BaseService):
    """
    Service layer for courses and enrollments.

    Status machine: a new enrollment is approved while seats remain and
    waitlisted otherwise. Leaving approved promotes the oldest waitlisted
    enrollment; rejected and dropped are terminal.
    """

    def __init__(
        self,
        db: Session,
        repository: Optional[EnrollmentRepository] = None,
        course_repository: Optional[CourseRepository] = None,
        event_publisher: Optional[EventPublisher] = None,
    ):
        super().__init__(db)
        self.repository = repository or RepositoryFactory.create_enrollment_repository(db)
        self.course_repository = course_repository or RepositoryFactory.create_course_repository(db)
        self.event_publisher = event_publisher or EventPublisher(
            RepositoryFactory.create_event_outbox_repository(db)
        )

    # ------------------------------------------------------------------ courses

    @BaseService.measure_operation("create_course")
    def create_course(self, title: str, capacity: Optional[int] = None) -> Course:
        if not title or not title.strip():
            raise ValidationException("title is required", code="MISSING_TITLE")
        if len(title) > MAX_TITLE_LENGTH:
            raise ValidationException(
                f"title must be at most {MAX_TITLE_LENGTH} characters", code="INVALID_TITLE"
            )
        _validate_capacity(capacity)
        with self.transaction():
            course = self.course_repository.create(title=title.strip(), capacity=capacity)
        return course

    def get_course(self, course_id: str) -> Course:
        course = self.course_repository.get_by_id(course_id)
        if course is None:
            raise NotFoundException(f"Course {course_id} not found", code="COURSE_NOT_FOUND")
        return course

    @BaseService.measure_operation("update_capacity")
    def update_capacity(self, course_id: str, capacity: Optional[int]) -> Course:
        """
        Change a course's capacity and fill any newly free seats from the waitlist.

        Raises:
            BusinessRuleException: capacity below the current approved count
        """
        _validate_capacity(capacity)
        with course_lock(course_id):
            course = self.get_course(course_id)
            self.db.refresh(course)
            approved = self.repository.count_approved(course_id)
            if capacity is not None and capacity < approved:
                raise BusinessRuleException(
                    f"Capacity {capacity} is below the {approved} approved enrollments",
                    code="CAPACITY_BELOW_APPROVED",
                    details={"capacity": capacity, "approved_count": approved},
                )
            with self.transaction():
                course.capacity = capacity
                self.course_repository.flush()
                seats = None if capacity is None else capacity - approved
                self._promote(course, seats)
        self.log_operation("update_capacity", course_id=course_id, capacity=capacity)
        return course

    # ------------------------------------------------------------------ queries

    def get_enrollment(self, enrollment_id: str) -> Enrollment:
        enrollment = self.repository.get_by_id(enrollment_id)
        if enrollment is None:
            raise NotFoundException(
                f"Enrollment {enrollment_id} not found", code="ENROLLMENT_NOT_FOUND"
            )
        return enrollment

    def approved_count(self, course_id: str) -> int:
        return self.repository.count_approved(course_id)

    @BaseService.measure_operation("roster")
    def roster(self, course_id: str, include_inactive: bool = False) -> List[Enrollment]:
        self.get_course(course_id)
        return self.repository.roster(course_id, include_inactive)

    @BaseService.measure_operation("enrollments_for_user")
    def enrollments_for_user(self, user_id: str) -> List[Enrollment]:
        return self.repository.list_for_user(user_id)

    @BaseService.measure_operation("counts")
    def counts(self, course_ids: Sequence[str]) -> Dict[str, int]:
        unique_ids = list(dict.fromkeys(cid for cid in course_ids if cid))
        return self.repository.approved_counts(unique_ids)

    # ------------------------------------------------------------------ mutations

    @BaseService.measure_operation("enroll")
    def enroll(self, course_id: str, user_id: str) -> Enrollment:
        """
        Enroll a user: approved while seats remain, waitlisted otherwise.

        Raises:
            DuplicateEnrollmentException: the user already holds an active enrollment
        """
        if not course_id or not user_id:
            raise ValidationException("course_id and user_id are required", code="MISSING_ID")

        with course_lock(course_id):
            course = self.get_course(course_id)
            self.db.refresh(course)
            existing = self.repository.get_active(course_id, user_id)
            if existing is not None:
                raise DuplicateEnrollmentException(course_id, user_id, existing.id)

            approved = self.repository.count_approved(course_id)
            has_seat = course.capacity is None or approved < course.capacity
            status = EnrollmentStatus.APPROVED.value if has_seat else EnrollmentStatus.WAITLISTED.value

            with self.transaction():
                enrollment = self.repository.create(
                    course_id=course_id,
                    user_id=user_id,
                    status=status,
                    approved_at=utcnow() if has_seat else None,
                )
                self._emit(enrollment, previous_status=None)

        self.log_operation(
            "enroll", course_id=course_id, user_id=user_id, status=status, enrollment_id=enrollment.id
        )
        return enrollment

    @BaseService.measure_operation("drop")
    def drop(self, enrollment_id: str) -> Enrollment:
        """Drop an enrollment; a freed seat goes to the oldest waitlisted entry."""
        enrollment = self.get_enrollment(enrollment_id)
        with course_lock(enrollment.course_id):
            self.db.refresh(enrollment)
            self._ensure_not_terminal(enrollment, EnrollmentStatus.DROPPED.value)
            previous = enrollment.status
            with self.transaction():
                enrollment.status = EnrollmentStatus.DROPPED.value
                self.repository.flush()
                self._emit(enrollment, previous_status=previous)
                if previous == EnrollmentStatus.APPROVED.value:
                    self._promote_one(enrollment.course_id, exclude_id=enrollment.id)
        self.log_operation("drop", enrollment_id=enrollment_id, previous_status=previous)
        return enrollment

    @BaseService.measure_operation("set_status")
    def set_status(self, enrollment_id: str, status: str) -> Enrollment:
        """
        Administrative status override.

        Moving into approved re-checks capacity; moving out of approved
        promotes the oldest waitlisted enrollment (never the one just moved).

        Raises:
            ValidationException: unknown or non-settable status
            BusinessRuleException: the enrollment is already rejected or dropped
            CapacityExceededException: approving would exceed capacity
        """
        if status not in SETTABLE_STATUSES:
            raise ValidationException(
                f"status must be one of {list(SETTABLE_STATUSES)}", code="INVALID_STATUS"
            )
        enrollment = self.get_enrollment(enrollment_id)
        with course_lock(enrollment.course_id):
            self.db.refresh(enrollment)
            self._ensure_not_terminal(enrollment, status)
            previous = enrollment.status
            if previous == status:
                return enrollment

            course = self.get_course(enrollment.course_id)
            self.db.refresh(course)
            if status == EnrollmentStatus.APPROVED.value and course.capacity is not None:
                approved = self.repository.count_approved(course.id)
                if approved >= course.capacity:
                    raise CapacityExceededException(course.id, course.capacity, approved)

            with self.transaction():
                enrollment.status = status
                if status == EnrollmentStatus.APPROVED.value:
                    enrollment.approved_at = utcnow()
                self.repository.flush()
                self._emit(enrollment, previous_status=previous)
                if previous == EnrollmentStatus.APPROVED.value:
                    self._promote_one(course.id, exclude_id=enrollment.id)

        self.log_operation(
            "set_status", enrollment_id=enrollment_id, previous_status=previous, status=status
        )
        return enrollment

    # ------------------------------------------------------------------ helpers

    @staticmethod
    def _ensure_not_terminal(enrollment: Enrollment, target: str) -> None:
        if enrollment.status in TERMINAL_STATUSES:
            raise BusinessRuleException(
                f"Enrollment is {enrollment.status} and cannot become {target}",
                code="ILLEGAL_TRANSITION",
                details={"enrollment_id": enrollment.id, "status": enrollment.status},
            )

    def _emit(self, enrollment: Enrollment, previous_status: Optional[str], promoted: bool = False) -> None:
        self.event_publisher.publish(
            EnrollmentStatusChanged(
                enrollment_id=enrollment.id,
                course_id=enrollment.course_id,
                user_id=enrollment.user_id,
                status=enrollment.status,
                previous_status=previous_status,
                promoted=promoted,
            )
        )
        prometheus_metrics.record_enrollment_transition(previous_status or "new", enrollment.status)

    def _promote_one(self, course_id: str, exclude_id: Optional[str] = None) -> None:
        course = self.get_course(course_id)
        if course.capacity is None:
            seats: Optional[int] = 1
        else:
            seats = min(1, course.capacity - self.repository.count_approved(course_id))
        self._promote(course, seats, exclude_id=exclude_id)

    def _promote(
        self, course: Course, seats: Optional[int], exclude_id: Optional[str] = None
    ) -> List[Enrollment]:
        """
        Approve waitlisted enrollments in FIFO order.

        seats=None means unlimited (every waitlisted entry is promoted).
        Must run inside the caller's transaction and course lock.
        """
        if seats is not None and seats <= 0:
            return []
        limit = 10_000 if seats is None else seats + 1
        promoted: List[Enrollment] = []
        for candidate in self.repository.next_waitlisted(course.id, limit=limit):
            if candidate.id == exclude_id:
                continue
            if seats is not None and len(promoted) >= seats:
                break
            candidate.status = EnrollmentStatus.APPROVED.value
            candidate.approved_at = utcnow()
            promoted.append(candidate)
        if promoted:
            self.repository.flush()
            for enrollment in promoted:
                self._emit(enrollment, EnrollmentStatus.WAITLISTED.value, promoted=True)
                self.logger.info(
                    "Promoted enrollment %s from waitlist for course %s", enrollment.id, course.id
                )
        return promoted
