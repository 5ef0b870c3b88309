# backend/app/services/lesson_request_service.py
"""
Lesson Request Service

The ask-then-confirm booking path: a student submits a pending request and
the teacher approves or rejects it. Approval is a booking confirmation. It
takes both participants' calendar locks, re-checks conflicts with the
booking buffer, and commits the lesson together with the request's new
status, so a request is approved exactly when its lesson exists.

Status machine:
    pending -> approved | rejected
approved and rejected are final.
"""

from datetime import datetime, timedelta
import logging
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import BusinessRuleException, NotFoundException, ValidationException
from ..core.locks import participant_locks
from ..domain.intervals import Interval
from ..events.lesson_events import LessonRequestDecided, LessonRequestSubmitted
from ..events.publisher import EventPublisher
from ..models.lesson import Lesson, LessonStatus
from ..models.lesson_request import (
    DEFAULT_REQUEST_DURATION,
    DEFAULT_REQUEST_TITLE,
    LessonRequest,
    LessonRequestStatus,
)
from ..repositories.factory import RepositoryFactory
from ..repositories.lesson_repository import LessonRepository
from ..repositories.lesson_request_repository import LessonRequestRepository
from ..utils.time_utils import ensure_utc, utcnow
from .base import BaseService
from .conflict_checker import ConflictChecker
from .lesson_service import lesson_created_event, validate_lesson_fields

logger = logging.getLogger(__name__)


def _parse_status(status: str) -> str:
    try:
        return LessonRequestStatus(status).value
    except ValueError:
        raise ValidationException(
            f"status must be one of {[s.value for s in LessonRequestStatus]}",
            code="INVALID_STATUS",
        ) from None


class LessonRequestService(BaseService):
    """Service layer for lesson requests and their approval."""

    def __init__(
        self,
        db: Session,
        repository: Optional[LessonRequestRepository] = None,
        lesson_repository: Optional[LessonRepository] = None,
        conflict_checker: Optional[ConflictChecker] = None,
        event_publisher: Optional[EventPublisher] = None,
    ):
        super().__init__(db)
        self.repository = repository or RepositoryFactory.create_lesson_request_repository(db)
        self.lesson_repository = lesson_repository or RepositoryFactory.create_lesson_repository(db)
        self.conflict_checker = conflict_checker or ConflictChecker(db, self.lesson_repository)
        self.event_publisher = event_publisher or EventPublisher(
            RepositoryFactory.create_event_outbox_repository(db)
        )

    def get_request(self, request_id: str) -> LessonRequest:
        request = self.repository.get_by_id(request_id)
        if request is None:
            raise NotFoundException(
                f"Lesson request {request_id} not found", code="LESSON_REQUEST_NOT_FOUND"
            )
        return request

    @BaseService.measure_operation("submit_request")
    def submit_request(
        self,
        teacher_id: str,
        student_id: str,
        start_at: datetime,
        duration_minutes: int = DEFAULT_REQUEST_DURATION,
        title: Optional[str] = None,
    ) -> LessonRequest:
        """
        Record a pending request. Nothing is reserved until the teacher approves.

        Raises:
            ValidationException: malformed input (same checks as a direct booking)
        """
        title = title if title is not None else DEFAULT_REQUEST_TITLE
        validate_lesson_fields(title, teacher_id, student_id, duration_minutes)
        with self.transaction():
            request = self.repository.create(
                title=title.strip(),
                teacher_id=teacher_id,
                student_id=student_id,
                start_at=ensure_utc(start_at),
                duration_minutes=duration_minutes,
                status=LessonRequestStatus.PENDING.value,
            )
            self.event_publisher.publish(
                LessonRequestSubmitted(
                    request_id=request.id,
                    teacher_id=teacher_id,
                    student_id=student_id,
                    start_at=request.start_at,
                    duration_minutes=duration_minutes,
                )
            )
        self.log_operation(
            "submit_request", request_id=request.id, teacher_id=teacher_id, student_id=student_id
        )
        return request

    @BaseService.measure_operation("list_requests")
    def list_requests(
        self,
        teacher_id: Optional[str] = None,
        student_id: Optional[str] = None,
        status: Optional[str] = LessonRequestStatus.PENDING.value,
        limit: int = 100,
    ) -> List[LessonRequest]:
        """Newest first; defaults to the pending inbox."""
        return self.repository.list_requests(
            teacher_id=teacher_id,
            student_id=student_id,
            status=_parse_status(status) if status else None,
            limit=limit,
        )

    def requests_for_student(self, student_id: str) -> Tuple[List[LessonRequest], Dict[str, int]]:
        """Every request a student made, newest first, with per-status counts."""
        items = self.repository.list_requests(student_id=student_id)
        return items, self.repository.status_counts(student_id)

    @BaseService.measure_operation("approve_request")
    def approve_request(self, request_id: str) -> Tuple[LessonRequest, Lesson]:
        """
        Book the requested slot and mark the request approved.

        Raises:
            NotFoundException: unknown request
            BusinessRuleException: the request was already decided
            LessonConflictException: the slot is no longer free; the request stays pending
        """
        request = self.get_request(request_id)
        with participant_locks(request.teacher_id, request.student_id):
            self.db.refresh(request)
            self._ensure_pending(request, LessonRequestStatus.APPROVED.value)
            candidate = Interval(
                request.start_at, request.start_at + timedelta(minutes=request.duration_minutes)
            )
            with self.transaction():
                self.conflict_checker.ensure_available(
                    request.teacher_id,
                    request.student_id,
                    candidate,
                    buffer_minutes=settings.booking_buffer_minutes,
                )
                lesson = self.lesson_repository.create(
                    title=request.title,
                    teacher_id=request.teacher_id,
                    student_id=request.student_id,
                    start_at=candidate.start,
                    end_at=candidate.end,
                    duration_minutes=request.duration_minutes,
                    status=LessonStatus.SCHEDULED.value,
                )
                request.status = LessonRequestStatus.APPROVED.value
                request.lesson_id = lesson.id
                request.decided_at = utcnow()
                self.repository.flush()
                self.event_publisher.publish(lesson_created_event(lesson))
                self._emit_decision(request)

        self.log_operation("approve_request", request_id=request.id, lesson_id=lesson.id)
        return request, lesson

    @BaseService.measure_operation("reject_request")
    def reject_request(self, request_id: str) -> LessonRequest:
        request = self.get_request(request_id)
        with participant_locks(request.teacher_id, request.student_id):
            self.db.refresh(request)
            self._ensure_pending(request, LessonRequestStatus.REJECTED.value)
            with self.transaction():
                request.status = LessonRequestStatus.REJECTED.value
                request.decided_at = utcnow()
                self.repository.flush()
                self._emit_decision(request)
        self.log_operation("reject_request", request_id=request.id)
        return request

    @staticmethod
    def _ensure_pending(request: LessonRequest, target: str) -> None:
        if request.status != LessonRequestStatus.PENDING.value:
            raise BusinessRuleException(
                f"Lesson request is {request.status} and cannot become {target}",
                code="ILLEGAL_TRANSITION",
                details={"request_id": request.id, "status": request.status},
            )

    def _emit_decision(self, request: LessonRequest) -> None:
        self.event_publisher.publish(
            LessonRequestDecided(
                request_id=request.id,
                teacher_id=request.teacher_id,
                student_id=request.student_id,
                status=request.status,
                lesson_id=request.lesson_id,
            )
        )
