# backend/app/models/lesson_request.py
"""
Lesson request model.

A student asks a teacher for a slot; the request stays pending until the
teacher approves it (which books a lesson) or rejects it. Pending requests
never block calendar time.
"""

from enum import Enum

from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, Integer, String
import ulid

from ..database import Base
from .types import UTCDateTime, now_utc


class LessonRequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


DEFAULT_REQUEST_TITLE = "Scheduled Lesson"
DEFAULT_REQUEST_DURATION = 60


class LessonRequest(Base):
    __tablename__ = "lesson_requests"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    title = Column(String(200), nullable=False, default=DEFAULT_REQUEST_TITLE)

    teacher_id = Column(String(64), nullable=False, index=True)
    student_id = Column(String(64), nullable=False, index=True)

    start_at = Column(UTCDateTime, nullable=False)
    duration_minutes = Column(Integer, nullable=False, default=DEFAULT_REQUEST_DURATION)

    status = Column(String(20), nullable=False, default=LessonRequestStatus.PENDING.value)
    # Set once approval books the lesson
    lesson_id = Column(String(26), ForeignKey("lessons.id", ondelete="SET NULL"), nullable=True)

    version = Column(Integer, nullable=False, default=1)
    created_at = Column(UTCDateTime, nullable=False, default=now_utc)
    decided_at = Column(UTCDateTime, nullable=True)
    updated_at = Column(UTCDateTime, nullable=True, onupdate=now_utc)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint(
            "duration_minutes >= 15 AND duration_minutes <= 240",
            name="ck_lesson_requests_duration_range",
        ),
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="ck_lesson_requests_status",
        ),
        Index("ix_lesson_requests_teacher_status_created", "teacher_id", "status", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<LessonRequest {self.id} {self.start_at} {self.status}>"
