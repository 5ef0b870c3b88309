# backend/app/models/lesson.py
"""
Lesson model.

A lesson occupies calendar time for both its teacher and its student while
it is scheduled or completed. Cancelled lessons are kept for history but no
longer block availability.
"""

from enum import Enum

from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship
import ulid

from ..database import Base
from .types import UTCDateTime, now_utc


class LessonStatus(str, Enum):
    """Lesson lifecycle statuses."""

    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Statuses that occupy the participants' calendars
BLOCKING_STATUSES = (LessonStatus.SCHEDULED.value, LessonStatus.COMPLETED.value)


class Lesson(Base):
    """One booked lesson between a teacher and a student."""

    __tablename__ = "lessons"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    title = Column(String(200), nullable=False)

    teacher_id = Column(String(64), nullable=False, index=True)
    student_id = Column(String(64), nullable=False, index=True)

    start_at = Column(UTCDateTime, nullable=False, index=True)
    end_at = Column(UTCDateTime, nullable=False)
    duration_minutes = Column(Integer, nullable=False)

    status = Column(String(20), nullable=False, default=LessonStatus.SCHEDULED.value, index=True)
    recurring_series_id = Column(
        String(26), ForeignKey("recurring_series.id", ondelete="SET NULL"), nullable=True
    )

    version = Column(Integer, nullable=False, default=1)
    created_at = Column(UTCDateTime, nullable=False, default=now_utc)
    updated_at = Column(UTCDateTime, nullable=True, onupdate=now_utc)

    series = relationship("RecurringSeries", back_populates="lessons")

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint("end_at > start_at", name="ck_lessons_time_order"),
        CheckConstraint(
            "duration_minutes >= 15 AND duration_minutes <= 240",
            name="ck_lessons_duration_range",
        ),
        CheckConstraint(
            "status IN ('scheduled', 'completed', 'cancelled')",
            name="ck_lessons_status",
        ),
        Index("ix_lessons_teacher_start", "teacher_id", "start_at"),
        Index("ix_lessons_student_start", "student_id", "start_at"),
    )

    def __repr__(self) -> str:
        return f"<Lesson {self.id} {self.start_at}-{self.end_at} {self.status}>"
