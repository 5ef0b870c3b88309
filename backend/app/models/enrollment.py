# backend/app/models/enrollment.py
"""
Enrollment model.

Status machine per (course, user):
    created  -> approved | waitlisted
    approved -> waitlisted | rejected | dropped
    waitlisted -> approved | rejected | dropped
rejected and dropped are terminal. created_at (then id) fixes waitlist order.
"""

from enum import Enum

from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import relationship
import ulid

from ..database import Base
from .types import UTCDateTime, now_utc


class EnrollmentStatus(str, Enum):
    APPROVED = "approved"
    WAITLISTED = "waitlisted"
    REJECTED = "rejected"
    DROPPED = "dropped"


ACTIVE_STATUSES = (EnrollmentStatus.APPROVED.value, EnrollmentStatus.WAITLISTED.value)
TERMINAL_STATUSES = (EnrollmentStatus.REJECTED.value, EnrollmentStatus.DROPPED.value)

_ACTIVE_PREDICATE = text("status IN ('approved', 'waitlisted')")


class Enrollment(Base):
    __tablename__ = "enrollments"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    course_id = Column(
        String(26), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(String(64), nullable=False, index=True)
    status = Column(String(20), nullable=False, index=True)

    version = Column(Integer, nullable=False, default=1)
    created_at = Column(UTCDateTime, nullable=False, default=now_utc)
    approved_at = Column(UTCDateTime, nullable=True)
    updated_at = Column(UTCDateTime, nullable=True, onupdate=now_utc)

    course = relationship("Course", back_populates="enrollments")

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint(
            "status IN ('approved', 'waitlisted', 'rejected', 'dropped')",
            name="ck_enrollments_status",
        ),
        # At most one active enrollment per (course, user)
        Index(
            "uq_enrollments_active_course_user",
            "course_id",
            "user_id",
            unique=True,
            sqlite_where=_ACTIVE_PREDICATE,
            postgresql_where=_ACTIVE_PREDICATE,
        ),
        Index("ix_enrollments_course_status_created", "course_id", "status", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Enrollment {self.id} course={self.course_id} user={self.user_id} {self.status}>"
