# backend/app/models/course.py
from sqlalchemy import CheckConstraint, Column, Integer, String
from sqlalchemy.orm import relationship
import ulid

from ..database import Base
from .types import UTCDateTime, now_utc


class Course(Base):
    """A course with optional capacity; a null capacity means unlimited seats."""

    __tablename__ = "courses"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    title = Column(String(200), nullable=False)
    capacity = Column(Integer, nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=now_utc)
    updated_at = Column(UTCDateTime, nullable=True, onupdate=now_utc)

    enrollments = relationship("Enrollment", back_populates="course", lazy="raise")

    __table_args__ = (
        CheckConstraint("capacity IS NULL OR capacity >= 0", name="ck_courses_capacity"),
    )

    def __repr__(self) -> str:
        return f"<Course {self.id} capacity={self.capacity}>"
