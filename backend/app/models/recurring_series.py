# backend/app/models/recurring_series.py
"""The rule a set of generated lessons was expanded from."""

from sqlalchemy import CheckConstraint, Column, Integer, String
from sqlalchemy.orm import relationship
import ulid

from ..database import Base
from .types import IntegerArrayType, UTCDateTime, now_utc


class RecurringSeries(Base):
    __tablename__ = "recurring_series"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    title = Column(String(200), nullable=False)
    teacher_id = Column(String(64), nullable=False, index=True)
    student_id = Column(String(64), nullable=False, index=True)
    start_at = Column(UTCDateTime, nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    interval_weeks = Column(Integer, nullable=False, default=1)
    count = Column(Integer, nullable=False)
    by_day = Column(IntegerArrayType, nullable=False, default=list)
    created_at = Column(UTCDateTime, nullable=False, default=now_utc)

    lessons = relationship("Lesson", back_populates="series", order_by="Lesson.start_at")

    __table_args__ = (
        CheckConstraint("interval_weeks >= 1 AND interval_weeks <= 8", name="ck_series_interval"),
        CheckConstraint("count >= 1 AND count <= 100", name="ck_series_count"),
    )

    def __repr__(self) -> str:
        return f"<RecurringSeries {self.id} every {self.interval_weeks}w x{self.count}>"
