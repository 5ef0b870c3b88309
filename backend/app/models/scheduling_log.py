# backend/app/models/scheduling_log.py
"""Trace of slot suggestion runs, kept for support and tuning."""

from sqlalchemy import Column, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.types import JSON
import ulid

from ..database import Base
from .types import UTCDateTime, now_utc


class SchedulingLog(Base):
    __tablename__ = "scheduling_logs"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    algorithm = Column(String(20), nullable=False)
    teacher_id = Column(String(64), nullable=False, index=True)
    student_id = Column(String(64), nullable=False, index=True)
    duration_minutes = Column(Integer, nullable=False)
    window_start = Column(UTCDateTime, nullable=False)
    window_end = Column(UTCDateTime, nullable=False)
    suggestions = Column(
        JSONB(astext_type=Text()).with_variant(JSON(), "sqlite"),
        nullable=False,
        default=list,
    )
    created_at = Column(UTCDateTime, nullable=False, default=now_utc, index=True)
