# backend/app/models/availability.py
"""
Availability models.

Classes:
    WeeklyRule: Recurring open window on one day of the week
    AvailabilityException: Date-specific override of the weekly pattern
    AvailabilityExceptionSlot: One open window inside an exception

A user's rules and exceptions are replaced wholesale on save; an exception
with no slots marks the whole date unavailable.
"""

import logging

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
import ulid

from ..database import Base
from .types import UTCDateTime, now_utc

logger = logging.getLogger(__name__)


class WeeklyRule(Base):
    """Recurring window, day_of_week 0=Sunday. An end_time of 00:00 means end of day."""

    __tablename__ = "weekly_rules"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    user_id = Column(String(64), nullable=False, index=True)
    day_of_week = Column(Integer, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    created_at = Column(UTCDateTime, nullable=False, default=now_utc)

    __table_args__ = (
        CheckConstraint("day_of_week >= 0 AND day_of_week <= 6", name="ck_weekly_rules_day"),
        Index("ix_weekly_rules_user_day", "user_id", "day_of_week"),
    )

    def __repr__(self) -> str:
        return f"<WeeklyRule {self.user_id} d{self.day_of_week} {self.start_time}-{self.end_time}>"


class AvailabilityException(Base):
    """Replaces the weekly pattern for one calendar date."""

    __tablename__ = "availability_exceptions"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    user_id = Column(String(64), nullable=False, index=True)
    date = Column(Date, nullable=False)
    created_at = Column(UTCDateTime, nullable=False, default=now_utc)

    slots = relationship(
        "AvailabilityExceptionSlot",
        back_populates="exception",
        cascade="all, delete-orphan",
        order_by="AvailabilityExceptionSlot.start_at",
        lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_availability_exception_user_date"),
    )

    def __repr__(self) -> str:
        return f"<AvailabilityException {self.user_id} {self.date} slots={len(self.slots)}>"


class AvailabilityExceptionSlot(Base):
    __tablename__ = "availability_exception_slots"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    exception_id = Column(
        String(26),
        ForeignKey("availability_exceptions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    start_at = Column(UTCDateTime, nullable=False)
    end_at = Column(UTCDateTime, nullable=False)

    exception = relationship("AvailabilityException", back_populates="slots")

    __table_args__ = (CheckConstraint("end_at > start_at", name="ck_exception_slot_order"),)
