# backend/app/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

This module provides factory functions that create service instances
with their required dependencies properly injected. Every service gets the
request-scoped database session.
"""

import logging

from fastapi import Depends
from sqlalchemy.orm import Session

from ...services.availability_service import AvailabilityService
from ...services.conflict_checker import ConflictChecker
from ...services.enrollment_service import EnrollmentService
from ...services.holiday_service import HolidayService
from ...services.lesson_request_service import LessonRequestService
from ...services.lesson_service import LessonService
from ...services.recurring_series_service import RecurringSeriesService
from ...services.slot_suggestion_service import SlotSuggestionService
from .database import get_db

logger = logging.getLogger(__name__)


def get_conflict_checker(db: Session = Depends(get_db)) -> ConflictChecker:
    return ConflictChecker(db)


def get_availability_service(db: Session = Depends(get_db)) -> AvailabilityService:
    return AvailabilityService(db)


def get_holiday_service(db: Session = Depends(get_db)) -> HolidayService:
    return HolidayService(db)


def get_lesson_service(
    db: Session = Depends(get_db),
    conflict_checker: ConflictChecker = Depends(get_conflict_checker),
) -> LessonService:
    """
    Get lesson service instance.

    Args:
        db: Database session
        conflict_checker: Conflict checker sharing the same session

    Returns:
        LessonService instance
    """
    return LessonService(db, conflict_checker=conflict_checker)


def get_lesson_request_service(
    db: Session = Depends(get_db),
    conflict_checker: ConflictChecker = Depends(get_conflict_checker),
) -> LessonRequestService:
    return LessonRequestService(db, conflict_checker=conflict_checker)


def get_slot_suggestion_service(
    db: Session = Depends(get_db),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> SlotSuggestionService:
    return SlotSuggestionService(db, availability_service=availability_service)


def get_recurring_series_service(
    db: Session = Depends(get_db),
    availability_service: AvailabilityService = Depends(get_availability_service),
    conflict_checker: ConflictChecker = Depends(get_conflict_checker),
) -> RecurringSeriesService:
    return RecurringSeriesService(
        db,
        availability_service=availability_service,
        conflict_checker=conflict_checker,
    )


def get_enrollment_service(db: Session = Depends(get_db)) -> EnrollmentService:
    return EnrollmentService(db)
