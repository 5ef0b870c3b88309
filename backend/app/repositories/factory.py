# backend/app/repositories/factory.py
"""
Repository Factory

Provides centralized creation of repository instances,
ensuring consistent initialization and dependency injection.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

# Avoid circular imports
if TYPE_CHECKING:
    from .availability_repository import AvailabilityRepository
    from .course_repository import CourseRepository
    from .enrollment_repository import EnrollmentRepository
    from .event_outbox_repository import EventOutboxRepository
    from .holiday_repository import HolidayRepository
    from .lesson_repository import LessonRepository
    from .lesson_request_repository import LessonRequestRepository
    from .recurring_series_repository import RecurringSeriesRepository
    from .scheduling_log_repository import SchedulingLogRepository


class RepositoryFactory:
    """
    Factory class for creating repository instances.

    Centralizes repository creation to ensure consistent initialization
    and makes it easy to swap implementations if needed.
    """

    @staticmethod
    def create_availability_repository(db: Session) -> "AvailabilityRepository":
        """Create repository for weekly rules and exceptions."""
        from .availability_repository import AvailabilityRepository

        return AvailabilityRepository(db)

    @staticmethod
    def create_holiday_repository(db: Session) -> "HolidayRepository":
        from .holiday_repository import HolidayRepository

        return HolidayRepository(db)

    @staticmethod
    def create_lesson_repository(db: Session) -> "LessonRepository":
        """Create repository for lessons and conflict queries."""
        from .lesson_repository import LessonRepository

        return LessonRepository(db)

    @staticmethod
    def create_lesson_request_repository(db: Session) -> "LessonRequestRepository":
        from .lesson_request_repository import LessonRequestRepository

        return LessonRequestRepository(db)

    @staticmethod
    def create_recurring_series_repository(db: Session) -> "RecurringSeriesRepository":
        from .recurring_series_repository import RecurringSeriesRepository

        return RecurringSeriesRepository(db)

    @staticmethod
    def create_course_repository(db: Session) -> "CourseRepository":
        from .course_repository import CourseRepository

        return CourseRepository(db)

    @staticmethod
    def create_enrollment_repository(db: Session) -> "EnrollmentRepository":
        from .enrollment_repository import EnrollmentRepository

        return EnrollmentRepository(db)

    @staticmethod
    def create_scheduling_log_repository(db: Session) -> "SchedulingLogRepository":
        from .scheduling_log_repository import SchedulingLogRepository

        return SchedulingLogRepository(db)

    @staticmethod
    def create_event_outbox_repository(db: Session) -> "EventOutboxRepository":
        """Create repository for the domain event outbox."""
        from .event_outbox_repository import EventOutboxRepository

        return EventOutboxRepository(db)
