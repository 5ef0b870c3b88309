# backend/app/repositories/__init__.py
"""
Repository Pattern Implementation for the scheduling service

This package provides the repository layer for data access,
separating business logic from database queries.

Key Components:
- BaseRepository: Foundation for all repositories with generic CRUD operations
- IRepository: Interface defining required methods for all repositories
- RepositoryFactory: Factory for creating repository instances
- LessonRepository: Lessons and the range queries behind conflict checks
- AvailabilityRepository: Weekly rules and date exceptions (wholesale replace)
- EnrollmentRepository: Approved counts and FIFO waitlist queries

Usage:
    from app.repositories import RepositoryFactory

    # In a service:
    repository = RepositoryFactory.create_lesson_repository(db)
    lessons = repository.get_blocking_lessons([teacher_id], start, end)
"""

from .availability_repository import AvailabilityRepository
from .base_repository import BaseRepository, IRepository
from .course_repository import CourseRepository
from .enrollment_repository import EnrollmentRepository
from .event_outbox_repository import EventOutboxRepository
from .factory import RepositoryFactory
from .holiday_repository import HolidayRepository
from .lesson_repository import LessonRepository
from .recurring_series_repository import RecurringSeriesRepository
from .scheduling_log_repository import SchedulingLogRepository

__all__ = [
    "BaseRepository",
    "IRepository",
    "RepositoryFactory",
    "AvailabilityRepository",
    "CourseRepository",
    "EnrollmentRepository",
    "EventOutboxRepository",
    "HolidayRepository",
    "LessonRepository",
    "RecurringSeriesRepository",
    "SchedulingLogRepository",
]
