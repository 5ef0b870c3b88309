"""
Database models for the scheduling service.

The models are organized by functionality:
- Availability (weekly rules, date exceptions, holidays)
- Lessons, lesson requests and the recurring series that generate lessons
- Courses and enrollments
- Scheduling traceability and the event outbox
"""

from .availability import AvailabilityException, AvailabilityExceptionSlot, WeeklyRule
from .course import Course
from .enrollment import ACTIVE_STATUSES, Enrollment, EnrollmentStatus
from .event_outbox import EventOutbox, EventOutboxStatus
from .holiday import Holiday
from .lesson import BLOCKING_STATUSES, Lesson, LessonStatus
from .lesson_request import LessonRequest, LessonRequestStatus
from .recurring_series import RecurringSeries
from .scheduling_log import SchedulingLog

__all__ = [
    # Availability
    "WeeklyRule",
    "AvailabilityException",
    "AvailabilityExceptionSlot",
    "Holiday",
    # Lessons
    "Lesson",
    "LessonStatus",
    "BLOCKING_STATUSES",
    "RecurringSeries",
    "LessonRequest",
    "LessonRequestStatus",
    # Enrollment
    "Course",
    "Enrollment",
    "EnrollmentStatus",
    "ACTIVE_STATUSES",
    # Infrastructure
    "EventOutbox",
    "EventOutboxStatus",
    "SchedulingLog",
]
