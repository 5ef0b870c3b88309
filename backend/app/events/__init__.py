"""Domain events written to the outbox for the external notifier."""

from app.events.availability_events import AvailabilityUpdated, HolidaysChanged
from app.events.enrollment_events import EnrollmentStatusChanged
from app.events.lesson_events import (
    LessonCancelled,
    LessonChanged,
    LessonCreated,
    LessonRequestDecided,
    LessonRequestSubmitted,
)
from app.events.publisher import EventPublisher

__all__ = [
    # Lesson events
    "LessonCreated",
    "LessonChanged",
    "LessonCancelled",
    "LessonRequestSubmitted",
    "LessonRequestDecided",
    # Enrollment events
    "EnrollmentStatusChanged",
    # Availability events
    "AvailabilityUpdated",
    "HolidaysChanged",
    "EventPublisher",
]
