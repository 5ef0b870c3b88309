# backend/app/schemas/__init__.py
"""
Pydantic schemas for the scheduling API.

Request models forbid unknown fields; response models are built from ORM rows
or from service result objects.
"""

from .availability import (
    AvailabilityExceptionIn,
    AvailabilityExceptionOut,
    AvailabilityReplaceRequest,
    AvailabilityResponse,
    ExceptionSlotIn,
    FreeIntervalsResponse,
    WeeklyRuleIn,
    WeeklyRuleOut,
)
from .base import IntervalOut, StandardizedModel, SuccessResponse
from .enrollment import (
    CourseCapacityUpdate,
    CourseCreate,
    CourseResponse,
    EnrollmentCountsResponse,
    EnrollmentCreate,
    EnrollmentResponse,
    EnrollmentStatusUpdate,
    RosterResponse,
    UserEnrollmentsResponse,
)
from .holiday import HolidayIn, HolidayListResponse, HolidayResponse, HolidayUpsertRequest
from .lesson import (
    LessonCreate,
    LessonListResponse,
    LessonResponse,
    LessonUpdate,
    RecurringLessonRequest,
    RecurringLessonResponse,
    SkippedOccurrenceOut,
    SuggestSlotsRequest,
    SuggestSlotsResponse,
)
from .lesson_request import (
    LessonRequestApprovalResponse,
    LessonRequestCreate,
    LessonRequestListResponse,
    LessonRequestResponse,
    MyLessonRequestsResponse,
)

__all__ = [
    # Availability
    "AvailabilityExceptionIn",
    "AvailabilityExceptionOut",
    "AvailabilityReplaceRequest",
    "AvailabilityResponse",
    "ExceptionSlotIn",
    "FreeIntervalsResponse",
    "WeeklyRuleIn",
    "WeeklyRuleOut",
    # Base
    "IntervalOut",
    "StandardizedModel",
    "SuccessResponse",
    # Courses and enrollments
    "CourseCapacityUpdate",
    "CourseCreate",
    "CourseResponse",
    "EnrollmentCountsResponse",
    "EnrollmentCreate",
    "EnrollmentResponse",
    "EnrollmentStatusUpdate",
    "RosterResponse",
    "UserEnrollmentsResponse",
    # Holidays
    "HolidayIn",
    "HolidayListResponse",
    "HolidayResponse",
    "HolidayUpsertRequest",
    # Lessons
    "LessonCreate",
    "LessonListResponse",
    "LessonResponse",
    "LessonUpdate",
    "RecurringLessonRequest",
    "RecurringLessonResponse",
    "SkippedOccurrenceOut",
    "SuggestSlotsRequest",
    "SuggestSlotsResponse",
    # Lesson requests
    "LessonRequestApprovalResponse",
    "LessonRequestCreate",
    "LessonRequestListResponse",
    "LessonRequestResponse",
    "MyLessonRequestsResponse",
]
