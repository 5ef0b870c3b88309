# backend/app/core/exceptions.py
"""
Domain-specific exceptions for the scheduling engine.

These exceptions provide clear, business-focused error messages
that can be caught and handled appropriately at the API layer.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        """Convert to an HTTPException carrying the standard detail envelope."""
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised when business validation fails."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT


class BusinessRuleException(DomainException):
    """Raised when a business rule is violated."""

    status_code = HTTP_422_UNPROCESSABLE


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "message": self.message or "An error occurred processing your request",
                "code": self.code,
                "details": self.details if self.details else {},
            },
        )


# Specific business exceptions


class LessonConflictException(ConflictException):
    """Raised when a lesson overlaps an existing committed lesson."""

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message or "This time slot conflicts with an existing lesson",
            code="LESSON_CONFLICT",
            details=details or {},
        )


class WeeklyRuleOverlapException(ValidationException):
    """Raised when two weekly rules of the same user overlap on one day."""

    def __init__(self, day_of_week: int, new_range: str, conflicting_range: str):
        super().__init__(
            message=(
                f"Overlapping weekly rules on day {day_of_week}: "
                f"{new_range} conflicts with {conflicting_range}"
            ),
            code="WEEKLY_RULE_OVERLAP",
            details={
                "day_of_week": day_of_week,
                "new_rule": new_range,
                "conflicting_rule": conflicting_range,
            },
        )


class DuplicateEnrollmentException(ConflictException):
    """Raised when a user already holds an active enrollment in a course."""

    def __init__(self, course_id: str, user_id: str, enrollment_id: str):
        super().__init__(
            message="User already has an active enrollment for this course",
            code="DUPLICATE_ENROLLMENT",
            details={
                "course_id": course_id,
                "user_id": user_id,
                "enrollment_id": enrollment_id,
            },
        )


class CapacityExceededException(ConflictException):
    """Raised when an explicit approval would exceed a course's capacity."""

    def __init__(self, course_id: str, capacity: int, approved_count: int):
        super().__init__(
            message=f"Course is full ({approved_count}/{capacity} approved)",
            code="CAPACITY_EXCEEDED",
            details={
                "course_id": course_id,
                "capacity": capacity,
                "approved_count": approved_count,
            },
        )


class ResourceBusyException(ConflictException):
    """Raised when a resource lock could not be acquired in time."""

    def __init__(self, resource: str, waited_seconds: float):
        super().__init__(
            message="The calendar is being updated by another request, please retry",
            code="RESOURCE_BUSY",
            details={"resource": resource, "waited_seconds": waited_seconds},
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
