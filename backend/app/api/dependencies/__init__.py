# backend/app/api/dependencies/__init__.py
"""
Central export point for all dependencies.

This module re-exports all dependencies from submodules
for convenient access throughout the application.
"""

from .auth import get_current_user_id
from .database import get_db
from .services import (
    get_availability_service,
    get_conflict_checker,
    get_enrollment_service,
    get_holiday_service,
    get_lesson_request_service,
    get_lesson_service,
    get_recurring_series_service,
    get_slot_suggestion_service,
)

__all__ = [
    # Auth
    "get_current_user_id",
    # Database
    "get_db",
    # Services
    "get_availability_service",
    "get_conflict_checker",
    "get_enrollment_service",
    "get_holiday_service",
    "get_lesson_request_service",
    "get_lesson_service",
    "get_recurring_series_service",
    "get_slot_suggestion_service",
]
