# backend/app/schemas/availability.py
"""
Availability schemas.

A user's availability is a weekly pattern plus date exceptions. Saving
replaces both wholesale; there is no partial patch.
"""

from datetime import date as DateType, datetime, time
from typing import Any, List

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..domain.intervals import Interval
from ._strict_base import StrictModel, StrictRequestModel
from .base import IntervalOut, StandardizedModel


class WeeklyRuleIn(StrictModel):
    """Recurring weekly window. end_time 00:00 means end of day."""

    day_of_week: int = Field(..., description="0=Sunday .. 6=Saturday")
    start_time: time
    end_time: time


class ExceptionSlotIn(StrictModel):
    start_at: datetime
    end_at: datetime


class AvailabilityExceptionIn(StrictModel):
    """Replaces the weekly pattern for one date; no slots means unavailable."""

    date: DateType
    slots: List[ExceptionSlotIn] = Field(default_factory=list)


class AvailabilityReplaceRequest(StrictRequestModel):
    weekly_rules: List[WeeklyRuleIn] = Field(default_factory=list)
    exceptions: List[AvailabilityExceptionIn] = Field(default_factory=list)


class WeeklyRuleOut(StandardizedModel):
    id: str
    day_of_week: int
    start_time: time
    end_time: time


class ExceptionSlotOut(StandardizedModel):
    start_at: datetime
    end_at: datetime


class AvailabilityExceptionOut(StandardizedModel):
    id: str
    date: DateType
    slots: List[ExceptionSlotOut] = Field(default_factory=list)


class AvailabilityResponse(BaseModel):
    user_id: str
    weekly_rules: List[WeeklyRuleOut]
    exceptions: List[AvailabilityExceptionOut]

    @classmethod
    def from_snapshot(cls, snapshot: Any) -> "AvailabilityResponse":
        return cls(
            user_id=snapshot.user_id,
            weekly_rules=[WeeklyRuleOut.model_validate(rule) for rule in snapshot.weekly_rules],
            exceptions=[
                AvailabilityExceptionOut.model_validate(exception)
                for exception in snapshot.exceptions
            ],
        )


class FreeIntervalsResponse(BaseModel):
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "user_id": "teacher-1",
                "start": "2030-01-07T00:00:00Z",
                "end": "2030-01-08T00:00:00Z",
                "intervals": [{"start": "2030-01-07T09:00:00Z", "end": "2030-01-07T12:00:00Z"}],
            }
        }
    )

    user_id: str
    start: datetime
    end: datetime
    intervals: List[IntervalOut]

    @field_validator("intervals", mode="before")
    @classmethod
    def _from_domain(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [
                {"start": item.start, "end": item.end} if isinstance(item, Interval) else item
                for item in value
            ]
        return value
