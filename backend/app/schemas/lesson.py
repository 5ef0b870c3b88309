# backend/app/schemas/lesson.py
"""
Lesson schemas: slot suggestion, single booking, recurring series and
lesson updates.

Request bodies use snake_case; the camelCase spellings of the public
scheduling API (teacherId, durationMin, startDate, interval, byDay, ...)
are accepted as input aliases.

Range and business checks (duration bounds, step, horizon) live in the
service layer so that every entry point reports the same error codes.
"""

from datetime import datetime
from typing import Any, List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

from ..domain.intervals import Interval
from ._strict_base import StrictRequestModel
from .base import IntervalOut, StandardizedModel


TEACHER_ID = AliasChoices("teacher_id", "teacherId")
STUDENT_ID = AliasChoices("student_id", "studentId")


def _interval_out(interval: Interval) -> IntervalOut:
    return IntervalOut(start=interval.start, end=interval.end)


class SuggestSlotsRequest(StrictRequestModel):
    teacher_id: str = Field(..., validation_alias=TEACHER_ID)
    student_id: str = Field(..., validation_alias=STUDENT_ID)
    duration_minutes: int = Field(
        ...,
        validation_alias=AliasChoices("duration_minutes", "durationMin"),
        description="Lesson length in minutes (15..240)",
    )
    step_minutes: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("step_minutes", "stepMinutes"),
        description="Candidate grid spacing",
    )
    buffer_minutes: int = Field(
        default=0,
        validation_alias=AliasChoices("buffer_minutes", "bufferMinutes"),
        description="Free padding required on both sides",
    )
    max_suggestions: int = Field(
        default=5, validation_alias=AliasChoices("max_suggestions", "maxSuggestions")
    )
    days: Optional[int] = Field(default=None, description="Search horizon in days")
    algorithm: Literal["greedy", "backtracking"] = "greedy"
    from_: Optional[datetime] = Field(default=None, alias="from")

    model_config = ConfigDict(
        extra="forbid", validate_assignment=True, str_strip_whitespace=True, populate_by_name=True
    )


class SuggestSlotsResponse(BaseModel):
    algorithm: str
    window: IntervalOut
    suggestions: List[IntervalOut]

    @classmethod
    def from_result(cls, result: Any) -> "SuggestSlotsResponse":
        return cls(
            algorithm=result.algorithm,
            window=_interval_out(result.window),
            suggestions=[_interval_out(s) for s in result.suggestions],
        )


class LessonCreate(StrictRequestModel):
    title: str
    teacher_id: str = Field(..., validation_alias=TEACHER_ID)
    student_id: str = Field(..., validation_alias=STUDENT_ID)
    start_at: datetime = Field(..., validation_alias=AliasChoices("start_at", "date"))
    duration_minutes: int = Field(..., validation_alias=AliasChoices("duration_minutes", "duration"))
    status: str = "scheduled"


class LessonUpdate(StrictRequestModel):
    """Partial update; at least one field must be present."""

    title: Optional[str] = None
    start_at: Optional[datetime] = None
    duration_minutes: Optional[int] = None
    status: Optional[str] = None
    expected_version: Optional[int] = Field(
        default=None, description="Reject the update if the lesson version moved on"
    )

    @model_validator(mode="after")
    def _require_change(self) -> "LessonUpdate":
        if all(
            value is None
            for value in (self.title, self.start_at, self.duration_minutes, self.status)
        ):
            raise ValueError("At least one of title, start_at, duration_minutes or status is required")
        return self


class LessonResponse(StandardizedModel):
    id: str
    title: str
    teacher_id: str
    student_id: str
    start_at: datetime
    end_at: datetime
    duration_minutes: int
    status: str
    recurring_series_id: Optional[str] = None
    version: int
    created_at: datetime
    updated_at: Optional[datetime] = None


class LessonListResponse(BaseModel):
    items: List[LessonResponse]
    limit: int
    offset: int


class RecurringLessonRequest(StrictRequestModel):
    title: str
    teacher_id: str = Field(..., validation_alias=TEACHER_ID)
    student_id: str = Field(..., validation_alias=STUDENT_ID)
    start_at: datetime = Field(
        ...,
        validation_alias=AliasChoices("start_at", "startDate"),
        description="Anchor occurrence; its time of day is reused",
    )
    duration_minutes: int = Field(..., validation_alias=AliasChoices("duration_minutes", "duration"))
    interval_weeks: int = Field(default=1, validation_alias=AliasChoices("interval_weeks", "interval"))
    count: int = 1
    by_day: List[int] = Field(
        default_factory=list,
        validation_alias=AliasChoices("by_day", "byDay"),
        description="0=Sunday .. 6=Saturday",
    )
    enforce_availability: bool = True


class SkippedOccurrenceOut(BaseModel):
    candidate: IntervalOut
    reason: str


class RecurringLessonResponse(BaseModel):
    series_id: str
    created: List[LessonResponse]
    skipped: List[SkippedOccurrenceOut]

    @classmethod
    def from_result(cls, result: Any) -> "RecurringLessonResponse":
        return cls(
            series_id=result.series.id,
            created=[LessonResponse.model_validate(lesson) for lesson in result.created],
            skipped=[
                SkippedOccurrenceOut(candidate=_interval_out(s.candidate), reason=s.reason)
                for s in result.skipped
            ],
        )
