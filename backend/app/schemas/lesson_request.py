# backend/app/schemas/lesson_request.py
"""Lesson request schemas (submit, inbox listing, approval result)."""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import AliasChoices, BaseModel, Field

from ..models.lesson_request import DEFAULT_REQUEST_DURATION
from ._strict_base import StrictRequestModel
from .base import StandardizedModel
from .lesson import STUDENT_ID, TEACHER_ID, LessonResponse


class LessonRequestCreate(StrictRequestModel):
    teacher_id: str = Field(..., validation_alias=TEACHER_ID)
    student_id: str = Field(..., validation_alias=STUDENT_ID)
    start_at: datetime = Field(..., validation_alias=AliasChoices("start_at", "start"))
    duration_minutes: int = Field(
        default=DEFAULT_REQUEST_DURATION,
        validation_alias=AliasChoices("duration_minutes", "duration"),
    )
    title: Optional[str] = None


class LessonRequestResponse(StandardizedModel):
    id: str
    title: str
    teacher_id: str
    student_id: str
    start_at: datetime
    duration_minutes: int
    status: str
    lesson_id: Optional[str] = None
    version: int
    created_at: datetime
    decided_at: Optional[datetime] = None


class LessonRequestListResponse(BaseModel):
    items: List[LessonRequestResponse]


class MyLessonRequestsResponse(BaseModel):
    items: List[LessonRequestResponse]
    counts: Dict[str, int]


class LessonRequestApprovalResponse(BaseModel):
    request: LessonRequestResponse
    lesson: LessonResponse
