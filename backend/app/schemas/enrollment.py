# backend/app/schemas/enrollment.py
"""Course and enrollment schemas."""

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from ._strict_base import StrictRequestModel
from .base import StandardizedModel


class CourseCreate(StrictRequestModel):
    title: str
    capacity: Optional[int] = Field(default=None, description="null = unlimited")


class CourseCapacityUpdate(StrictRequestModel):
    capacity: Optional[int] = Field(..., description="null = unlimited")


class CourseResponse(StandardizedModel):
    id: str
    title: str
    capacity: Optional[int] = None
    approved_count: int = 0
    created_at: datetime


class EnrollmentCreate(StrictRequestModel):
    course_id: str
    user_id: str


class EnrollmentStatusUpdate(StrictRequestModel):
    status: Literal["approved", "waitlisted", "rejected"]


class EnrollmentResponse(StandardizedModel):
    id: str
    course_id: str
    user_id: str
    status: str
    version: int
    created_at: datetime
    approved_at: Optional[datetime] = None


class RosterResponse(BaseModel):
    course_id: str
    items: List[EnrollmentResponse]


class EnrollmentCountsResponse(BaseModel):
    counts: Dict[str, int]


class UserEnrollmentsResponse(BaseModel):
    user_id: str
    items: List[EnrollmentResponse]
