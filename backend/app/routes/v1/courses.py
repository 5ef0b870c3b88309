# backend/app/routes/v1/courses.py
"""
Course routes - API v1

Endpoints:
    POST  /                         → Create a course (capacity null = unlimited)
    GET   /{course_id}              → Course details with approved count
    PATCH /{course_id}/capacity     → Change capacity, promoting from the waitlist
"""

import asyncio
import logging

from fastapi import APIRouter, Body, Depends, status
from fastapi.params import Path

from ...api.dependencies import get_enrollment_service
from ...core.exceptions import DomainException
from ...models.course import Course
from ...schemas.enrollment import CourseCapacityUpdate, CourseCreate, CourseResponse
from ...services.enrollment_service import EnrollmentService
from ._errors import ULID_PATH_PATTERN, handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["courses-v1"])


def _course_response(course: Course, approved_count: int) -> CourseResponse:
    return CourseResponse.model_validate(course).model_copy(
        update={"approved_count": approved_count}
    )


@router.post("", response_model=CourseResponse, status_code=status.HTTP_201_CREATED)
async def create_course(
    payload: CourseCreate = Body(...),
    service: EnrollmentService = Depends(get_enrollment_service),
) -> CourseResponse:
    try:
        course = await asyncio.to_thread(service.create_course, payload.title, payload.capacity)
        return _course_response(course, 0)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/{course_id}", response_model=CourseResponse)
async def get_course(
    course_id: str = Path(..., description="Course ULID", pattern=ULID_PATH_PATTERN),
    service: EnrollmentService = Depends(get_enrollment_service),
) -> CourseResponse:
    try:
        course = await asyncio.to_thread(service.get_course, course_id)
        approved = await asyncio.to_thread(service.approved_count, course_id)
        return _course_response(course, approved)
    except DomainException as e:
        handle_domain_exception(e)


@router.patch("/{course_id}/capacity", response_model=CourseResponse)
async def update_course_capacity(
    course_id: str = Path(..., description="Course ULID", pattern=ULID_PATH_PATTERN),
    payload: CourseCapacityUpdate = Body(...),
    service: EnrollmentService = Depends(get_enrollment_service),
) -> CourseResponse:
    """
    Change a course's capacity.

    Lowering below the approved count is rejected with 422; raising it
    promotes waitlisted enrollments oldest first.
    """
    try:
        course = await asyncio.to_thread(service.update_capacity, course_id, payload.capacity)
        approved = await asyncio.to_thread(service.approved_count, course_id)
        return _course_response(course, approved)
    except DomainException as e:
        handle_domain_exception(e)
