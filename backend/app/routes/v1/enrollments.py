# backend/app/routes/v1/enrollments.py
"""
Enrollment routes - API v1

Endpoints:
    POST   /                      → Enroll (approved or waitlisted)
    GET    /counts                → Approved counts for several courses
    GET    /my                    → The caller's own enrollments (X-User-ID)
    GET    /roster/{course_id}    → Course roster
    GET    /{enrollment_id}       → Enrollment details
    PATCH  /{enrollment_id}       → Administrative status change
    DELETE /{enrollment_id}       → Drop, promoting the next waitlisted user
"""

import asyncio
import logging
from typing import List

from fastapi import APIRouter, Body, Depends, Query, status
from fastapi.params import Path

from ...api.dependencies import get_current_user_id, get_enrollment_service
from ...core.exceptions import DomainException
from ...schemas.enrollment import (
    EnrollmentCountsResponse,
    EnrollmentCreate,
    EnrollmentResponse,
    EnrollmentStatusUpdate,
    RosterResponse,
    UserEnrollmentsResponse,
)
from ...services.enrollment_service import EnrollmentService
from ._errors import ULID_PATH_PATTERN, handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["enrollments-v1"])


# ============================================================================
# SECTION 1: Static routes
# ============================================================================


@router.post("", response_model=EnrollmentResponse, status_code=status.HTTP_201_CREATED)
async def enroll(
    payload: EnrollmentCreate = Body(...),
    service: EnrollmentService = Depends(get_enrollment_service),
) -> EnrollmentResponse:
    """Enroll a user; the response status tells whether a seat was granted."""
    try:
        enrollment = await asyncio.to_thread(service.enroll, payload.course_id, payload.user_id)
        return EnrollmentResponse.model_validate(enrollment)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/counts", response_model=EnrollmentCountsResponse)
async def enrollment_counts(
    course_ids: List[str] = Query(..., description="Repeat or comma-separate course ids"),
    service: EnrollmentService = Depends(get_enrollment_service),
) -> EnrollmentCountsResponse:
    ids = [part.strip() for value in course_ids for part in value.split(",") if part.strip()]
    try:
        counts = await asyncio.to_thread(service.counts, ids)
        return EnrollmentCountsResponse(counts=counts)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/my", response_model=UserEnrollmentsResponse)
async def my_enrollments(
    user_id: str = Depends(get_current_user_id),
    service: EnrollmentService = Depends(get_enrollment_service),
) -> UserEnrollmentsResponse:
    try:
        enrollments = await asyncio.to_thread(service.enrollments_for_user, user_id)
        return UserEnrollmentsResponse(
            user_id=user_id,
            items=[EnrollmentResponse.model_validate(e) for e in enrollments],
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/roster/{course_id}", response_model=RosterResponse)
async def course_roster(
    course_id: str = Path(..., description="Course ULID", pattern=ULID_PATH_PATTERN),
    include_inactive: bool = Query(False, description="Also list rejected and dropped"),
    service: EnrollmentService = Depends(get_enrollment_service),
) -> RosterResponse:
    try:
        enrollments = await asyncio.to_thread(service.roster, course_id, include_inactive)
        return RosterResponse(
            course_id=course_id,
            items=[EnrollmentResponse.model_validate(e) for e in enrollments],
        )
    except DomainException as e:
        handle_domain_exception(e)


# ============================================================================
# SECTION 2: Dynamic routes (with path parameters - placed last)
# ============================================================================


@router.get("/{enrollment_id}", response_model=EnrollmentResponse)
async def get_enrollment(
    enrollment_id: str = Path(..., description="Enrollment ULID", pattern=ULID_PATH_PATTERN),
    service: EnrollmentService = Depends(get_enrollment_service),
) -> EnrollmentResponse:
    try:
        enrollment = await asyncio.to_thread(service.get_enrollment, enrollment_id)
        return EnrollmentResponse.model_validate(enrollment)
    except DomainException as e:
        handle_domain_exception(e)


@router.patch("/{enrollment_id}", response_model=EnrollmentResponse)
async def set_enrollment_status(
    enrollment_id: str = Path(..., description="Enrollment ULID", pattern=ULID_PATH_PATTERN),
    payload: EnrollmentStatusUpdate = Body(...),
    service: EnrollmentService = Depends(get_enrollment_service),
) -> EnrollmentResponse:
    try:
        enrollment = await asyncio.to_thread(service.set_status, enrollment_id, payload.status)
        return EnrollmentResponse.model_validate(enrollment)
    except DomainException as e:
        handle_domain_exception(e)


@router.delete("/{enrollment_id}", response_model=EnrollmentResponse)
async def drop_enrollment(
    enrollment_id: str = Path(..., description="Enrollment ULID", pattern=ULID_PATH_PATTERN),
    service: EnrollmentService = Depends(get_enrollment_service),
) -> EnrollmentResponse:
    try:
        enrollment = await asyncio.to_thread(service.drop, enrollment_id)
        return EnrollmentResponse.model_validate(enrollment)
    except DomainException as e:
        handle_domain_exception(e)
