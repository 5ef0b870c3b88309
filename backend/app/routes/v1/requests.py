# backend/app/routes/v1/requests.py
"""
Lesson request routes - API v1

Endpoints:
    POST /                         → Submit a pending request
    GET  /                         → List requests (pending inbox by default)
    GET  /mine                     → The caller's own requests with counts (X-User-ID)
    POST /{request_id}/approve     → Book the lesson and approve (409 if the slot is taken)
    POST /{request_id}/reject      → Reject a pending request
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, status
from fastapi.params import Path

from ...api.dependencies import get_current_user_id, get_lesson_request_service
from ...core.constants import DEFAULT_QUERY_LIMIT, MAX_QUERY_LIMIT
from ...core.exceptions import DomainException
from ...schemas.lesson import LessonResponse
from ...schemas.lesson_request import (
    LessonRequestApprovalResponse,
    LessonRequestCreate,
    LessonRequestListResponse,
    LessonRequestResponse,
    MyLessonRequestsResponse,
)
from ...services.lesson_request_service import LessonRequestService
from ._errors import ULID_PATH_PATTERN, handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["lesson-requests-v1"])


# ============================================================================
# SECTION 1: Static routes
# ============================================================================


@router.post("", response_model=LessonRequestResponse, status_code=status.HTTP_201_CREATED)
async def submit_request(
    payload: LessonRequestCreate = Body(...),
    service: LessonRequestService = Depends(get_lesson_request_service),
) -> LessonRequestResponse:
    """Ask a teacher for a slot; nothing is reserved until approval."""
    try:
        request = await asyncio.to_thread(
            service.submit_request,
            teacher_id=payload.teacher_id,
            student_id=payload.student_id,
            start_at=payload.start_at,
            duration_minutes=payload.duration_minutes,
            title=payload.title,
        )
        return LessonRequestResponse.model_validate(request)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("", response_model=LessonRequestListResponse)
async def list_requests(
    teacher_id: Optional[str] = Query(None),
    student_id: Optional[str] = Query(None),
    request_status: str = Query("pending", alias="status"),
    limit: int = Query(DEFAULT_QUERY_LIMIT, ge=1, le=MAX_QUERY_LIMIT),
    service: LessonRequestService = Depends(get_lesson_request_service),
) -> LessonRequestListResponse:
    try:
        requests = await asyncio.to_thread(
            service.list_requests,
            teacher_id=teacher_id,
            student_id=student_id,
            status=request_status,
            limit=limit,
        )
        return LessonRequestListResponse(
            items=[LessonRequestResponse.model_validate(r) for r in requests]
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/mine", response_model=MyLessonRequestsResponse)
async def my_requests(
    user_id: str = Depends(get_current_user_id),
    service: LessonRequestService = Depends(get_lesson_request_service),
) -> MyLessonRequestsResponse:
    try:
        items, counts = await asyncio.to_thread(service.requests_for_student, user_id)
        return MyLessonRequestsResponse(
            items=[LessonRequestResponse.model_validate(r) for r in items],
            counts=counts,
        )
    except DomainException as e:
        handle_domain_exception(e)


# ============================================================================
# SECTION 2: Dynamic routes (with path parameters - placed last)
# ============================================================================


@router.post("/{request_id}/approve", response_model=LessonRequestApprovalResponse)
async def approve_request(
    request_id: str = Path(..., description="Lesson request ULID", pattern=ULID_PATH_PATTERN),
    service: LessonRequestService = Depends(get_lesson_request_service),
) -> LessonRequestApprovalResponse:
    """
    Approve a pending request.

    Returns 409 with code LESSON_CONFLICT when the slot was taken in the
    meantime; the request then stays pending.
    """
    try:
        request, lesson = await asyncio.to_thread(service.approve_request, request_id)
        return LessonRequestApprovalResponse(
            request=LessonRequestResponse.model_validate(request),
            lesson=LessonResponse.model_validate(lesson),
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{request_id}/reject", response_model=LessonRequestResponse)
async def reject_request(
    request_id: str = Path(..., description="Lesson request ULID", pattern=ULID_PATH_PATTERN),
    service: LessonRequestService = Depends(get_lesson_request_service),
) -> LessonRequestResponse:
    try:
        request = await asyncio.to_thread(service.reject_request, request_id)
        return LessonRequestResponse.model_validate(request)
    except DomainException as e:
        handle_domain_exception(e)
