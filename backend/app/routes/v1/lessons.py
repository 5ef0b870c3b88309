# backend/app/routes/v1/lessons.py
"""
Lesson routes - API v1

Versioned lesson endpoints under /api/v1/lessons.
All business logic delegated to the lesson, suggestion and series services.

Endpoints:
    POST /suggest-slots        → Suggest mutually free slots (advisory, no lock)
    POST /                     → Confirm a single lesson (conflict re-check)
    POST /recurring            → Generate a recurring series
    GET  /                     → List lessons with filters
    GET  /{lesson_id}          → Lesson details
    PATCH /{lesson_id}         → Reschedule, retitle or change status
    DELETE /{lesson_id}        → Soft cancel, or hard delete with ?purge=true
"""

import asyncio
from datetime import datetime
import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, Response, status
from fastapi.params import Path

from ...api.dependencies import (
    get_lesson_service,
    get_recurring_series_service,
    get_slot_suggestion_service,
)
from ...core.constants import DEFAULT_QUERY_LIMIT, MAX_QUERY_LIMIT
from ...core.exceptions import DomainException
from ...schemas.lesson import (
    LessonCreate,
    LessonListResponse,
    LessonResponse,
    LessonUpdate,
    RecurringLessonRequest,
    RecurringLessonResponse,
    SuggestSlotsRequest,
    SuggestSlotsResponse,
)
from ...services.lesson_service import LessonService
from ...services.recurring_series_service import RecurringSeriesService
from ...services.slot_suggestion_service import SlotSuggestionService
from ._errors import ULID_PATH_PATTERN, handle_domain_exception

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["lessons-v1"])


# ============================================================================
# SECTION 1: Static routes
# ============================================================================


@router.post("/suggest-slots", response_model=SuggestSlotsResponse)
async def suggest_slots(
    payload: SuggestSlotsRequest = Body(...),
    service: SlotSuggestionService = Depends(get_slot_suggestion_service),
) -> SuggestSlotsResponse:
    """
    Suggest lesson start times both participants can make.

    Suggestions are not reserved; confirm one with POST /lessons.
    """
    try:
        result = await asyncio.to_thread(
            service.suggest_slots,
            teacher_id=payload.teacher_id,
            student_id=payload.student_id,
            duration_minutes=payload.duration_minutes,
            step_minutes=payload.step_minutes,
            buffer_minutes=payload.buffer_minutes,
            max_suggestions=payload.max_suggestions,
            days=payload.days,
            algorithm=payload.algorithm,
            from_=payload.from_,
        )
        return SuggestSlotsResponse.from_result(result)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("", response_model=LessonResponse, status_code=status.HTTP_201_CREATED)
async def create_lesson(
    payload: LessonCreate = Body(...),
    service: LessonService = Depends(get_lesson_service),
) -> LessonResponse:
    """
    Confirm a lesson.

    Returns 409 with code LESSON_CONFLICT when either participant is already
    booked in the requested interval.
    """
    try:
        lesson = await asyncio.to_thread(
            service.create_lesson,
            title=payload.title,
            teacher_id=payload.teacher_id,
            student_id=payload.student_id,
            start_at=payload.start_at,
            duration_minutes=payload.duration_minutes,
            status=payload.status,
        )
        return LessonResponse.model_validate(lesson)
    except DomainException as e:
        handle_domain_exception(e)


@router.post(
    "/recurring", response_model=RecurringLessonResponse, status_code=status.HTTP_201_CREATED
)
async def create_recurring_lessons(
    payload: RecurringLessonRequest = Body(...),
    service: RecurringSeriesService = Depends(get_recurring_series_service),
) -> RecurringLessonResponse:
    """
    Expand a weekly rule into lessons.

    Occurrences on holidays, clashing with existing lessons or outside either
    participant's availability are skipped with a reason; a partial series
    is still 201.
    """
    try:
        result = await asyncio.to_thread(
            service.generate_series,
            title=payload.title,
            teacher_id=payload.teacher_id,
            student_id=payload.student_id,
            start_at=payload.start_at,
            duration_minutes=payload.duration_minutes,
            interval_weeks=payload.interval_weeks,
            count=payload.count,
            by_day=payload.by_day,
            enforce_availability=payload.enforce_availability,
        )
        return RecurringLessonResponse.from_result(result)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("", response_model=LessonListResponse)
async def list_lessons(
    teacher_id: Optional[str] = Query(None),
    student_id: Optional[str] = Query(None),
    lesson_status: Optional[str] = Query(None, alias="status"),
    start_from: Optional[datetime] = Query(None, description="Only lessons starting at or after"),
    start_to: Optional[datetime] = Query(None, description="Only lessons starting before"),
    limit: int = Query(DEFAULT_QUERY_LIMIT, ge=1, le=MAX_QUERY_LIMIT),
    offset: int = Query(0, ge=0),
    service: LessonService = Depends(get_lesson_service),
) -> LessonListResponse:
    try:
        lessons = await asyncio.to_thread(
            service.list_lessons,
            teacher_id=teacher_id,
            student_id=student_id,
            status=lesson_status,
            start_from=start_from,
            start_to=start_to,
            limit=limit,
            offset=offset,
        )
        return LessonListResponse(
            items=[LessonResponse.model_validate(lesson) for lesson in lessons],
            limit=limit,
            offset=offset,
        )
    except DomainException as e:
        handle_domain_exception(e)


# ============================================================================
# SECTION 2: Dynamic routes (with path parameters - placed last)
# ============================================================================


@router.get("/{lesson_id}", response_model=LessonResponse)
async def get_lesson(
    lesson_id: str = Path(..., description="Lesson ULID", pattern=ULID_PATH_PATTERN),
    service: LessonService = Depends(get_lesson_service),
) -> LessonResponse:
    try:
        lesson = await asyncio.to_thread(service.get_lesson, lesson_id)
        return LessonResponse.model_validate(lesson)
    except DomainException as e:
        handle_domain_exception(e)


@router.patch("/{lesson_id}", response_model=LessonResponse)
async def update_lesson(
    lesson_id: str = Path(..., description="Lesson ULID", pattern=ULID_PATH_PATTERN),
    payload: LessonUpdate = Body(...),
    service: LessonService = Depends(get_lesson_service),
) -> LessonResponse:
    """Reschedule, retitle or change the status of a lesson."""
    try:
        lesson = await asyncio.to_thread(
            service.update_lesson,
            lesson_id,
            title=payload.title,
            start_at=payload.start_at,
            duration_minutes=payload.duration_minutes,
            status=payload.status,
            expected_version=payload.expected_version,
        )
        return LessonResponse.model_validate(lesson)
    except DomainException as e:
        handle_domain_exception(e)


@router.delete(
    "/{lesson_id}",
    response_model=None,
    responses={200: {"model": LessonResponse}, 204: {"description": "Lesson purged"}},
)
async def delete_lesson(
    lesson_id: str = Path(..., description="Lesson ULID", pattern=ULID_PATH_PATTERN),
    purge: bool = Query(False, description="Hard delete instead of cancelling"),
    service: LessonService = Depends(get_lesson_service),
) -> LessonResponse | Response:
    """
    Cancel a lesson.

    The default is a soft cancel that keeps the lesson for history. With
    purge=true the row is removed and 204 is returned.
    """
    try:
        if purge:
            await asyncio.to_thread(service.purge_lesson, lesson_id)
            return Response(status_code=status.HTTP_204_NO_CONTENT)
        lesson = await asyncio.to_thread(service.cancel_lesson, lesson_id)
        return LessonResponse.model_validate(lesson)
    except DomainException as e:
        handle_domain_exception(e)
