# backend/app/routes/v1/availability.py
"""
Availability routes - API v1

Endpoints:
    GET /me                  → Caller's weekly rules and exceptions
    PUT /me                  → Replace the caller's availability wholesale
    GET /{user_id}           → Another participant's weekly rules and exceptions
    GET /{user_id}/free      → Resolved free intervals over [start, end)
"""

import asyncio
from datetime import datetime
import logging

from fastapi import APIRouter, Body, Depends, Query
from fastapi.params import Path

from ...api.dependencies import get_availability_service, get_current_user_id
from ...core.exceptions import DomainException
from ...schemas.availability import (
    AvailabilityReplaceRequest,
    AvailabilityResponse,
    FreeIntervalsResponse,
)
from ...services.availability_service import (
    AvailabilityService,
    ExceptionInput,
    WeeklyRuleInput,
)
from ._errors import handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["availability-v1"])


@router.get("/me", response_model=AvailabilityResponse)
async def get_my_availability(
    user_id: str = Depends(get_current_user_id),
    service: AvailabilityService = Depends(get_availability_service),
) -> AvailabilityResponse:
    try:
        snapshot = await asyncio.to_thread(service.get_availability, user_id)
        return AvailabilityResponse.from_snapshot(snapshot)
    except DomainException as e:
        handle_domain_exception(e)


@router.put("/me", response_model=AvailabilityResponse)
async def replace_my_availability(
    payload: AvailabilityReplaceRequest = Body(...),
    user_id: str = Depends(get_current_user_id),
    service: AvailabilityService = Depends(get_availability_service),
) -> AvailabilityResponse:
    """
    Replace the caller's weekly rules and date exceptions.

    Omitted rules and exceptions are deleted. Overlapping rules on one day
    are rejected with WEEKLY_RULE_OVERLAP and nothing is changed.
    """
    rules = [
        WeeklyRuleInput(rule.day_of_week, rule.start_time, rule.end_time)
        for rule in payload.weekly_rules
    ]
    exceptions = [
        ExceptionInput(item.date, [(slot.start_at, slot.end_at) for slot in item.slots])
        for item in payload.exceptions
    ]
    try:
        snapshot = await asyncio.to_thread(
            service.replace_availability, user_id, rules, exceptions
        )
        return AvailabilityResponse.from_snapshot(snapshot)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/{user_id}", response_model=AvailabilityResponse)
async def get_user_availability(
    user_id: str = Path(..., min_length=1, max_length=64),
    service: AvailabilityService = Depends(get_availability_service),
) -> AvailabilityResponse:
    try:
        snapshot = await asyncio.to_thread(service.get_availability, user_id)
        return AvailabilityResponse.from_snapshot(snapshot)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/{user_id}/free", response_model=FreeIntervalsResponse)
async def get_free_intervals(
    user_id: str = Path(..., min_length=1, max_length=64),
    start: datetime = Query(..., description="Range start (UTC if no offset)"),
    end: datetime = Query(..., description="Range end, exclusive"),
    service: AvailabilityService = Depends(get_availability_service),
) -> FreeIntervalsResponse:
    """Free intervals after holidays, business hours and booked lessons."""
    try:
        intervals = await asyncio.to_thread(service.compute_free_intervals, user_id, start, end)
        return FreeIntervalsResponse(user_id=user_id, start=start, end=end, intervals=intervals)
    except DomainException as e:
        handle_domain_exception(e)
