# backend/app/routes/v1/holidays.py
"""
Holiday routes - API v1

Endpoints:
    GET    /               → All holidays, by date
    POST   /               → Create or relabel holidays by date
    DELETE /               → Clear the holiday calendar
    DELETE /{holiday_id}   → Remove one holiday
"""

import asyncio
import logging

from fastapi import APIRouter, Body, Depends, Response, status
from fastapi.params import Path

from ...api.dependencies import get_holiday_service
from ...core.exceptions import DomainException
from ...schemas.base import SuccessResponse
from ...schemas.holiday import HolidayListResponse, HolidayResponse, HolidayUpsertRequest
from ...services.holiday_service import HolidayService
from ._errors import ULID_PATH_PATTERN, handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["holidays-v1"])


@router.get("", response_model=HolidayListResponse)
async def list_holidays(
    service: HolidayService = Depends(get_holiday_service),
) -> HolidayListResponse:
    try:
        holidays = await asyncio.to_thread(service.list_holidays)
        return HolidayListResponse(items=[HolidayResponse.model_validate(h) for h in holidays])
    except DomainException as e:
        handle_domain_exception(e)


@router.post("", response_model=HolidayListResponse, status_code=status.HTTP_201_CREATED)
async def upsert_holidays(
    payload: HolidayUpsertRequest = Body(...),
    service: HolidayService = Depends(get_holiday_service),
) -> HolidayListResponse:
    labels_by_date = {item.date: item.label for item in payload.holidays}
    try:
        holidays = await asyncio.to_thread(service.upsert_holidays, labels_by_date)
        return HolidayListResponse(items=[HolidayResponse.model_validate(h) for h in holidays])
    except DomainException as e:
        handle_domain_exception(e)


@router.delete("", response_model=SuccessResponse)
async def clear_holidays(
    service: HolidayService = Depends(get_holiday_service),
) -> SuccessResponse:
    try:
        deleted = await asyncio.to_thread(service.clear_holidays)
        return SuccessResponse(message="Holiday calendar cleared", data={"deleted": deleted})
    except DomainException as e:
        handle_domain_exception(e)


@router.delete("/{holiday_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_holiday(
    holiday_id: str = Path(..., description="Holiday ULID", pattern=ULID_PATH_PATTERN),
    service: HolidayService = Depends(get_holiday_service),
) -> Response:
    try:
        await asyncio.to_thread(service.delete_holiday, holiday_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except DomainException as e:
        handle_domain_exception(e)
