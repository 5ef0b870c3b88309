# backend/app/schemas/holiday.py
"""Holiday calendar schemas."""

from datetime import date as DateType, datetime
from typing import List

from pydantic import BaseModel, Field

from ..core.constants import MAX_LABEL_LENGTH
from ._strict_base import StrictModel, StrictRequestModel
from .base import StandardizedModel


class HolidayIn(StrictModel):
    date: DateType
    label: str = Field(default="", max_length=MAX_LABEL_LENGTH)


class HolidayUpsertRequest(StrictRequestModel):
    """Create or relabel holidays by date. A repeated date keeps its last label."""

    holidays: List[HolidayIn] = Field(..., min_length=1)


class HolidayResponse(StandardizedModel):
    id: str
    date: DateType
    label: str
    created_at: datetime


class HolidayListResponse(BaseModel):
    items: List[HolidayResponse]
