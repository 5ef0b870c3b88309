"""
Base schemas with standardized field types for consistent API responses.
"""
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class StandardizedModel(BaseModel):
    """Base model for responses built from ORM rows."""

    model_config = ConfigDict(from_attributes=True, use_enum_values=True, populate_by_name=True)


class IntervalOut(BaseModel):
    """A half-open [start, end) UTC interval."""

    start: datetime
    end: datetime


class SuccessResponse(BaseModel):
    """Standard success response for operations."""

    success: bool = Field(default=True, description="Operation success status")
    message: str = Field(description="Human-readable success message")
    data: Optional[Dict[str, Any]] = Field(default=None, description="Optional additional data")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "success": True,
                "message": "Operation completed successfully",
                "data": {"deleted": 3},
            }
        }
    )
