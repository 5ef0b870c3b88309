"""Strict schema baselines: request bodies reject unknown fields."""

from pydantic import BaseModel, ConfigDict


class StrictModel(BaseModel):
    """Neutral strict base for nested request parts."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)


class StrictRequestModel(StrictModel):
    """Request DTO base that always forbids unexpected fields."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True, str_strip_whitespace=True)
