"""Health check response schemas."""

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str
    environment: str
    timestamp: str
    database: str


class HealthLiteResponse(BaseModel):
    status: str
