# backend/app/routes/v1/health.py
"""
Health check endpoints for monitoring and load balancer checks.
"""

from __future__ import annotations

from datetime import datetime, timezone
import logging

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.api.dependencies.database import get_db
from app.core.config import settings
from app.core.constants import API_VERSION, BRAND_NAME
from app.schemas.health import HealthLiteResponse, HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("", response_model=HealthResponse)
def health_check(response: Response, db: Session = Depends(get_db)) -> HealthResponse:
    """
    Health check endpoint.

    Reports service info and whether the database answers. A failing
    database turns the response into a 503.
    """
    database = "ok"
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.warning("Health check database query failed", exc_info=True)
        database = "unavailable"
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return HealthResponse(
        status="healthy" if database == "ok" else "degraded",
        service=f"{BRAND_NAME.lower()}-scheduling",
        version=API_VERSION,
        environment=settings.environment,
        timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        database=database,
    )


@router.get("/lite", response_model=HealthLiteResponse)
def health_check_lite() -> HealthLiteResponse:
    """
    Lightweight health check that doesn't hit database.

    Use this for high-frequency health checks.
    """
    return HealthLiteResponse(status="ok")
