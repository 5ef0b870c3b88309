# backend/app/main.py
"""
FastAPI application for the scheduling engine.

Routers:
    /api/v1/lessons        lessons, slot suggestions, recurring series
    /api/v1/requests       lesson requests and their approval
    /api/v1/availability   weekly rules, exceptions, free intervals
    /api/v1/holidays       holiday calendar
    /api/v1/courses        courses and capacity
    /api/v1/enrollments    enrollments, rosters, counts, the caller's own list
    /health                liveness and database check
    /metrics               Prometheus exposition
"""

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI
from fastapi.routing import APIRoute

from .core.config import settings
from .core.constants import API_DESCRIPTION, API_TITLE, API_VERSION, BRAND_NAME
from .core.locks import get_lock_backend
from .database import init_db
from .errors import register_error_handlers
from .routes import prometheus
from .routes.v1 import (
    availability as availability_v1,
    courses as courses_v1,
    enrollments as enrollments_v1,
    health as health_v1,
    holidays as holidays_v1,
    lessons as lessons_v1,
    requests as requests_v1,
)

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown without deprecated events."""
    logger.info(f"{BRAND_NAME} scheduling API starting up...")
    logger.info(
        f"Environment: {settings.environment}, lock backend: {type(get_lock_backend()).__name__}"
    )
    init_db()
    yield
    logger.info(f"{BRAND_NAME} scheduling API shutting down...")


def _unique_operation_id(route: APIRoute) -> str:
    methods = "_".join(sorted(route.methods or [])).lower()
    path = route.path_format.strip("/").replace("/", "_").replace("{", "").replace("}", "")
    name = (route.name or "operation").lower().replace(" ", "_")
    return f"{methods}__{path}__{name}".strip("_")


app = FastAPI(
    title=API_TITLE,
    description=API_DESCRIPTION,
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=app_lifespan,
    generate_unique_id_function=_unique_operation_id,
)
# Register unified error envelope handlers
register_error_handlers(app)

# Create API v1 router
api_v1 = APIRouter(prefix="/api/v1")

# Mount v1 routes
api_v1.include_router(lessons_v1.router, prefix="/lessons")
api_v1.include_router(requests_v1.router, prefix="/requests")
api_v1.include_router(availability_v1.router, prefix="/availability")
api_v1.include_router(holidays_v1.router, prefix="/holidays")
api_v1.include_router(courses_v1.router, prefix="/courses")
api_v1.include_router(enrollments_v1.router, prefix="/enrollments")

app.include_router(api_v1)
app.include_router(health_v1.router, prefix="/health")
app.include_router(prometheus.router)
