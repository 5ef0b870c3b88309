"""
Prometheus metrics endpoint for monitoring infrastructure.

This is a PUBLIC endpoint (no authentication required) following
standard Prometheus practices. It exposes the scheduling metrics fed by
@measure_operation, the lock helpers and the scheduling services.
"""

from fastapi import APIRouter, Response
from prometheus_client import Counter

from ..monitoring.prometheus_metrics import REGISTRY, prometheus_metrics

router = APIRouter()

_scrape_counter = Counter(
    "scheduling_prometheus_scrapes_total",
    "Total number of Prometheus metrics scrapes",
    registry=REGISTRY,
)


@router.get("/metrics", include_in_schema=False, response_class=Response, response_model=None)
async def get_prometheus_metrics() -> Response:
    """
    Expose Prometheus metrics for scraping.

    Returns:
        Response with Prometheus exposition format (text/plain)
    """
    _scrape_counter.inc()
    return Response(
        content=prometheus_metrics.get_metrics(),
        media_type=prometheus_metrics.get_content_type(),
        headers={
            "Cache-Control": "no-cache, no-store, must-revalidate",
            "Pragma": "no-cache",
            "Expires": "0",
        },
    )
