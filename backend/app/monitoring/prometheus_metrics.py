"""
Prometheus metrics for the scheduling service.

Service timings are fed by the @measure_operation decorator on BaseService;
the domain helpers below are called from the scheduling services and the
lock layer.
"""

from typing import Optional, cast

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# Custom registry so test runs never collide with the default process collectors
REGISTRY = CollectorRegistry()

service_operation_duration_seconds = Histogram(
    "scheduling_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

service_operations_total = Counter(
    "scheduling_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "scheduling_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

resource_lock_total = Counter(
    "scheduling_resource_lock_total",
    "Resource lock operations by outcome",
    ["action", "outcome"],  # acquire|release, success|busy|error
    registry=REGISTRY,
)

slot_suggestions_total = Counter(
    "scheduling_slot_suggestions_total",
    "Number of slot suggestions returned",
    ["algorithm"],
    registry=REGISTRY,
)

series_occurrences_total = Counter(
    "scheduling_series_occurrences_total",
    "Recurring series occurrences by outcome",
    ["outcome"],  # created | skip reason
    registry=REGISTRY,
)

enrollment_transitions_total = Counter(
    "scheduling_enrollment_transitions_total",
    "Enrollment status transitions",
    ["from_status", "to_status"],
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Recording helpers over the module-level collectors, plus exposition."""

    @staticmethod
    def record_service_operation(
        service: str,
        operation: str,
        duration: float,
        status: str = "success",
        error_type: Optional[str] = None,
    ) -> None:
        """Called by BaseService.measure_operation after every measured call."""
        service_operation_duration_seconds.labels(service=service, operation=operation).observe(
            duration
        )
        service_operations_total.labels(service=service, operation=operation, status=status).inc()
        if status == "error" and error_type:
            errors_total.labels(service=service, operation=operation, error_type=error_type).inc()

    @staticmethod
    def record_resource_lock(action: str, outcome: str) -> None:
        resource_lock_total.labels(action=action, outcome=outcome).inc()

    @staticmethod
    def record_suggestions(algorithm: str, count: int) -> None:
        slot_suggestions_total.labels(algorithm=algorithm).inc(count)

    @staticmethod
    def record_series_occurrence(outcome: str) -> None:
        series_occurrences_total.labels(outcome=outcome).inc()

    @staticmethod
    def record_enrollment_transition(from_status: str, to_status: str) -> None:
        enrollment_transitions_total.labels(from_status=from_status, to_status=to_status).inc()

    @staticmethod
    def get_metrics() -> bytes:
        """Render the scheduling registry in the text exposition format."""
        return cast(bytes, generate_latest(REGISTRY))

    @staticmethod
    def get_content_type() -> str:
        return cast(str, CONTENT_TYPE_LATEST)


prometheus_metrics = PrometheusMetrics()
