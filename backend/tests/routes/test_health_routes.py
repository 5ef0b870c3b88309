from unittest.mock import MagicMock

from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from app.api.dependencies.database import get_db
from app.main import app


def test_health_reports_database(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["database"] == "ok"
    assert body["environment"] == "test"
    assert body["service"] == "cadenza-scheduling"


def test_health_degraded_when_database_fails(client: TestClient) -> None:
    broken = MagicMock()
    broken.execute.side_effect = OperationalError("SELECT 1", {}, Exception("down"))
    app.dependency_overrides[get_db] = lambda: broken

    response = client.get("/health")

    assert response.status_code == 503
    assert response.json()["status"] == "degraded"
    assert response.json()["database"] == "unavailable"


def test_health_lite(client: TestClient) -> None:
    response = client.get("/health/lite")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_metrics_exposition(client: TestClient) -> None:
    client.post(
        "/api/v1/courses", json={"title": "Strings", "capacity": 2}
    )

    response = client.get("/metrics")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    text = response.text
    assert "scheduling_prometheus_scrapes_total" in text
    assert "scheduling_service_operations_total" in text
    assert 'operation="create_course"' in text


def test_unknown_route_uses_problem_envelope(client: TestClient) -> None:
    response = client.get("/api/v1/nothing-here")
    assert response.status_code == 404
    body = response.json()
    assert body["status"] == 404
    assert body["title"] == "Not Found"
    assert body["instance"] == "/api/v1/nothing-here"
