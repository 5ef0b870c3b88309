from typing import Any, Callable, Dict

from fastapi.testclient import TestClient
from sched_helpers import MONDAY, OTHER_STUDENT, STUDENT, TEACHER, utc

from app.models.lesson import Lesson

BASE = "/api/v1/requests"


def _submit(client: TestClient, **overrides: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "teacher_id": TEACHER,
        "student_id": STUDENT,
        "start_at": utc(MONDAY, 10).isoformat(),
    }
    payload.update(overrides)
    response = client.post(BASE, json=payload)
    assert response.status_code == 201, response.text
    return response.json()


class TestSubmitRoute:
    def test_submit_defaults(self, client: TestClient) -> None:
        request = _submit(client)

        assert request["status"] == "pending"
        assert request["title"] == "Scheduled Lesson"
        assert request["duration_minutes"] == 60
        assert request["lesson_id"] is None

    def test_camel_case_spellings(self, client: TestClient) -> None:
        response = client.post(
            BASE,
            json={
                "teacherId": TEACHER,
                "studentId": STUDENT,
                "start": utc(MONDAY, 10).isoformat(),
                "duration": 30,
            },
        )
        assert response.status_code == 201
        assert response.json()["duration_minutes"] == 30

    def test_invalid_duration_is_400(self, client: TestClient) -> None:
        response = client.post(
            BASE,
            json={
                "teacher_id": TEACHER,
                "student_id": STUDENT,
                "start_at": utc(MONDAY, 10).isoformat(),
                "duration_minutes": 300,
            },
        )
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_DURATION"

    def test_missing_start_is_422(self, client: TestClient) -> None:
        response = client.post(BASE, json={"teacher_id": TEACHER, "student_id": STUDENT})
        assert response.status_code == 422
        assert response.json()["code"] == "validation_error"


class TestListRoutes:
    def test_teacher_inbox_holds_pending_only(self, client: TestClient) -> None:
        pending = _submit(client)
        rejected = _submit(client, student_id=OTHER_STUDENT)
        _submit(client, teacher_id="teacher-9")
        client.post(f"{BASE}/{rejected['id']}/reject")

        inbox = client.get(BASE, params={"teacher_id": TEACHER})
        history = client.get(BASE, params={"teacher_id": TEACHER, "status": "rejected"})

        assert inbox.status_code == 200
        assert [item["id"] for item in inbox.json()["items"]] == [pending["id"]]
        assert [item["id"] for item in history.json()["items"]] == [rejected["id"]]

    def test_unknown_status_is_400(self, client: TestClient) -> None:
        response = client.get(BASE, params={"status": "maybe"})
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_STATUS"

    def test_mine_uses_caller_header(self, client: TestClient) -> None:
        approved = _submit(client)
        _submit(client, start_at=utc(MONDAY, 14).isoformat())
        _submit(client, student_id=OTHER_STUDENT, start_at=utc(MONDAY, 16).isoformat())
        client.post(f"{BASE}/{approved['id']}/approve")

        response = client.get(f"{BASE}/mine", headers={"X-User-ID": STUDENT})

        assert response.status_code == 200
        body = response.json()
        assert len(body["items"]) == 2
        assert body["counts"] == {"pending": 1, "approved": 1, "rejected": 0}

    def test_mine_requires_caller_header(self, client: TestClient) -> None:
        response = client.get(f"{BASE}/mine")
        assert response.status_code == 401


class TestDecisionRoutes:
    def test_approve_returns_request_and_lesson(self, client: TestClient) -> None:
        request = _submit(client, title="Violin")

        response = client.post(f"{BASE}/{request['id']}/approve")

        assert response.status_code == 200
        body = response.json()
        assert body["request"]["status"] == "approved"
        assert body["request"]["lesson_id"] == body["lesson"]["id"]
        assert body["lesson"]["title"] == "Violin"
        lesson = client.get(f"/api/v1/lessons/{body['lesson']['id']}")
        assert lesson.json()["status"] == "scheduled"

    def test_taken_slot_is_409(
        self, client: TestClient, make_lesson: Callable[..., Lesson]
    ) -> None:
        request = _submit(client)
        make_lesson(TEACHER, OTHER_STUDENT, utc(MONDAY, 10, 30), utc(MONDAY, 11, 30))

        response = client.post(f"{BASE}/{request['id']}/approve")

        assert response.status_code == 409
        assert response.json()["code"] == "LESSON_CONFLICT"
        inbox = client.get(BASE, params={"teacher_id": TEACHER}).json()
        assert [item["id"] for item in inbox["items"]] == [request["id"]]

    def test_reject_then_approve_is_422(self, client: TestClient) -> None:
        request = _submit(client)

        rejected = client.post(f"{BASE}/{request['id']}/reject")
        response = client.post(f"{BASE}/{request['id']}/approve")

        assert rejected.status_code == 200
        assert rejected.json()["status"] == "rejected"
        assert response.status_code == 422
        assert response.json()["code"] == "ILLEGAL_TRANSITION"

    def test_unknown_request_is_404(self, client: TestClient) -> None:
        response = client.post(f"{BASE}/01J00000000000000000000000/reject")
        assert response.status_code == 404
        assert response.json()["code"] == "LESSON_REQUEST_NOT_FOUND"

    def test_malformed_id_is_422(self, client: TestClient) -> None:
        response = client.post(f"{BASE}/not-a-ulid/approve")
        assert response.status_code == 422
