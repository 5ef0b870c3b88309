from pathlib import Path
import threading
from typing import List

import pytest
from sqlalchemy.exc import InvalidRequestError
from sqlalchemy.orm import Session, sessionmaker

from app.core.exceptions import (
    BusinessRuleException,
    CapacityExceededException,
    DuplicateEnrollmentException,
    NotFoundException,
    ValidationException,
)
from app.database import Base, create_app_engine, init_db
from app.models.course import Course
from app.models.enrollment import Enrollment
from app.models.event_outbox import EventOutbox
from app.services.enrollment_service import EnrollmentService


@pytest.fixture
def service(db: Session) -> EnrollmentService:
    return EnrollmentService(db)


@pytest.fixture
def one_seat(service: EnrollmentService) -> Course:
    return service.create_course("Chamber ensemble", capacity=1)


def _enroll_all(service: EnrollmentService, course: Course, users: List[str]) -> List[Enrollment]:
    return [service.enroll(course.id, user) for user in users]


class TestCourses:
    def test_create_course(self, service: EnrollmentService) -> None:
        course = service.create_course("  Theory 101 ", capacity=20)
        assert course.title == "Theory 101"
        assert course.capacity == 20
        assert service.get_course(course.id).id == course.id

    def test_unlimited_course(self, service: EnrollmentService) -> None:
        course = service.create_course("Open choir")
        enrollments = _enroll_all(service, course, [f"user-{i}" for i in range(5)])
        assert {e.status for e in enrollments} == {"approved"}

    @pytest.mark.parametrize(
        "title, capacity, code",
        [
            ("", 3, "MISSING_TITLE"),
            ("x" * 201, 3, "INVALID_TITLE"),
            ("Theory", -1, "INVALID_CAPACITY"),
        ],
    )
    def test_course_validation(
        self, service: EnrollmentService, title: str, capacity: int, code: str
    ) -> None:
        with pytest.raises(ValidationException) as exc_info:
            service.create_course(title, capacity)
        assert exc_info.value.code == code

    def test_missing_course(self, service: EnrollmentService) -> None:
        with pytest.raises(NotFoundException) as exc_info:
            service.enroll("missing-course", "user-a")
        assert exc_info.value.code == "COURSE_NOT_FOUND"


class TestEnroll:
    def test_first_come_first_approved(self, service: EnrollmentService, one_seat: Course) -> None:
        a, b, c = _enroll_all(service, one_seat, ["user-a", "user-b", "user-c"])

        assert a.status == "approved"
        assert a.approved_at is not None
        assert b.status == "waitlisted"
        assert c.status == "waitlisted"
        assert service.approved_count(one_seat.id) == 1

    def test_zero_capacity_waitlists_everyone(self, service: EnrollmentService) -> None:
        course = service.create_course("Closed", capacity=0)
        assert service.enroll(course.id, "user-a").status == "waitlisted"

    def test_duplicate_active_enrollment(self, service: EnrollmentService, one_seat: Course) -> None:
        first = service.enroll(one_seat.id, "user-a")
        with pytest.raises(DuplicateEnrollmentException) as exc_info:
            service.enroll(one_seat.id, "user-a")
        assert exc_info.value.details["enrollment_id"] == first.id

    def test_reenroll_after_drop(self, service: EnrollmentService, one_seat: Course) -> None:
        first = service.enroll(one_seat.id, "user-a")
        service.drop(first.id)
        second = service.enroll(one_seat.id, "user-a")
        assert second.id != first.id
        assert second.status == "approved"

    def test_missing_user(self, service: EnrollmentService, one_seat: Course) -> None:
        with pytest.raises(ValidationException) as exc_info:
            service.enroll(one_seat.id, "")
        assert exc_info.value.code == "MISSING_ID"


class TestDropAndPromote:
    def test_drop_promotes_oldest_waitlisted(
        self, service: EnrollmentService, one_seat: Course, db: Session
    ) -> None:
        a, b, c = _enroll_all(service, one_seat, ["user-a", "user-b", "user-c"])

        dropped = service.drop(a.id)

        assert dropped.status == "dropped"
        assert service.get_enrollment(b.id).status == "approved"
        assert service.get_enrollment(c.id).status == "waitlisted"
        assert service.approved_count(one_seat.id) == 1
        promoted = [
            row.payload
            for row in db.query(EventOutbox).filter_by(event_type="event:EnrollmentStatusChanged")
            if row.payload["promoted"]
        ]
        assert [p["enrollment_id"] for p in promoted] == [b.id]

    def test_drop_waitlisted_does_not_promote(
        self, service: EnrollmentService, one_seat: Course
    ) -> None:
        a, b, c = _enroll_all(service, one_seat, ["user-a", "user-b", "user-c"])
        service.drop(b.id)
        assert service.get_enrollment(c.id).status == "waitlisted"
        assert service.approved_count(one_seat.id) == 1

    def test_drop_is_terminal(self, service: EnrollmentService, one_seat: Course) -> None:
        enrollment = service.enroll(one_seat.id, "user-a")
        service.drop(enrollment.id)
        with pytest.raises(BusinessRuleException) as exc_info:
            service.drop(enrollment.id)
        assert exc_info.value.code == "ILLEGAL_TRANSITION"


class TestSetStatus:
    def test_reject_approved_promotes_next(
        self, service: EnrollmentService, one_seat: Course
    ) -> None:
        a, b, _ = _enroll_all(service, one_seat, ["user-a", "user-b", "user-c"])

        service.set_status(a.id, "rejected")

        assert service.get_enrollment(a.id).status == "rejected"
        assert service.get_enrollment(b.id).status == "approved"

    def test_waitlisting_approved_promotes_someone_else(
        self, service: EnrollmentService, one_seat: Course
    ) -> None:
        a, b = _enroll_all(service, one_seat, ["user-a", "user-b"])

        service.set_status(a.id, "waitlisted")

        assert service.get_enrollment(b.id).status == "approved"
        assert service.get_enrollment(a.id).status == "waitlisted"

    def test_approve_when_full(self, service: EnrollmentService, one_seat: Course) -> None:
        _, b = _enroll_all(service, one_seat, ["user-a", "user-b"])
        with pytest.raises(CapacityExceededException) as exc_info:
            service.set_status(b.id, "approved")
        assert exc_info.value.code == "CAPACITY_EXCEEDED"
        assert service.get_enrollment(b.id).status == "waitlisted"

    def test_same_status_is_noop(self, service: EnrollmentService, one_seat: Course) -> None:
        a = service.enroll(one_seat.id, "user-a")
        assert service.set_status(a.id, "approved").version == a.version

    def test_dropped_is_not_settable(self, service: EnrollmentService, one_seat: Course) -> None:
        a = service.enroll(one_seat.id, "user-a")
        with pytest.raises(ValidationException) as exc_info:
            service.set_status(a.id, "dropped")
        assert exc_info.value.code == "INVALID_STATUS"

    def test_rejected_is_terminal(self, service: EnrollmentService, one_seat: Course) -> None:
        a = service.enroll(one_seat.id, "user-a")
        service.set_status(a.id, "rejected")
        with pytest.raises(BusinessRuleException):
            service.set_status(a.id, "approved")


class TestCapacityChanges:
    def test_cannot_shrink_below_approved(self, service: EnrollmentService) -> None:
        course = service.create_course("Strings", capacity=3)
        _enroll_all(service, course, ["user-a", "user-b"])
        with pytest.raises(BusinessRuleException) as exc_info:
            service.update_capacity(course.id, 1)
        assert exc_info.value.code == "CAPACITY_BELOW_APPROVED"

    def test_raising_capacity_promotes_in_order(self, service: EnrollmentService, one_seat: Course) -> None:
        _, b, c, d = _enroll_all(service, one_seat, ["user-a", "user-b", "user-c", "user-d"])

        service.update_capacity(one_seat.id, 3)

        assert service.get_enrollment(b.id).status == "approved"
        assert service.get_enrollment(c.id).status == "approved"
        assert service.get_enrollment(d.id).status == "waitlisted"

    def test_unlimited_capacity_promotes_everyone(
        self, service: EnrollmentService, one_seat: Course
    ) -> None:
        _enroll_all(service, one_seat, ["user-a", "user-b", "user-c"])
        course = service.update_capacity(one_seat.id, None)
        assert course.capacity is None
        assert service.approved_count(one_seat.id) == 3

    def test_counts_and_roster(self, service: EnrollmentService, one_seat: Course) -> None:
        other = service.create_course("Brass", capacity=None)
        a, b = _enroll_all(service, one_seat, ["user-a", "user-b"])
        service.enroll(other.id, "user-a")
        service.enroll(other.id, "user-b")
        service.drop(b.id)

        counts = service.counts([one_seat.id, other.id, one_seat.id])

        assert counts == {one_seat.id: 1, other.id: 2}
        assert [e.id for e in service.roster(one_seat.id)] == [a.id]
        assert len(service.roster(one_seat.id, include_inactive=True)) == 2


def test_course_enrollments_are_never_lazy_loaded(db: Session, one_seat: Course) -> None:
    EnrollmentService(db).enroll(one_seat.id, "user-a")
    db.expunge_all()

    course = db.get(Course, one_seat.id)

    with pytest.raises(InvalidRequestError):
        _ = course.enrollments


def test_concurrent_enrollments_fill_one_seat_once(tmp_path: Path) -> None:
    """Six users race for a single seat: one is approved, the rest wait in line."""
    file_engine = create_app_engine(f"sqlite:///{tmp_path / 'enroll_race.db'}")
    init_db(bind=file_engine)
    factory = sessionmaker(bind=file_engine, autoflush=False, expire_on_commit=False)
    with factory() as session:
        course_id = EnrollmentService(session).create_course("Masterclass", capacity=1).id

    barrier = threading.Barrier(6)
    outcomes: List[str] = []
    outcome_lock = threading.Lock()

    def enroll(user_id: str) -> None:
        session = factory()
        try:
            barrier.wait()
            result = EnrollmentService(session).enroll(course_id, user_id).status
        except Exception as exc:
            result = type(exc).__name__
        finally:
            session.close()
        with outcome_lock:
            outcomes.append(result)

    threads = [threading.Thread(target=enroll, args=(f"user-{i}",)) for i in range(6)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    try:
        assert sorted(outcomes) == ["approved"] + ["waitlisted"] * 5
        with factory() as session:
            service = EnrollmentService(session)
            assert service.approved_count(course_id) == 1
            assert len(service.roster(course_id)) == 6
    finally:
        Base.metadata.drop_all(bind=file_engine)
        file_engine.dispose()
