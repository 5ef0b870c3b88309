# backend/tests/conftest.py
"""
Pytest configuration for the scheduling engine.

Every test gets its own in-memory SQLite database (StaticPool, so all
sessions share one connection) and a fresh in-process lock backend.
"""

import os

# Set test environment BEFORE any app imports
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOCK_BACKEND"] = "memory"
os.environ.setdefault("LOCK_WAIT_SECONDS", "5")

from datetime import date, datetime, time
from typing import Callable, Generator, Iterable, Optional

from fastapi.testclient import TestClient
import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.dependencies.database import get_db
from app.core.locks import MemoryLockBackend, set_lock_backend
from app.database import Base, init_db
from app.main import app
from app.models.lesson import Lesson
from app.services.availability_service import (
    AvailabilityService,
    ExceptionInput,
    WeeklyRuleInput,
)


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory: sessionmaker) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture(autouse=True)
def lock_backend() -> Generator[MemoryLockBackend, None, None]:
    backend = MemoryLockBackend()
    set_lock_backend(backend)
    yield backend
    set_lock_backend(None)


@pytest.fixture
def client(session_factory: sessionmaker) -> Generator[TestClient, None, None]:
    def override_get_db() -> Generator[Session, None, None]:
        session = session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def set_availability(db: Session) -> Callable[..., None]:
    """Replace a user's availability through the service."""

    def _set(
        user_id: str,
        rules: Iterable[tuple[int, time, time]] = (),
        exceptions: Iterable[tuple[date, list[tuple[datetime, datetime]]]] = (),
    ) -> None:
        AvailabilityService(db).replace_availability(
            user_id,
            [WeeklyRuleInput(*rule) for rule in rules],
            [ExceptionInput(d, slots) for d, slots in exceptions],
        )

    return _set


@pytest.fixture
def make_lesson(db: Session) -> Callable[..., Lesson]:
    """Insert a lesson row directly, bypassing conflict checks."""

    def _make(
        teacher_id: str,
        student_id: str,
        start_at: datetime,
        end_at: datetime,
        status: str = "scheduled",
        title: str = "Existing lesson",
        recurring_series_id: Optional[str] = None,
    ) -> Lesson:
        lesson = Lesson(
            title=title,
            teacher_id=teacher_id,
            student_id=student_id,
            start_at=start_at,
            end_at=end_at,
            duration_minutes=int((end_at - start_at).total_seconds() // 60),
            status=status,
            recurring_series_id=recurring_series_id,
        )
        db.add(lesson)
        db.commit()
        return lesson

    return _make
