"""Lesson domain events."""
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass
class LessonCreated:
    """Fired after a lesson is committed (ad-hoc booking or series occurrence)."""

    lesson_id: str
    teacher_id: str
    student_id: str
    start_at: datetime
    end_at: datetime
    status: str
    recurring_series_id: Optional[str] = None

    @property
    def aggregate_id(self) -> str:
        return self.lesson_id

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class LessonChanged:
    """Fired after a lesson is rescheduled, retitled or its status toggled."""

    lesson_id: str
    teacher_id: str
    student_id: str
    start_at: datetime
    end_at: datetime
    status: str
    version: int
    changed_fields: List[str] = field(default_factory=list)

    @property
    def aggregate_id(self) -> str:
        return self.lesson_id

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class LessonCancelled:
    """Fired after a lesson stops blocking calendar time (soft cancel or purge)."""

    lesson_id: str
    teacher_id: str
    student_id: str
    start_at: datetime
    purged: bool = False

    @property
    def aggregate_id(self) -> str:
        return self.lesson_id

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class LessonRequestSubmitted:
    """Fired when a student asks a teacher for a slot."""

    request_id: str
    teacher_id: str
    student_id: str
    start_at: datetime
    duration_minutes: int

    @property
    def aggregate_id(self) -> str:
        return self.request_id

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class LessonRequestDecided:
    """Fired when a teacher approves (lesson_id set) or rejects a pending request."""

    request_id: str
    teacher_id: str
    student_id: str
    status: str
    lesson_id: Optional[str] = None

    @property
    def aggregate_id(self) -> str:
        return self.request_id

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
