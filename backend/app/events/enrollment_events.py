"""Enrollment domain events."""
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional


@dataclass
class EnrollmentStatusChanged:
    """
    Fired for every enrollment status write, including creation
    (previous_status is None) and implicit waitlist promotion.
    """

    enrollment_id: str
    course_id: str
    user_id: str
    status: str
    previous_status: Optional[str] = None
    promoted: bool = False

    @property
    def aggregate_id(self) -> str:
        return self.enrollment_id

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
