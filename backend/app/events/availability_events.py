"""Availability domain events."""
from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Any, Dict, List


@dataclass
class AvailabilityUpdated:
    """Fired after a user's availability was replaced."""

    user_id: str
    weekly_rule_count: int
    exception_dates: List[date] = field(default_factory=list)

    @property
    def aggregate_id(self) -> str:
        return self.user_id

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class HolidaysChanged:
    """Fired after the global holiday calendar changed."""

    action: str  # 'upserted' | 'deleted' | 'cleared'
    dates: List[date] = field(default_factory=list)

    @property
    def aggregate_id(self) -> str:
        return "holidays"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
