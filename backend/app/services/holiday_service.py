# backend/app/services/holiday_service.py
"""
Holiday Service

Maintains the organisation-wide holiday calendar. Changes take effect on the
next availability resolution for every participant; lessons already booked
on a new holiday are left untouched.
"""

from datetime import date
import logging
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.exceptions import NotFoundException
from ..events.availability_events import HolidaysChanged
from ..events.publisher import EventPublisher
from ..models.holiday import Holiday
from ..repositories.factory import RepositoryFactory
from ..repositories.holiday_repository import HolidayRepository
from .base import BaseService

logger = logging.getLogger(__name__)


class HolidayService(BaseService):
    def __init__(
        self,
        db: Session,
        repository: Optional[HolidayRepository] = None,
        event_publisher: Optional[EventPublisher] = None,
    ):
        super().__init__(db)
        self.repository = repository or RepositoryFactory.create_holiday_repository(db)
        self.event_publisher = event_publisher or EventPublisher(
            RepositoryFactory.create_event_outbox_repository(db)
        )

    @BaseService.measure_operation("list_holidays")
    def list_holidays(self) -> List[Holiday]:
        return self.repository.list_all()

    @BaseService.measure_operation("upsert_holidays")
    def upsert_holidays(self, labels_by_date: Dict[date, str]) -> List[Holiday]:
        """Create or relabel holidays; a date appears at most once."""
        with self.transaction():
            holidays = self.repository.upsert_many(labels_by_date)
            if holidays:
                self.event_publisher.publish(
                    HolidaysChanged(action="upserted", dates=sorted(labels_by_date))
                )
        self.log_operation("upsert_holidays", count=len(holidays))
        return holidays

    @BaseService.measure_operation("delete_holiday")
    def delete_holiday(self, holiday_id: str) -> None:
        holiday = self.repository.get_by_id(holiday_id)
        if holiday is None:
            raise NotFoundException(f"Holiday {holiday_id} not found", code="HOLIDAY_NOT_FOUND")
        holiday_date = holiday.date
        with self.transaction():
            self.repository.delete(holiday_id)
            self.event_publisher.publish(HolidaysChanged(action="deleted", dates=[holiday_date]))

    @BaseService.measure_operation("clear_holidays")
    def clear_holidays(self) -> int:
        with self.transaction():
            deleted = self.repository.delete_all()
            self.event_publisher.publish(HolidaysChanged(action="cleared"))
        self.log_operation("clear_holidays", deleted=deleted)
        return deleted
