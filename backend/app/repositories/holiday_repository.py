# backend/app/repositories/holiday_repository.py
from datetime import date
import logging
from typing import Dict, List, Set, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.holiday import Holiday
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class HolidayRepository(BaseRepository[Holiday]):
    """Global holiday calendar."""

    def __init__(self, db: Session):
        super().__init__(db, Holiday)

    def list_all(self) -> List[Holiday]:
        return cast(List[Holiday], self._execute_query(self._build_query().order_by(Holiday.date)))

    def get_dates_between(self, start_date: date, end_date: date) -> Set[date]:
        """Holiday dates within start_date..end_date inclusive."""
        try:
            rows = (
                self.db.query(Holiday.date)
                .filter(Holiday.date >= start_date, Holiday.date <= end_date)
                .all()
            )
            return {row[0] for row in rows}
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting holiday dates: {str(e)}")
            raise RepositoryException(f"Failed to get holidays: {str(e)}")

    def upsert_many(self, labels_by_date: Dict[date, str]) -> List[Holiday]:
        """Insert new dates and relabel existing ones; one row per date."""
        if not labels_by_date:
            return []
        try:
            existing = {
                h.date: h
                for h in self.db.query(Holiday).filter(Holiday.date.in_(list(labels_by_date)))
            }
            result: List[Holiday] = []
            for holiday_date in sorted(labels_by_date):
                label = labels_by_date[holiday_date]
                holiday = existing.get(holiday_date)
                if holiday is None:
                    holiday = Holiday(date=holiday_date, label=label)
                    self.db.add(holiday)
                else:
                    holiday.label = label
                result.append(holiday)
            self.db.flush()
            return result
        except SQLAlchemyError as e:
            self.logger.error(f"Error upserting holidays: {str(e)}")
            raise RepositoryException(f"Failed to save holidays: {str(e)}")

    def delete_all(self) -> int:
        try:
            deleted = self.db.query(Holiday).delete(synchronize_session=False)
            self.db.flush()
            return int(deleted)
        except SQLAlchemyError as e:
            self.logger.error(f"Error clearing holidays: {str(e)}")
            raise RepositoryException(f"Failed to clear holidays: {str(e)}")
