# backend/app/repositories/recurring_series_repository.py
from sqlalchemy.orm import Session

from ..models.recurring_series import RecurringSeries
from .base_repository import BaseRepository


class RecurringSeriesRepository(BaseRepository[RecurringSeries]):
    def __init__(self, db: Session):
        super().__init__(db, RecurringSeries)
