# backend/app/repositories/availability_repository.py
"""
AvailabilityRepository - weekly rules and date exceptions

A user's availability is always written as a whole: replace_for_user drops
the previous rules and exceptions and inserts the new set in the caller's
transaction, so readers never observe a half-applied pattern.
"""

from datetime import date, datetime, time
import logging
from typing import Dict, List, Sequence, Tuple, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.availability import AvailabilityException, AvailabilityExceptionSlot, WeeklyRule

logger = logging.getLogger(__name__)


class AvailabilityRepository:
    """Repository for a user's weekly rules and availability exceptions."""

    def __init__(self, db: Session):
        self.db = db
        self.logger = logging.getLogger(__name__)

    def get_weekly_rules(self, user_id: str) -> List[WeeklyRule]:
        try:
            return cast(
                List[WeeklyRule],
                self.db.query(WeeklyRule)
                .filter(WeeklyRule.user_id == user_id)
                .order_by(WeeklyRule.day_of_week, WeeklyRule.start_time)
                .all(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting weekly rules: {str(e)}")
            raise RepositoryException(f"Failed to get weekly rules: {str(e)}")

    def get_exceptions(
        self, user_id: str, start_date: date | None = None, end_date: date | None = None
    ) -> List[AvailabilityException]:
        """
        Exceptions of a user, optionally limited to start_date..end_date inclusive.

        Slots are eager loaded and ordered by start.
        """
        try:
            query = self.db.query(AvailabilityException).filter(
                AvailabilityException.user_id == user_id
            )
            if start_date is not None:
                query = query.filter(AvailabilityException.date >= start_date)
            if end_date is not None:
                query = query.filter(AvailabilityException.date <= end_date)
            return cast(
                List[AvailabilityException], query.order_by(AvailabilityException.date).all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting availability exceptions: {str(e)}")
            raise RepositoryException(f"Failed to get availability exceptions: {str(e)}")

    def replace_for_user(
        self,
        user_id: str,
        rules: Sequence[Tuple[int, time, time]],
        exceptions: Dict[date, Sequence[Tuple[datetime, datetime]]],
    ) -> Tuple[List[WeeklyRule], List[AvailabilityException]]:
        """
        Swap the user's availability for the given rules and exceptions.

        Args:
            user_id: Owner of the availability
            rules: (day_of_week, start_time, end_time) triples
            exceptions: date -> list of (start_at, end_at) slots; an empty list blocks the date

        Returns:
            The newly persisted rules and exceptions
        """
        try:
            self.db.query(WeeklyRule).filter(WeeklyRule.user_id == user_id).delete(
                synchronize_session=False
            )
            for existing in self.db.query(AvailabilityException).filter(
                AvailabilityException.user_id == user_id
            ):
                self.db.delete(existing)
            self.db.flush()

            new_rules = [
                WeeklyRule(user_id=user_id, day_of_week=day, start_time=start, end_time=end)
                for day, start, end in rules
            ]
            self.db.add_all(new_rules)

            new_exceptions: List[AvailabilityException] = []
            for exception_date in sorted(exceptions):
                exception = AvailabilityException(user_id=user_id, date=exception_date)
                exception.slots = [
                    AvailabilityExceptionSlot(start_at=start, end_at=end)
                    for start, end in sorted(exceptions[exception_date])
                ]
                new_exceptions.append(exception)
            self.db.add_all(new_exceptions)
            self.db.flush()
            return new_rules, new_exceptions
        except SQLAlchemyError as e:
            self.logger.error(f"Error replacing availability for {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to replace availability: {str(e)}")

