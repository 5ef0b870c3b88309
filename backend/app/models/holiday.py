# backend/app/models/holiday.py
"""Organisation-wide blackout dates."""

from sqlalchemy import Column, Date, String
import ulid

from ..database import Base
from .types import UTCDateTime, now_utc


class Holiday(Base):
    """No participant can be booked on a holiday date, whatever their own rules say."""

    __tablename__ = "holidays"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    date = Column(Date, nullable=False, unique=True, index=True)
    label = Column(String(255), nullable=False, default="")
    created_at = Column(UTCDateTime, nullable=False, default=now_utc)

    def __repr__(self) -> str:
        return f"<Holiday {self.date} {self.label or 'No label'}>"
