# backend/app/models/event_outbox.py
"""
Event outbox persistence model.

Domain events are written here inside the same transaction as the state
change that produced them; an external notifier drains PENDING rows.
"""

from __future__ import annotations

from enum import Enum

from sqlalchemy import Column, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.types import JSON
import ulid

from app.database import Base

from .types import UTCDateTime, now_utc


class EventOutboxStatus(str, Enum):
    """Lifecycle states for an outbox event."""

    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"


class EventOutbox(Base):
    """Transactional outbox entry pending delivery."""

    __tablename__ = "event_outbox"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    event_type = Column(String(100), nullable=False, index=True)
    aggregate_id = Column(String(64), nullable=False, index=True)
    idempotency_key = Column(String(255), nullable=False)
    payload = Column(
        JSONB(astext_type=Text()).with_variant(JSON(), "sqlite"),
        nullable=False,
        default=dict,
    )
    status = Column(String(20), nullable=False, default=EventOutboxStatus.PENDING.value, index=True)
    attempt_count = Column(Integer, nullable=False, default=0)
    created_at = Column(UTCDateTime, nullable=False, default=now_utc)

    __table_args__ = (UniqueConstraint("idempotency_key", name="uq_event_outbox_idempotency_key"),)
