# backend/app/repositories/event_outbox_repository.py
"""
Repository for the domain event outbox.

Rows are inserted inside the caller's transaction; a duplicate idempotency
key is ignored and the existing row is returned.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, cast

from sqlalchemy import insert, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.orm import Session
import ulid

from app.models.event_outbox import EventOutbox, EventOutboxStatus

logger = logging.getLogger(__name__)


class EventOutboxRepository:
    """Data access helpers for event outbox rows."""

    def __init__(self, db: Session):
        self.db = db
        bind = db.get_bind()
        self._dialect = (bind.dialect.name if bind is not None else "postgresql").lower()

    def enqueue(
        self,
        event_type: str,
        aggregate_id: str,
        payload: Optional[dict[str, Any]] = None,
        idempotency_key: Optional[str] = None,
    ) -> EventOutbox:
        """
        Insert a new outbox row if one does not already exist for the idempotency key.

        Returns the persisted row (existing or newly created).
        """
        payload = payload or {}
        event_id = str(ulid.ULID())
        key = idempotency_key or f"{event_type}:{aggregate_id}:{event_id}"
        values = dict(
            id=event_id,
            event_type=event_type,
            aggregate_id=aggregate_id,
            payload=payload,
            idempotency_key=key,
            status=EventOutboxStatus.PENDING.value,
            attempt_count=0,
        )

        inserted = False
        if self._dialect == "postgresql":
            pg_stmt = (
                pg_insert(EventOutbox)
                .values(**values)
                .on_conflict_do_nothing(index_elements=["idempotency_key"])
                .returning(EventOutbox.id)
            )
            inserted = self.db.execute(pg_stmt).scalar_one_or_none() is not None
        else:
            stmt = insert(EventOutbox).values(**values)
            if self._dialect == "sqlite":
                stmt = stmt.prefix_with("OR IGNORE")
            inserted = bool(getattr(self.db.execute(stmt), "rowcount", 0))

        if inserted:
            self.db.flush()
            row = cast(Optional[EventOutbox], self.db.get(EventOutbox, event_id))
            if row is None:
                raise RuntimeError("Inserted outbox row could not be reloaded")
            return row

        logger.debug("outbox_duplicate_ignored", extra={"idempotency_key": key})
        existing = cast(
            Optional[EventOutbox],
            self.db.execute(
                select(EventOutbox).where(EventOutbox.idempotency_key == key)
            ).scalar_one_or_none(),
        )
        if existing is None:
            raise RuntimeError("Outbox row not found after enqueue conflict")
        return existing

    def fetch_pending(self, limit: int = 200, event_type: Optional[str] = None) -> list[EventOutbox]:
        """Pending events in insertion order."""
        stmt = select(EventOutbox).where(EventOutbox.status == EventOutboxStatus.PENDING.value)
        if event_type:
            stmt = stmt.where(EventOutbox.event_type == event_type)
        stmt = stmt.order_by(EventOutbox.created_at.asc(), EventOutbox.id.asc()).limit(limit)
        if self._dialect == "postgresql":
            stmt = stmt.with_for_update(skip_locked=True)
        return cast(list[EventOutbox], self.db.execute(stmt).scalars().all())
