"""Event publisher - writes domain events to the transactional outbox."""
from datetime import date, datetime
import logging
from typing import Any, Dict, Optional, Protocol

import ulid

from app.repositories.event_outbox_repository import EventOutboxRepository

logger = logging.getLogger(__name__)


class Event(Protocol):
    """Protocol for event types."""

    @property
    def aggregate_id(self) -> str:
        ...

    def to_dict(self) -> Dict[str, Any]:
        ...


def _json_ready(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, list):
        return [_json_ready(v) for v in value]
    if isinstance(value, dict):
        return {k: _json_ready(v) for k, v in value.items()}
    return value


class EventPublisher:
    """
    Publishes domain events to the outbox inside the caller's transaction.

    The row commits or rolls back together with the state change, so the
    external notifier never sees an event for work that did not happen.
    """

    def __init__(self, outbox_repository: EventOutboxRepository):
        self.outbox_repo = outbox_repository

    def publish(self, event: Event, idempotency_key: Optional[str] = None) -> None:
        event_type = type(event).__name__
        payload = _json_ready(event.to_dict())
        key = idempotency_key or f"{event_type}:{event.aggregate_id}:{ulid.ULID()}"
        self.outbox_repo.enqueue(
            event_type=f"event:{event_type}",
            aggregate_id=event.aggregate_id,
            payload=payload,
            idempotency_key=key,
        )
        logger.debug("event_published", extra={"event_type": event_type, "key": key})
