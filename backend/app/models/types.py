# backend/app/models/types.py
"""
Custom SQLAlchemy types that work across different database backends.
"""

from datetime import datetime, timezone
import json
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import DateTime, Integer, String, TypeDecorator
from sqlalchemy.dialects.postgresql import ARRAY

if TYPE_CHECKING:
    from sqlalchemy.sql.type_api import TypeDecorator as _TypeDecorator

    TypeDecoratorProtocol = _TypeDecorator[Any]
else:
    TypeDecoratorProtocol = TypeDecorator


class UTCDateTime(TypeDecoratorProtocol):
    """
    Timezone-aware UTC instant on every backend.

    PostgreSQL keeps the offset natively; SQLite drops it, so values are
    normalised to UTC on the way in and re-tagged as UTC on the way out.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect: Any) -> Any:
        if value is None:
            return value
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        value = value.astimezone(timezone.utc)
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value: Optional[datetime], dialect: Any) -> Any:
        if value is None:
            return value
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class IntegerArrayType(TypeDecoratorProtocol):
    """
    A custom type for integer arrays that works across different database backends.
    Uses PostgreSQL ARRAY when available, falls back to JSON for others.
    """

    impl = String
    cache_ok = True

    def load_dialect_impl(self, dialect: Any) -> Any:
        if dialect.name == "postgresql":
            return dialect.type_descriptor(ARRAY(Integer))
        else:
            return dialect.type_descriptor(String(255))

    def process_bind_param(self, value: Any, dialect: Any) -> Any:
        if value is None:
            return value
        if dialect.name == "postgresql":
            return list(value)
        if isinstance(value, (list, tuple)):
            return json.dumps([int(v) for v in value])
        return json.dumps([int(value)])

    def process_result_value(self, value: Any, dialect: Any) -> Any:
        if value is None:
            return value
        if dialect.name == "postgresql":
            return value
        if isinstance(value, str):
            return json.loads(value)
        return value


def now_utc() -> datetime:
    """Timezone-aware default factory with sub-second precision (FIFO ordering relies on it)."""
    return datetime.now(timezone.utc)
