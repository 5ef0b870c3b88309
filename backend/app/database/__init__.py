"""
Database engine, session factory, and metadata shared across the application.
"""

from __future__ import annotations

from datetime import datetime
import logging
from typing import Any, Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeMeta, Session, declarative_base, sessionmaker

from app.core.config import settings

logger = logging.getLogger(__name__)

_DEFAULT_POOL_KWARGS: dict[str, Any] = {
    "pool_size": 10,
    "max_overflow": 10,
    "pool_timeout": 5,
    "pool_recycle": 1800,
    "pool_pre_ping": True,
}


def _build_engine_kwargs(db_url: str) -> dict[str, Any]:
    """SQLite gets a thread-shareable connection; server databases get a sized pool."""

    kwargs: dict[str, Any] = {"echo": settings.database_echo, "future": True}
    if db_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False, "timeout": 30}
    else:
        kwargs.update(_DEFAULT_POOL_KWARGS)
        kwargs["connect_args"] = {"connect_timeout": 5, "application_name": "scheduling_api"}
    return kwargs


def create_app_engine(db_url: str) -> Engine:
    new_engine = create_engine(db_url, **_build_engine_kwargs(db_url))
    if new_engine.dialect.name == "sqlite":
        event.listen(new_engine, "connect", _sqlite_pragmas)
    return new_engine


def _sqlite_pragmas(dbapi_connection: Any, connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


engine: Engine = create_app_engine(settings.database_url)


# Log pool events for monitoring
@event.listens_for(engine, "connect")
def receive_connect(dbapi_connection: Any, connection_record: Any) -> None:
    connection_record.info["connect_time"] = datetime.now()
    logger.debug("Database connection established")


SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)

Base: DeclarativeMeta = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """Get database session with proper cleanup."""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db(bind: Engine | None = None) -> None:
    """Create all tables; migrations are out of scope for this service."""
    import app.models  # noqa: F401  (register mappers on Base.metadata)

    Base.metadata.create_all(bind=bind or engine)


__all__ = [
    "Base",
    "SessionLocal",
    "create_app_engine",
    "engine",
    "get_db",
    "init_db",
]
