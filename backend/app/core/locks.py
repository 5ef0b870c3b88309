from __future__ import annotations

from contextlib import ExitStack, contextmanager
import logging
import threading
import time
from typing import Any, Dict, Iterator, Optional, Protocol

from redis import Redis
from redis.exceptions import LockError, RedisError

from app.core.config import settings
from app.core.exceptions import ResourceBusyException, ServiceException
from app.monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)


def _lock_key(kind: str, resource_id: str) -> str:
    return f"{settings.lock_namespace}:lock:{kind}:{resource_id}:mutex"


class LockBackend(Protocol):
    def acquire(self, key: str, ttl_s: int, wait_s: float) -> Optional[Any]:
        ...

    def release(self, key: str, handle: Any) -> None:
        ...


class MemoryLockBackend:
    """In-process lock registry; only serializes callers inside one worker process."""

    def __init__(self) -> None:
        self._locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def _get(self, key: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    def acquire(self, key: str, ttl_s: int, wait_s: float) -> Optional[threading.Lock]:
        lock = self._get(key)
        acquired = lock.acquire(timeout=wait_s) if wait_s > 0 else lock.acquire(blocking=False)
        return lock if acquired else None

    def release(self, key: str, handle: threading.Lock) -> None:
        handle.release()


class RedisLockBackend:
    """Distributed locks on top of redis-py's Lock (SET NX PX + token check on release)."""

    def __init__(self, url: str) -> None:
        self._client = Redis.from_url(url, encoding="utf-8", decode_responses=True)

    def acquire(self, key: str, ttl_s: int, wait_s: float) -> Optional[Any]:
        lock = self._client.lock(key, timeout=ttl_s, blocking_timeout=wait_s)
        if lock.acquire(blocking=True):
            return lock
        return None

    def release(self, key: str, handle: Any) -> None:
        try:
            handle.release()
        except LockError as exc:
            # TTL expired while we held it; another worker may already own the key
            prometheus_metrics.record_resource_lock("release", "expired")
            logger.warning("resource_lock_release_expired", extra={"key": key, "error": str(exc)})


_BACKEND: Optional[LockBackend] = None
_BACKEND_GUARD = threading.Lock()


def get_lock_backend() -> LockBackend:
    global _BACKEND
    if _BACKEND is not None:
        return _BACKEND
    with _BACKEND_GUARD:
        if _BACKEND is None:
            if settings.lock_backend == "redis" and settings.redis_url:
                _BACKEND = RedisLockBackend(settings.redis_url)
            else:
                _BACKEND = MemoryLockBackend()
            logger.info("resource_lock_backend=%s", type(_BACKEND).__name__)
        return _BACKEND


def set_lock_backend(backend: Optional[LockBackend]) -> None:
    """Swap the process-wide lock backend (None resets to the configured default)."""
    global _BACKEND
    with _BACKEND_GUARD:
        _BACKEND = backend


@contextmanager
def resource_lock(
    kind: str,
    resource_id: str,
    *,
    ttl_s: Optional[int] = None,
    wait_s: Optional[float] = None,
) -> Iterator[str]:
    """
    Hold an exclusive lock on one resource (a participant calendar, a course).

    Raises ResourceBusyException when the lock is not obtained within wait_s.
    Backend failures raise ServiceException; the guarded work never runs unlocked.
    """
    key = _lock_key(kind, resource_id)
    ttl = ttl_s if ttl_s is not None else settings.lock_ttl_seconds
    wait = wait_s if wait_s is not None else settings.lock_wait_seconds
    backend = get_lock_backend()

    started = time.monotonic()
    try:
        handle = backend.acquire(key, ttl, wait)
    except RedisError as exc:
        prometheus_metrics.record_resource_lock("acquire", "error")
        logger.error(
            "resource_lock_acquire_failed",
            extra={"key": key, "error": str(exc), "error_type": type(exc).__name__},
        )
        raise ServiceException("Lock service unavailable", code="LOCK_UNAVAILABLE") from exc

    if handle is None:
        prometheus_metrics.record_resource_lock("acquire", "busy")
        logger.warning("resource_lock_busy", extra={"key": key, "waited_s": wait})
        raise ResourceBusyException(f"{kind}:{resource_id}", wait)

    prometheus_metrics.record_resource_lock("acquire", "success")
    logger.debug(
        "resource_lock_acquired",
        extra={"key": key, "wait_ms": round((time.monotonic() - started) * 1000, 2)},
    )
    try:
        yield key
    finally:
        try:
            backend.release(key, handle)
            prometheus_metrics.record_resource_lock("release", "success")
        except RedisError as exc:
            prometheus_metrics.record_resource_lock("release", "error")
            logger.warning(
                "resource_lock_release_failed",
                extra={"key": key, "error": str(exc), "error_type": type(exc).__name__},
            )


@contextmanager
def participant_locks(*user_ids: str) -> Iterator[None]:
    """Lock several participant calendars in a stable order so two bookers never deadlock."""
    with ExitStack() as stack:
        for user_id in sorted({uid for uid in user_ids if uid}):
            stack.enter_context(resource_lock("calendar", user_id))
        yield


def course_lock(course_id: str) -> Any:
    return resource_lock("course", course_id)
