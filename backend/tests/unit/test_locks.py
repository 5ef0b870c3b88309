import threading
from unittest.mock import MagicMock

import pytest
from redis.exceptions import RedisError

from app.core.exceptions import ResourceBusyException, ServiceException
from app.core.locks import (
    MemoryLockBackend,
    RedisLockBackend,
    participant_locks,
    resource_lock,
    set_lock_backend,
)


def test_resource_lock_yields_namespaced_key() -> None:
    with resource_lock("calendar", "teacher-1") as key:
        assert key.endswith(":lock:calendar:teacher-1:mutex")


def test_lock_is_reentrant_after_release() -> None:
    with resource_lock("course", "c1", wait_s=0):
        pass
    with resource_lock("course", "c1", wait_s=0):
        pass


def test_busy_lock_raises_resource_busy() -> None:
    held = threading.Event()
    release = threading.Event()

    def holder() -> None:
        with resource_lock("calendar", "teacher-1"):
            held.set()
            release.wait(5)

    thread = threading.Thread(target=holder)
    thread.start()
    try:
        assert held.wait(5)
        with pytest.raises(ResourceBusyException) as exc_info:
            with resource_lock("calendar", "teacher-1", wait_s=0.05):
                pass
        assert exc_info.value.code == "RESOURCE_BUSY"
        assert exc_info.value.status_code == 409
    finally:
        release.set()
        thread.join()


def test_participant_locks_are_ordered_and_deduplicated(lock_backend: MemoryLockBackend) -> None:
    acquired: list[str] = []
    original = lock_backend.acquire

    def recording_acquire(key: str, ttl_s: int, wait_s: float):  # type: ignore[no-untyped-def]
        acquired.append(key)
        return original(key, ttl_s, wait_s)

    lock_backend.acquire = recording_acquire  # type: ignore[method-assign]
    with participant_locks("zed", "amy", "zed", ""):
        pass
    assert [k.split(":")[-2] for k in acquired] == ["amy", "zed"]


def test_redis_backend_uses_lock_with_timeouts() -> None:
    backend = RedisLockBackend.__new__(RedisLockBackend)
    client = MagicMock()
    redis_lock = client.lock.return_value
    redis_lock.acquire.return_value = True
    backend._client = client

    handle = backend.acquire("k", 30, 2.5)

    client.lock.assert_called_once_with("k", timeout=30, blocking_timeout=2.5)
    assert handle is redis_lock


def test_backend_error_becomes_service_exception() -> None:
    failing = MagicMock()
    failing.acquire.side_effect = RedisError("connection refused")
    set_lock_backend(failing)

    with pytest.raises(ServiceException) as exc_info:
        with resource_lock("calendar", "teacher-1"):
            pass
    assert exc_info.value.code == "LOCK_UNAVAILABLE"
