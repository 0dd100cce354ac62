"""Per-property mutual exclusion for booking and rule mutations."""

from __future__ import annotations

from contextlib import contextmanager
from threading import Lock
from typing import Iterator, Optional

from availability_engine.domain.errors import BusyError
from availability_engine.utils.logger import get_logger


logger = get_logger(__name__)


class PropertyLockRegistry:
    """Hands out one lock per property id; different properties never contend."""

    def __init__(self, timeout_seconds: float = 5.0) -> None:
        self._timeout_seconds = timeout_seconds
        self._locks: dict[str, Lock] = {}
        self._registry_lock = Lock()

    def _lock_for(self, property_id: str) -> Lock:
        with self._registry_lock:
            lock = self._locks.get(property_id)
            if lock is None:
                lock = Lock()
                self._locks[property_id] = lock
            return lock

    @contextmanager
    def hold(self, property_id: str, timeout: Optional[float] = None) -> Iterator[None]:
        wait = self._timeout_seconds if timeout is None else timeout
        lock = self._lock_for(property_id)
        if not lock.acquire(timeout=wait):
            logger.warning(
                "Property lock timeout | property_id=%s | waited=%.2fs",
                property_id,
                wait,
            )
            raise BusyError(
                f"Property {property_id} is busy; lock not acquired within {wait:.2f}s"
            )
        try:
            yield
        finally:
            lock.release()

    def is_locked(self, property_id: str) -> bool:
        return self._lock_for(property_id).locked()
