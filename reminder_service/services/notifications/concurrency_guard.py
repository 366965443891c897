import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Optional, Set

import redis

from reminder_service.config.settings import settings
from reminder_service.utils.logging import get_logger

logger = get_logger()


class ConcurrencyGuard:
    """
    Named non-blocking locks held in this process only.

    Only suitable when every scheduled pass runs in one process; Celery prefork
    children each get their own copy.
    """

    def __init__(self):
        self._mutex = threading.Lock()
        self._held: Set[str] = set()

    def try_acquire(self, key: str) -> bool:
        with self._mutex:
            if key in self._held:
                return False
            self._held.add(key)
            return True

    def release(self, key: str) -> None:
        with self._mutex:
            self._held.discard(key)

    def is_held(self, key: str) -> bool:
        with self._mutex:
            return key in self._held

    @contextmanager
    def hold(self, key: str) -> Iterator[bool]:
        """Yield whether `key` was acquired; release it on exit if it was."""
        acquired = self.try_acquire(key)
        try:
            yield acquired
        finally:
            if acquired:
                self.release(key)


class RedisConcurrencyGuard(ConcurrencyGuard):
    """Same interface as ConcurrencyGuard, shared by every worker process."""

    def __init__(
        self,
        client: redis.Redis,
        timeout_seconds: int = 15 * 60,
        prefix: str = "reminder-service:lock:",
    ):
        super().__init__()
        self.client = client
        self.timeout_seconds = timeout_seconds
        self.prefix = prefix
        self._locks: Dict[str, redis.lock.Lock] = {}

    def try_acquire(self, key: str) -> bool:
        lock = self.client.lock(
            f"{self.prefix}{key}", timeout=self.timeout_seconds, blocking=False
        )
        if not lock.acquire(blocking=False):
            return False
        with self._mutex:
            self._locks[key] = lock
            self._held.add(key)
        return True

    def release(self, key: str) -> None:
        with self._mutex:
            lock = self._locks.pop(key, None)
            self._held.discard(key)
        if lock is None:
            return
        try:
            lock.release()
        except redis.exceptions.LockError as e:
            # Expired before the run finished
            logger.warning(f"Lock {key} was no longer owned on release: {e}")


def build_guard(backend: Optional[str] = None) -> ConcurrencyGuard:
    backend = (backend or settings.SCHEDULER_LOCK_BACKEND).lower()
    if backend == "redis":
        client = redis.Redis(
            host=settings.REDIS_HOST,
            port=settings.REDIS_PORT,
            db=settings.REDIS_DB,
            password=settings.REDIS_PASSWORD or None,
        )
        return RedisConcurrencyGuard(
            client, timeout_seconds=settings.SCHEDULER_LOCK_TIMEOUT_SECONDS
        )
    return ConcurrencyGuard()


# Redis-backed unless SCHEDULER_LOCK_BACKEND=local
scheduler_guard = build_guard()
