import logging
import threading
import time
import uuid
import weakref
from contextlib import contextmanager
from typing import Optional

from redis import Redis
from redis.exceptions import RedisError

from .config import get_settings

logger = logging.getLogger("catalog.lock")

_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""

# Process-local fallback locks are shared by name so two lock objects for the
# same product exclude each other. An entry lives only while some DistributedLock
# still references it.
_local_locks: "weakref.WeakValueDictionary[str, threading.Lock]" = weakref.WeakValueDictionary()
_local_locks_guard = threading.Lock()

_redis_client: Optional[Redis] = None
_redis_checked = False


def _local_lock_for(name: str) -> threading.Lock:
    with _local_locks_guard:
        lock = _local_locks.get(name)
        if lock is None:
            lock = _local_locks[name] = threading.Lock()
        return lock


def get_lock_redis() -> Optional[Redis]:
    """Return a Redis client for locking, or None when Redis is not configured/reachable."""

    global _redis_client, _redis_checked
    if _redis_checked:
        return _redis_client
    settings = get_settings()
    if settings.REDIS_URL:
        try:
            client = Redis.from_url(settings.REDIS_URL)
            client.ping()
            _redis_client = client
        except (RedisError, OSError) as exc:  # pragma: no cover - best effort
            logger.warning("Redis unavailable for locking (%s). Using process-local locks.", exc)
    _redis_checked = True
    return _redis_client


class DistributedLock:
    """
    Lightweight distributed mutex backed by Redis (NX + EX).
    Falls back to a process-local lock when Redis is unavailable.
    """

    def __init__(
        self,
        name: str,
        *,
        redis_client: Optional[Redis] = None,
        ttl_seconds: int = 30,
        wait_timeout: float = 5,
        retry_interval: float = 0.05,
        log: logging.Logger | None = None,
    ) -> None:
        self.name = name
        self.redis_client = redis_client
        self.ttl_seconds = ttl_seconds
        self.wait_timeout = wait_timeout
        self.retry_interval = retry_interval
        self._owner_token: str | None = None
        self._local_lock = _local_lock_for(name)
        self._logger = log or logger

    def acquire(self) -> bool:
        token = uuid.uuid4().hex
        if self.redis_client:
            deadline = time.time() + self.wait_timeout
            contention_logged = False
            while True:
                if self.redis_client.set(self.name, token, nx=True, ex=self.ttl_seconds):
                    self._owner_token = token
                    self._logger.debug("lock_acquired %s", self.name)
                    return True
                if time.time() >= deadline:
                    break
                if not contention_logged:
                    self._logger.info("lock_contention %s", self.name)
                    contention_logged = True
                time.sleep(self.retry_interval)
            self._logger.warning("lock_acquire_timeout %s", self.name)
            return False

        acquired = self._local_lock.acquire(timeout=self.wait_timeout)
        if acquired:
            self._owner_token = token
            self._logger.debug("lock_acquired_local %s", self.name)
        else:
            self._logger.warning("lock_acquire_timeout_local %s", self.name)
        return acquired

    def release(self) -> None:
        if self._owner_token is None:
            return
        if self.redis_client:
            try:
                self.redis_client.eval(_RELEASE_SCRIPT, 1, self.name, self._owner_token)
                self._logger.debug("lock_released %s", self.name)
            except RedisError:
                self._logger.exception("lock_release_failed %s", self.name)
        else:
            self._local_lock.release()
            self._logger.debug("lock_released_local %s", self.name)
        self._owner_token = None

    @contextmanager
    def hold(self):
        acquired = self.acquire()
        try:
            yield acquired
        finally:
            if acquired:
                self.release()


def make_lock(
    name: str,
    *,
    redis_client: Optional[Redis],
    ttl_seconds: int = 30,
    wait_timeout: float = 5,
    log: logging.Logger | None = None,
) -> DistributedLock:
    return DistributedLock(
        name,
        redis_client=redis_client,
        ttl_seconds=ttl_seconds,
        wait_timeout=wait_timeout,
        log=log,
    )
