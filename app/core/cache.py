import logging
import pickle
import threading
import time
from dataclasses import dataclass
from functools import wraps
from typing import Any, Callable, Optional, Protocol

from redis import Redis
from redis.exceptions import RedisError

from .config import get_settings

logger = logging.getLogger(__name__)


class CacheBackend(Protocol):
    def get(self, key: str) -> Any | None:
        ...

    def set(self, key: str, value: Any, ttl: int) -> None:
        ...

    def clear_namespace(self, namespace: str) -> None:
        ...


class RedisCacheBackend:
    def __init__(self, client: Redis):
        self.client = client

    def get(self, key: str) -> Any | None:
        return self.client.get(key)

    def set(self, key: str, value: Any, ttl: int) -> None:
        self.client.setex(key, ttl, value)

    def clear_namespace(self, namespace: str) -> None:
        keys = list(self.client.scan_iter(f"{namespace}:*"))
        if keys:
            self.client.delete(*keys)


@dataclass
class _InMemoryEntry:
    value: Any
    expires_at: float


class InMemoryCacheBackend:
    def __init__(self) -> None:
        self._data: dict[str, _InMemoryEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._data.get(key)
            if not entry:
                return None
            if entry.expires_at < time.time():
                self._data.pop(key, None)
                return None
            return entry.value

    def set(self, key: str, value: Any, ttl: int) -> None:
        with self._lock:
            self._data[key] = _InMemoryEntry(value=value, expires_at=time.time() + ttl)

    def clear_namespace(self, namespace: str) -> None:
        prefix = f"{namespace}:"
        with self._lock:
            for key in [key for key in self._data if key.startswith(prefix)]:
                self._data.pop(key, None)


class CacheManager:
    def __init__(self) -> None:
        self.backend: CacheBackend | None = None

    def init_backend(self) -> None:
        if self.backend is not None:
            return

        settings = get_settings()
        if settings.REDIS_URL:
            try:
                client = Redis.from_url(settings.REDIS_URL)
                client.ping()
                self.backend = RedisCacheBackend(client)
                logger.info("Using Redis cache backend.")
                return
            except (RedisError, OSError) as exc:  # pragma: no cover - best effort
                logger.warning("Redis unavailable (%s). Falling back to in-memory cache.", exc)
        self.backend = InMemoryCacheBackend()
        logger.info("Using in-memory cache backend.")

    def get_backend(self) -> CacheBackend:
        if self.backend is None:
            self.init_backend()
        assert self.backend is not None
        return self.backend

    def invalidate_namespace(self, namespace: str) -> None:
        try:
            self.get_backend().clear_namespace(namespace)
        except RedisError:
            logger.exception("Failed to invalidate cache namespace %s", namespace)


cache_manager = CacheManager()


def cache(
    namespace: str,
    key_builder: Optional[Callable[..., str]] = None,
    ttl: Optional[int] = None,
):
    """
    Decorator caching the (picklable) return value of a sync function.

    Parameters:
        namespace: logical namespace used for invalidation
        key_builder: receives the same args/kwargs and returns a cache key suffix
        ttl: cache TTL in seconds, defaults to ``CATALOG_CACHE_TTL``
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(func)
        def wrapper(*args, **kwargs):
            identifier = key_builder(*args, **kwargs) if key_builder else repr((args, kwargs))
            key = f"{namespace}:{identifier}"
            backend = cache_manager.get_backend()
            cached_value = backend.get(key)
            if cached_value is not None:
                return pickle.loads(cached_value)

            result = func(*args, **kwargs)
            backend.set(key, pickle.dumps(result), ttl or get_settings().CATALOG_CACHE_TTL)
            return result

        return wrapper

    return decorator


def invalidate_cache(namespace: str) -> None:
    cache_manager.invalidate_namespace(namespace)
