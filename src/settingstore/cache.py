"""Cache layer for settings snapshots.

Two entries are cached per registry: ``<prefix>.all`` (every row, keyed by
setting key) and ``<prefix>.rules`` (key -> effective validation rule). The
entries live in a :class:`CacheBackend` as JSON text so they can be shared
through Redis; the built "all" snapshot is additionally mirrored in process
memory. Any mutation must call :meth:`SettingsCache.flush` before returning.

Backends:
    InMemoryCacheBackend: single-process default.
    RedisCacheBackend: shared between processes, selected by
        ``SETTINGS_REDIS_URL``.
"""

from __future__ import annotations

import json
import threading
import time
from typing import Any, Callable, Dict, Optional, Protocol, Tuple, TypeVar, runtime_checkable

import redis

from .exceptions import CacheConnectionError, CacheKeyError
from .logging_config import get_logger

logger = get_logger("cache")

T = TypeVar("T")

ALL = "all"
RULES = "rules"


@runtime_checkable
class CacheBackend(Protocol):
    """Key/value cache with optional TTL. Values are strings."""

    def get(self, key: str) -> Optional[str]:
        """Return the value, or None when missing or expired."""
        ...

    def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> bool:
        """Store a value; ``ttl_seconds=None`` keeps it until deleted."""
        ...

    def delete(self, key: str) -> bool:
        """Delete a key. Returns True if it existed."""
        ...


class InMemoryCacheBackend:
    """In-memory cache with TTL support.

    Thread-safe (``threading.RLock``). Expired entries are dropped lazily on
    access and periodically swept.
    """

    def __init__(self, cleanup_interval_seconds: int = 60):
        # key -> (value, expiry timestamp or None)
        self._data: Dict[str, Tuple[str, Optional[float]]] = {}
        self._lock = threading.RLock()
        self._cleanup_interval = cleanup_interval_seconds
        self._last_cleanup = time.time()

    def _is_expired(self, expiry: Optional[float]) -> bool:
        if expiry is None:
            return False
        return time.time() > expiry

    def _maybe_cleanup(self) -> None:
        """Sweep expired entries. Call with the lock held."""
        if self._cleanup_interval <= 0:
            return
        current_time = time.time()
        if current_time - self._last_cleanup < self._cleanup_interval:
            return
        self._last_cleanup = current_time
        expired_keys = [key for key, (_, expiry) in self._data.items() if self._is_expired(expiry)]
        for key in expired_keys:
            del self._data[key]

    def get(self, key: str) -> Optional[str]:
        if not key:
            raise CacheKeyError("Cache key cannot be empty")
        with self._lock:
            self._maybe_cleanup()
            if key not in self._data:
                return None
            value, expiry = self._data[key]
            if self._is_expired(expiry):
                del self._data[key]
                return None
            return value

    def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> bool:
        if not key:
            raise CacheKeyError("Cache key cannot be empty")
        with self._lock:
            self._maybe_cleanup()
            if ttl_seconds is not None and ttl_seconds <= 0:
                self._data.pop(key, None)
                return True
            expiry = time.time() + ttl_seconds if ttl_seconds is not None else None
            self._data[key] = (value, expiry)
            return True

    def delete(self, key: str) -> bool:
        if not key:
            raise CacheKeyError("Cache key cannot be empty")
        with self._lock:
            return self._data.pop(key, None) is not None


class RedisCacheBackend:
    """Cache backend on a synchronous ``redis.Redis`` client."""

    def __init__(self, client: "redis.Redis"):
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisCacheBackend":
        return cls(redis.Redis.from_url(url, decode_responses=True))

    def get(self, key: str) -> Optional[str]:
        if not key:
            raise CacheKeyError("Cache key cannot be empty")
        try:
            value = self._client.get(key)
        except redis.ConnectionError as exc:
            raise CacheConnectionError(f"Redis unavailable: {exc}", details={"key": key}) from exc
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> bool:
        if not key:
            raise CacheKeyError("Cache key cannot be empty")
        try:
            if ttl_seconds is not None and ttl_seconds <= 0:
                self._client.delete(key)
                return True
            return bool(self._client.set(key, value, ex=ttl_seconds))
        except redis.ConnectionError as exc:
            raise CacheConnectionError(f"Redis unavailable: {exc}", details={"key": key}) from exc

    def delete(self, key: str) -> bool:
        if not key:
            raise CacheKeyError("Cache key cannot be empty")
        try:
            return bool(self._client.delete(key))
        except redis.ConnectionError as exc:
            raise CacheConnectionError(f"Redis unavailable: {exc}", details={"key": key}) from exc


def create_cache_backend(redis_url: Optional[str] = None) -> CacheBackend:
    """Return a Redis backend when a URL is configured, otherwise in-memory."""

    if redis_url:
        logger.info("Using Redis settings cache", extra={"redis_url": redis_url})
        return RedisCacheBackend.from_url(redis_url)
    return InMemoryCacheBackend()


class SettingsCache:
    """Cache handle owned by one registry.

    When ``enabled`` is False every lookup calls its loader directly.
    ``ttl_seconds=None`` keeps entries until :meth:`flush`.
    """

    def __init__(
        self,
        backend: Optional[CacheBackend] = None,
        *,
        enabled: bool = True,
        prefix: str = "settings",
        ttl_seconds: Optional[int] = None,
    ):
        self.backend: CacheBackend = backend if backend is not None else InMemoryCacheBackend()
        self.enabled = enabled
        self.prefix = prefix
        self.ttl_seconds = ttl_seconds
        self._lock = threading.RLock()
        self._local: Any = None
        self._local_expiry: Optional[float] = None
        # Bumped on every flush so a load that raced a flush is not mirrored.
        self._generation = 0

    def key(self, name: str) -> str:
        return f"{self.prefix}.{name}"

    def remember(self, name: str, loader: Callable[[], Any]) -> Any:
        """Return the JSON payload stored under ``name``, loading it on a miss."""

        if not self.enabled:
            return loader()
        cache_key = self.key(name)
        cached = self.backend.get(cache_key)
        if cached is not None:
            logger.debug("Cache hit: %s", cache_key)
            return json.loads(cached)
        logger.debug("Cache miss: %s", cache_key)
        with self._lock:
            generation = self._generation
        payload = loader()
        with self._lock:
            if generation == self._generation:
                self.backend.set(
                    cache_key, json.dumps(payload, ensure_ascii=False), ttl_seconds=self.ttl_seconds
                )
        return payload

    def snapshot(self, loader: Callable[[], Any], build: Callable[[Any], T]) -> T:
        """Return the built "all" snapshot, using the process-local mirror first."""

        if not self.enabled:
            return build(loader())

        with self._lock:
            if self._local is not None and not self._local_expired():
                return self._local
            generation = self._generation

        built = build(self.remember(ALL, loader))

        with self._lock:
            if generation == self._generation:
                self._local = built
                self._local_expiry = (
                    time.time() + self.ttl_seconds if self.ttl_seconds is not None else None
                )
        return built

    def _local_expired(self) -> bool:
        return self._local_expiry is not None and time.time() > self._local_expiry

    def flush(self) -> None:
        """Drop both cache entries and the local mirror."""

        with self._lock:
            self._generation += 1
            self._local = None
            self._local_expiry = None
        self.backend.delete(self.key(ALL))
        self.backend.delete(self.key(RULES))
        logger.debug("Settings cache flushed", extra={"prefix": self.prefix})


__all__ = [
    "ALL",
    "RULES",
    "CacheBackend",
    "InMemoryCacheBackend",
    "RedisCacheBackend",
    "SettingsCache",
    "create_cache_backend",
]
