"""
Time-expiring key-value stores for search results.
"""

from __future__ import annotations

import time
from typing import Callable, Dict, Optional, Protocol, Tuple

import redis.asyncio as redis
from pydantic import ValidationError

from shared.logging import get_logger
from ..models import SearchResult


DEFAULT_NAMESPACE = "JUSO_CACHE"


class CacheStore(Protocol):
    """Key-value store with TTL expiration holding serialized search results.

    ``get`` never raises for bad contents: absent, expired and undecodable
    entries all read as ``None``. ``put`` fully replaces any prior entry.
    """

    async def get(self, key: str) -> Optional[SearchResult]:
        ...

    async def put(self, key: str, value: SearchResult, ttl_seconds: int) -> bool:
        ...


def _decode(raw, key: str, logger) -> Optional[SearchResult]:
    """Deserialize a cached payload, treating corruption as a miss."""
    if raw is None:
        return None
    try:
        return SearchResult.from_json(raw)
    except (ValidationError, ValueError, TypeError) as exc:
        logger.warning("Discarding undecodable cache entry", key=key, error=str(exc))
        return None


class RedisCacheStore:
    """Redis-backed cache store; keys live under a fixed namespace."""

    def __init__(self, redis_url: str, namespace: str = DEFAULT_NAMESPACE):
        self.redis_url = redis_url
        self.namespace = namespace
        self.logger = get_logger("search.cache.redis")
        self._redis: Optional[redis.Redis] = None

    def _get_redis(self) -> redis.Redis:
        """Get Redis connection."""
        if self._redis is None:
            self._redis = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
        return self._redis

    def _make_key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    async def get(self, key: str) -> Optional[SearchResult]:
        """Get a cached result, or None on absence, expiry, corruption or backend failure."""
        try:
            raw = await self._get_redis().get(self._make_key(key))
        except redis.RedisError as exc:
            self.logger.error("Cache get error", key=key, error=str(exc))
            return None
        return _decode(raw, key, self.logger)

    async def put(self, key: str, value: SearchResult, ttl_seconds: int) -> bool:
        """Store a result with the given TTL."""
        try:
            await self._get_redis().setex(self._make_key(key), ttl_seconds, value.to_json())
        except redis.RedisError as exc:
            self.logger.error("Cache put error", key=key, error=str(exc))
            return False

        self.logger.debug("Cached search result", key=key, ttl=ttl_seconds)
        return True

    async def health_check(self) -> bool:
        """Check Redis health."""
        try:
            await self._get_redis().ping()
            return True
        except redis.RedisError:
            return False

    async def close(self) -> None:
        """Close Redis connections."""
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None


class InMemoryCacheStore:
    """Process-local cache store with lazy expiry.

    Values are kept serialized so a corrupted entry behaves exactly as it
    would in Redis. ``clock`` is injectable for expiry tests.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.clock = clock
        self.logger = get_logger("search.cache.memory")
        self._entries: Dict[str, Tuple[str, float]] = {}

    async def get(self, key: str) -> Optional[SearchResult]:
        entry = self._entries.get(key)
        if entry is None:
            return None

        raw, expires_at = entry
        if self.clock() >= expires_at:
            self._entries.pop(key, None)
            return None
        return _decode(raw, key, self.logger)

    async def put(self, key: str, value: SearchResult, ttl_seconds: int) -> bool:
        self._entries[key] = (value.to_json(), self.clock() + ttl_seconds)
        return True

    def put_raw(self, key: str, raw: str, ttl_seconds: int) -> None:
        """Store an already-serialized payload as-is."""
        self._entries[key] = (raw, self.clock() + ttl_seconds)

    async def health_check(self) -> bool:
        return True

    async def close(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries
