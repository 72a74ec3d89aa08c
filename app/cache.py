"""
Cache-aside layer.

The cache is advisory: every operation absorbs backend failures and reports
them as a miss (``get``) or a ``False``/``0`` outcome (writes), so a degraded
or disabled Redis turns the system into cache-always-miss without any
special-casing at call sites.
"""

import asyncio
import fnmatch
import json
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, Tuple

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from app.config import CACHE_TIMEOUT_SECONDS, ENABLE_REDIS_CACHE, REDIS_URL

logger = logging.getLogger(__name__)

# Anything the backend or (de)serialisation can throw at us
CACHE_ERRORS = (RedisError, asyncio.TimeoutError, OSError, TypeError, ValueError)


class CacheKeys:
    """Key builders so every reader and writer agrees on naming."""

    FEEDS_PATTERN = "posts:feed:*"

    @staticmethod
    def post(post_id: str) -> str:
        return f"post:{post_id}"

    @staticmethod
    def posts_feed(viewer_id: Optional[str], cursor: Optional[str], limit: int) -> str:
        return f"posts:feed:{viewer_id or 'public'}:{cursor or 'start'}:{limit}"

    @staticmethod
    def post_like_count(post_id: str) -> str:
        return f"post:{post_id}:likes:count"

    @staticmethod
    def post_comment_count(post_id: str) -> str:
        return f"post:{post_id}:comments:count"

    @staticmethod
    def comment_like_count(comment_id: str) -> str:
        return f"comment:{comment_id}:likes:count"

    @staticmethod
    def post_data_pattern(post_id: str) -> str:
        return f"post:{post_id}*"


class CacheBackend:
    """
    Interface shared by the Redis and in-memory caches.

    Values must be JSON-serialisable; they come back as plain JSON types.
    """

    @property
    def enabled(self) -> bool:
        return True

    @property
    def is_available(self) -> bool:
        return True

    async def get(self, key: str) -> Optional[Any]:
        raise NotImplementedError

    async def set(self, key: str, value: Any, ttl_seconds: int) -> bool:
        raise NotImplementedError

    async def delete(self, key: str) -> bool:
        raise NotImplementedError

    async def delete_many(self, keys: Iterable[str]) -> bool:
        raise NotImplementedError

    async def delete_pattern(self, pattern: str) -> int:
        raise NotImplementedError

    async def ping(self) -> bool:
        raise NotImplementedError

    async def close(self) -> None:
        return None

    async def get_or_compute(
        self,
        key: str,
        compute: Callable[[], Awaitable[Any]],
        ttl_seconds: int,
    ) -> Any:
        """
        Return the cached value for ``key`` or compute, store and return it.

        Errors raised by ``compute`` propagate; a failed store does not.
        """
        cached = await self.get(key)
        if cached is not None:
            return cached

        value = await compute()
        if not await self.set(key, value, ttl_seconds):
            logger.debug("Cache populate skipped for %s", key)
        return value


class RedisCache(CacheBackend):
    """Redis-backed cache with a short per-operation timeout."""

    SCAN_BATCH_SIZE = 100

    def __init__(
        self,
        url: str = REDIS_URL,
        enabled: bool = ENABLE_REDIS_CACHE,
        timeout: float = CACHE_TIMEOUT_SECONDS,
        client: Optional[aioredis.Redis] = None,
    ):
        self._enabled = enabled
        self._timeout = timeout
        self._client = client
        if enabled and client is None:
            self._client = aioredis.from_url(
                url,
                decode_responses=True,
                socket_timeout=timeout,
                socket_connect_timeout=timeout,
            )

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def is_available(self) -> bool:
        return self._enabled and self._client is not None

    async def _run(self, awaitable: Awaitable[Any]) -> Any:
        return await asyncio.wait_for(awaitable, timeout=self._timeout)

    async def get(self, key: str) -> Optional[Any]:
        if not self.is_available:
            return None
        try:
            raw = await self._run(self._client.get(key))
            if raw is None:
                logger.debug("Cache miss: %s", key)
                return None
            return json.loads(raw)
        except CACHE_ERRORS as exc:
            logger.warning("Cache GET failed for %s, treating as miss: %s", key, exc)
            return None

    async def set(self, key: str, value: Any, ttl_seconds: int) -> bool:
        if not self.is_available:
            return False
        try:
            payload = json.dumps(value, default=str)
            await self._run(self._client.set(key, payload, ex=ttl_seconds))
            return True
        except CACHE_ERRORS as exc:
            logger.warning("Cache SET failed for %s: %s", key, exc)
            return False

    async def delete(self, key: str) -> bool:
        if not self.is_available:
            return False
        try:
            await self._run(self._client.delete(key))
            return True
        except CACHE_ERRORS as exc:
            logger.warning("Cache DELETE failed for %s: %s", key, exc)
            return False

    async def delete_many(self, keys: Iterable[str]) -> bool:
        keys = list(keys)
        if not self.is_available or not keys:
            return False
        try:
            await self._run(self._client.delete(*keys))
            return True
        except CACHE_ERRORS as exc:
            logger.warning("Cache DELETE failed for %d keys: %s", len(keys), exc)
            return False

    async def delete_pattern(self, pattern: str) -> int:
        """
        Delete keys matching ``pattern`` with an incremental SCAN.

        Each SCAN step and each batch delete is bounded by the cache timeout,
        so the backend is never held by a single full-keyspace command.
        """
        if not self.is_available:
            return 0

        deleted = 0
        cursor = 0
        try:
            while True:
                cursor, keys = await self._run(
                    self._client.scan(cursor=cursor, match=pattern, count=self.SCAN_BATCH_SIZE)
                )
                if keys:
                    deleted += await self._run(self._client.delete(*keys))
                if cursor == 0:
                    break
        except CACHE_ERRORS as exc:
            logger.warning("Cache pattern delete %r stopped after %d keys: %s", pattern, deleted, exc)
            return deleted

        logger.debug("Cache pattern delete %r removed %d keys", pattern, deleted)
        return deleted

    async def ping(self) -> bool:
        if not self.is_available:
            return False
        try:
            return bool(await self._run(self._client.ping()))
        except CACHE_ERRORS as exc:
            logger.warning("Cache PING failed: %s", exc)
            return False

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()


class MemoryCache(CacheBackend):
    """
    In-process cache with TTL expiry.

    Values are stored JSON-encoded so callers get the same copies-not-references
    behaviour they would get from Redis.
    """

    def __init__(self):
        self._store: Dict[str, Tuple[float, str]] = {}

    def _purge_expired(self) -> None:
        now = time.monotonic()
        expired = [k for k, (expires_at, _) in self._store.items() if expires_at <= now]
        for key in expired:
            del self._store[key]

    def keys(self, pattern: str = "*") -> list:
        self._purge_expired()
        return [k for k in self._store if fnmatch.fnmatchcase(k, pattern)]

    async def get(self, key: str) -> Optional[Any]:
        self._purge_expired()
        entry = self._store.get(key)
        if entry is None:
            return None
        return json.loads(entry[1])

    async def set(self, key: str, value: Any, ttl_seconds: int) -> bool:
        try:
            payload = json.dumps(value, default=str)
        except (TypeError, ValueError) as exc:
            logger.warning("Cache SET failed for %s: %s", key, exc)
            return False
        self._store[key] = (time.monotonic() + ttl_seconds, payload)
        return True

    async def delete(self, key: str) -> bool:
        self._store.pop(key, None)
        return True

    async def delete_many(self, keys: Iterable[str]) -> bool:
        for key in keys:
            self._store.pop(key, None)
        return True

    async def delete_pattern(self, pattern: str) -> int:
        matched = self.keys(pattern)
        for key in matched:
            del self._store[key]
        return len(matched)

    async def ping(self) -> bool:
        return True


def build_cache() -> CacheBackend:
    """Build the process-wide cache from configuration."""
    cache = RedisCache()
    if cache.enabled:
        logger.info("Redis cache enabled at %s", REDIS_URL)
    else:
        logger.info("Redis cache disabled, every read falls through to the database")
    return cache
