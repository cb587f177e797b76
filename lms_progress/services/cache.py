"""Read-through cache for the completed-lessons list.

GET /v1/courses/{course_id}/completed-lessons is hit on every course view
load.  Entries expire after a TTL and are also deleted explicitly
whenever a completion is recorded for that learner and course, so a
stale list can only survive a missed invalidation for one TTL.
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from redis.exceptions import RedisError

from lms_progress.core.metrics import CACHE_OPERATIONS
from lms_progress.db.redis import redis_pool

logger = logging.getLogger(__name__)


@runtime_checkable
class CacheService(Protocol):
    async def get(self, key: str) -> str | None:
        """Fetch a cached value.  Returns None on cache miss."""
        ...

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store a value with a TTL (time to live)."""
        ...

    async def delete(self, key: str) -> None:
        """Explicitly invalidate a cached entry."""
        ...


class InMemoryCacheService:
    """In-memory cache for dev and tests, no TTL enforcement."""

    def __init__(self) -> None:
        self._store: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        return self._store.get(key)

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._store[key] = value

    async def delete(self, key: str) -> None:
        self._store.pop(key, None)


class RedisCacheService:
    """Redis-backed cache, shared across all API instances.

    A Redis outage degrades to a cache miss (get) or a skipped write
    (set, delete); the ledger stays the source of truth.
    """

    _PREFIX = "cache:"

    def __init__(self, redis_client) -> None:
        self._redis = redis_client

    async def get(self, key: str) -> str | None:
        try:
            return await self._redis.get(f"{self._PREFIX}{key}")
        except RedisError as e:
            _record_error("get", key, e)
            return None

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            await self._redis.setex(f"{self._PREFIX}{key}", ttl_seconds, value)
        except RedisError as e:
            _record_error("set", key, e)

    async def delete(self, key: str) -> None:
        try:
            await self._redis.delete(f"{self._PREFIX}{key}")
        except RedisError as e:
            _record_error("delete", key, e)


def _record_error(action: str, key: str, error: RedisError) -> None:
    CACHE_OPERATIONS.labels(operation="error").inc()
    logger.warning("Cache %s failed key=%s: %s", action, key, error)


def completed_lessons_key(learner_id: int, course_id: object) -> str:
    return f"completed:{learner_id}:{course_id}"


if redis_pool is not None:
    cache_service: CacheService = RedisCacheService(redis_pool)
else:
    cache_service = InMemoryCacheService()
