from __future__ import annotations

import asyncio
import logging
import uuid

import pytest
from prometheus_client import REGISTRY
from redis.exceptions import ConnectionError as RedisConnectionError

from lms_progress.services.cache import (
    CacheService,
    InMemoryCacheService,
    RedisCacheService,
    completed_lessons_key,
)


class RecordingRedis:
    """Stands in for a redis.asyncio client; records calls."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    async def get(self, key: str) -> str | None:
        return self.data.get(key)

    async def setex(self, key: str, ttl: int, value: str) -> None:
        self.data[key] = value
        self.ttls[key] = ttl

    async def delete(self, key: str) -> None:
        self.data.pop(key, None)


def test_completed_lessons_key_is_per_learner_and_course() -> None:
    course_id = uuid.uuid4()
    assert completed_lessons_key(1, course_id) == f"completed:1:{course_id}"
    assert completed_lessons_key(1, course_id) != completed_lessons_key(2, course_id)


def test_in_memory_cache_set_get_delete() -> None:
    cache = InMemoryCacheService()
    assert isinstance(cache, CacheService)

    async def scenario() -> tuple:
        await cache.set("k", "v", 60)
        hit = await cache.get("k")
        await cache.delete("k")
        return hit, await cache.get("k")

    assert asyncio.run(scenario()) == ("v", None)


def test_redis_cache_prefixes_keys_and_sets_ttl() -> None:
    redis = RecordingRedis()
    cache = RedisCacheService(redis)

    async def scenario() -> str | None:
        await cache.set("completed:1:x", "[]", 300)
        return await cache.get("completed:1:x")

    assert asyncio.run(scenario()) == "[]"
    assert redis.ttls == {"cache:completed:1:x": 300}

    asyncio.run(cache.delete("completed:1:x"))
    assert redis.data == {}


class DownRedis:
    async def get(self, key: str) -> str | None:
        raise RedisConnectionError("connection refused")

    async def setex(self, key: str, ttl: int, value: str) -> None:
        raise RedisConnectionError("connection refused")

    async def delete(self, key: str) -> None:
        raise RedisConnectionError("connection refused")


def _errors() -> float:
    labels = {"operation": "error"}
    return REGISTRY.get_sample_value("cache_operations_total", labels) or 0.0


def test_redis_outage_degrades_to_miss(caplog: pytest.LogCaptureFixture) -> None:
    cache = RedisCacheService(DownRedis())
    before = _errors()

    async def scenario() -> str | None:
        await cache.set("completed:1:x", "[]", 300)
        await cache.delete("completed:1:x")
        return await cache.get("completed:1:x")

    with caplog.at_level(logging.WARNING, logger="lms_progress.services.cache"):
        assert asyncio.run(scenario()) is None

    assert _errors() - before == 3
    assert "Cache delete failed key=completed:1:x" in caplog.text
