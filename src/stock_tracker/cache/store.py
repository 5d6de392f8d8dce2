"""Best-effort key/value cache backed by Redis.

Values are JSON-encoded. Every Redis failure is logged and degrades to a miss
(or a no-op for writes); nothing raises through to callers.
"""
import json
import logging
from typing import Any, Protocol

import redis.asyncio as aioredis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300


class CacheStore(Protocol):
    """Contract the services depend on."""

    async def get(self, key: str) -> Any | None: ...

    async def set(self, key: str, value: Any, ttl_seconds: int = DEFAULT_TTL_SECONDS) -> None: ...

    async def delete(self, key: str) -> None: ...


class RedisCacheStore:
    """CacheStore over redis.asyncio."""

    def __init__(self, redis_url: str, client: aioredis.Redis | None = None) -> None:
        self._redis_url = redis_url
        self._client = client or aioredis.from_url(
            redis_url, encoding="utf-8", decode_responses=True
        )

    async def get(self, key: str) -> Any | None:
        try:
            raw = await self._client.get(key)
        except (RedisError, OSError) as exc:
            logger.warning("Cache get failed for key %s: %s", key, exc)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.warning("Cache value for key %s is not valid JSON: %s", key, exc)
            return None

    async def set(self, key: str, value: Any, ttl_seconds: int = DEFAULT_TTL_SECONDS) -> None:
        try:
            await self._client.setex(key, ttl_seconds, json.dumps(value, default=str))
        except (RedisError, OSError, TypeError) as exc:
            logger.warning("Cache set failed for key %s: %s", key, exc)

    async def delete(self, key: str) -> None:
        try:
            await self._client.delete(key)
        except (RedisError, OSError) as exc:
            logger.warning("Cache delete failed for key %s: %s", key, exc)

    async def health_check(self) -> bool:
        try:
            return bool(await self._client.ping())
        except (RedisError, OSError):
            return False

    async def close(self) -> None:
        await self._client.aclose()
