# src/cache/redis_backend.py — v1
"""Redis cache backend (CACHE_BACKEND=redis).

Requires 'redis' package: pip install redis.
Uses the asyncio client; pattern listing walks ``SCAN MATCH`` instead of
``KEYS`` so large keyspaces are not blocked.
"""

from __future__ import annotations

import logging
from typing import Any

from docsemantic.cache.base_cache_backend import BaseCacheBackend

logger = logging.getLogger(__name__)

_SCAN_COUNT = 500


class RedisCacheBackend(BaseCacheBackend):
    """Redis-backed cache for multi-instance deployments."""

    def __init__(self, redis_url: str = "", client: Any = None) -> None:
        if client is None and not redis_url:
            raise ValueError("redis_url or client is required")
        self._redis_url = redis_url
        self._client_instance = client

    @property
    def backend_name(self) -> str:
        return "redis"

    @property
    def _client(self) -> Any:
        if self._client_instance is None:
            try:
                import redis.asyncio as aioredis
            except ImportError as e:
                raise ImportError(
                    "redis package required: pip install redis"
                ) from e
            self._client_instance = aioredis.Redis.from_url(
                self._redis_url, decode_responses=True
            )
        return self._client_instance

    async def get(self, key: str) -> str | None:
        value = await self._client.get(key)
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    async def set(self, key: str, value: str, ttl_s: int | None = None) -> None:
        if ttl_s and ttl_s > 0:
            await self._client.set(key, value, ex=ttl_s)
        else:
            await self._client.set(key, value)

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return int(await self._client.delete(*keys))

    async def keys(self, pattern: str) -> list[str]:
        found: list[str] = []
        async for key in self._client.scan_iter(match=pattern, count=_SCAN_COUNT):
            found.append(key.decode("utf-8") if isinstance(key, bytes) else key)
        return sorted(found)

    async def ping(self) -> bool:
        return bool(await self._client.ping())

    async def close(self) -> None:
        """Close the Redis connection pool."""
        if self._client_instance is not None:
            await self._client_instance.aclose()
            self._client_instance = None
