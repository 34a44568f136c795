# src/cache/base_cache_backend.py — v1
"""Abstract key/value cache backend.

Values are strings (JSON produced by the result cache). Patterns follow
Redis glob syntax: ``*``, ``?``, ``[...]`` and backslash escapes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class BaseCacheBackend(ABC):
    """Unified interface for cache storage backends."""

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Short identifier for health and statistics output."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Value for ``key``, or None if absent or expired."""

    @abstractmethod
    async def set(self, key: str, value: str, ttl_s: int | None = None) -> None:
        """Store ``value``; ``ttl_s`` of None or <= 0 means no expiry."""

    @abstractmethod
    async def delete(self, *keys: str) -> int:
        """Remove keys; returns how many existed."""

    @abstractmethod
    async def keys(self, pattern: str) -> list[str]:
        """All live keys matching ``pattern``."""

    @abstractmethod
    async def ping(self) -> bool:
        """True if the backend is reachable. May raise on connection errors."""

    async def delete_pattern(self, pattern: str) -> int:
        """Remove every key matching ``pattern``."""
        matched = await self.keys(pattern)
        if not matched:
            return 0
        return await self.delete(*matched)

    async def close(self) -> None:
        """Release connections. No-op by default."""
