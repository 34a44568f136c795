# src/cache/cache_factory.py — v1
"""Factory for cache backend and result cache instantiation."""

from __future__ import annotations

import logging

from docsemantic.cache.base_cache_backend import BaseCacheBackend
from docsemantic.cache.result_cache import ResultCache, ttls_from_settings
from docsemantic.config.settings import ConfigurationError, Settings
from docsemantic.tracking.metrics import MetricsRegistry

logger = logging.getLogger(__name__)


def create_cache_backend(settings: Settings | None = None) -> BaseCacheBackend:
    """Instantiate the configured cache backend.

    Args:
        settings: Application settings. Defaults to the memory backend.

    Returns:
        Configured BaseCacheBackend implementation.
    """
    backend = "memory" if settings is None else settings.cache_backend

    if backend == "memory":
        from docsemantic.cache.memory_backend import MemoryCacheBackend
        return MemoryCacheBackend()

    if backend == "redis":
        from docsemantic.cache.redis_backend import RedisCacheBackend
        if settings is None or not settings.cache_redis_url:
            raise ConfigurationError(
                "CACHE_REDIS_URL must be set when CACHE_BACKEND=redis"
            )
        return RedisCacheBackend(redis_url=settings.cache_redis_url)

    raise ConfigurationError(f"Unsupported cache backend: {backend!r}")


def create_result_cache(
    settings: Settings | None = None,
    metrics: MetricsRegistry | None = None,
    backend: BaseCacheBackend | None = None,
) -> ResultCache:
    """Build a ResultCache wired to the configured backend and TTLs."""
    backend = backend or create_cache_backend(settings)
    if settings is None:
        return ResultCache(backend, metrics=metrics)
    logger.debug(
        "Result cache: backend=%s enabled=%s",
        backend.backend_name, settings.cache_enabled,
    )
    return ResultCache(
        backend,
        key_prefix=settings.cache_key_prefix,
        ttls=ttls_from_settings(settings),
        enabled=settings.cache_enabled,
        metrics=metrics,
    )
