# src/cache/result_cache.py — v1
"""Cache-aside result cache over a key/value backend.

Values are serialized to JSON with a pydantic ``TypeAdapter`` for every
backend, so a cached value reads back as the same type it was written
with. The cache is never authoritative: any backend failure is logged,
counted and turned into a miss (reads) or a no-op (writes), and the
loader is always called on a miss.

Namespaces and their consistency rules:
  documents, users, workflows, custom: mutable, evicted on write
  ocr-results, ai-classifications: immutable, content-hash keyed
  dashboard-stats, search: aggregates, evicted in bulk
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Awaitable, Callable, Iterable, TypeVar

from pydantic import TypeAdapter, ValidationError

from docsemantic.cache import keys
from docsemantic.cache.base_cache_backend import BaseCacheBackend
from docsemantic.cache.models import (
    CacheHealth,
    CacheKind,
    CacheNamespace,
    CacheStatistics,
)
from docsemantic.core.models import Document
from docsemantic.tracking.metrics import MetricsRegistry, default_registry

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TTLS: dict[CacheNamespace, int] = {
    CacheNamespace.DOCUMENTS: 30 * 60,
    CacheNamespace.USERS: 15 * 60,
    CacheNamespace.WORKFLOWS: 10 * 60,
    CacheNamespace.OCR_RESULTS: 2 * 60 * 60,
    CacheNamespace.AI_CLASSIFICATIONS: 6 * 60 * 60,
    CacheNamespace.DASHBOARD_STATS: 5 * 60,
    CacheNamespace.SEARCH: 10 * 60,
    CacheNamespace.CUSTOM: 30 * 60,
}

_MISSING = object()


def ttls_from_settings(settings: Any) -> dict[CacheNamespace, int]:
    """Per-namespace TTLs from a Settings instance."""
    return {
        CacheNamespace.DOCUMENTS: settings.cache_ttl_documents_s,
        CacheNamespace.USERS: settings.cache_ttl_users_s,
        CacheNamespace.WORKFLOWS: settings.cache_ttl_workflows_s,
        CacheNamespace.OCR_RESULTS: settings.cache_ttl_ocr_s,
        CacheNamespace.AI_CLASSIFICATIONS: settings.cache_ttl_classifications_s,
        CacheNamespace.DASHBOARD_STATS: settings.cache_ttl_dashboard_s,
        CacheNamespace.SEARCH: settings.cache_ttl_search_s,
        CacheNamespace.CUSTOM: settings.cache_ttl_custom_s,
    }


class ResultCache:
    """Namespaced cache-aside layer with explicit and pattern invalidation.

    Usage:
        cache = ResultCache(MemoryCacheBackend())
        doc = await cache.get_or_load(
            CacheNamespace.DOCUMENTS, keys.document_key(5), load_doc, Document
        )
        await cache.evict_document(5)
    """

    def __init__(
        self,
        backend: BaseCacheBackend,
        key_prefix: str = keys.DEFAULT_PREFIX,
        ttls: dict[CacheNamespace, int] | None = None,
        enabled: bool = True,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        self._backend = backend
        self._prefix = key_prefix
        self._ttls = {**DEFAULT_TTLS, **(ttls or {})}
        self._enabled = enabled
        self._metrics = metrics or default_registry()
        self._adapters: dict[Any, TypeAdapter[Any]] = {}
        self._counter_lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._errors = 0

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def backend(self) -> BaseCacheBackend:
        return self._backend

    def ttl_for(self, namespace: CacheNamespace) -> int:
        return self._ttls[namespace]

    def full_key(self, namespace: CacheNamespace, key: str) -> str:
        return keys.full_key(namespace, key, self._prefix)

    # --- Core operations ---

    async def get(self, namespace: CacheNamespace, key: str, value_type: Any) -> Any:
        """Cached value, or None on a miss."""
        value = await self._lookup(namespace, key, value_type)
        return None if value is _MISSING else value

    async def put(
        self,
        namespace: CacheNamespace,
        key: str,
        value: Any,
        value_type: Any,
        ttl_s: int | None = None,
    ) -> None:
        """Store ``value``; ``ttl_s`` overrides the namespace TTL."""
        if not self._enabled:
            return
        full = self.full_key(namespace, key)
        try:
            payload = self._adapter(value_type).dump_json(value).decode("utf-8")
            await self._backend.set(
                full, payload, ttl_s if ttl_s is not None else self.ttl_for(namespace)
            )
        except Exception as e:
            self._record_error("put", full, e)

    async def get_or_load(
        self,
        namespace: CacheNamespace,
        key: str,
        loader: Callable[[], Awaitable[T]],
        value_type: Any,
        ttl_s: int | None = None,
    ) -> T:
        """Return the cached value, or call ``loader`` and cache its result.

        Loader exceptions propagate and nothing is cached. Two concurrent
        misses may both load; the last write wins.
        """
        cached = await self._lookup(namespace, key, value_type)
        if cached is not _MISSING:
            return cached
        value = await loader()
        await self.put(namespace, key, value, value_type, ttl_s)
        return value

    async def evict(self, namespace: CacheNamespace, key: str) -> bool:
        """Remove one entry. Returns True if it existed."""
        full = self.full_key(namespace, key)
        try:
            removed = await self._backend.delete(full)
        except Exception as e:
            self._record_error("evict", full, e)
            return False
        logger.debug("Evicted %s", full)
        return removed > 0

    async def evict_pattern(self, namespace: CacheNamespace, pattern: str) -> int:
        """Remove every entry of ``namespace`` matching a relative glob."""
        full = keys.full_pattern(namespace, pattern, self._prefix)
        return await self._delete_pattern(full)

    async def clear_namespace(self, namespace: CacheNamespace) -> int:
        return await self._delete_pattern(keys.namespace_pattern(namespace, self._prefix))

    async def clear_all(self) -> int:
        """Remove every entry under this cache's prefix, immutable ones included."""
        removed = await self._delete_pattern(keys.all_keys_pattern(self._prefix))
        logger.info("Cleared all cache entries (%d keys)", removed)
        return removed

    async def clear_mutable(self) -> int:
        """Remove every entry except content-hash keyed immutable results."""
        total = 0
        for namespace in CacheNamespace:
            if namespace.kind is not CacheKind.IMMUTABLE:
                total += await self.clear_namespace(namespace)
        return total

    # --- Documents ---

    async def get_document(
        self, document_id: int, loader: Callable[[], Awaitable[Document | None]]
    ) -> Document | None:
        """Cache-aside document detail. A missing document is not cached."""
        key = keys.document_key(document_id)
        cached = await self._lookup(CacheNamespace.DOCUMENTS, key, Document)
        if cached is not _MISSING:
            return cached
        document = await loader()
        if document is not None:
            await self.put(CacheNamespace.DOCUMENTS, key, document, Document)
        return document

    async def put_document(self, document: Document) -> None:
        await self.put(
            CacheNamespace.DOCUMENTS, keys.document_key(document.id), document, Document
        )

    async def evict_document(self, document_id: int) -> bool:
        return await self.evict(CacheNamespace.DOCUMENTS, keys.document_key(document_id))

    async def evict_documents(self, document_ids: Iterable[int]) -> int:
        """Batch evict document detail entries."""
        full = [
            self.full_key(CacheNamespace.DOCUMENTS, keys.document_key(i))
            for i in document_ids
        ]
        if not full:
            return 0
        try:
            return await self._backend.delete(*full)
        except Exception as e:
            self._record_error("evict_documents", f"{len(full)} keys", e)
            return 0

    async def preload_documents(self, documents: Iterable[Document]) -> int:
        """Warm the documents namespace. Returns how many were written."""
        count = 0
        for doc in documents:
            await self.put_document(doc)
            count += 1
        logger.info("Preloaded %d documents into cache", count)
        return count

    async def evict_user_documents(self, user_id: int | str) -> int:
        """Drop every cached listing page of one user (e.g. after an upload)."""
        return await self.evict_pattern(
            CacheNamespace.DOCUMENTS, keys.user_documents_pattern(user_id)
        )

    # --- Users ---

    async def evict_user(self, username: str) -> bool:
        return await self.evict(CacheNamespace.USERS, keys.user_key(username))

    # --- Content-derived results ---

    async def ocr_result(
        self, file_digest: str, loader: Callable[[], Awaitable[str]]
    ) -> str:
        """OCR text keyed by file hash; computed once per distinct file."""
        return await self.get_or_load(
            CacheNamespace.OCR_RESULTS, keys.ocr_key(file_digest), loader, str
        )

    async def classification(
        self,
        content_digest: str,
        loader: Callable[[], Awaitable[T]],
        value_type: Any = dict[str, Any],
    ) -> T:
        """AI classification keyed by content hash."""
        return await self.get_or_load(
            CacheNamespace.AI_CLASSIFICATIONS,
            keys.classification_key(content_digest),
            loader,
            value_type,
        )

    # --- Aggregates ---

    async def evict_dashboard_stats(self, user_id: int | str) -> bool:
        return await self.evict(
            CacheNamespace.DASHBOARD_STATS, keys.dashboard_stats_key(user_id)
        )

    async def clear_dashboard_stats(self) -> int:
        return await self.clear_namespace(CacheNamespace.DASHBOARD_STATS)

    async def evict_search_scope(self, scope: str) -> int:
        """Drop every cached search result of one scope."""
        return await self.evict_pattern(
            CacheNamespace.SEARCH, keys.search_scope_pattern(scope)
        )

    # --- Custom TTL entries ---

    async def put_custom(
        self, key: str, value: Any, ttl_s: int, value_type: Any = Any
    ) -> None:
        await self.put(CacheNamespace.CUSTOM, key, value, value_type, ttl_s=ttl_s)

    async def get_custom(self, key: str, value_type: Any = Any) -> Any:
        return await self.get(CacheNamespace.CUSTOM, key, value_type)

    async def evict_custom(self, key: str) -> bool:
        return await self.evict(CacheNamespace.CUSTOM, key)

    # --- Observability ---

    async def health(self) -> CacheHealth:
        """Backend reachability; DOWN instead of raising."""
        name = self._backend.backend_name
        if not self._enabled:
            return CacheHealth(
                status="DOWN", backend=name, enabled=False, detail="disabled"
            )
        try:
            reachable = await self._backend.ping()
        except Exception as e:
            logger.warning("Cache health check failed: %s", e)
            return CacheHealth(status="DOWN", backend=name, detail=str(e))
        if not reachable:
            return CacheHealth(status="DOWN", backend=name, detail="ping failed")
        return CacheHealth(status="UP", backend=name)

    async def statistics(self) -> CacheStatistics:
        entries: dict[str, int] = {}
        if self._enabled:
            for namespace in CacheNamespace:
                try:
                    matched = await self._backend.keys(
                        keys.namespace_pattern(namespace, self._prefix)
                    )
                except Exception as e:
                    self._record_error("statistics", namespace.value, e)
                    break
                entries[namespace.value] = len(matched)
        with self._counter_lock:
            hits, misses, errors = self._hits, self._misses, self._errors
        return CacheStatistics(
            backend=self._backend.backend_name,
            enabled=self._enabled,
            hits=hits,
            misses=misses,
            errors=errors,
            entries_by_namespace=entries,
            ttl_seconds={ns.value: ttl for ns, ttl in self._ttls.items()},
        )

    async def close(self) -> None:
        await self._backend.close()

    # --- Internals ---

    async def _lookup(self, namespace: CacheNamespace, key: str, value_type: Any) -> Any:
        if not self._enabled:
            self._record_miss()
            return _MISSING
        full = self.full_key(namespace, key)
        try:
            payload = await self._backend.get(full)
        except Exception as e:
            self._record_error("get", full, e)
            self._record_miss()
            return _MISSING
        if payload is None:
            self._record_miss()
            return _MISSING
        try:
            value = self._adapter(value_type).validate_json(payload)
        except ValidationError as e:
            logger.warning("Dropping undecodable cache entry %s: %s", full, e)
            await self.evict(namespace, key)
            self._record_miss()
            return _MISSING
        self._record_hit()
        return value

    async def _delete_pattern(self, pattern: str) -> int:
        try:
            removed = await self._backend.delete_pattern(pattern)
        except Exception as e:
            self._record_error("delete_pattern", pattern, e)
            return 0
        logger.debug("Evicted %d keys matching %s", removed, pattern)
        return removed

    def _adapter(self, value_type: Any) -> TypeAdapter[Any]:
        adapter = self._adapters.get(value_type)
        if adapter is None:
            adapter = self._adapters[value_type] = TypeAdapter(value_type)
        return adapter

    def _record_hit(self) -> None:
        with self._counter_lock:
            self._hits += 1
        self._metrics.incr("cache.hit")

    def _record_miss(self) -> None:
        with self._counter_lock:
            self._misses += 1
        self._metrics.incr("cache.miss")

    def _record_error(self, operation: str, target: str, error: Exception) -> None:
        with self._counter_lock:
            self._errors += 1
        self._metrics.incr("cache.error")
        logger.warning("Cache %s failed for %s: %s", operation, target, error)
