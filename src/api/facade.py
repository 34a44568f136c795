# src/api/facade.py — v1
"""Public API facade: single entry point for semantic search features.

Usage:
    from docsemantic.api.facade import SearchService
    service = SearchService.from_settings()
    results = await service.hybrid_search("voter id", scope="alice")

Wires the orchestrator, document store, embedding pipeline, search engines
and result cache. Searches are cache-aside through the ``search``
namespace. Pipeline runs and document imports invalidate the affected
scopes' cached searches, dashboard statistics and document entries.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from docsemantic.api.models import SearchMode, SearchStatistics
from docsemantic.cache import keys
from docsemantic.cache.maintenance import CacheMaintenance
from docsemantic.cache.models import CacheHealth, CacheNamespace
from docsemantic.config.settings import Settings
from docsemantic.core.models import Document, ScoredDocument
from docsemantic.pipeline.embedding_pipeline import EmbeddingPipeline
from docsemantic.search.hybrid import HybridSearchEngine
from docsemantic.search.semantic import SemanticSearchEngine
from docsemantic.store.json_store import parse_documents
from docsemantic.tracking.metrics import MetricsRegistry, default_registry

if TYPE_CHECKING:
    from docsemantic.cache.result_cache import ResultCache
    from docsemantic.embeddings.orchestrator import (
        EmbeddingOrchestrator,
        ProvidersStatus,
    )
    from docsemantic.pipeline.models import PipelineReport
    from docsemantic.store.base_document_store import BaseDocumentStore

logger = logging.getLogger(__name__)

_RESULTS_TYPE = list[ScoredDocument]


class SearchService:
    """Semantic search, hybrid search and embedding maintenance for one store."""

    def __init__(
        self,
        orchestrator: EmbeddingOrchestrator,
        store: BaseDocumentStore,
        cache: ResultCache | None = None,
        settings: Settings | None = None,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        self._settings = settings or Settings()
        self._orchestrator = orchestrator
        self._store = store
        self._cache = cache
        self._metrics = metrics or default_registry()

        self._pipeline = EmbeddingPipeline(
            orchestrator, store, self._settings, self._metrics
        )
        self._semantic = SemanticSearchEngine(
            orchestrator, store, self._settings, self._metrics
        )
        self._hybrid = HybridSearchEngine(
            self._semantic, store, self._settings, self._metrics
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        store: BaseDocumentStore | None = None,
        metrics: MetricsRegistry | None = None,
    ) -> SearchService:
        """Build every collaborator from configuration."""
        from docsemantic.cache.cache_factory import create_result_cache
        from docsemantic.embeddings.provider_factory import create_orchestrator
        from docsemantic.store.json_store import JsonDocumentStore

        settings = settings or Settings()
        if store is None:
            store = JsonDocumentStore(settings.document_store_path)
        return cls(
            orchestrator=create_orchestrator(settings, metrics),
            store=store,
            cache=create_result_cache(settings, metrics),
            settings=settings,
            metrics=metrics,
        )

    @property
    def pipeline(self) -> EmbeddingPipeline:
        return self._pipeline

    @property
    def cache(self) -> ResultCache | None:
        return self._cache

    # --- Search ---

    async def semantic_search(
        self, query: str, scope: str, limit: int | None = None
    ) -> list[ScoredDocument]:
        """Semantic-only ranking.

        Raises:
            SearchUnavailableError: If the query cannot be embedded.
        """
        limit = self._resolve_limit(limit)
        key = keys.search_key(scope, "semantic", limit, query)
        if self._cache is None:
            return await self._semantic.search(query, scope, limit)
        return await self._cache.get_or_load(
            CacheNamespace.SEARCH,
            key,
            lambda: self._semantic.search(query, scope, limit),
            _RESULTS_TYPE,
        )

    async def hybrid_search(
        self, query: str, scope: str, limit: int | None = None
    ) -> list[ScoredDocument]:
        """Semantic ranking merged with filename matches.

        Degraded results (one branch failed) are returned but not cached.
        """
        limit = self._resolve_limit(limit)
        key = keys.search_key(scope, "hybrid", limit, query)
        if self._cache is not None:
            cached = await self._cache.get(CacheNamespace.SEARCH, key, _RESULTS_TYPE)
            if cached is not None:
                return cached

        results, degraded = await self._hybrid.search_with_status(query, scope, limit)
        if self._cache is not None and not degraded:
            await self._cache.put(CacheNamespace.SEARCH, key, results, _RESULTS_TYPE)
        return results

    async def search(
        self,
        query: str,
        scope: str,
        mode: SearchMode = "hybrid",
        limit: int | None = None,
    ) -> list[ScoredDocument]:
        """Dispatch to semantic or hybrid search."""
        if mode == "semantic":
            return await self.semantic_search(query, scope, limit)
        return await self.hybrid_search(query, scope, limit)

    # --- Embedding maintenance ---

    async def generate_missing_embeddings(
        self, scope: str, cancel_event: asyncio.Event | None = None
    ) -> PipelineReport:
        """Fill-gaps run for ``scope``."""
        report = await self._pipeline.fill_gaps(scope, cancel_event)
        await self._invalidate_after_run(scope, report)
        return report

    async def force_regenerate_embeddings(
        self, scope: str, cancel_event: asyncio.Event | None = None
    ) -> PipelineReport:
        """Re-embed every document of ``scope`` with the current provider."""
        report = await self._pipeline.force_regenerate(scope, cancel_event)
        await self._invalidate_after_run(scope, report)
        return report

    async def _invalidate_after_run(self, scope: str, report: PipelineReport) -> None:
        if self._cache is None or not report.embedded_ids:
            return
        await self._evict_scope(scope)
        await self._cache.evict_documents(report.embedded_ids)
        logger.debug(
            "Invalidated cached searches and %d documents for %s",
            len(report.embedded_ids), scope,
        )

    async def _evict_scope(self, scope: str) -> None:
        await self._cache.evict_search_scope(scope)
        await self._cache.evict_dashboard_stats(scope)

    # --- Document import ---

    async def import_documents(self, raw: str) -> list[Document]:
        """Merge a JSON array of documents into the store.

        Every owner touched by the import, including the previous owner of a
        replaced document, loses its cached searches, dashboard stats and
        listing pages. The imported documents' detail entries are evicted.

        Raises:
            DocumentStoreError: If the payload is invalid or cannot be written.
        """
        documents = parse_documents(raw)
        previous = [await self._store.get(doc.id) for doc in documents]
        stored = await self._store.save_all(documents)
        logger.info("Imported %d documents", len(stored))

        if self._cache is not None and stored:
            owners = {doc.owner for doc in stored}
            owners.update(doc.owner for doc in previous if doc is not None)
            for owner in sorted(owners):
                await self._evict_scope(owner)
                await self._cache.evict_user_documents(owner)
            await self._cache.evict_documents(doc.id for doc in stored)
            logger.debug("Invalidated cache entries for owners %s", sorted(owners))
        return stored

    # --- Cache maintenance ---

    async def run_maintenance(self, stop_event: asyncio.Event) -> None:
        """Run the periodic cache eviction jobs until ``stop_event`` is set.

        Dashboard aggregates are cleared every
        CACHE_DASHBOARD_CLEAR_INTERVAL_S; mutable namespaces every
        CACHE_DAILY_MAINTENANCE_INTERVAL_S. Returns at once when there is no
        enabled cache.
        """
        if self._cache is None or not self._cache.enabled:
            logger.warning("Cache disabled; no maintenance to run")
            return
        maintenance = CacheMaintenance(
            self._cache,
            dashboard_interval_s=self._settings.cache_dashboard_clear_interval_s,
            daily_interval_s=self._settings.cache_daily_maintenance_interval_s,
        )
        logger.info("Cache maintenance started")
        await maintenance.run(stop_event)

    # --- Observability ---

    async def statistics(self, scope: str) -> SearchStatistics:
        """Embedding coverage for ``scope``, cached as a dashboard aggregate."""
        if self._cache is None:
            return await self._compute_statistics(scope)
        return await self._cache.get_or_load(
            CacheNamespace.DASHBOARD_STATS,
            keys.dashboard_stats_key(scope),
            lambda: self._compute_statistics(scope),
            SearchStatistics,
        )

    async def _compute_statistics(self, scope: str) -> SearchStatistics:
        total = await self._store.count(scope)
        with_embeddings = await self._store.count_with_embeddings(scope)
        active = self._orchestrator.active_provider()
        return SearchStatistics(
            scope=scope,
            total_documents=total,
            documents_with_embeddings=with_embeddings,
            embedding_coverage=with_embeddings / total if total else 0.0,
            active_provider=active.provider_name if active else None,
            providers_status=self._orchestrator.status(),
        )

    def providers_status(self) -> ProvidersStatus:
        return self._orchestrator.status()

    async def cache_health(self) -> CacheHealth:
        if self._cache is None:
            return CacheHealth(
                status="DOWN", backend="none", enabled=False, detail="no cache"
            )
        return await self._cache.health()

    def metrics_snapshot(self) -> dict[str, int]:
        return self._metrics.snapshot()

    async def close(self) -> None:
        if self._cache is not None:
            await self._cache.close()

    def _resolve_limit(self, limit: int | None) -> int:
        return self._settings.search_default_limit if limit is None else limit
