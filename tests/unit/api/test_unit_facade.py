# tests/unit/api/test_unit_facade.py — v1
"""Tests for api.facade — cached search, invalidation and maintenance."""

from __future__ import annotations

import asyncio
import json

import pytest

from docsemantic.api.facade import SearchService
from docsemantic.api.models import SearchStatistics
from docsemantic.cache import keys
from docsemantic.cache.models import CacheNamespace
from docsemantic.cache.result_cache import ResultCache
from docsemantic.embeddings.errors import EmbeddingError
from docsemantic.embeddings.orchestrator import EmbeddingOrchestrator
from docsemantic.search.semantic import SearchUnavailableError
from docsemantic.store.base_document_store import DocumentStoreError
from docsemantic.store.json_store import JsonDocumentStore


@pytest.fixture
def provider(make_provider):
    return make_provider("p1")


@pytest.fixture
def service(provider, memory_store, result_cache, test_settings, metrics):
    orchestrator = EmbeddingOrchestrator([provider], timeout_s=None)
    return SearchService(orchestrator, memory_store, result_cache, test_settings, metrics)


class TestSearch:
    @pytest.mark.asyncio
    async def test_semantic_results_are_cached(self, service, provider):
        await service.generate_missing_embeddings("alice")
        provider.calls.clear()

        first = await service.semantic_search("voter", "alice")
        second = await service.semantic_search("  voter\n", "alice")

        assert [r.document_id for r in first] == [1, 2, 3]
        assert second == first
        assert provider.calls == ["voter"]

    @pytest.mark.asyncio
    async def test_cache_key_includes_limit_and_mode(self, service, provider):
        await service.semantic_search("voter", "alice", limit=5)
        await service.semantic_search("voter", "alice", limit=6)
        await service.hybrid_search("voter", "alice", limit=5)
        assert len(provider.calls) == 3

    @pytest.mark.asyncio
    async def test_dispatch(self, service):
        results = await service.search("voter", "alice", mode="hybrid")
        assert [(r.document_id, r.search_type) for r in results] == [(1, "keyword")]
        assert await service.search("voter", "alice", mode="semantic") == []

    @pytest.mark.asyncio
    async def test_degraded_hybrid_is_not_cached(self, provider, service):
        provider._error = EmbeddingError("p1", "Service unavailable", status_code=503)

        first = await service.hybrid_search("voter", "alice")
        second = await service.hybrid_search("voter", "alice")

        assert [r.search_type for r in first] == ["keyword"]
        assert second == first
        assert len(provider.calls) == 2

    @pytest.mark.asyncio
    async def test_semantic_unavailable_propagates(self, provider, service):
        provider._error = EmbeddingError("p1", "Too many requests", status_code=429)
        with pytest.raises(SearchUnavailableError):
            await service.semantic_search("voter", "alice")

    @pytest.mark.asyncio
    async def test_without_cache(self, provider, memory_store, test_settings, metrics):
        orchestrator = EmbeddingOrchestrator([provider], timeout_s=None)
        service = SearchService(orchestrator, memory_store, None, test_settings, metrics)

        await service.semantic_search("voter", "alice")
        await service.semantic_search("voter", "alice")

        assert len(provider.calls) == 2
        assert (await service.cache_health()).status == "DOWN"


class TestInvalidation:
    @pytest.mark.asyncio
    async def test_embedding_run_invalidates_scope_searches(self, service):
        assert await service.semantic_search("voter", "alice") == []

        report = await service.generate_missing_embeddings("alice")

        assert report.success_count == 3
        assert len(await service.semantic_search("voter", "alice")) == 3

    @pytest.mark.asyncio
    async def test_statistics_refresh_after_run(self, service):
        before = await service.statistics("alice")
        assert before.total_documents == 3
        assert before.embedding_coverage == 0.0
        assert before.active_provider == "p1"

        await service.force_regenerate_embeddings("alice")

        after = await service.statistics("alice")
        assert after.documents_with_embeddings == 3
        assert after.embedding_coverage == 1.0

    @pytest.mark.asyncio
    async def test_cached_document_is_evicted(self, service, memory_store):
        stale = await memory_store.get(1)
        await service.cache.put_document(stale)

        await service.generate_missing_embeddings("alice")

        doc = await service.cache.get_document(1, lambda: memory_store.get(1))
        assert doc.embedding_generated is True

    @pytest.mark.asyncio
    async def test_other_scope_cache_survives(self, service, provider):
        await service.semantic_search("voter", "bob")
        await service.generate_missing_embeddings("alice")
        provider.calls.clear()

        await service.semantic_search("voter", "bob")

        assert provider.calls == []


class TestImport:
    @pytest.mark.asyncio
    async def test_import_refreshes_cached_search(self, service):
        assert await service.hybrid_search("contract", "alice") == []

        stored = await service.import_documents(
            json.dumps([{"id": 7, "owner": "alice", "original_filename": "contract.pdf"}])
        )

        assert [d.id for d in stored] == [7]
        results = await service.hybrid_search("contract", "alice")
        assert [r.document_id for r in results] == [7]

    @pytest.mark.asyncio
    async def test_import_refreshes_statistics(self, service):
        assert (await service.statistics("alice")).total_documents == 3

        await service.import_documents(
            json.dumps([{"id": 7, "owner": "alice", "original_filename": "contract.pdf"}])
        )

        assert (await service.statistics("alice")).total_documents == 4

    @pytest.mark.asyncio
    async def test_previous_owner_is_invalidated(self, service):
        before = await service.hybrid_search("voter", "bob")
        assert [r.document_id for r in before] == [10]

        await service.import_documents(
            json.dumps([{"id": 10, "owner": "alice", "original_filename": "bob_voter_card.png"}])
        )

        assert await service.hybrid_search("voter", "bob") == []

    @pytest.mark.asyncio
    async def test_cached_document_is_replaced(self, service, memory_store):
        await service.cache.put_document(await memory_store.get(1))

        await service.import_documents(
            json.dumps([{"id": 1, "owner": "alice", "original_filename": "renamed.pdf"}])
        )

        doc = await service.cache.get_document(1, lambda: memory_store.get(1))
        assert doc.original_filename == "renamed.pdf"

    @pytest.mark.asyncio
    async def test_invalid_payload_changes_nothing(self, service, memory_store):
        payload = json.dumps([
            {"id": 7, "owner": "alice", "original_filename": "contract.pdf"},
            {"id": 8, "owner": "alice", "embedding_generated": True, "embedding": None},
        ])
        with pytest.raises(DocumentStoreError, match="Invalid document import"):
            await service.import_documents(payload)
        assert await memory_store.get(7) is None


class TestMaintenance:
    @pytest.mark.asyncio
    async def test_clears_dashboard_stats_until_stopped(
        self, provider, memory_store, result_cache, test_settings, metrics
    ):
        settings = test_settings.model_copy(
            update={"cache_dashboard_clear_interval_s": 0.01}
        )
        orchestrator = EmbeddingOrchestrator([provider], timeout_s=None)
        service = SearchService(orchestrator, memory_store, result_cache, settings, metrics)
        await service.statistics("alice")
        stop = asyncio.Event()

        task = asyncio.create_task(service.run_maintenance(stop))
        await asyncio.sleep(0.05)
        stop.set()
        await asyncio.wait_for(task, timeout=1)

        cached = await result_cache.get(
            CacheNamespace.DASHBOARD_STATS, keys.dashboard_stats_key("alice"), SearchStatistics
        )
        assert cached is None

    @pytest.mark.asyncio
    async def test_disabled_cache_returns_at_once(
        self, provider, memory_store, memory_backend, test_settings, metrics
    ):
        cache = ResultCache(memory_backend, metrics=metrics, enabled=False)
        orchestrator = EmbeddingOrchestrator([provider], timeout_s=None)
        service = SearchService(orchestrator, memory_store, cache, test_settings, metrics)

        await asyncio.wait_for(service.run_maintenance(asyncio.Event()), timeout=1)


class TestObservability:
    def test_providers_status(self, service):
        status = service.providers_status()
        assert status.total_providers == 1
        assert status.providers[0].name == "p1"

    @pytest.mark.asyncio
    async def test_cache_health(self, service):
        assert (await service.cache_health()).is_up

    @pytest.mark.asyncio
    async def test_metrics_snapshot(self, service):
        await service.semantic_search("voter", "alice")
        snapshot = service.metrics_snapshot()
        assert snapshot["cache.miss"] == 1
        assert snapshot["search.semantic.success"] == 1


class TestFromSettings:
    def test_builds_collaborators(self, test_settings, tmp_path):
        settings = test_settings.model_copy(
            update={"document_store_path": tmp_path / "docs.json"}
        )
        service = SearchService.from_settings(settings)

        assert isinstance(service.cache, ResultCache)
        assert service.providers_status().providers[0].name == "openai"
        assert isinstance(service.pipeline._store, JsonDocumentStore)
