# tests/unit/pipeline/test_embedding_pipeline.py — v1
"""Tests for pipeline/embedding_pipeline.py — fill-gaps and regenerate runs."""

from __future__ import annotations

import asyncio

import pytest

from docsemantic.core.models import Document
from docsemantic.embeddings import codec
from docsemantic.embeddings.errors import EmbeddingError
from docsemantic.embeddings.orchestrator import EmbeddingOrchestrator
from docsemantic.pipeline.embedding_pipeline import EmbeddingPipeline
from docsemantic.pipeline.models import PipelineMode
from docsemantic.store.base_document_store import DocumentStoreError
from docsemantic.store.memory_store import InMemoryDocumentStore


def _pipeline(providers, store, settings, metrics) -> EmbeddingPipeline:
    orchestrator = EmbeddingOrchestrator(providers, timeout_s=None)
    return EmbeddingPipeline(orchestrator, store, settings, metrics)


async def _flags(store, scope="alice") -> dict[int, bool]:
    return {d.id: d.embedding_generated for d in await store.find_all(scope)}


class TestFillGaps:
    @pytest.mark.asyncio
    async def test_all_documents_embedded(
        self, make_provider, memory_store, test_settings, metrics
    ):
        provider = make_provider("p1", vector=[0.1, 0.2, 0.3])
        pipeline = _pipeline([provider], memory_store, test_settings, metrics)

        report = await pipeline.fill_gaps("alice")

        assert report.mode is PipelineMode.FILL_GAPS
        assert report.total_candidates == 3
        assert report.success_count == 3
        assert report.embedded_ids == [1, 2, 3]
        doc = await memory_store.get(1)
        assert codec.decode(doc.embedding) == [0.1, 0.2, 0.3]
        # Other scopes are untouched.
        assert (await memory_store.get(10)).embedding_generated is False
        assert metrics.get("pipeline.success") == 3

    @pytest.mark.asyncio
    async def test_transient_failure_is_skipped(
        self, make_provider, memory_store, test_settings, metrics
    ):
        provider = make_provider(
            "p1",
            errors={"resume": EmbeddingError("p1", "server error", status_code=500)},
        )
        pipeline = _pipeline([provider], memory_store, test_settings, metrics)

        report = await pipeline.fill_gaps("alice")

        assert report.success_count == 2
        assert report.failure_count == 1
        assert not report.aborted
        assert await _flags(memory_store) == {1: True, 2: False, 3: True}
        failure = report.failures[0]
        assert failure.document_id == 2
        assert failure.filename == "resume-2024.docx"
        assert failure.kind == "other"
        assert metrics.get("pipeline.failure") == 1

    @pytest.mark.asyncio
    async def test_auth_failure_aborts_batch(
        self, make_provider, memory_store, test_settings, metrics
    ):
        provider = make_provider(
            "p1",
            errors={"resume": EmbeddingError("p1", "Forbidden", status_code=403)},
        )
        pipeline = _pipeline([provider], memory_store, test_settings, metrics)

        report = await pipeline.fill_gaps("alice")

        assert report.aborted
        assert "auth" in report.abort_reason
        assert report.success_count == 1
        assert report.failure_count == 1
        assert report.untouched == 1
        assert await _flags(memory_store) == {1: True, 2: False, 3: False}
        assert len(provider.calls) == 2
        assert metrics.get("pipeline.aborted") == 1

    @pytest.mark.asyncio
    async def test_no_providers_aborts(self, memory_store, test_settings, metrics):
        pipeline = _pipeline([], memory_store, test_settings, metrics)

        report = await pipeline.fill_gaps("alice")

        assert report.aborted
        assert report.failures[0].kind == "not_configured"
        assert report.untouched == 2

    @pytest.mark.asyncio
    async def test_only_missing_are_selected(
        self, make_provider, memory_store, test_settings, metrics
    ):
        await memory_store.save((await memory_store.get(1)).with_embedding("[9.0]"))
        provider = make_provider("p1")
        pipeline = _pipeline([provider], memory_store, test_settings, metrics)

        report = await pipeline.fill_gaps("alice")

        assert report.total_candidates == 2
        assert (await memory_store.get(1)).embedding == "[9.0]"

    @pytest.mark.asyncio
    async def test_nothing_to_do(self, make_provider, test_settings, metrics):
        provider = make_provider("p1")
        pipeline = _pipeline([provider], InMemoryDocumentStore(), test_settings, metrics)

        report = await pipeline.fill_gaps("alice")

        assert report.total_candidates == 0
        assert provider.calls == []


class TestCancellation:
    @pytest.mark.asyncio
    async def test_cancelled_before_start(
        self, make_provider, memory_store, test_settings, metrics
    ):
        provider = make_provider("p1")
        pipeline = _pipeline([provider], memory_store, test_settings, metrics)
        stop = asyncio.Event()
        stop.set()

        report = await pipeline.fill_gaps("alice", cancel_event=stop)

        assert report.cancelled
        assert report.processed == 0
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_cancel_interrupts_pause(
        self, make_provider, memory_store, test_settings, metrics
    ):
        stop = asyncio.Event()

        class StoppingProvider(make_provider):
            async def embed(self, text):
                stop.set()
                return await super().embed(text)

        settings = test_settings.model_copy(update={"pipeline_fill_delay_s": 30.0})
        pipeline = _pipeline([StoppingProvider("p1")], memory_store, settings, metrics)

        report = await asyncio.wait_for(
            pipeline.fill_gaps("alice", cancel_event=stop), timeout=5
        )

        assert report.cancelled
        assert report.success_count == 1
        assert report.untouched == 2


class TestForceRegenerate:
    @pytest.mark.asyncio
    async def test_failure_keeps_previous_vector(self, make_provider, test_settings, metrics):
        old = "[0.5,0.5,0.5]"
        store = InMemoryDocumentStore(
            [Document(id=1, owner="alice", original_filename="a_report.pdf").with_embedding(old)]
        )
        provider = make_provider(
            "p1", error=EmbeddingError("p1", "rate limited", status_code=429)
        )
        pipeline = _pipeline([provider], store, test_settings, metrics)

        report = await pipeline.force_regenerate("alice")

        assert report.mode is PipelineMode.FORCE_REGENERATE
        assert report.failure_count == 1
        doc = await store.get(1)
        assert doc.embedding == old
        assert doc.embedding_generated is True

    @pytest.mark.asyncio
    async def test_regenerates_embedded_documents(
        self, make_provider, memory_store, test_settings, metrics
    ):
        await memory_store.save((await memory_store.get(1)).with_embedding("[9.0]"))
        pipeline = _pipeline(
            [make_provider("p1", vector=[0.0, 1.0])], memory_store, test_settings, metrics
        )

        report = await pipeline.force_regenerate("alice")

        assert report.total_candidates == 3
        assert (await memory_store.get(1)).embedding == "[0.0,1.0]"


class TestStoreFailures:
    @pytest.mark.asyncio
    async def test_save_failure_aborts(
        self, make_provider, memory_store, test_settings, metrics, monkeypatch
    ):
        async def broken_save(document):
            raise OSError("read-only file system")

        monkeypatch.setattr(memory_store, "save", broken_save)
        pipeline = _pipeline([make_provider("p1")], memory_store, test_settings, metrics)

        report = await pipeline.fill_gaps("alice")

        assert report.aborted
        assert report.abort_reason.startswith("document store write failed")
        assert report.failures[0].kind == "store"
        assert report.untouched == 2

    @pytest.mark.asyncio
    async def test_select_failure_raises(
        self, make_provider, memory_store, test_settings, metrics, monkeypatch
    ):
        async def broken_find(scope):
            raise RuntimeError("connection reset")

        monkeypatch.setattr(memory_store, "find_missing_embeddings", broken_find)
        pipeline = _pipeline([make_provider("p1")], memory_store, test_settings, metrics)

        with pytest.raises(DocumentStoreError, match="connection reset"):
            await pipeline.fill_gaps("alice")


class TestScopeLock:
    @pytest.mark.asyncio
    async def test_same_scope_runs_are_serialized(
        self, make_provider, memory_store, test_settings, metrics
    ):
        provider = make_provider("p1", delay_s=0.01)
        pipeline = _pipeline([provider], memory_store, test_settings, metrics)

        first, second = await asyncio.gather(
            pipeline.fill_gaps("alice"), pipeline.fill_gaps("alice")
        )

        # The second run sees the first run's results and has nothing left.
        assert sorted([first.total_candidates, second.total_candidates]) == [0, 3]
        assert len(provider.calls) == 3

    @pytest.mark.asyncio
    async def test_lock_dropped_after_runs(
        self, make_provider, memory_store, test_settings, metrics
    ):
        provider = make_provider("p1", delay_s=0.01)
        pipeline = _pipeline([provider], memory_store, test_settings, metrics)

        await pipeline.fill_gaps("alice")
        assert pipeline._scope_locks == {}

        await asyncio.gather(
            pipeline.fill_gaps("alice"),
            pipeline.force_regenerate("alice"),
            pipeline.fill_gaps("bob"),
        )
        assert pipeline._scope_locks == {}
        assert pipeline._scope_users == {}

    @pytest.mark.asyncio
    async def test_lock_dropped_after_failed_run(
        self, make_provider, memory_store, test_settings, metrics, monkeypatch
    ):
        pipeline = _pipeline([make_provider("p1")], memory_store, test_settings, metrics)

        async def broken(scope):
            raise DocumentStoreError("store offline")

        monkeypatch.setattr(memory_store, "find_missing_embeddings", broken)
        with pytest.raises(DocumentStoreError):
            await pipeline.fill_gaps("alice")
        assert pipeline._scope_locks == {}


class TestPacing:
    @pytest.fixture
    def paced_settings(self, test_settings):
        return test_settings.model_copy(
            update={"pipeline_fill_delay_s": 0.25, "pipeline_regenerate_delay_s": 1.5}
        )

    @staticmethod
    def _record_pauses(pipeline, monkeypatch) -> list[float]:
        delays: list[float] = []

        async def record(delay, cancel_event):
            delays.append(delay)
            return False

        monkeypatch.setattr(pipeline, "_pause", record)
        return delays

    @pytest.mark.asyncio
    async def test_pause_only_after_success(
        self, make_provider, memory_store, paced_settings, metrics, monkeypatch
    ):
        provider = make_provider(
            "p1",
            errors={"resume": EmbeddingError("p1", "server error", status_code=500)},
        )
        pipeline = _pipeline([provider], memory_store, paced_settings, metrics)
        delays = self._record_pauses(pipeline, monkeypatch)

        report = await pipeline.fill_gaps("alice")

        # 1 succeeds and pauses, 2 fails without pausing, 3 is last.
        assert report.success_count == 2
        assert delays == [0.25]

    @pytest.mark.asyncio
    async def test_regenerate_uses_longer_delay(
        self, make_provider, memory_store, paced_settings, metrics, monkeypatch
    ):
        pipeline = _pipeline([make_provider("p1")], memory_store, paced_settings, metrics)
        delays = self._record_pauses(pipeline, monkeypatch)

        await pipeline.force_regenerate("alice")

        assert delays == [1.5, 1.5]
        assert all(d > paced_settings.pipeline_fill_delay_s for d in delays)
