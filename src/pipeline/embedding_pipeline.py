# src/pipeline/embedding_pipeline.py — v1
"""Embedding pipeline: batch generation of document vectors.

Two entry points share one sequential routine:
  fill_gaps: documents in scope that have no embedding yet
  force_regenerate: every document in scope, whatever its state

Per document: build enriched text, embed via the orchestrator, persist the
encoded vector together with ``embedding_generated=True`` in one save. A
failed document is never saved, so its flag keeps its previous value.

Control flow is a switch over ``ErrorKind``: AUTH and NOT_CONFIGURED abort
the rest of the batch, every other failure is counted and skipped.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from enum import Enum
from typing import TYPE_CHECKING

from docsemantic.embeddings import codec
from docsemantic.embeddings.errors import EmbeddingError, ErrorKind
from docsemantic.logging.context import (
    clear_context,
    set_document_context,
    set_job_context,
)
from docsemantic.pipeline.content_builder import (
    DEFAULT_MIN_LENGTH,
    build_embedding_content,
)
from docsemantic.pipeline.models import DocumentFailure, PipelineMode, PipelineReport
from docsemantic.store.base_document_store import DocumentStoreError
from docsemantic.tracking.metrics import MetricsRegistry, default_registry

if TYPE_CHECKING:
    from docsemantic.config.settings import Settings
    from docsemantic.core.models import Document
    from docsemantic.embeddings.orchestrator import EmbeddingOrchestrator
    from docsemantic.store.base_document_store import BaseDocumentStore

logger = logging.getLogger(__name__)

DEFAULT_FILL_DELAY_S = 0.5
DEFAULT_REGENERATE_DELAY_S = 2.0


class _Outcome(str, Enum):
    EMBEDDED = "embedded"
    FAILED = "failed"
    ABORT = "abort"


class EmbeddingPipeline:
    """Sequential embedding job over one scope's documents.

    Runs for different scopes may overlap; runs for the same scope are
    serialized by a per-scope lock, kept only while a run
    for that scope is active or waiting.

    Usage:
        pipeline = EmbeddingPipeline(orchestrator, store, settings)
        report = await pipeline.fill_gaps("alice", cancel_event=stop)
    """

    def __init__(
        self,
        orchestrator: EmbeddingOrchestrator,
        store: BaseDocumentStore,
        settings: Settings | None = None,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._store = store
        self._metrics = metrics or default_registry()

        if settings is not None:
            self._delays = {
                PipelineMode.FILL_GAPS: settings.pipeline_fill_delay_s,
                PipelineMode.FORCE_REGENERATE: settings.pipeline_regenerate_delay_s,
            }
            self._min_length = settings.embedding_min_content_length
        else:
            self._delays = {
                PipelineMode.FILL_GAPS: DEFAULT_FILL_DELAY_S,
                PipelineMode.FORCE_REGENERATE: DEFAULT_REGENERATE_DELAY_S,
            }
            self._min_length = DEFAULT_MIN_LENGTH

        self._scope_locks: dict[str, asyncio.Lock] = {}
        self._scope_users: dict[str, int] = {}

    async def fill_gaps(
        self, scope: str, cancel_event: asyncio.Event | None = None
    ) -> PipelineReport:
        """Embed every document in ``scope`` that has no embedding yet."""
        return await self._run(scope, PipelineMode.FILL_GAPS, cancel_event)

    async def force_regenerate(
        self, scope: str, cancel_event: asyncio.Event | None = None
    ) -> PipelineReport:
        """Re-embed every document in ``scope`` with the current provider."""
        return await self._run(scope, PipelineMode.FORCE_REGENERATE, cancel_event)

    def _acquire_slot(self, scope: str) -> asyncio.Lock:
        """Lock for ``scope``, counting the caller as a user until released."""
        lock = self._scope_locks.get(scope)
        if lock is None:
            lock = self._scope_locks[scope] = asyncio.Lock()
        self._scope_users[scope] = self._scope_users.get(scope, 0) + 1
        return lock

    def _release_slot(self, scope: str) -> None:
        remaining = self._scope_users[scope] - 1
        if remaining:
            self._scope_users[scope] = remaining
        else:
            # Nobody holds or waits for the lock; a later run creates a new one.
            del self._scope_users[scope]
            del self._scope_locks[scope]

    async def _select(self, scope: str, mode: PipelineMode) -> list[Document]:
        try:
            if mode is PipelineMode.FILL_GAPS:
                return await self._store.find_missing_embeddings(scope)
            return await self._store.find_all(scope)
        except DocumentStoreError:
            raise
        except Exception as e:
            raise DocumentStoreError(
                f"Cannot load candidate documents for {scope!r}: {e}"
            ) from e

    async def _run(
        self,
        scope: str,
        mode: PipelineMode,
        cancel_event: asyncio.Event | None,
    ) -> PipelineReport:
        """Shared routine for both modes.

        Raises:
            DocumentStoreError: If the candidate list cannot be read.
        """
        lock = self._acquire_slot(scope)
        try:
            async with lock:
                job_id = uuid.uuid4().hex[:12]
                set_job_context(scope, job_id)
                try:
                    return await self._process_batch(scope, mode, job_id, cancel_event)
                finally:
                    clear_context()
        finally:
            self._release_slot(scope)

    async def _process_batch(
        self,
        scope: str,
        mode: PipelineMode,
        job_id: str,
        cancel_event: asyncio.Event | None,
    ) -> PipelineReport:
        start = time.monotonic()
        candidates = await self._select(scope, mode)
        report = PipelineReport(
            scope=scope, mode=mode, job_id=job_id, total_candidates=len(candidates)
        )

        if not candidates:
            logger.info("No documents to embed for %s (%s)", scope, mode.value)
            return report

        active = self._orchestrator.active_provider()
        logger.info(
            "Embedding %d documents for %s (%s) using %s",
            len(candidates), scope, mode.value,
            active.provider_name if active else "no available provider",
        )

        delay = self._delays[mode]
        for index, doc in enumerate(candidates):
            if cancel_event is not None and cancel_event.is_set():
                report.cancelled = True
                logger.warning("Embedding job cancelled before document %d", doc.id)
                break

            set_document_context(doc.id)
            outcome = await self._process_document(doc, report)
            set_document_context(None)
            if outcome is _Outcome.ABORT:
                break

            # Pacing applies only after a successful provider call.
            is_last = index == len(candidates) - 1
            if (
                outcome is _Outcome.EMBEDDED
                and not is_last
                and await self._pause(delay, cancel_event)
            ):
                report.cancelled = True
                logger.warning("Embedding job cancelled during rate-limit pause")
                break

        report.duration_seconds = round(time.monotonic() - start, 3)
        logger.info(
            "Embedding job finished for %s: %d succeeded, %d failed%s",
            scope, report.success_count, report.failure_count,
            " (aborted)" if report.aborted else "",
        )
        return report

    async def _process_document(self, doc: Document, report: PipelineReport) -> _Outcome:
        """Embed and persist one document."""
        content = build_embedding_content(doc, self._min_length)
        logger.debug(
            "Processing %s (content length: %d chars)", doc.display_name, len(content)
        )

        try:
            vector = await self._orchestrator.embed(content)
            serialized = codec.encode(vector)
        except EmbeddingError as e:
            self._record_failure(report, doc, e.kind.value, str(e), e.provider_name)
            if e.kind.is_permanent:
                report.aborted = True
                report.abort_reason = (
                    f"{e.kind.value} failure from {e.provider_name}: {e}"
                )
                self._metrics.incr("pipeline.aborted")
                logger.error(
                    "Stopping embedding job: %s error from %s",
                    e.kind.value, e.provider_name,
                )
                return _Outcome.ABORT
            return _Outcome.FAILED
        except Exception as e:
            logger.exception("Unexpected error embedding document %d", doc.id)
            self._record_failure(
                report, doc, ErrorKind.OTHER.value, f"{type(e).__name__}: {e}"
            )
            return _Outcome.FAILED

        try:
            await self._store.save(doc.with_embedding(serialized))
        except Exception as e:
            # Store failures are component-level: stop rather than skip.
            self._record_failure(report, doc, "store", f"{type(e).__name__}: {e}")
            report.aborted = True
            report.abort_reason = f"document store write failed: {e}"
            self._metrics.incr("pipeline.aborted")
            logger.error("Stopping embedding job: cannot save document %d: %s", doc.id, e)
            return _Outcome.ABORT

        report.success_count += 1
        report.embedded_ids.append(doc.id)
        self._metrics.incr("pipeline.success")
        logger.info(
            "Embedded %s (%d dimensions)", doc.display_name, len(vector)
        )
        return _Outcome.EMBEDDED

    def _record_failure(
        self,
        report: PipelineReport,
        doc: Document,
        kind: str,
        message: str,
        provider: str | None = None,
    ) -> None:
        report.failure_count += 1
        report.failures.append(
            DocumentFailure(
                document_id=doc.id,
                filename=doc.original_filename,
                provider=provider,
                kind=kind,
                message=message,
            )
        )
        self._metrics.incr("pipeline.failure")
        logger.error(
            "Failed to embed %s using %s: %s", doc.display_name, provider or "-", message
        )

    @staticmethod
    async def _pause(delay: float, cancel_event: asyncio.Event | None) -> bool:
        """Sleep between documents.

        Returns:
            True if ``cancel_event`` was set during the pause.
        """
        if delay <= 0:
            return cancel_event is not None and cancel_event.is_set()
        if cancel_event is None:
            await asyncio.sleep(delay)
            return False
        try:
            await asyncio.wait_for(cancel_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return False
        return True
