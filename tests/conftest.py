# tests/conftest.py — v1
"""Shared test fixtures for all unit and integration tests.

Provides a scriptable fake embedding provider, sample documents, an
in-memory document store, a memory-backed result cache and zero-delay
settings. No external services; all I/O is in-process or mocked.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

import pytest

from docsemantic.cache.memory_backend import MemoryCacheBackend
from docsemantic.cache.result_cache import ResultCache
from docsemantic.config.settings import Settings
from docsemantic.core.models import Document
from docsemantic.embeddings.base_provider import BaseEmbeddingProvider
from docsemantic.logging.context import clear_context
from docsemantic.logging.logger import ROOT_LOGGER_NAME
from docsemantic.store.memory_store import InMemoryDocumentStore
from docsemantic.tracking.metrics import MetricsRegistry


class FakeProvider(BaseEmbeddingProvider):
    """Embedding provider driven entirely by constructor arguments.

    ``errors`` maps an input text to the exception raised for it;
    ``error`` is raised for every text. ``vectors`` maps an input text to
    its vector; anything else gets ``vector``.
    """

    def __init__(
        self,
        name: str = "fake",
        priority: int = 1,
        dimensions: int = 3,
        available: bool = True,
        vector: list[float] | None = None,
        vectors: dict[str, list[float]] | None = None,
        error: Exception | None = None,
        errors: dict[str, Exception] | None = None,
        delay_s: float = 0.0,
    ) -> None:
        super().__init__(priority=priority)
        self._name = name
        self._dimensions = dimensions
        self.available = available
        self._vector = vector
        self._vectors = vectors or {}
        self._error = error
        self._errors = errors or {}
        self._delay_s = delay_s
        self.calls: list[str] = []

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if self._delay_s:
            await asyncio.sleep(self._delay_s)
        if self._error is not None:
            raise self._error
        for needle, exc in self._errors.items():
            if needle in text:
                raise exc
        if text in self._vectors:
            return list(self._vectors[text])
        if self._vector is not None:
            return list(self._vector)
        return [1.0] * self._dimensions

    def is_available(self) -> bool:
        return self.available

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @property
    def provider_name(self) -> str:
        return self._name

    @property
    def model_name(self) -> str:
        return f"{self._name}-model"


# === FIXTURES: Providers ===


@pytest.fixture
def make_provider() -> Callable[..., FakeProvider]:
    """Factory for FakeProvider instances."""
    return FakeProvider


# === FIXTURES: Sample data ===


@pytest.fixture
def sample_documents() -> list[Document]:
    """Three documents owned by alice, none embedded yet."""
    return [
        Document(
            id=1,
            original_filename="voter_id_card.pdf",
            description="Scanned voter identity card",
            category="National ID",
            document_type="PDF",
            owner="alice",
        ),
        Document(
            id=2,
            original_filename="resume-2024.docx",
            description="Software engineer resume",
            category="Career",
            owner="alice",
        ),
        Document(
            id=3,
            original_filename="quarterly_report.xlsx",
            description="Q3 revenue figures",
            category="Finance",
            owner="alice",
        ),
    ]


@pytest.fixture
def other_scope_document() -> Document:
    """A document owned by bob."""
    return Document(
        id=10,
        original_filename="bob_voter_card.png",
        description="Bob's card",
        owner="bob",
    )


@pytest.fixture
def memory_store(
    sample_documents: list[Document], other_scope_document: Document
) -> InMemoryDocumentStore:
    return InMemoryDocumentStore([*sample_documents, other_scope_document])


# === FIXTURES: Infrastructure ===


@pytest.fixture
def metrics() -> MetricsRegistry:
    """Fresh counters per test."""
    return MetricsRegistry()


@pytest.fixture
def test_settings() -> Settings:
    """Settings with no pacing delays and no .env lookup."""
    return Settings(
        _env_file=None,
        embedding_providers="openai",
        pipeline_fill_delay_s=0.0,
        pipeline_regenerate_delay_s=0.0,
        search_similarity_threshold=0.55,
        search_default_limit=10,
    )


@pytest.fixture
def memory_backend() -> MemoryCacheBackend:
    return MemoryCacheBackend()


@pytest.fixture
def result_cache(memory_backend: MemoryCacheBackend, metrics: MetricsRegistry) -> ResultCache:
    return ResultCache(memory_backend, metrics=metrics)


@pytest.fixture(autouse=True)
def _reset_logging():
    """Clear context variables and handlers installed by setup_logging()."""
    root = logging.getLogger(ROOT_LOGGER_NAME)
    level = root.level
    yield
    clear_context()
    for handler in root.handlers:
        handler.close()
    root.handlers.clear()
    root.setLevel(level)
