# src/search/semantic.py — v1
"""Semantic search: rank a scope's documents by cosine similarity to a query.

Candidates are the scope's documents with ``embedding_generated`` set.
Stored vectors whose dimensionality differs from the query vector (left
over from a provider migration) or that fail to decode score 0 and are
logged; they never fail the request. Scores below the threshold are
dropped, the rest sorted descending with ties kept in store order.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np

from docsemantic.core.models import Document, ScoredDocument
from docsemantic.core.similarity import cosine_scores
from docsemantic.embeddings import codec
from docsemantic.embeddings.errors import EmbeddingError, ErrorKind
from docsemantic.store.base_document_store import DocumentStoreError
from docsemantic.tracking.metrics import MetricsRegistry, default_registry

if TYPE_CHECKING:
    from docsemantic.config.settings import Settings
    from docsemantic.embeddings.orchestrator import EmbeddingOrchestrator
    from docsemantic.store.base_document_store import BaseDocumentStore

logger = logging.getLogger(__name__)

DEFAULT_SIMILARITY_THRESHOLD = 0.55
DEFAULT_LIMIT = 12


class SearchUnavailableError(Exception):
    """The query could not be embedded, so semantic ranking is impossible.

    Distinct from an empty result: no document was ranked at all.
    """

    def __init__(self, message: str, kind: ErrorKind = ErrorKind.OTHER) -> None:
        self.kind = kind
        super().__init__(message)


class SemanticSearchEngine:
    """Vector-similarity search over one document store.

    Usage:
        engine = SemanticSearchEngine(orchestrator, store, settings)
        results = await engine.search("passport scan", scope="alice", limit=10)
    """

    def __init__(
        self,
        orchestrator: EmbeddingOrchestrator,
        store: BaseDocumentStore,
        settings: Settings | None = None,
        metrics: MetricsRegistry | None = None,
        threshold: float | None = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._store = store
        self._metrics = metrics or default_registry()
        if threshold is not None:
            self._threshold = threshold
        elif settings is not None:
            self._threshold = settings.search_similarity_threshold
        else:
            self._threshold = DEFAULT_SIMILARITY_THRESHOLD
        self._default_limit = settings.search_default_limit if settings else DEFAULT_LIMIT

    @property
    def threshold(self) -> float:
        return self._threshold

    async def search(
        self, query: str, scope: str, limit: int | None = None
    ) -> list[ScoredDocument]:
        """Top ``limit`` documents in ``scope`` above the similarity threshold.

        Raises:
            SearchUnavailableError: If the query cannot be embedded.
            DocumentStoreError: If candidate documents cannot be loaded.
        """
        limit = self._default_limit if limit is None else limit
        text = query.strip()
        if not text or limit <= 0:
            return []

        try:
            query_vector = await self._orchestrator.embed(text)
        except EmbeddingError as e:
            self._metrics.incr("search.semantic.unavailable")
            logger.error("Semantic search unavailable for %r: %s", text, e)
            raise SearchUnavailableError(
                f"Semantic search temporarily unavailable: {e}", kind=e.kind
            ) from e

        try:
            candidates = await self._store.find_by_embedding_flag(scope, True)
        except DocumentStoreError:
            raise
        except Exception as e:
            raise DocumentStoreError(f"Cannot load candidates for {scope!r}: {e}") from e

        if not candidates:
            logger.info("No documents with embeddings for %s", scope)
            self._metrics.incr("search.semantic.success")
            return []

        scores = self.score_candidates(query_vector, candidates)
        ranked = rank(candidates, scores, self._threshold, limit)
        logger.info(
            "Semantic search for %r: %d candidates, %d above %.2f",
            text, len(candidates), len(ranked), self._threshold,
        )
        self._metrics.incr("search.semantic.success")
        return ranked

    def score_candidates(
        self, query_vector: list[float], candidates: list[Document]
    ) -> list[float]:
        """Cosine similarity of each candidate against the query, in input order.

        Candidates with a matching dimension are scored in one numpy pass;
        mismatched or undecodable vectors score 0.
        """
        dims = len(query_vector)
        scores = [0.0] * len(candidates)
        matching: list[int] = []
        vectors: list[list[float] | None] = []

        for i, doc in enumerate(candidates):
            try:
                vector = codec.decode(doc.embedding)
            except codec.VectorDecodeError as e:
                self._metrics.incr("search.malformed_vector")
                logger.warning(
                    "Document %d (%s) has a malformed stored vector: %s",
                    doc.id, doc.display_name, e,
                )
                vectors.append(None)
                continue
            vectors.append(vector)
            if len(vector) != dims:
                self._metrics.incr("search.dimension_mismatch")
                logger.warning(
                    "Dimension mismatch for document %d (%s): query=%d stored=%d; "
                    "re-embed this document",
                    doc.id, doc.display_name, dims, len(vector),
                )
                continue
            matching.append(i)

        if matching:
            matrix = np.asarray([vectors[i] for i in matching], dtype=np.float64)
            for i, value in zip(matching, cosine_scores(query_vector, matrix)):
                scores[i] = float(value)
        return scores


def rank(
    candidates: list[Document],
    scores: list[float],
    threshold: float,
    limit: int,
) -> list[ScoredDocument]:
    """Filter by ``threshold`` (inclusive), sort descending, truncate.

    ``sorted`` is stable, so equal scores keep candidate order.
    """
    kept = [
        (doc, score) for doc, score in zip(candidates, scores) if score >= threshold
    ]
    kept = sorted(kept, key=lambda pair: pair[1], reverse=True)
    return [
        ScoredDocument(
            document=doc,
            score=min(1.0, max(0.0, score)),
            search_type="semantic",
        )
        for doc, score in kept[:limit]
    ]
