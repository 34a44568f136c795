# src/search/hybrid.py — v1
"""Hybrid search: semantic ranking merged with filename keyword matches.

Both branches run concurrently and are joined before merging. A failing
semantic branch degrades the response to keyword-only results; it is
never surfaced to the caller.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from docsemantic.core.models import Document, ScoredDocument
from docsemantic.store.base_document_store import DocumentStoreError
from docsemantic.tracking.metrics import MetricsRegistry, default_registry

if TYPE_CHECKING:
    from docsemantic.config.settings import Settings
    from docsemantic.search.semantic import SemanticSearchEngine
    from docsemantic.store.base_document_store import BaseDocumentStore

logger = logging.getLogger(__name__)

DEFAULT_BOOST_FACTOR = 1.2
DEFAULT_KEYWORD_SCORE = 0.5


def merge_results(
    semantic: list[ScoredDocument],
    keyword: list[Document],
    limit: int,
    boost_factor: float = DEFAULT_BOOST_FACTOR,
    keyword_score: float = DEFAULT_KEYWORD_SCORE,
) -> list[ScoredDocument]:
    """Two-pass merge keyed by document id.

    Semantic hits go in first. A keyword hit already present is boosted by
    ``boost_factor`` (capped at 1.0) and re-tagged ``hybrid``; a new one is
    added with ``keyword_score`` tagged ``keyword``. The result is sorted
    by score descending, ties in insertion order, and truncated.
    """
    merged: dict[int, ScoredDocument] = {}
    for hit in semantic:
        merged.setdefault(
            hit.document_id, hit.model_copy(update={"search_type": "semantic"})
        )

    for doc in keyword:
        existing = merged.get(doc.id)
        if existing is None:
            merged[doc.id] = ScoredDocument(
                document=doc, score=keyword_score, search_type="keyword"
            )
        elif existing.search_type == "semantic":
            merged[doc.id] = existing.model_copy(
                update={
                    "score": min(1.0, existing.score * boost_factor),
                    "search_type": "hybrid",
                }
            )

    ranked = sorted(merged.values(), key=lambda s: s.score, reverse=True)
    return ranked[:limit]


class HybridSearchEngine:
    """Concurrent semantic and keyword search with a boosted merge.

    Usage:
        engine = HybridSearchEngine(semantic_engine, store, settings)
        results = await engine.search("voter card", scope="alice", limit=10)
    """

    def __init__(
        self,
        semantic: SemanticSearchEngine,
        store: BaseDocumentStore,
        settings: Settings | None = None,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        self._semantic = semantic
        self._store = store
        self._metrics = metrics or default_registry()
        if settings is not None:
            self._boost_factor = settings.hybrid_boost_factor
            self._keyword_score = settings.hybrid_keyword_score
            self._default_limit = settings.search_default_limit
        else:
            self._boost_factor = DEFAULT_BOOST_FACTOR
            self._keyword_score = DEFAULT_KEYWORD_SCORE
            self._default_limit = 12

    async def keyword_search(
        self, query: str, scope: str, limit: int
    ) -> list[Document]:
        """Case-insensitive filename substring matches, at most ``limit``."""
        text = query.strip()
        if not text:
            return []
        return await self._store.search_by_filename(scope, text, limit)

    async def search(
        self, query: str, scope: str, limit: int | None = None
    ) -> list[ScoredDocument]:
        """Merged ranking for ``query``.

        Raises:
            DocumentStoreError: Only if both branches failed.
        """
        results, _ = await self.search_with_status(query, scope, limit)
        return results

    async def search_with_status(
        self, query: str, scope: str, limit: int | None = None
    ) -> tuple[list[ScoredDocument], bool]:
        """Like ``search``, also reporting whether a branch failed.

        Returns:
            (results, degraded). Degraded results should not be cached.
        """
        limit = self._default_limit if limit is None else limit
        if limit <= 0:
            return [], False

        semantic_result, keyword_result = await asyncio.gather(
            self._semantic.search(query, scope, limit),
            self.keyword_search(query, scope, limit),
            return_exceptions=True,
        )
        # gather() also returns CancelledError; let it propagate.
        for result in (semantic_result, keyword_result):
            if isinstance(result, BaseException) and not isinstance(result, Exception):
                raise result

        semantic_failed = isinstance(semantic_result, Exception)
        keyword_failed = isinstance(keyword_result, Exception)

        if semantic_failed and keyword_failed:
            self._metrics.incr("search.hybrid.failed")
            logger.error(
                "Hybrid search failed on both branches: semantic=%s keyword=%s",
                semantic_result, keyword_result,
            )
            raise DocumentStoreError(
                f"Search failed: {keyword_result}"
            ) from keyword_result

        if semantic_failed:
            self._metrics.incr("search.hybrid.degraded")
            logger.warning(
                "Semantic branch failed, falling back to keyword results: %s",
                semantic_result,
            )
            semantic_result = []

        if keyword_failed:
            self._metrics.incr("search.keyword.failed")
            logger.warning(
                "Keyword branch failed, using semantic results only: %s", keyword_result
            )
            keyword_result = []

        logger.info(
            "Hybrid search results - semantic: %d, keyword: %d",
            len(semantic_result), len(keyword_result),
        )
        self._metrics.incr("search.hybrid.success")
        merged = merge_results(
            semantic_result,
            keyword_result,
            limit,
            boost_factor=self._boost_factor,
            keyword_score=self._keyword_score,
        )
        return merged, semantic_failed or keyword_failed
