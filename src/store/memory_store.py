# src/store/memory_store.py — v1
"""In-process document store.

Holds copies of saved documents so callers cannot mutate stored state
behind the store's back. Iteration order is document id order.
"""

from __future__ import annotations

import logging
import threading
from typing import Iterable

from docsemantic.core.models import Document
from docsemantic.store.base_document_store import BaseDocumentStore

logger = logging.getLogger(__name__)


class InMemoryDocumentStore(BaseDocumentStore):
    """Lock-protected dict of documents keyed by id."""

    def __init__(self, documents: Iterable[Document] = ()) -> None:
        self._lock = threading.Lock()
        self._documents: dict[int, Document] = {}
        for doc in documents:
            self._documents[doc.id] = doc.model_copy(deep=True)

    async def get(self, document_id: int) -> Document | None:
        with self._lock:
            doc = self._documents.get(document_id)
        return doc.model_copy(deep=True) if doc is not None else None

    async def save(self, document: Document) -> Document:
        [stored] = self._write([document])
        logger.debug("Saved document %d", stored.id)
        return stored

    async def save_all(self, documents: list[Document]) -> list[Document]:
        """All-or-nothing batch write."""
        stored = self._write(documents)
        logger.debug("Saved %d documents", len(stored))
        return stored

    def _write(self, documents: Iterable[Document]) -> list[Document]:
        batch = [doc.model_copy(deep=True) for doc in documents]
        with self._lock:
            snapshot = dict(self._documents)
            for doc in batch:
                self._documents[doc.id] = doc
            try:
                self._after_write()
            except Exception:
                self._documents = snapshot
                raise
        return [doc.model_copy(deep=True) for doc in batch]

    async def find_all(self, scope: str) -> list[Document]:
        return self._select(lambda d: d.owner == scope)

    async def find_by_embedding_flag(self, scope: str, generated: bool) -> list[Document]:
        return self._select(
            lambda d: d.owner == scope and d.embedding_generated is generated
        )

    async def search_by_filename(
        self, scope: str, query: str, limit: int | None = None
    ) -> list[Document]:
        needle = query.strip().lower()
        if not needle:
            return []
        matches = self._select(
            lambda d: d.owner == scope
            and d.original_filename is not None
            and needle in d.original_filename.lower()
        )
        return matches if limit is None else matches[:limit]

    def _select(self, predicate) -> list[Document]:
        with self._lock:
            docs = [d for _, d in sorted(self._documents.items()) if predicate(d)]
        return [d.model_copy(deep=True) for d in docs]

    def _after_write(self) -> None:
        """Hook run under the lock after every save."""
