# src/store/base_document_store.py — v1
"""Abstract document store interface.

The store is the single source of truth for documents and their vectors.
``scope`` is the owning user's name; every query is confined to it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from docsemantic.core.models import Document


class DocumentStoreError(Exception):
    """The document store could not serve a request."""


class BaseDocumentStore(ABC):
    """Unified interface for document store backends."""

    @abstractmethod
    async def get(self, document_id: int) -> Document | None:
        """Fetch a single document by id."""

    @abstractmethod
    async def save(self, document: Document) -> Document:
        """Insert or replace a document. The write is atomic per document."""

    @abstractmethod
    async def find_all(self, scope: str) -> list[Document]:
        """All documents in scope, in stable id order."""

    @abstractmethod
    async def find_by_embedding_flag(self, scope: str, generated: bool) -> list[Document]:
        """Documents in scope whose embedding_generated flag equals ``generated``."""

    @abstractmethod
    async def search_by_filename(
        self, scope: str, query: str, limit: int | None = None
    ) -> list[Document]:
        """Case-insensitive substring match on original_filename."""

    async def save_all(self, documents: list[Document]) -> list[Document]:
        """Insert or replace several documents; returns what was stored."""
        return [await self.save(doc) for doc in documents]

    async def find_missing_embeddings(self, scope: str) -> list[Document]:
        """Documents in scope that have no embedding yet."""
        return await self.find_by_embedding_flag(scope, False)

    async def count(self, scope: str) -> int:
        return len(await self.find_all(scope))

    async def count_with_embeddings(self, scope: str) -> int:
        return len(await self.find_by_embedding_flag(scope, True))
