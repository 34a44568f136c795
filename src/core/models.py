# src/core/models.py — v1
"""Shared Pydantic domain models used across modules.

No module redefines these types; all imports come from core.models.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, model_validator

SearchProvenance = Literal["semantic", "keyword", "hybrid"]


# === DOCUMENTS ===


class Document(BaseModel):
    """Document entity as seen by the search subsystem.

    Owned by the document store. ``embedding`` holds the serialized vector
    produced by ``embeddings.codec.encode``; ``embedding_generated`` is true
    iff that field holds a decodable vector.
    """

    id: int
    original_filename: str | None = None
    description: str | None = None
    category: str | None = None
    document_type: str | None = None
    owner: str
    embedding: str | None = None
    embedding_generated: bool = False

    @model_validator(mode="after")
    def validate_embedding_flag(self) -> Document:
        """The flag may only be set when a decodable vector is stored."""
        from docsemantic.embeddings import codec

        if self.embedding_generated and not codec.is_valid(self.embedding):
            raise ValueError(
                f"Document {self.id}: embedding_generated is set but no valid "
                "vector is stored"
            )
        return self

    def with_embedding(self, serialized: str) -> Document:
        """Return a copy carrying a freshly generated vector."""
        return self.model_copy(
            update={"embedding": serialized, "embedding_generated": True}
        )

    @property
    def display_name(self) -> str:
        return self.original_filename or f"document-{self.id}"


# === SEARCH RESULTS ===


class ScoredDocument(BaseModel):
    """A document paired with its relevance score for one search request."""

    document: Document
    score: float = Field(ge=0.0, le=1.0)
    search_type: SearchProvenance

    @property
    def document_id(self) -> int:
        return self.document.id
