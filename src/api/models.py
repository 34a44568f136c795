# src/api/models.py — v1
"""API-level models: SearchMode, SearchStatistics."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel

from docsemantic.embeddings.orchestrator import ProvidersStatus

SearchMode = Literal["semantic", "hybrid"]


class SearchStatistics(BaseModel):
    """Embedding coverage for one scope plus provider status."""

    scope: str
    total_documents: int
    documents_with_embeddings: int
    embedding_coverage: float
    active_provider: str | None = None
    providers_status: ProvidersStatus
