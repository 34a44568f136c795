# src/embeddings/base_provider.py — v1
"""Abstract embedding provider interface.

Every backend the orchestrator can fail over between implements this.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class BaseEmbeddingProvider(ABC):
    """Unified interface for all embedding providers."""

    def __init__(self, priority: int = 100) -> None:
        self._priority = priority

    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        """Embed a single text.

        Raises:
            EmbeddingError: On any failure, classified by kind.
        """

    @abstractmethod
    def is_available(self) -> bool:
        """Cheap, local health check. Evaluated on every call."""

    @property
    def priority(self) -> int:
        """Lower numbers are tried first."""
        return self._priority

    @property
    @abstractmethod
    def dimensions(self) -> int:
        """Output vector dimensions."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier."""

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Model identifier."""

    def provider_info(self) -> dict[str, Any]:
        """Provider metadata for status endpoints."""
        return {
            "name": self.provider_name,
            "available": self.is_available(),
            "priority": self.priority,
            "dimensions": self.dimensions,
            "model": self.model_name,
        }
