# src/embeddings/voyage_provider.py — v1
"""Voyage AI embedding provider.

Uses the voyageai SDK. Models: voyage-3, voyage-3-lite.
"""

from __future__ import annotations

import logging

from docsemantic.embeddings.base_provider import BaseEmbeddingProvider
from docsemantic.embeddings.errors import EmbeddingError, ErrorKind

logger = logging.getLogger(__name__)


class VoyageProvider(BaseEmbeddingProvider):
    """Embeddings via Voyage API."""

    def __init__(
        self,
        model: str = "voyage-3",
        api_key: str | None = None,
        dimensions: int = 1024,
        priority: int = 3,
    ) -> None:
        super().__init__(priority=priority)
        self._model = model
        self._api_key = api_key
        self._dimensions = dimensions
        self.__client = None

    @property
    def _client(self):
        if self.__client is None:
            try:
                import voyageai
            except ImportError as e:
                raise ImportError(
                    "voyageai package required: pip install voyageai"
                ) from e
            self.__client = voyageai.AsyncClient(api_key=self._api_key or "", max_retries=0)
        return self.__client

    async def embed(self, text: str) -> list[float]:
        """Embed one text with the document input type."""
        client = self._client
        try:
            result = await client.embed([text], model=self._model, input_type="document")
        except Exception as e:
            logger.warning("Voyage embedding request failed: %s", e)
            raise EmbeddingError.from_exception(self.provider_name, e) from e

        if not result.embeddings:
            raise EmbeddingError(
                self.provider_name, "Response contained no embeddings", kind=ErrorKind.OTHER
            )
        return list(result.embeddings[0])

    def is_available(self) -> bool:
        return bool(self._api_key and self._api_key.strip())

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @property
    def provider_name(self) -> str:
        return "voyage"

    @property
    def model_name(self) -> str:
        return self._model
