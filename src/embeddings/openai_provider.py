# src/embeddings/openai_provider.py — v1
"""OpenAI embedding provider.

Uses the openai SDK. Models: text-embedding-3-small, text-embedding-3-large.
"""

from __future__ import annotations

import logging
from typing import Any

from docsemantic.embeddings.base_provider import BaseEmbeddingProvider
from docsemantic.embeddings.errors import EmbeddingError, ErrorKind

logger = logging.getLogger(__name__)


class OpenAIProvider(BaseEmbeddingProvider):
    """Embeddings via OpenAI API."""

    def __init__(
        self,
        model: str = "text-embedding-3-small",
        api_key: str | None = None,
        dimensions: int = 1536,
        priority: int = 1,
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
                import openai
            except ImportError as e:
                raise ImportError(
                    "openai package required: pip install openai"
                ) from e
            # Failover is the orchestrator's job; no SDK-level retries.
            self.__client = openai.AsyncOpenAI(api_key=self._api_key or "", max_retries=0)
        return self.__client

    async def embed(self, text: str) -> list[float]:
        """Embed one text via the embeddings endpoint."""
        client = self._client
        try:
            response = await client.embeddings.create(input=[text], model=self._model)
        except Exception as e:
            logger.warning("OpenAI embedding request failed: %s", e)
            raise EmbeddingError.from_exception(self.provider_name, e) from e

        if not response.data:
            raise EmbeddingError(
                self.provider_name, "Response contained no embeddings", kind=ErrorKind.OTHER
            )
        embedding = list(response.data[0].embedding)
        logger.debug("OpenAI embedding generated: %d dimensions", len(embedding))
        return embedding

    def is_available(self) -> bool:
        return bool(self._api_key and self._api_key.strip())

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @property
    def provider_name(self) -> str:
        return "openai"

    @property
    def model_name(self) -> str:
        return self._model

    def provider_info(self) -> dict[str, Any]:
        info = super().provider_info()
        info["has_api_key"] = self.is_available()
        return info
