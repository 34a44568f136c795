# src/embeddings/cohere_provider.py — v1
"""Cohere embedding provider.

Calls the Cohere REST embed endpoint directly.
Models: embed-english-v3.0, embed-multilingual-v3.0.
"""

from __future__ import annotations

import asyncio
import json
import logging
import urllib.error
import urllib.request
from typing import Any

from docsemantic.embeddings.base_provider import BaseEmbeddingProvider
from docsemantic.embeddings.errors import EmbeddingError, ErrorKind

logger = logging.getLogger(__name__)

COHERE_API_URL = "https://api.cohere.ai/v1/embed"


class CohereProvider(BaseEmbeddingProvider):
    """Embeddings via Cohere API (free tier: 1000 calls/month)."""

    def __init__(
        self,
        model: str = "embed-english-v3.0",
        api_key: str | None = None,
        dimensions: int = 1024,
        priority: int = 2,
        api_url: str = COHERE_API_URL,
        request_timeout_s: float = 30.0,
    ) -> None:
        super().__init__(priority=priority)
        self._model = model
        self._api_key = api_key
        self._dimensions = dimensions
        self._api_url = api_url
        self._request_timeout_s = request_timeout_s

    async def embed(self, text: str) -> list[float]:
        """Embed one text as a search document."""
        payload = {
            "texts": [text],
            "model": self._model,
            "input_type": "search_document",
        }
        try:
            data = await asyncio.to_thread(self._post, payload)
        except urllib.error.HTTPError as e:
            logger.warning("Cohere HTTP error: %s", e.code)
            message = "Invalid API key" if e.code == 401 else f"HTTP error {e.code}: {e.reason}"
            raise EmbeddingError(self.provider_name, message, status_code=e.code) from e
        except Exception as e:
            logger.warning("Cohere embedding request failed: %s", e)
            raise EmbeddingError.from_exception(self.provider_name, e) from e

        return self._parse_embedding(data)

    def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        req = urllib.request.Request(
            self._api_url,
            data=json.dumps(payload).encode("utf-8"),
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self._api_key or ''}",
            },
        )
        with urllib.request.urlopen(req, timeout=self._request_timeout_s) as resp:
            return json.loads(resp.read().decode("utf-8"))

    def _parse_embedding(self, data: dict[str, Any]) -> list[float]:
        embeddings = data.get("embeddings")
        if not isinstance(embeddings, list) or not embeddings:
            raise EmbeddingError(
                self.provider_name,
                "Invalid response format - no embeddings found",
                kind=ErrorKind.OTHER,
            )
        first = embeddings[0]
        if not isinstance(first, list):
            raise EmbeddingError(
                self.provider_name, "Invalid embedding format", kind=ErrorKind.OTHER
            )
        embedding = [float(x) for x in first]
        logger.debug("Cohere embedding generated: %d dimensions", len(embedding))
        return embedding

    def is_available(self) -> bool:
        return bool(self._api_key and self._api_key.strip())

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @property
    def provider_name(self) -> str:
        return "cohere"

    @property
    def model_name(self) -> str:
        return self._model

    def provider_info(self) -> dict[str, Any]:
        info = super().provider_info()
        info["has_api_key"] = self.is_available()
        info["free_quota"] = "1000 calls/month"
        return info
