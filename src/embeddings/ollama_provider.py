# src/embeddings/ollama_provider.py — v1
"""Ollama embedding provider (local inference).

Uses the Ollama REST API. Models: nomic-embed-text, mxbai-embed-large, etc.
"""

from __future__ import annotations

import asyncio
import json
import logging
import urllib.error
import urllib.request

from docsemantic.embeddings.base_provider import BaseEmbeddingProvider
from docsemantic.embeddings.errors import EmbeddingError, ErrorKind

logger = logging.getLogger(__name__)


class OllamaProvider(BaseEmbeddingProvider):
    """Local embeddings via Ollama API."""

    def __init__(
        self,
        model: str = "nomic-embed-text",
        base_url: str = "http://localhost:11434",
        dimensions: int = 768,
        priority: int = 4,
        request_timeout_s: float = 30.0,
    ) -> None:
        super().__init__(priority=priority)
        self._model_name = model
        self._base_url = base_url.rstrip("/")
        self._dimensions = dimensions
        self._request_timeout_s = request_timeout_s

    async def embed(self, text: str) -> list[float]:
        """Call the Ollama embed endpoint for a single text."""
        try:
            data = await asyncio.to_thread(self._post, text)
        except urllib.error.HTTPError as e:
            raise EmbeddingError(
                self.provider_name, f"HTTP error {e.code}: {e.reason}", status_code=e.code
            ) from e
        except Exception as e:
            logger.warning("Ollama embedding request failed: %s", e)
            raise EmbeddingError.from_exception(self.provider_name, e) from e

        embeddings = data.get("embeddings", [])
        if embeddings:
            return [float(x) for x in embeddings[0]]
        raise EmbeddingError(
            self.provider_name,
            f"Ollama returned no embeddings for model {self._model_name}",
            kind=ErrorKind.OTHER,
        )

    def _post(self, text: str) -> dict:
        url = f"{self._base_url}/api/embed"
        payload = json.dumps({"model": self._model_name, "input": text}).encode("utf-8")
        req = urllib.request.Request(
            url, data=payload, headers={"Content-Type": "application/json"}
        )
        with urllib.request.urlopen(req, timeout=self._request_timeout_s) as resp:
            return json.loads(resp.read().decode("utf-8"))

    def is_available(self) -> bool:
        # Local daemon, no credentials; reachability surfaces as a call failure.
        return bool(self._base_url)

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @property
    def provider_name(self) -> str:
        return "ollama"

    @property
    def model_name(self) -> str:
        return self._model_name
