# src/embeddings/sentence_tf_provider.py — v1
"""Sentence Transformers embedding provider (local inference).

Models: all-MiniLM-L6-v2, multilingual-e5-large, etc.
"""

from __future__ import annotations

import asyncio
import importlib.util
import logging

from docsemantic.embeddings.base_provider import BaseEmbeddingProvider
from docsemantic.embeddings.errors import EmbeddingError

logger = logging.getLogger(__name__)


class SentenceTransformerProvider(BaseEmbeddingProvider):
    """Local embeddings via sentence-transformers."""

    def __init__(
        self,
        model: str = "all-MiniLM-L6-v2",
        dimensions: int = 384,
        priority: int = 5,
    ) -> None:
        super().__init__(priority=priority)
        self._model_name = model
        self._dimensions = dimensions
        self.__model = None

    @property
    def _model(self):
        if self.__model is None:
            try:
                from sentence_transformers import SentenceTransformer
            except ImportError as e:
                raise ImportError(
                    "sentence-transformers package required: "
                    "pip install sentence-transformers"
                ) from e
            self.__model = SentenceTransformer(self._model_name)
            # Update dimensions from loaded model
            self._dimensions = self.__model.get_sentence_embedding_dimension()
        return self.__model

    async def embed(self, text: str) -> list[float]:
        """Embed one text locally in a worker thread."""
        try:
            return await asyncio.to_thread(self._encode, text)
        except Exception as e:
            logger.warning("Local embedding failed: %s", e)
            raise EmbeddingError.from_exception(self.provider_name, e) from e

    def _encode(self, text: str) -> list[float]:
        embedding = self._model.encode(
            [text], show_progress_bar=False, normalize_embeddings=True
        )
        return embedding[0].tolist()

    def is_available(self) -> bool:
        return importlib.util.find_spec("sentence_transformers") is not None

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @property
    def provider_name(self) -> str:
        return "sentence_transformers"

    @property
    def model_name(self) -> str:
        return self._model_name
