# src/embeddings/provider_factory.py — v1
"""Factory: instantiate embedding providers and the orchestrator from configuration."""

from __future__ import annotations

import importlib
import logging
from typing import Any

from docsemantic.config.settings import Settings
from docsemantic.embeddings.base_provider import BaseEmbeddingProvider
from docsemantic.embeddings.orchestrator import EmbeddingOrchestrator
from docsemantic.tracking.metrics import MetricsRegistry

logger = logging.getLogger(__name__)

_PROVIDER_REGISTRY: dict[str, str] = {
    "openai": "docsemantic.embeddings.openai_provider.OpenAIProvider",
    "cohere": "docsemantic.embeddings.cohere_provider.CohereProvider",
    "voyage": "docsemantic.embeddings.voyage_provider.VoyageProvider",
    "ollama": "docsemantic.embeddings.ollama_provider.OllamaProvider",
    "sentence_transformers": (
        "docsemantic.embeddings.sentence_tf_provider.SentenceTransformerProvider"
    ),
}


class UnsupportedEmbeddingProviderError(ValueError):
    """Raised when an embedding provider is not registered."""


def create_provider(name: str, settings: Settings) -> BaseEmbeddingProvider:
    """Instantiate one registered provider from settings.

    Raises:
        UnsupportedEmbeddingProviderError: If ``name`` is not registered.
    """
    if name not in _PROVIDER_REGISTRY:
        raise UnsupportedEmbeddingProviderError(
            f"Unsupported embedding provider: {name!r}. "
            f"Available: {', '.join(sorted(_PROVIDER_REGISTRY))}"
        )

    cls = _import_class(_PROVIDER_REGISTRY[name])
    kwargs = _provider_kwargs(name, settings)
    logger.debug("Creating embedding provider: %s", name)
    return cls(**kwargs)


def create_providers(settings: Settings) -> list[BaseEmbeddingProvider]:
    """Instantiate every provider listed in EMBEDDING_PROVIDERS, in listed order."""
    return [create_provider(name, settings) for name in settings.embedding_providers_list]


def create_orchestrator(
    settings: Settings | None = None, metrics: MetricsRegistry | None = None
) -> EmbeddingOrchestrator:
    """Build the process-wide orchestrator. Call once at startup."""
    settings = settings or Settings()
    return EmbeddingOrchestrator(
        create_providers(settings),
        timeout_s=settings.provider_timeout_s,
        metrics=metrics,
    )


def register_embedding_provider(name: str, class_path: str) -> None:
    """Register a custom embedding provider.

    The class is constructed with no keyword arguments unless it is one of
    the built-in providers.
    """
    _PROVIDER_REGISTRY[name] = class_path


def _provider_kwargs(name: str, settings: Settings) -> dict[str, Any]:
    if name == "openai":
        return {
            "model": settings.openai_embedding_model,
            "api_key": settings.openai_api_key,
            "dimensions": settings.openai_embedding_dimensions,
            "priority": settings.openai_priority,
        }
    if name == "cohere":
        return {
            "model": settings.cohere_model,
            "api_key": settings.cohere_api_key,
            "dimensions": settings.cohere_dimensions,
            "priority": settings.cohere_priority,
            "request_timeout_s": settings.provider_timeout_s,
        }
    if name == "voyage":
        return {
            "model": settings.voyage_model,
            "api_key": settings.voyage_api_key,
            "dimensions": settings.voyage_dimensions,
            "priority": settings.voyage_priority,
        }
    if name == "ollama":
        return {
            "model": settings.ollama_model,
            "base_url": settings.ollama_base_url,
            "dimensions": settings.ollama_dimensions,
            "priority": settings.ollama_priority,
            "request_timeout_s": settings.provider_timeout_s,
        }
    if name == "sentence_transformers":
        return {
            "model": settings.st_model,
            "dimensions": settings.st_dimensions,
            "priority": settings.st_priority,
        }
    return {}


def _import_class(class_path: str) -> type:
    """Dynamically import a class from its fully qualified path."""
    module_path, class_name = class_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    return getattr(module, class_name)
