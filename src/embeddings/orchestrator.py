# src/embeddings/orchestrator.py — v1
"""Priority-ordered failover across embedding providers.

The provider list is sorted once at construction and never mutated, so a
single orchestrator can be shared by concurrent callers without locking.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Sequence

from pydantic import BaseModel, Field

from docsemantic.embeddings.base_provider import BaseEmbeddingProvider
from docsemantic.embeddings.errors import (
    AllProvidersFailedError,
    EmbeddingError,
    ErrorKind,
    NoProvidersConfiguredError,
)
from docsemantic.logging.context import set_provider_context
from docsemantic.tracking.metrics import MetricsRegistry, default_registry

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER_TIMEOUT_S = 30.0


class ProviderStatus(BaseModel):
    """One row of the provider status table."""

    name: str
    priority: int
    available: bool
    dimensions: int
    model: str


class ProvidersStatus(BaseModel):
    """Aggregate provider status for observability endpoints."""

    providers: list[ProviderStatus] = Field(default_factory=list)
    total_providers: int = 0
    available_providers: int = 0

    @property
    def has_available_provider(self) -> bool:
        return self.available_providers > 0


class EmbeddingOrchestrator:
    """Try providers in priority order and return the first success.

    Args:
        providers: Providers in any order; sorted here by priority.
        timeout_s: Per-call bound in seconds. None disables it; zero or
            negative values raise ValueError.
        metrics: Counter registry (default: process-wide).
    """

    def __init__(
        self,
        providers: Sequence[BaseEmbeddingProvider] = (),
        timeout_s: float | None = DEFAULT_PROVIDER_TIMEOUT_S,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        if timeout_s is not None and timeout_s <= 0:
            raise ValueError(f"timeout_s must be > 0 or None, got {timeout_s}")
        # sorted() is stable: equal priorities keep registration order.
        self._providers: tuple[BaseEmbeddingProvider, ...] = tuple(
            sorted(providers, key=lambda p: p.priority)
        )
        self._timeout_s = timeout_s
        self._metrics = metrics or default_registry()
        self._diagnostics_lock = threading.Lock()
        self._diagnostics_logged = False

        if not self._providers:
            logger.warning("No embedding providers configured; AI features are disabled")

    @property
    def providers(self) -> tuple[BaseEmbeddingProvider, ...]:
        return self._providers

    @property
    def provider_count(self) -> int:
        return len(self._providers)

    async def embed(self, text: str) -> list[float]:
        """Embed ``text`` with the highest-priority provider that succeeds.

        Unavailable providers are skipped without being called. A failing
        provider is never retried within one call; its failure is recorded
        and the next provider is tried.

        Raises:
            NoProvidersConfiguredError: If the provider list is empty.
            AllProvidersFailedError: If every provider was skipped or failed.
        """
        if not self._providers:
            raise NoProvidersConfiguredError()
        self.log_diagnostics()

        failures: list[EmbeddingError] = []
        for provider in self._providers:
            if not provider.is_available():
                logger.debug("Skipping unavailable provider: %s", provider.provider_name)
                continue

            set_provider_context(provider.provider_name)
            try:
                vector = await self._call(provider, text)
            except EmbeddingError as e:
                failures.append(e)
                self._metrics.incr(f"embedding.provider.{provider.provider_name}.failure")
                self._log_failure(e)
                continue
            finally:
                set_provider_context(None)

            self._metrics.incr(f"embedding.provider.{provider.provider_name}.success")
            logger.info(
                "Embedding generated using %s (%d dimensions)",
                provider.provider_name, len(vector),
            )
            return vector

        error = AllProvidersFailedError(failures)
        self._metrics.incr("embedding.all_failed")
        logger.error("%s", error)
        raise error

    async def _call(self, provider: BaseEmbeddingProvider, text: str) -> list[float]:
        """Invoke one provider under the per-call timeout, normalizing errors."""
        try:
            if self._timeout_s is not None:
                return await asyncio.wait_for(provider.embed(text), timeout=self._timeout_s)
            return await provider.embed(text)
        except EmbeddingError:
            raise
        except asyncio.TimeoutError as e:
            raise EmbeddingError(
                provider.provider_name,
                f"No response within {self._timeout_s:.1f}s",
                kind=ErrorKind.TIMEOUT,
            ) from e
        except Exception as e:
            raise EmbeddingError.from_exception(provider.provider_name, e) from e

    @staticmethod
    def _log_failure(error: EmbeddingError) -> None:
        logger.warning(
            "Provider %s failed: %s (kind=%s, status=%s)",
            error.provider_name, error, error.kind.value, error.status_code,
        )
        if error.kind is ErrorKind.AUTH:
            logger.debug("Not retrying %s: authentication error", error.provider_name)
        elif error.kind is ErrorKind.RATE_LIMIT:
            logger.debug("Rate limit hit on %s, trying next provider", error.provider_name)

    def active_provider(self) -> BaseEmbeddingProvider | None:
        """Highest-priority provider currently reporting available."""
        for provider in self._providers:
            if provider.is_available():
                return provider
        return None

    def status(self) -> ProvidersStatus:
        """Snapshot of every configured provider's availability."""
        rows = [
            ProviderStatus(
                name=p.provider_name,
                priority=p.priority,
                available=p.is_available(),
                dimensions=p.dimensions,
                model=p.model_name,
            )
            for p in self._providers
        ]
        return ProvidersStatus(
            providers=rows,
            total_providers=len(rows),
            available_providers=sum(1 for r in rows if r.available),
        )

    def log_diagnostics(self) -> bool:
        """Log the provider table once per orchestrator.

        Returns:
            True if this call emitted the log, False if it had already run.
        """
        with self._diagnostics_lock:
            if self._diagnostics_logged:
                return False
            self._diagnostics_logged = True

        logger.info(
            "Embedding orchestrator initialized with %d providers", len(self._providers)
        )
        for provider in self._providers:
            logger.info(
                "  - %s (priority: %d, available: %s, dimensions: %d)",
                provider.provider_name,
                provider.priority,
                provider.is_available(),
                provider.dimensions,
            )
        return True
