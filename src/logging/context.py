# src/logging/context.py — v1
"""Contextual logging support: scope, job_id, document_id and provider on log records."""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Context variables for structured logging, set per pipeline job or request.
_scope: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "scope", default=None
)
_job_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "job_id", default=None
)
_document_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "document_id", default=None
)
_provider: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "provider", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    scope: str | None = None
    job_id: str | None = None
    document_id: str | None = None
    provider: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        scope=_scope.get(),
        job_id=_job_id.get(),
        document_id=_document_id.get(),
        provider=_provider.get(),
    )


def set_job_context(scope: str, job_id: str) -> None:
    """Set job-level context (called once per pipeline run or search request)."""
    _scope.set(scope)
    _job_id.set(job_id)


def set_document_context(document_id: str | int | None) -> None:
    """Set the document currently being processed."""
    _document_id.set(None if document_id is None else str(document_id))


def set_provider_context(provider: str | None) -> None:
    """Set the provider currently being called."""
    _provider.set(provider)


def clear_context() -> None:
    """Reset all context variables."""
    _scope.set(None)
    _job_id.set(None)
    _document_id.set(None)
    _provider.set(None)
