# src/embeddings/errors.py — v1
"""Typed embedding failures.

Every provider failure is raised as an ``EmbeddingError`` carrying an
``ErrorKind``. Callers branch on the kind, never on message text.
"""

from __future__ import annotations

import asyncio
from enum import Enum


class ErrorKind(str, Enum):
    """Classification of an embedding failure."""

    AUTH = "auth"
    RATE_LIMIT = "rate_limit"
    TIMEOUT = "timeout"
    UNAVAILABLE = "unavailable"
    NOT_CONFIGURED = "not_configured"
    OTHER = "other"

    @property
    def is_permanent(self) -> bool:
        """True when repeating the call cannot succeed until config changes."""
        return self in (ErrorKind.AUTH, ErrorKind.NOT_CONFIGURED)


def kind_for_status(status_code: int | None) -> ErrorKind:
    """Map an HTTP status code onto an ErrorKind."""
    if status_code in (401, 403):
        return ErrorKind.AUTH
    if status_code == 429:
        return ErrorKind.RATE_LIMIT
    if status_code in (408, 504):
        return ErrorKind.TIMEOUT
    return ErrorKind.OTHER


def status_of(exc: BaseException) -> int | None:
    """Extract an HTTP status code from an SDK or urllib exception, if any."""
    for attr in ("status_code", "http_status", "code", "status"):
        value = getattr(exc, attr, None)
        if isinstance(value, int) and 100 <= value < 600:
            return value
    response = getattr(exc, "response", None)
    value = getattr(response, "status_code", None)
    if isinstance(value, int):
        return value
    return None


class EmbeddingError(Exception):
    """An embedding request failed."""

    def __init__(
        self,
        provider_name: str,
        message: str,
        status_code: int | None = None,
        kind: ErrorKind | None = None,
    ) -> None:
        self.provider_name = provider_name
        self.status_code = status_code
        self.kind = kind if kind is not None else kind_for_status(status_code)
        super().__init__(message)

    @classmethod
    def from_exception(cls, provider_name: str, exc: BaseException) -> EmbeddingError:
        """Wrap an arbitrary SDK/transport exception.

        The original exception is attached as ``__cause__`` by the caller's
        ``raise ... from exc``.
        """
        if isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
            return cls(provider_name, f"Request timed out: {exc}", kind=ErrorKind.TIMEOUT)
        status = status_of(exc)
        return cls(provider_name, f"{type(exc).__name__}: {exc}", status_code=status)

    @property
    def is_auth_error(self) -> bool:
        return self.kind is ErrorKind.AUTH

    def __repr__(self) -> str:
        return (
            f"EmbeddingError(provider={self.provider_name!r}, kind={self.kind.value}, "
            f"status={self.status_code}, message={str(self)!r})"
        )


class NoProvidersConfiguredError(EmbeddingError):
    """No embedding providers were configured; retrying is pointless."""

    def __init__(self) -> None:
        super().__init__(
            "orchestrator",
            "No embedding providers configured",
            kind=ErrorKind.NOT_CONFIGURED,
        )


class AllProvidersFailedError(EmbeddingError):
    """Every configured provider was skipped or failed for one request.

    ``provider_name`` and the message come from the last concrete failure.
    ``kind`` is AUTH only when every attempted provider rejected its
    credentials; UNAVAILABLE when no provider was attempted at all.
    """

    def __init__(self, failures: list[EmbeddingError]) -> None:
        self.failures = list(failures)
        if not failures:
            super().__init__(
                "orchestrator",
                "All embedding providers are unavailable",
                kind=ErrorKind.UNAVAILABLE,
            )
            return

        last = failures[-1]
        if all(f.kind is ErrorKind.AUTH for f in failures):
            kind = ErrorKind.AUTH
        else:
            kind = next(f.kind for f in reversed(failures) if f.kind is not ErrorKind.AUTH)
        super().__init__(
            last.provider_name,
            f"All embedding providers failed. Last error ({last.provider_name}): {last}",
            status_code=last.status_code,
            kind=kind,
        )
