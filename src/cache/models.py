# src/cache/models.py — v1
"""Cache domain models: CacheNamespace, CacheKind, CacheHealth, CacheStatistics."""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field


class CacheKind(str, Enum):
    """Consistency class of a namespace."""

    MUTABLE = "mutable"  # evicted on the corresponding write
    IMMUTABLE = "immutable"  # content-hash keyed, only cleared explicitly
    AGGREGATE = "aggregate"  # short-lived, evicted in bulk


class CacheNamespace(str, Enum):
    """Logical cache regions; the value is the on-wire namespace name."""

    DOCUMENTS = "documents"
    USERS = "users"
    WORKFLOWS = "workflows"
    OCR_RESULTS = "ocr-results"
    AI_CLASSIFICATIONS = "ai-classifications"
    DASHBOARD_STATS = "dashboard-stats"
    SEARCH = "search"
    CUSTOM = "custom"

    @property
    def kind(self) -> CacheKind:
        return _NAMESPACE_KINDS[self]


_NAMESPACE_KINDS: dict[CacheNamespace, CacheKind] = {
    CacheNamespace.DOCUMENTS: CacheKind.MUTABLE,
    CacheNamespace.USERS: CacheKind.MUTABLE,
    CacheNamespace.WORKFLOWS: CacheKind.MUTABLE,
    CacheNamespace.OCR_RESULTS: CacheKind.IMMUTABLE,
    CacheNamespace.AI_CLASSIFICATIONS: CacheKind.IMMUTABLE,
    CacheNamespace.DASHBOARD_STATS: CacheKind.AGGREGATE,
    CacheNamespace.SEARCH: CacheKind.AGGREGATE,
    CacheNamespace.CUSTOM: CacheKind.MUTABLE,
}


class CacheHealth(BaseModel):
    """Backend reachability. Never raised, always reported."""

    status: Literal["UP", "DOWN"]
    backend: str
    enabled: bool = True
    detail: str | None = None

    @property
    def is_up(self) -> bool:
        return self.status == "UP"


class CacheStatistics(BaseModel):
    """Counters and per-namespace entry counts."""

    backend: str
    enabled: bool
    hits: int = 0
    misses: int = 0
    errors: int = 0
    entries_by_namespace: dict[str, int] = Field(default_factory=dict)
    ttl_seconds: dict[str, int] = Field(default_factory=dict)

    @property
    def hit_ratio(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0
