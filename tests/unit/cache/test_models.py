# tests/unit/cache/test_models.py — v1
"""Tests for cache/models.py."""

from __future__ import annotations

from docsemantic.cache.models import (
    CacheHealth,
    CacheKind,
    CacheNamespace,
    CacheStatistics,
)


class TestCacheNamespace:
    def test_wire_names(self):
        assert CacheNamespace.OCR_RESULTS.value == "ocr-results"
        assert CacheNamespace.AI_CLASSIFICATIONS.value == "ai-classifications"
        assert CacheNamespace.DASHBOARD_STATS.value == "dashboard-stats"

    def test_kinds(self):
        assert CacheNamespace.DOCUMENTS.kind is CacheKind.MUTABLE
        assert CacheNamespace.CUSTOM.kind is CacheKind.MUTABLE
        assert CacheNamespace.OCR_RESULTS.kind is CacheKind.IMMUTABLE
        assert CacheNamespace.AI_CLASSIFICATIONS.kind is CacheKind.IMMUTABLE
        assert CacheNamespace.SEARCH.kind is CacheKind.AGGREGATE
        assert CacheNamespace.DASHBOARD_STATS.kind is CacheKind.AGGREGATE


class TestHealthAndStatistics:
    def test_is_up(self):
        assert CacheHealth(status="UP", backend="memory").is_up
        assert not CacheHealth(status="DOWN", backend="redis", detail="refused").is_up

    def test_hit_ratio(self):
        assert CacheStatistics(backend="memory", enabled=True).hit_ratio == 0.0
        stats = CacheStatistics(backend="memory", enabled=True, hits=3, misses=1)
        assert stats.hit_ratio == 0.75
