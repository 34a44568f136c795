# src/tracking/metrics.py — v1
"""Process-local named counters for provider, pipeline, search and cache signals.

Components take an optional registry; when none is given they share
the module-level default registry.
"""

from __future__ import annotations

import threading
from collections import Counter


class MetricsRegistry:
    """Thread-safe monotonically increasing counters."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counters: Counter[str] = Counter()

    def incr(self, name: str, amount: int = 1) -> None:
        with self._lock:
            self._counters[name] += amount

    def get(self, name: str) -> int:
        with self._lock:
            return self._counters.get(name, 0)

    def snapshot(self, prefix: str = "") -> dict[str, int]:
        """Copy of all counters, optionally only those starting with ``prefix``."""
        with self._lock:
            return {
                k: v for k, v in sorted(self._counters.items()) if k.startswith(prefix)
            }

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()


_default_registry = MetricsRegistry()


def default_registry() -> MetricsRegistry:
    return _default_registry
