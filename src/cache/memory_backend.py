# src/cache/memory_backend.py — v1
"""In-process cache backend (CACHE_BACKEND=memory).

Entries expire lazily: an expired key is dropped the next time it is
read or listed. Suitable for a single process and for tests.
"""

from __future__ import annotations

import re
import threading
import time
from functools import lru_cache
from typing import Callable

from docsemantic.cache.base_cache_backend import BaseCacheBackend


@lru_cache(maxsize=256)
def glob_to_regex(pattern: str) -> re.Pattern[str]:
    """Compile a Redis-style glob into an anchored regex."""
    out: list[str] = []
    i = 0
    while i < len(pattern):
        ch = pattern[i]
        if ch == "\\" and i + 1 < len(pattern):
            out.append(re.escape(pattern[i + 1]))
            i += 2
            continue
        if ch == "*":
            out.append(".*")
        elif ch == "?":
            out.append(".")
        elif ch == "[":
            end = pattern.find("]", i + 1)
            if end == -1:
                out.append(re.escape(ch))
            else:
                body = pattern[i + 1 : end]
                if body.startswith("^"):
                    body = "^" + re.escape(body[1:])
                else:
                    body = re.escape(body)
                # re.escape escapes '-'; ranges like [a-z] need it back.
                out.append("[" + body.replace("\\-", "-") + "]")
                i = end + 1
                continue
        else:
            out.append(re.escape(ch))
        i += 1
    return re.compile("".join(out) + r"\Z", re.DOTALL)


class MemoryCacheBackend(BaseCacheBackend):
    """Lock-protected dict of ``key -> (value, expires_at)``."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._data: dict[str, tuple[str, float | None]] = {}

    @property
    def backend_name(self) -> str:
        return "memory"

    async def get(self, key: str) -> str | None:
        now = self._clock()
        with self._lock:
            item = self._data.get(key)
            if item is None:
                return None
            value, expires_at = item
            if expires_at is not None and expires_at <= now:
                del self._data[key]
                return None
            return value

    async def set(self, key: str, value: str, ttl_s: int | None = None) -> None:
        expires_at = self._clock() + ttl_s if ttl_s and ttl_s > 0 else None
        with self._lock:
            self._data[key] = (value, expires_at)

    async def delete(self, *keys: str) -> int:
        removed = 0
        with self._lock:
            for key in keys:
                if self._data.pop(key, None) is not None:
                    removed += 1
        return removed

    async def keys(self, pattern: str) -> list[str]:
        regex = glob_to_regex(pattern)
        now = self._clock()
        with self._lock:
            self._purge_expired(now)
            return sorted(k for k in self._data if regex.match(k))

    async def ping(self) -> bool:
        return True

    def _purge_expired(self, now: float) -> None:
        expired = [
            k for k, (_, exp) in self._data.items() if exp is not None and exp <= now
        ]
        for k in expired:
            del self._data[k]

    def __len__(self) -> int:
        with self._lock:
            self._purge_expired(self._clock())
            return len(self._data)
