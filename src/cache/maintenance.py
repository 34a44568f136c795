# src/cache/maintenance.py — v1
"""Scheduled cache maintenance.

Dashboard aggregates are cleared every ten minutes; a daily pass clears
every namespace except the content-hash keyed OCR and classification
results, which stay valid as long as their input bytes exist.
"""

from __future__ import annotations

import asyncio
import logging

from docsemantic.cache.result_cache import ResultCache

logger = logging.getLogger(__name__)

DASHBOARD_INTERVAL_S = 10 * 60
DAILY_INTERVAL_S = 24 * 60 * 60


class CacheMaintenance:
    """Periodic eviction jobs for a ResultCache.

    Usage:
        maintenance = CacheMaintenance(cache)
        task = asyncio.create_task(maintenance.run(stop_event))
    """

    def __init__(
        self,
        cache: ResultCache,
        dashboard_interval_s: float = DASHBOARD_INTERVAL_S,
        daily_interval_s: float = DAILY_INTERVAL_S,
    ) -> None:
        self._cache = cache
        self._dashboard_interval_s = dashboard_interval_s
        self._daily_interval_s = daily_interval_s

    async def clear_dashboard_stats(self) -> int:
        removed = await self._cache.clear_dashboard_stats()
        logger.info("Cleared dashboard stats cache (%d keys)", removed)
        return removed

    async def daily_maintenance(self) -> int:
        removed = await self._cache.clear_mutable()
        logger.info("Daily cache maintenance removed %d keys", removed)
        return removed

    async def run(self, stop_event: asyncio.Event) -> None:
        """Run both schedules until ``stop_event`` is set."""
        loop = asyncio.get_running_loop()
        next_dashboard = loop.time() + self._dashboard_interval_s
        next_daily = loop.time() + self._daily_interval_s

        while not stop_event.is_set():
            timeout = max(0.0, min(next_dashboard, next_daily) - loop.time())
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=timeout)
                break
            except asyncio.TimeoutError:
                pass

            now = loop.time()
            if now >= next_dashboard:
                await self.clear_dashboard_stats()
                next_dashboard = now + self._dashboard_interval_s
            if now >= next_daily:
                await self.daily_maintenance()
                next_daily = now + self._daily_interval_s
        logger.debug("Cache maintenance stopped")
