"""
Per-provider concurrency guard for pooled batches.

One asyncio.Semaphore per provider tag caps how many generations a single
upstream provider has in flight. Sequential batches never touch this.

A limiter belongs to one event loop; build a fresh one per pooled run.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Dict, Optional

from . import config
from . import metrics

logger = logging.getLogger(__name__)


class ProviderLimiter:
    def __init__(self, max_per_provider: Optional[int] = None):
        limit = config.MAX_PER_PROVIDER if max_per_provider is None else max_per_provider
        if limit < 1:
            raise ValueError(f"max_per_provider must be >= 1, got {limit}")
        self.max_per_provider = limit
        self._semaphores: Dict[str, asyncio.Semaphore] = {}
        self._active: Dict[str, int] = {}
        self._peak: Dict[str, int] = {}

    def _semaphore(self, tag: str) -> asyncio.Semaphore:
        sem = self._semaphores.get(tag)
        if sem is None:
            sem = asyncio.Semaphore(self.max_per_provider)
            self._semaphores[tag] = sem
        return sem

    @asynccontextmanager
    async def slot(self, tag: str):
        """Hold one of `tag`'s slots for the duration of the block."""
        async with self._semaphore(tag):
            self._active[tag] = self._active.get(tag, 0) + 1
            self._peak[tag] = max(self._peak.get(tag, 0), self._active[tag])
            metrics.set_gauge(f"provider.{tag}.in_flight", self._active[tag])
            try:
                yield
            finally:
                self._active[tag] -= 1
                metrics.set_gauge(f"provider.{tag}.in_flight", self._active[tag])

    def active(self, tag: Optional[str] = None) -> int:
        if tag is not None:
            return self._active.get(tag, 0)
        return sum(self._active.values())

    def peak(self, tag: str) -> int:
        """Highest concurrent count seen for `tag`."""
        return self._peak.get(tag, 0)
