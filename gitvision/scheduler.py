"""Background maintenance loop that evicts expired cache entries."""

from __future__ import annotations

import asyncio

import structlog

from gitvision.engines.github.cache import ResponseCache

logger = structlog.get_logger(__name__)


class CacheSweeper:
    """Periodic ``ResponseCache.sweep_expired`` with a trigger/timeout wake."""

    def __init__(self, cache: ResponseCache, interval: float = 300.0) -> None:
        self.cache = cache
        self.interval = interval
        self.trigger = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def loop(self) -> None:
        """Sweep forever, waking on trigger or after *interval* seconds."""
        while True:
            try:
                await asyncio.wait_for(self.trigger.wait(), timeout=self.interval)
                self.trigger.clear()
            except asyncio.TimeoutError:
                pass

            removed = self.cache.sweep_expired()
            logger.debug("cache.swept", removed=removed, remaining=len(self.cache))

    async def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self.loop(), name="cache-sweeper")
        logger.info("sweeper.started", interval=self.interval)

    async def stop(self) -> None:
        """Cancel the loop and wait for it to exit."""
        if self._task is None:
            return
        self._task.cancel()
        await asyncio.gather(self._task, return_exceptions=True)
        self._task = None
        logger.info("sweeper.stopped")
