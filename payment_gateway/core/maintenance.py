"""
Periodic maintenance sweep for the in-memory stores.

The sweeper is the only background task in the service. It is started and
stopped by the application lifespan.
"""
import asyncio
from typing import Dict, Optional, Protocol

import structlog

from ..monitoring.metrics import metrics
from .result_cache import ResultCache

logger = structlog.get_logger(__name__)


class Sweepable(Protocol):
    def sweep(self) -> int: ...

    def __len__(self) -> int: ...


class MaintenanceSweeper:
    """Runs ``sweep()`` on every registered store at a fixed interval."""

    def __init__(self, stores: Dict[str, Sweepable], interval_seconds: float = 300.0):
        """
        Args:
            stores: Stores to sweep, keyed by a name used in logs and metrics
            interval_seconds: Delay between sweeps
        """
        self.stores = stores
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def run_once(self) -> Dict[str, int]:
        """Sweep every store once. Returns entries removed per store."""
        removed: Dict[str, int] = {}
        for name, store in self.stores.items():
            count = store.sweep()
            removed[name] = count
            metrics.record_sweep(name, count)
            if isinstance(store, ResultCache):
                metrics.set_cache_size(len(store))
        logger.debug("maintenance_sweep_completed", removed=removed)
        return removed

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                self.run_once()
            except Exception as e:
                # keep sweeping after a failed pass
                logger.error("maintenance_sweep_failed", error=str(e))

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="maintenance-sweeper")
        logger.info("maintenance_sweeper_started", interval_seconds=self.interval_seconds)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("maintenance_sweeper_stopped")
