"""Fixed-interval trigger for the ETL cycle."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional

from etl_pipeline.core.logging import get_logger
from etl_pipeline.core.metrics import PipelineMetrics

log = get_logger("scheduler")


class Scheduler:
    """Runs ``job`` at start-up and then every ``interval`` seconds.

    Ticks are fixed-rate (``t0 + k * interval``). At most one job runs at a
    time: a tick that finds the previous job still running is skipped and
    counted. ``stop()`` is observed between ticks only; a running job always
    finishes, and nothing new starts afterwards.
    """

    def __init__(
        self,
        job: Callable[[], Awaitable[Any]],
        interval: float,
        metrics: PipelineMetrics,
    ):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.job = job
        self.interval = interval
        self.metrics = metrics
        self._stop = asyncio.Event()
        self._busy = False
        self._current: Optional[asyncio.Task] = None

    @property
    def busy(self) -> bool:
        return self._busy

    def stop(self) -> None:
        self._stop.set()

    async def run(self) -> None:
        log.info(f"Scheduled ETL task started (interval: {self.interval}s)")
        loop = asyncio.get_running_loop()
        next_tick = loop.time()

        while not self._stop.is_set():
            self._tick()
            next_tick += self.interval
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=max(0.0, next_tick - loop.time()))
            except asyncio.TimeoutError:
                continue

        if self._current is not None and not self._current.done():
            log.info("Stop requested; waiting for the running cycle to finish")
            await asyncio.shield(self._current)
        log.info("Scheduled ETL task stopped")

    def _tick(self) -> None:
        # Check-and-set happens without yielding to the event loop
        if self._busy:
            self.metrics.cycles_skipped_total.inc()
            log.warning("Previous ETL cycle still running; skipping this tick")
            return
        self._busy = True
        self._current = asyncio.create_task(self._run_job())

    async def _run_job(self) -> None:
        try:
            await self.job()
        except Exception as exc:  # noqa: BLE001
            log.exception(f"Scheduled ETL task error: {exc}")
        finally:
            self._busy = False
