"""Periodic snapshot flush background task."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional


class SnapshotFlushLoop:
    """Calls ``flush`` every ``interval`` seconds until stopped.

    The loop owns its stop event. ``stop()`` sets it and joins the task, so
    once it returns no flush from this loop is still running.
    """

    def __init__(
        self,
        flush: Callable[[], Awaitable[bool]],
        interval: float,
        logger: Optional[logging.Logger] = None,
    ):
        if interval <= 0:
            raise ValueError(f"Flush interval must be positive, got {interval}")
        self.interval = interval
        self._flush = flush
        self._log = logger or logging.getLogger("metricgate.flush")
        self._task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            return
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._run())

    async def stop(self, timeout: float = 10.0) -> None:
        """Signal the loop and wait for it to finish."""
        if self._stop_event:
            self._stop_event.set()

        if self._task:
            try:
                await asyncio.wait_for(self._task, timeout=timeout)
            except asyncio.TimeoutError:
                self._log.warning("Snapshot flush task did not stop gracefully, cancelling")
                self._task.cancel()
                try:
                    await self._task
                except asyncio.CancelledError:
                    pass

        self._task = None
        self._stop_event = None

    async def _run(self) -> None:
        self._log.info(f"Snapshot flush loop started (interval: {self.interval}s)")
        stop_event = self._stop_event

        while not stop_event.is_set():
            # Wait for next flush interval or shutdown
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass
            else:
                break

            try:
                await self._flush()
            except Exception as e:
                self._log.error(f"Snapshot flush error: {e}", exc_info=True)

        self._log.info("Snapshot flush loop stopped")
