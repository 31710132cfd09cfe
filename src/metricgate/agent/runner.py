"""Agent poll/report loop."""

import asyncio
import logging
from typing import Optional

import httpx

from metricgate.agent.registry import Registry
from metricgate.agent.reporter import Reporter
from metricgate.config import AgentSettings


class Agent:
    """Single cooperative loop over the poll timer, report timer and stop event.

    Exactly one of collect, report or shutdown runs at a time, so the
    reporter never reads the registry mid-collect. A report in flight when
    the stop event fires is allowed to finish.
    """

    def __init__(
        self,
        settings: AgentSettings,
        registry: Optional[Registry] = None,
        client: Optional[httpx.AsyncClient] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.settings = settings
        self._log = logger or logging.getLogger("metricgate.agent")
        self.registry = registry or Registry(logger=self._log)
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=settings.base_url,
            timeout=settings.request_timeout,
        )
        self.reporter = Reporter(self.registry, self._client, key=settings.key, logger=self._log)

    async def run(self, stop_event: asyncio.Event) -> None:
        """Run until ``stop_event`` is set."""
        self._log.info(
            f"Agent started. PollInterval: {self.settings.poll_interval:.2f}s, "
            f"ReportInterval: {self.settings.report_interval:.2f}s, "
            f"Report to address: {self.settings.base_url!r}"
        )
        loop = asyncio.get_running_loop()
        next_poll = loop.time() + self.settings.poll_interval
        next_report = loop.time() + self.settings.report_interval

        try:
            while not stop_event.is_set():
                timeout = max(0.0, min(next_poll, next_report) - loop.time())
                try:
                    await asyncio.wait_for(stop_event.wait(), timeout=timeout)
                except asyncio.TimeoutError:
                    pass
                else:
                    break

                now = loop.time()
                if now >= next_poll:
                    self.registry.collect()
                    next_poll = self._advance(next_poll, self.settings.poll_interval, now)
                elif now >= next_report:
                    await self.reporter.report()
                    next_report = self._advance(next_report, self.settings.report_interval, now)
        finally:
            if self._owns_client:
                await self._client.aclose()
            self._log.info("Agent stopped")

    @staticmethod
    def _advance(deadline: float, interval: float, now: float) -> float:
        """Next deadline after ``now``; missed ticks are dropped."""
        deadline += interval
        while deadline <= now:
            deadline += interval
        return deadline
