"""Pushes the registry's current state to the collector server."""

import logging
from typing import Optional

import httpx

from metricgate.agent.registry import Registry
from metricgate.errors import TransportError
from metricgate.hashing import sign
from metricgate.models import MetricEnvelope, encode_batch

UPDATES_PATH = "/updates/"


class Reporter:
    """Builds, signs and sends one batch per report tick.

    Delivery is fire-and-forget: a failed send is logged and dropped, and
    the next tick sends the then-current totals.

    Usage:
        async with httpx.AsyncClient(base_url="http://127.0.0.1:8080") as client:
            await Reporter(registry, client, key="secret").report()
    """

    def __init__(
        self,
        registry: Registry,
        client: httpx.AsyncClient,
        key: str = "",
        logger: Optional[logging.Logger] = None,
    ):
        self.registry = registry
        self.key = key
        self._client = client
        self._log = logger or logging.getLogger("metricgate.agent.reporter")

    def build_batch(self) -> list[MetricEnvelope]:
        gauges, counters = self.registry.export()
        batch = [MetricEnvelope.from_gauge(g) for g in gauges]
        batch.extend(MetricEnvelope.from_counter(c) for c in counters)
        if self.key:
            batch = [sign(envelope, self.key) for envelope in batch]
        return batch

    async def report(self) -> bool:
        """Send the current batch; returns False when it was dropped."""
        batch = self.build_batch()
        if not batch:
            return False
        try:
            await self.send(batch)
        except TransportError as e:
            self._log.error(f"Could not complete request: {e.message}")
            return False
        self._log.debug(f"Reported {len(batch)} metrics")
        return True

    async def send(self, batch: list[MetricEnvelope]) -> None:
        """POST the batch as one JSON array.

        Raises:
            TransportError: on connection failure, timeout or non-2xx response
        """
        try:
            response = await self._client.post(
                UPDATES_PATH,
                content=encode_batch(batch),
                headers={"Content-Type": "application/json"},
            )
        except httpx.HTTPError as e:
            raise TransportError(f"{type(e).__name__}: {e}") from e

        if not response.is_success:
            raise TransportError(
                f"Server responded {response.status_code}: {response.text.strip()}",
                status_code=response.status_code,
            )
