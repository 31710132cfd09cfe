"""Concurrent in-memory metrics repository with snapshot persistence."""

import asyncio
import logging
import threading
from typing import Optional, Sequence, Union

from metricgate.config import StoreConfig
from metricgate.errors import (
    MetricNotFound,
    MetricValidationError,
    PersistenceError,
)
from metricgate.models import INT64_MAX, Counter, Gauge, MetricEnvelope
from metricgate.repository.locking import ReadWriteLock
from metricgate.repository.snapshot import SnapshotCodec, snapshot_codec_for
from metricgate.tasks.flush import SnapshotFlushLoop


class InMemoryStore:
    """Gauge and counter maps guarded by one reader/writer lock.

    Each store holds the exclusive lock for exactly one validate-then-write,
    so concurrent writes to different names interleave freely while writes
    to the same name are serialized. Reads share the lock.

    Persistence is driven by ``StoreConfig``: with a positive
    ``store_interval`` a background loop flushes the whole metric set; with
    ``store_interval == 0`` every successful write flushes synchronously.
    Without a ``store_file`` the codec is a no-op.
    """

    def __init__(
        self,
        config: Optional[StoreConfig] = None,
        codec: Optional[SnapshotCodec] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.config = config or StoreConfig(store_file=None)
        self._lock = ReadWriteLock()
        self._gauges: dict[str, float] = {}
        self._counters: dict[str, int] = {}

        self._codec = codec if codec is not None else snapshot_codec_for(self.config.store_file)
        # Serializes list+write so an older snapshot never replaces a newer one.
        self._io_lock = threading.Lock()
        self._log = logger or logging.getLogger("metricgate.store")
        self._flush_loop: Optional[SnapshotFlushLoop] = None
        if self.config.store_interval > 0:
            self._flush_loop = SnapshotFlushLoop(
                self.flush, self.config.store_interval, logger=self._log
            )

    @classmethod
    async def open(
        cls,
        config: StoreConfig,
        codec: Optional[SnapshotCodec] = None,
        logger: Optional[logging.Logger] = None,
    ) -> "InMemoryStore":
        """Build a store, restore it if configured and start flushing.

        Raises:
            PersistenceError: if the snapshot exists but cannot be decoded
        """
        store = cls(config, codec=codec, logger=logger)
        if config.restore:
            await store.restore()
        await store.start()
        return store

    @property
    def sync_flush(self) -> bool:
        return self.config.store_interval == 0

    async def start(self) -> None:
        """Start the periodic flush loop (no-op in synchronous mode)."""
        if self._flush_loop is not None:
            await self._flush_loop.start()

    async def close(self) -> None:
        """Join the flush loop, write a final snapshot and release the codec."""
        if self._flush_loop is not None:
            await self._flush_loop.stop()
        await self.flush()
        self._codec.close()

    async def ping(self) -> bool:
        return True

    # Counters

    async def store_counter(self, counter: Counter) -> None:
        self._store_counter(counter)
        if self.sync_flush:
            await self.flush()

    async def retrieve_counter(self, name: str) -> Counter:
        with self._lock.read():
            if name in self._counters:
                return Counter(name=name, value=self._counters[name])
        raise MetricNotFound("counter", name)

    async def write_bulk_counters(self, counters: Sequence[Counter]) -> None:
        """Apply every counter in order; stops at the first invalid one.

        Counters applied before the failure stay applied.
        """
        try:
            for counter in counters:
                self._store_counter(counter)
        finally:
            if self.sync_flush and counters:
                await self.flush()

    def _store_counter(self, counter: Counter) -> None:
        with self._lock.write():
            counter.validate_value()
            total = self._counters.get(counter.name, 0) + counter.value
            if total > INT64_MAX:
                raise MetricValidationError(
                    f"Counter {counter.name!r} would overflow", "COUNTER_OVERFLOW"
                )
            self._counters[counter.name] = total

    # Gauges

    async def store_gauge(self, gauge: Gauge) -> None:
        self._store_gauge(gauge)
        if self.sync_flush:
            await self.flush()

    async def retrieve_gauge(self, name: str) -> Gauge:
        with self._lock.read():
            if name in self._gauges:
                return Gauge(name=name, value=self._gauges[name])
        raise MetricNotFound("gauge", name)

    async def write_bulk_gauges(self, gauges: Sequence[Gauge]) -> None:
        """Apply every gauge in order; stops at the first invalid one."""
        try:
            for gauge in gauges:
                self._store_gauge(gauge)
        finally:
            if self.sync_flush and gauges:
                await self.flush()

    def _store_gauge(self, gauge: Gauge) -> None:
        with self._lock.write():
            gauge.validate_value()
            self._gauges[gauge.name] = gauge.value

    # Listing and persistence

    async def list_stored_metrics(self) -> tuple[list[Gauge], list[Counter]]:
        return self._snapshot()

    def _snapshot(self) -> tuple[list[Gauge], list[Counter]]:
        with self._lock.read():
            gauges = [Gauge(name=k, value=v) for k, v in sorted(self._gauges.items())]
            counters = [Counter(name=k, value=v) for k, v in sorted(self._counters.items())]
        return gauges, counters

    async def flush(self) -> bool:
        """Write the full metric set to the snapshot.

        Failures are logged and reported as ``False``; the next flush retries.
        """
        try:
            count = await asyncio.to_thread(self._flush_sync)
        except PersistenceError as e:
            self._log.error(f"Failed to write metrics: {e.message}")
            return False
        self._log.debug(f"Flushed {count} metrics")
        return True

    def _flush_sync(self) -> int:
        with self._io_lock:
            gauges, counters = self._snapshot()
            envelopes = [MetricEnvelope.from_gauge(g) for g in gauges]
            envelopes.extend(MetricEnvelope.from_counter(c) for c in counters)
            self._codec.write_multiple_metrics(envelopes)
        return len(envelopes)

    async def restore(self) -> int:
        """Load the snapshot into an empty store.

        Snapshot counters hold final totals, so they are loaded as-is rather
        than merged. Returns the number of metrics loaded.

        Raises:
            PersistenceError: if the snapshot is corrupt or the store is not empty
        """
        envelopes = await asyncio.to_thread(self._codec.read_metrics)

        gauges: dict[str, float] = {}
        counters: dict[str, int] = {}
        for envelope in envelopes:
            metric = self._decode_snapshot_entry(envelope)
            if isinstance(metric, Counter):
                counters[metric.name] = metric.value
            else:
                gauges[metric.name] = metric.value

        with self._lock.write():
            if self._gauges or self._counters:
                raise PersistenceError("Restore requires an empty store")
            self._gauges.update(gauges)
            self._counters.update(counters)

        self._log.info(f"Restored {len(gauges)} gauges and {len(counters)} counters")
        return len(gauges) + len(counters)

    @staticmethod
    def _decode_snapshot_entry(envelope: MetricEnvelope) -> Union[Counter, Gauge]:
        try:
            metric = envelope.to_metric()
            metric.validate_value()
        except MetricValidationError as e:
            raise PersistenceError(f"Corrupt snapshot entry {envelope.id}: {e.message}") from e
        return metric
