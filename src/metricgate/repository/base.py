"""Storage contract shared by every metrics backend."""

from typing import Protocol, Sequence, runtime_checkable

from metricgate.models import Counter, Gauge


@runtime_checkable
class Repository(Protocol):
    """Server-side metric storage.

    Counters merge by addition, gauges are overwritten. Store operations
    validate before mutating and raise ``MetricValidationError`` subclasses;
    lookups of unknown names raise ``MetricNotFound``.
    """

    async def store_counter(self, counter: Counter) -> None: ...

    async def retrieve_counter(self, name: str) -> Counter: ...

    async def store_gauge(self, gauge: Gauge) -> None: ...

    async def retrieve_gauge(self, name: str) -> Gauge: ...

    async def list_stored_metrics(self) -> tuple[list[Gauge], list[Counter]]: ...

    async def write_bulk_gauges(self, gauges: Sequence[Gauge]) -> None: ...

    async def write_bulk_counters(self, counters: Sequence[Counter]) -> None: ...

    async def ping(self) -> bool: ...

    async def close(self) -> None: ...
