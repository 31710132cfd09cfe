"""Agent-side holder of the current sample set."""

import logging
import random
import threading
from typing import Callable, Optional

from metricgate.agent.runtime_stats import collect_runtime_stats
from metricgate.errors import InvalidCounter
from metricgate.models import INT64_MAX, Counter, Gauge

POLL_COUNTER = "PollCount"
RANDOM_GAUGE = "RandomValue"


class Registry:
    """Gauges from the latest poll, application counters and PollCount.

    ``collect()`` swaps the gauge list in one step under the lock, so
    ``export()`` sees either the previous poll or the new one, never a mix.
    """

    def __init__(
        self,
        stats_reader: Callable[[], list[Gauge]] = collect_runtime_stats,
        rng: Optional[random.Random] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._stats_reader = stats_reader
        self._rng = rng or random.Random()
        self._log = logger or logging.getLogger("metricgate.agent.registry")
        self._lock = threading.Lock()
        self._gauges: list[Gauge] = []
        self._counters: dict[str, int] = {}
        self._poll_count = 0

    @property
    def poll_count(self) -> int:
        with self._lock:
            return self._poll_count

    def collect(self) -> list[Gauge]:
        """Replace the gauge set with a fresh sample and bump PollCount."""
        gauges = list(self._stats_reader())
        gauges.append(Gauge(name=RANDOM_GAUGE, value=self._rng.random()))
        with self._lock:
            self._gauges = gauges
            self._poll_count += 1
        self._log.debug(f"Collected {len(gauges)} gauges")
        return gauges

    def inc_counter(self, name: str, delta: int = 1) -> int:
        """Add ``delta`` to an application counter and return the new total."""
        self._check_counter_name(name)
        if delta < 0:
            raise InvalidCounter(name, delta)
        with self._lock:
            total = self._counters.get(name, 0) + delta
            if total > INT64_MAX:
                raise InvalidCounter(name, total)
            self._counters[name] = total
        return total

    def set_counter(self, name: str, value: int) -> None:
        self._check_counter_name(name)
        Counter(name=name, value=value).validate_value()
        with self._lock:
            self._counters[name] = value

    def export(self) -> tuple[list[Gauge], list[Counter]]:
        """Current gauges and counters, PollCount last."""
        with self._lock:
            gauges = list(self._gauges)
            counters = [Counter(name=k, value=v) for k, v in sorted(self._counters.items())]
            counters.append(Counter(name=POLL_COUNTER, value=self._poll_count))
        return gauges, counters

    @staticmethod
    def _check_counter_name(name: str) -> None:
        if not name:
            raise ValueError("Counter name must not be empty")
        if name == POLL_COUNTER:
            raise ValueError(f"{POLL_COUNTER} is maintained by collect()")
