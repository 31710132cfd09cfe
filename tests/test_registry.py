"""
Agent registry and runtime statistics tests.
"""

import math
import random
import threading

import pytest

from metricgate.agent import POLL_COUNTER, RANDOM_GAUGE, Registry, collect_runtime_stats
from metricgate.errors import InvalidCounter
from metricgate.models import INT64_MAX, Counter, Gauge
from metricgate.observability import null_logger


def _registry(stats=None) -> Registry:
    stats = stats if stats is not None else [Gauge(name="Alloc", value=1.5)]
    return Registry(stats_reader=lambda: list(stats), rng=random.Random(7), logger=null_logger())


def test_export_before_collect_has_only_poll_count():
    gauges, counters = _registry().export()

    assert gauges == []
    assert counters == [Counter(name=POLL_COUNTER, value=0)]


def test_collect_replaces_gauges_and_counts_polls():
    registry = _registry()
    registry.collect()
    registry.collect()

    gauges, counters = registry.export()

    assert [g.name for g in gauges] == ["Alloc", RANDOM_GAUGE]
    assert 0.0 <= gauges[1].value < 1.0
    assert counters[-1] == Counter(name=POLL_COUNTER, value=2)
    assert registry.poll_count == 2


def test_random_value_changes_between_polls():
    registry = _registry()
    first = registry.collect()[-1].value
    second = registry.collect()[-1].value

    assert first != second


def test_application_counters_are_sorted_with_poll_count_last():
    registry = _registry()
    registry.inc_counter("zeta", 2)
    registry.inc_counter("alpha")
    registry.inc_counter("alpha", 4)

    _, counters = registry.export()

    assert counters == [
        Counter(name="alpha", value=5),
        Counter(name="zeta", value=2),
        Counter(name=POLL_COUNTER, value=0),
    ]


def test_set_counter_overwrites_total():
    registry = _registry()
    registry.inc_counter("hits", 3)
    registry.set_counter("hits", 10)

    assert registry.export()[1][0] == Counter(name="hits", value=10)


def test_invalid_counter_updates_are_rejected():
    registry = _registry()

    with pytest.raises(InvalidCounter):
        registry.inc_counter("hits", -1)
    with pytest.raises(InvalidCounter):
        registry.set_counter("hits", -1)
    with pytest.raises(ValueError):
        registry.inc_counter(POLL_COUNTER)
    with pytest.raises(ValueError):
        registry.inc_counter("")


def test_counter_overflow_is_rejected():
    registry = _registry()
    registry.set_counter("big", INT64_MAX)

    with pytest.raises(InvalidCounter):
        registry.inc_counter("big")


def test_concurrent_increments_are_not_lost():
    registry = _registry()

    def worker() -> None:
        for _ in range(1000):
            registry.inc_counter("hits")

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert registry.export()[1][0] == Counter(name="hits", value=4000)


def test_runtime_stats_are_finite_gauges():
    gauges = collect_runtime_stats()
    names = {g.name for g in gauges}

    assert {"RSS", "NumGC", "TotalMemory"} <= names
    assert all(math.isfinite(g.value) for g in gauges)


def test_failing_or_non_finite_stats_are_omitted():
    def broken() -> float:
        raise RuntimeError("unavailable")

    def cpus() -> list[Gauge]:
        return [Gauge(name="CPUutilization1", value=12.5), Gauge(name="CPUutilization2", value=math.nan)]

    gauges = collect_runtime_stats(
        stats={"Good": lambda: 3, "Broken": broken, "NotANumber": lambda: math.inf},
        multi_stats=(cpus,),
    )

    assert gauges == [
        Gauge(name="Good", value=3.0),
        Gauge(name="CPUutilization1", value=12.5),
    ]
