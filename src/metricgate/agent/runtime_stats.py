"""Runtime statistics sampled by the agent on every poll."""

import gc
import logging
import math
from typing import Callable, Iterable, Mapping, Optional

import psutil

from metricgate.models import Gauge

logger = logging.getLogger("metricgate.agent.stats")

StatReader = Callable[[], float]

_process: Optional[psutil.Process] = None


def _current_process() -> psutil.Process:
    global _process
    if _process is None:
        _process = psutil.Process()
    return _process


def _gc_total(field: str) -> float:
    return float(sum(generation[field] for generation in gc.get_stats()))


def _gc_generation_count(generation: int) -> float:
    return float(gc.get_count()[generation])


RUNTIME_STATS: dict[str, StatReader] = {
    # Process memory
    "RSS": lambda: _current_process().memory_info().rss,
    "VMS": lambda: _current_process().memory_info().vms,
    "MemoryPercent": lambda: _current_process().memory_percent(),
    "NumThreads": lambda: _current_process().num_threads(),
    "CPUTimeUser": lambda: _current_process().cpu_times().user,
    "CPUTimeSystem": lambda: _current_process().cpu_times().system,
    # Garbage collector
    "NumGC": lambda: _gc_total("collections"),
    "GCCollected": lambda: _gc_total("collected"),
    "GCUncollectable": lambda: _gc_total("uncollectable"),
    "GCGen0Count": lambda: _gc_generation_count(0),
    "GCGen1Count": lambda: _gc_generation_count(1),
    "GCGen2Count": lambda: _gc_generation_count(2),
    "GCObjectsTracked": lambda: len(gc.get_objects()),
    # System memory
    "TotalMemory": lambda: psutil.virtual_memory().total,
    "FreeMemory": lambda: psutil.virtual_memory().free,
}


def cpu_utilization() -> list[Gauge]:
    """One ``CPUutilizationN`` gauge per logical CPU, numbered from 1."""
    return [
        Gauge(name=f"CPUutilization{index}", value=float(percent))
        for index, percent in enumerate(psutil.cpu_percent(percpu=True), start=1)
    ]


def collect_runtime_stats(
    stats: Mapping[str, StatReader] = RUNTIME_STATS,
    multi_stats: Iterable[Callable[[], list[Gauge]]] = (cpu_utilization,),
) -> list[Gauge]:
    """Read every statistic, omitting the ones that fail or are not finite."""
    gauges: list[Gauge] = []
    for name, reader in stats.items():
        try:
            value = float(reader())
        except Exception as e:
            logger.debug(f"Skipping runtime stat {name}: {e}")
            continue
        if not math.isfinite(value):
            logger.debug(f"Skipping runtime stat {name}: not a finite number")
            continue
        gauges.append(Gauge(name=name, value=value))

    for reader in multi_stats:
        try:
            gauges.extend(g for g in reader() if g.is_valid())
        except Exception as e:
            logger.debug(f"Skipping runtime stats from {getattr(reader, '__name__', reader)}: {e}")
    return gauges
