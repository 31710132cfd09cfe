"""MetricGate background tasks."""

from metricgate.tasks.flush import SnapshotFlushLoop

__all__ = ["SnapshotFlushLoop"]
