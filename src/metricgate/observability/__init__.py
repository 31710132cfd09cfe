"""Observability helpers for MetricGate."""

from metricgate.observability.logging import configure_logging, null_logger

__all__ = ["configure_logging", "null_logger"]
