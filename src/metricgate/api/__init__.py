"""MetricGate HTTP API."""

from metricgate.api.router import router

__all__ = ["router"]
