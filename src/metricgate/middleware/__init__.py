"""Middleware components for the MetricGate API."""

from metricgate.middleware.access_log import access_log_middleware

__all__ = ["access_log_middleware"]
