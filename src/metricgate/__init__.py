"""MetricGate - metrics agent and collector server."""

__version__ = "0.1.0"
