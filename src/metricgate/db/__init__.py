"""MetricGate database layer."""

from metricgate.db.base import Base, create_engine, create_session_factory, session_scope
from metricgate.db.tables import CounterTable, GaugeTable

__all__ = [
    "Base",
    "CounterTable",
    "GaugeTable",
    "create_engine",
    "create_session_factory",
    "session_scope",
]
