"""MetricGate agent: runtime sampling and reporting."""

from metricgate.agent.registry import POLL_COUNTER, RANDOM_GAUGE, Registry
from metricgate.agent.reporter import Reporter
from metricgate.agent.runner import Agent
from metricgate.agent.runtime_stats import RUNTIME_STATS, collect_runtime_stats

__all__ = [
    "Agent",
    "POLL_COUNTER",
    "RANDOM_GAUGE",
    "RUNTIME_STATS",
    "Registry",
    "Reporter",
    "collect_runtime_stats",
]
