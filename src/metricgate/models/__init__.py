"""MetricGate data models."""

from metricgate.models.enums import MetricType
from metricgate.models.envelope import (
    MetricEnvelope,
    decode_batch,
    decode_envelope,
    encode_batch,
)
from metricgate.models.metric import INT64_MAX, Counter, Gauge

__all__ = [
    "INT64_MAX",
    "Counter",
    "Gauge",
    "MetricEnvelope",
    "MetricType",
    "decode_batch",
    "decode_envelope",
    "encode_batch",
]
