"""MetricGate enumerations."""

from enum import Enum


class MetricType(str, Enum):
    """Kind of metric carried by an envelope."""

    COUNTER = "counter"
    GAUGE = "gauge"

    @classmethod
    def parse(cls, raw: str) -> "MetricType | None":
        """Return the matching type, or None for an unknown name."""
        try:
            return cls(raw)
        except ValueError:
            return None
