"""Metric sample value objects."""

import math

from pydantic import BaseModel, ConfigDict

from metricgate.errors import InvalidCounter, InvalidGauge

INT64_MAX = 2**63 - 1


class Gauge(BaseModel):
    """Last-write-wins numeric sample."""

    model_config = ConfigDict(frozen=True)

    name: str
    value: float

    def is_valid(self) -> bool:
        return math.isfinite(self.value)

    def validate_value(self) -> None:
        """Raise InvalidGauge unless the value is a finite number."""
        if not self.is_valid():
            raise InvalidGauge(self.name, self.value)

    def __str__(self) -> str:
        return f"<Gauge: Name: {self.name}, Value: {self.value:f}>"


class Counter(BaseModel):
    """Integer delta or total, merged by addition."""

    model_config = ConfigDict(frozen=True)

    name: str
    value: int

    def is_valid(self) -> bool:
        return 0 <= self.value <= INT64_MAX

    def validate_value(self) -> None:
        """Raise InvalidCounter for negative or out-of-range deltas."""
        if not self.is_valid():
            raise InvalidCounter(self.name, self.value)

    def __str__(self) -> str:
        return f"<Counter: Name: {self.name}, Value: {self.value}>"
