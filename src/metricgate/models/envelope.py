"""Wire and snapshot representation of a single metric."""

from typing import Any, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from metricgate.errors import MalformedEnvelope
from metricgate.models.enums import MetricType
from metricgate.models.metric import Counter, Gauge


class MetricEnvelope(BaseModel):
    """One metric plus an optional integrity hash.

    ``id`` and ``type`` are mandatory. Payload presence is checked by
    :meth:`require_payload` because value lookups send id+type only.
    """

    id: str = Field(..., min_length=1, description="Metric name")
    type: str = Field(..., min_length=1, description="counter or gauge")
    delta: Optional[int] = Field(None, description="Counter delta or total")
    value: Optional[float] = Field(None, description="Gauge value")
    hash: Optional[str] = Field(None, description="HMAC-SHA256 of the canonical form")

    @property
    def metric_type(self) -> Optional[MetricType]:
        return MetricType.parse(self.type)

    def require_payload(self) -> MetricType:
        """Check that exactly one of delta/value is present and matches type."""
        metric_type = self.metric_type
        if metric_type is None:
            raise MalformedEnvelope(f"wrong metric type: {self.type}")
        if self.delta is not None and self.value is not None:
            raise MalformedEnvelope(f"metric {self.id} carries both delta and value")
        if metric_type is MetricType.COUNTER and self.delta is None:
            raise MalformedEnvelope("delta can not be nil")
        if metric_type is MetricType.GAUGE and self.value is None:
            raise MalformedEnvelope("value can not be nil")
        return metric_type

    def to_metric(self) -> Union[Counter, Gauge]:
        if self.require_payload() is MetricType.COUNTER:
            return Counter(name=self.id, value=self.delta)
        return Gauge(name=self.id, value=self.value)

    @classmethod
    def from_counter(cls, counter: Counter) -> "MetricEnvelope":
        return cls(id=counter.name, type=MetricType.COUNTER.value, delta=counter.value)

    @classmethod
    def from_gauge(cls, gauge: Gauge) -> "MetricEnvelope":
        return cls(id=gauge.name, type=MetricType.GAUGE.value, value=gauge.value)

    def to_wire(self) -> dict[str, Any]:
        """Serialize with absent optional fields omitted."""
        return self.model_dump(exclude_none=True)


_batch_adapter = TypeAdapter(list[MetricEnvelope])


def decode_envelope(raw: Union[str, bytes]) -> MetricEnvelope:
    """Decode one JSON envelope, raising MalformedEnvelope on bad input."""
    try:
        return MetricEnvelope.model_validate_json(raw)
    except PydanticValidationError as e:
        raise MalformedEnvelope(f"missing required fields: {_describe(e)}") from e


def decode_batch(raw: Union[str, bytes]) -> list[MetricEnvelope]:
    """Decode a JSON array of envelopes."""
    try:
        return _batch_adapter.validate_json(raw)
    except PydanticValidationError as e:
        raise MalformedEnvelope(f"invalid metric batch: {_describe(e)}") from e


def encode_batch(envelopes: list[MetricEnvelope]) -> bytes:
    """Encode envelopes as one JSON array, omitting absent fields."""
    return _batch_adapter.dump_json(envelopes, exclude_none=True)


def _describe(error: PydanticValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in err['loc']) or 'body'}: {err['msg']}"
        for err in error.errors()
    )
