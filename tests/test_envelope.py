"""
Envelope decoding and payload rules.
"""

import json

import pytest

from metricgate.errors import MalformedEnvelope
from metricgate.models import (
    Counter,
    Gauge,
    MetricEnvelope,
    MetricType,
    decode_batch,
    decode_envelope,
    encode_batch,
)


def test_missing_id_is_decode_error():
    with pytest.raises(MalformedEnvelope):
        decode_envelope('{"type": "gauge", "value": 1.5}')


def test_missing_type_is_decode_error():
    with pytest.raises(MalformedEnvelope):
        decode_envelope('{"id": "Alloc", "value": 1.5}')


def test_empty_id_is_decode_error():
    with pytest.raises(MalformedEnvelope):
        decode_envelope('{"id": "", "type": "gauge", "value": 1.5}')


def test_invalid_json_is_decode_error():
    with pytest.raises(MalformedEnvelope):
        decode_envelope("{not json")


def test_value_request_needs_only_id_and_type():
    envelope = decode_envelope('{"id": "PollCount", "type": "counter"}')
    assert envelope.metric_type is MetricType.COUNTER
    assert envelope.delta is None
    assert envelope.value is None


def test_counter_without_delta_is_rejected():
    envelope = decode_envelope('{"id": "PollCount", "type": "counter", "value": 1.0}')
    with pytest.raises(MalformedEnvelope):
        envelope.require_payload()


def test_gauge_without_value_is_rejected():
    envelope = decode_envelope('{"id": "Alloc", "type": "gauge", "delta": 1}')
    with pytest.raises(MalformedEnvelope):
        envelope.to_metric()


def test_both_payloads_are_rejected():
    envelope = MetricEnvelope(id="x", type="gauge", delta=1, value=1.0)
    with pytest.raises(MalformedEnvelope):
        envelope.require_payload()


def test_unknown_type_is_rejected_on_store():
    envelope = decode_envelope('{"id": "x", "type": "histogram", "value": 1.0}')
    assert envelope.metric_type is None
    with pytest.raises(MalformedEnvelope):
        envelope.to_metric()


def test_to_metric_builds_samples():
    counter = MetricEnvelope(id="requests", type="counter", delta=5).to_metric()
    gauge = MetricEnvelope(id="temp", type="gauge", value=36.6).to_metric()

    assert counter == Counter(name="requests", value=5)
    assert gauge == Gauge(name="temp", value=36.6)


def test_wire_form_omits_absent_fields():
    envelope = MetricEnvelope.from_counter(Counter(name="PollCount", value=3))
    assert envelope.to_wire() == {"id": "PollCount", "type": "counter", "delta": 3}


def test_batch_encoding_is_a_single_json_array():
    batch = [
        MetricEnvelope.from_gauge(Gauge(name="Alloc", value=2.5)),
        MetricEnvelope.from_counter(Counter(name="PollCount", value=7)),
    ]
    payload = json.loads(encode_batch(batch))

    assert payload == [
        {"id": "Alloc", "type": "gauge", "value": 2.5},
        {"id": "PollCount", "type": "counter", "delta": 7},
    ]
    assert decode_batch(encode_batch(batch)) == batch


def test_batch_must_be_an_array():
    with pytest.raises(MalformedEnvelope):
        decode_batch('{"id": "Alloc", "type": "gauge", "value": 1.0}')
