"""
Integrity hash tests.
"""

import hashlib
import hmac

import pytest

from metricgate.errors import MalformedEnvelope, MetricIntegrityError
from metricgate.hashing import canonical_form, compute_hash, sign, verify
from metricgate.models import MetricEnvelope

KEY = "K"


def test_canonical_form_uses_fixed_formatting():
    gauge = MetricEnvelope(id="g1", type="gauge", value=1.02)
    counter = MetricEnvelope(id="c1", type="counter", delta=42)

    assert canonical_form(gauge) == "g1:gauge:1.020000"
    assert canonical_form(counter) == "c1:counter:42"


def test_hash_is_hmac_sha256_hex():
    envelope = MetricEnvelope(id="c1", type="counter", delta=42)
    expected = hmac.new(b"K", b"c1:counter:42", hashlib.sha256).hexdigest()

    assert compute_hash(KEY, envelope) == expected


def test_hash_is_deterministic():
    first = MetricEnvelope(id="g1", type="gauge", value=1.02)
    second = MetricEnvelope(id="g1", type="gauge", value=1.02)

    assert compute_hash(KEY, first) == compute_hash(KEY, second)


def test_hash_changes_with_value():
    base = MetricEnvelope(id="g1", type="gauge", value=1.02)
    changed = MetricEnvelope(id="g1", type="gauge", value=1.03)
    counter = MetricEnvelope(id="c1", type="counter", delta=1)

    assert compute_hash(KEY, base) != compute_hash(KEY, changed)
    assert compute_hash(KEY, counter) != compute_hash(
        KEY, MetricEnvelope(id="c1", type="counter", delta=2)
    )


def test_hash_changes_with_key():
    envelope = MetricEnvelope(id="g1", type="gauge", value=1.02)
    assert compute_hash("K1", envelope) != compute_hash("K2", envelope)


def test_hash_requires_a_value():
    with pytest.raises(MalformedEnvelope):
        compute_hash(KEY, MetricEnvelope(id="g1", type="gauge"))


def test_signed_envelope_verifies():
    """A correctly signed gauge verifies; a flipped digit with the same hash does not."""
    signed = sign(MetricEnvelope(id="g1", type="gauge", value=1.02), KEY)
    verify(signed, KEY)

    tampered = signed.model_copy(update={"value": 1.03})
    with pytest.raises(MetricIntegrityError):
        verify(tampered, KEY)


def test_sign_without_key_leaves_envelope_unchanged():
    envelope = MetricEnvelope(id="g1", type="gauge", value=1.02)
    assert sign(envelope, "").hash is None


def test_verification_skipped_without_server_key():
    envelope = MetricEnvelope(id="g1", type="gauge", value=1.02, hash="bogus")
    verify(envelope, "")


def test_verification_skipped_without_envelope_hash():
    verify(MetricEnvelope(id="g1", type="gauge", value=1.02), KEY)


def test_non_ascii_hash_is_a_mismatch():
    envelope = MetricEnvelope(id="g1", type="gauge", value=1.02, hash="ä")
    with pytest.raises(MetricIntegrityError):
        verify(envelope, KEY)
