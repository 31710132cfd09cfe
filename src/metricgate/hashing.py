"""Per-metric integrity hash.

The hash is HMAC-SHA256 over ``"{id}:{type}:{value}"`` with counters
rendered as decimal integers and gauges with six fixed decimals, so agent
and server agree byte-for-byte on the signed text.
"""

import hashlib
import hmac
import logging
from typing import Optional

from metricgate.errors import MalformedEnvelope, MetricIntegrityError
from metricgate.models.envelope import MetricEnvelope

logger = logging.getLogger("metricgate.hashing")


def canonical_form(envelope: MetricEnvelope) -> str:
    """Return the text that gets signed for an envelope."""
    if envelope.delta is not None:
        return f"{envelope.id}:counter:{envelope.delta:d}"
    if envelope.value is not None:
        return f"{envelope.id}:gauge:{envelope.value:f}"
    raise MalformedEnvelope(f"metric {envelope.id} has no value to hash")


def compute_hash(key: str, envelope: MetricEnvelope) -> str:
    """Keyed hash of the envelope's canonical form, hex encoded."""
    message = canonical_form(envelope).encode("utf-8")
    return hmac.new(key.encode("utf-8"), message, hashlib.sha256).hexdigest()


def sign(envelope: MetricEnvelope, key: Optional[str]) -> MetricEnvelope:
    """Return a copy of the envelope carrying its hash (unchanged without a key)."""
    if not key:
        return envelope
    return envelope.model_copy(update={"hash": compute_hash(key, envelope)})


def verify(envelope: MetricEnvelope, key: Optional[str]) -> None:
    """Check an incoming envelope's hash.

    Skipped when the server has no key or the envelope carries no hash.

    Raises:
        MetricIntegrityError: if the hash does not match the content
    """
    if not key or not envelope.hash:
        return
    expected = compute_hash(key, envelope)
    if not hmac.compare_digest(expected.encode("utf-8"), envelope.hash.encode("utf-8")):
        logger.warning(f"Hash mismatch for metric {envelope.id}")
        raise MetricIntegrityError(envelope.id)
