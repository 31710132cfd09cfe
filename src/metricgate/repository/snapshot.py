"""Snapshot file codec for the in-memory store.

A snapshot is one JSON array of metric envelopes holding final totals.
Every flush replaces the whole file; nothing is appended.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol, Sequence, Union

from metricgate.errors import MalformedEnvelope, PersistenceError
from metricgate.models import MetricEnvelope, decode_batch, encode_batch

logger = logging.getLogger("metricgate.snapshot")


class SnapshotCodec(Protocol):
    """Reads and writes the full metric set."""

    def write_multiple_metrics(self, envelopes: Sequence[MetricEnvelope]) -> None: ...

    def read_metrics(self) -> list[MetricEnvelope]: ...

    def close(self) -> None: ...


class NoopSnapshotCodec:
    """Used when no snapshot path is configured."""

    def write_multiple_metrics(self, envelopes: Sequence[MetricEnvelope]) -> None:
        return None

    def read_metrics(self) -> list[MetricEnvelope]:
        return []

    def close(self) -> None:
        return None


class FileSnapshotCodec:
    """JSON snapshot stored at ``path``."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError(f"Cannot prepare snapshot directory for {self.path}: {e}") from e

    def write_multiple_metrics(self, envelopes: Sequence[MetricEnvelope]) -> None:
        """Replace the snapshot with ``envelopes``.

        The payload goes to a temporary sibling first and is renamed over the
        target, so readers see either the old or the new snapshot.
        """
        payload = encode_batch(list(envelopes))
        tmp_path = None
        try:
            with tempfile.NamedTemporaryFile(
                "wb",
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            ) as handle:
                tmp_path = handle.name
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, self.path)
        except OSError as e:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise PersistenceError(f"Failed to write snapshot {self.path}: {e}") from e
        logger.debug(f"Wrote {len(envelopes)} metrics to {self.path}")

    def read_metrics(self) -> list[MetricEnvelope]:
        """Decode the snapshot; an absent or empty file yields no metrics."""
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError:
            return []
        except OSError as e:
            raise PersistenceError(f"Failed to read snapshot {self.path}: {e}") from e

        if not raw.strip():
            return []

        try:
            return decode_batch(raw)
        except MalformedEnvelope as e:
            raise PersistenceError(f"Corrupt snapshot {self.path}: {e.message}") from e

    def close(self) -> None:
        return None


def snapshot_codec_for(path: Union[str, Path, None]) -> Union[FileSnapshotCodec, NoopSnapshotCodec]:
    """Pick the file codec for a configured path, the no-op codec otherwise."""
    if not path:
        return NoopSnapshotCodec()
    return FileSnapshotCodec(path)
