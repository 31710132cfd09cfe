"""Metric storage backends."""

from metricgate.repository.base import Repository
from metricgate.repository.locking import ReadWriteLock
from metricgate.repository.memory import InMemoryStore
from metricgate.repository.snapshot import (
    FileSnapshotCodec,
    NoopSnapshotCodec,
    SnapshotCodec,
    snapshot_codec_for,
)
from metricgate.repository.sql import SqlRepository

__all__ = [
    "FileSnapshotCodec",
    "InMemoryStore",
    "NoopSnapshotCodec",
    "ReadWriteLock",
    "Repository",
    "SnapshotCodec",
    "SqlRepository",
    "snapshot_codec_for",
]
