"""Durable transcript storage: metadata index, transcript store, retention."""

from .index import MetadataIndexFile
from .retention import RetentionSweeper, calculate_expires_at, sweep
from .store import TranscriptStore

__all__ = [
    "MetadataIndexFile",
    "RetentionSweeper",
    "TranscriptStore",
    "calculate_expires_at",
    "sweep",
]
