"""chat-recall: durable conversation transcripts with substring search."""

from chat_recall.models import (
    MessageWithParts,
    SearchResult,
    SessionInfo,
    Transcript,
    TranscriptChunk,
    TranscriptMetadata,
    TranscriptStats,
)
from chat_recall.search.engine import SearchEngine
from chat_recall.storage.store import TranscriptStore

__version__ = "0.1.0"

__all__ = [
    "MessageWithParts",
    "SearchEngine",
    "SearchResult",
    "SessionInfo",
    "Transcript",
    "TranscriptChunk",
    "TranscriptMetadata",
    "TranscriptStats",
    "TranscriptStore",
]
