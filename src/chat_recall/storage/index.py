"""Metadata index persisted as a single JSON file.

The index maps session ids to transcript metadata and backs listing,
filtering, and expiry sweeps. Updates are read-modify-write cycles serialized
by a per-process lock; concurrent writers in other processes can still lose
updates.
"""

import threading
from pathlib import Path

from chat_recall.exceptions import TranscriptWriteError
from chat_recall.logging import get_logger
from chat_recall.models import INDEX_VERSION, MetadataIndex, TranscriptMetadata
from chat_recall.storage.fileio import read_json, write_json_atomic

logger = get_logger("index")

INDEX_FILE = "index.json"


class MetadataIndexFile:
    """Reads and writes the metadata index under a transcript root."""

    def __init__(self, root: Path) -> None:
        self._path = root / INDEX_FILE
        self._lock = threading.RLock()

    @property
    def path(self) -> Path:
        return self._path

    def read(self) -> MetadataIndex:
        """Read the index.

        Returns:
            The stored index, or an empty one if the file is missing or corrupt
        """
        if not self._path.exists():
            return MetadataIndex(version=INDEX_VERSION)

        try:
            data = read_json(self._path)
            if not isinstance(data, dict):
                raise ValueError("index root must be an object")
            return MetadataIndex.from_dict(data)
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning("Unreadable transcript index, starting empty: path=%s error=%s", self._path, e)
            return MetadataIndex(version=INDEX_VERSION)

    def write(self, index: MetadataIndex) -> None:
        """Overwrite the index file.

        Raises:
            TranscriptWriteError: If the file cannot be written
        """
        with self._lock:
            try:
                write_json_atomic(self._path, index.to_dict())
            except OSError as e:
                raise TranscriptWriteError("write_index", str(self._path), e) from e

    def upsert(self, metadata: TranscriptMetadata) -> None:
        """Insert or replace the entry for metadata.session_id."""
        with self._lock:
            index = self.read()
            index.transcripts[metadata.session_id] = metadata
            self.write(index)

    def remove(self, session_id: str) -> None:
        """Remove a session's entry; no-op if absent."""
        with self._lock:
            index = self.read()
            if session_id not in index.transcripts:
                return
            del index.transcripts[session_id]
            self.write(index)

    def get(self, session_id: str) -> TranscriptMetadata | None:
        return self.read().transcripts.get(session_id)

    def list_entries(
        self,
        project_id: str | None = None,
        session_id: str | None = None,
        limit: int | None = None,
    ) -> list[TranscriptMetadata]:
        """List index entries, most recently updated first.

        Args:
            project_id: Only entries for this project
            session_id: Only the entry for this session
            limit: Maximum entries to return (None or 0 for all)

        Returns:
            List of TranscriptMetadata
        """
        transcripts = list(self.read().transcripts.values())

        if project_id:
            transcripts = [t for t in transcripts if t.project_id == project_id]

        if session_id:
            transcripts = [t for t in transcripts if t.session_id == session_id]

        transcripts.sort(key=lambda t: t.updated_at, reverse=True)

        if limit:
            transcripts = transcripts[:limit]

        return transcripts
