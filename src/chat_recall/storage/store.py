"""Durable per-session transcript storage.

Layout under the transcript root:

    index.json                  metadata index
    <session_id>/
        metadata.json           TranscriptMetadata
        transcript.md           rendered markdown
        transcript.txt          rendered plain text
        chunks/chunk_<n>.json   one TranscriptChunk per file

A save replaces every file of the session and only then updates the index,
so an index entry always points at a complete record. Reads treat missing and
corrupt records the same way: the transcript is absent.
"""

import shutil
import tempfile
import threading
import uuid
from pathlib import Path

from chat_recall.exceptions import TranscriptWriteError
from chat_recall.logging import get_logger
from chat_recall.models import Transcript, TranscriptChunk, TranscriptMetadata
from chat_recall.storage.fileio import (
    ensure_directory,
    read_json,
    read_text,
    write_json_atomic,
    write_text_atomic,
)
from chat_recall.storage.index import MetadataIndexFile

logger = get_logger("store")

METADATA_FILE = "metadata.json"
MARKDOWN_FILE = "transcript.md"
TEXT_FILE = "transcript.txt"
CHUNKS_DIR = "chunks"


def is_valid_session_id(session_id: str) -> bool:
    """Check that a session id can be used as a single directory name."""
    if not session_id or session_id in (".", ".."):
        return False
    return "/" not in session_id and "\\" not in session_id and "\x00" not in session_id


class TranscriptStore:
    """Saves, loads, and deletes transcripts under a root directory."""

    def __init__(self, root: Path) -> None:
        """Initialize the store.

        Args:
            root: Transcript root directory. Created on first save.
        """
        self._root = root
        self._index = MetadataIndexFile(root)
        self._session_locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @property
    def root(self) -> Path:
        return self._root

    @property
    def index(self) -> MetadataIndexFile:
        return self._index

    def _session_lock(self, session_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._session_locks.get(session_id)
            if lock is None:
                lock = threading.Lock()
                self._session_locks[session_id] = lock
            return lock

    def session_dir(self, session_id: str) -> Path:
        return self._root / session_id

    def locate(self, session_id: str) -> Path:
        """Path where the session's markdown transcript lives (not checked for existence)."""
        return self._root / session_id / MARKDOWN_FILE

    def save(self, transcript: Transcript) -> Path:
        """Persist a transcript, replacing any previous record for the session.

        Args:
            transcript: Transcript to save

        Returns:
            Path to the saved markdown transcript

        Raises:
            ValueError: If the session id is not usable as a directory name
            TranscriptWriteError: If any file or the index cannot be written
        """
        session_id = transcript.metadata.session_id
        if not is_valid_session_id(session_id):
            raise ValueError(f"Invalid session id: {session_id!r}")

        session_dir = self.session_dir(session_id)

        with self._session_lock(session_id):
            try:
                ensure_directory(session_dir)
                write_json_atomic(session_dir / METADATA_FILE, transcript.metadata.to_dict())
                write_text_atomic(session_dir / MARKDOWN_FILE, transcript.markdown)
                write_text_atomic(session_dir / TEXT_FILE, transcript.text)
                self._replace_chunks(session_dir, transcript.chunks)
            except OSError as e:
                raise TranscriptWriteError("save_transcript", str(session_dir), e) from e

            self._index.upsert(transcript.metadata)

        logger.debug(
            "Saved transcript: session_id=%s chunks=%d",
            session_id,
            len(transcript.chunks),
        )
        return self.locate(session_id)

    def _replace_chunks(self, session_dir: Path, chunks: list[TranscriptChunk]) -> None:
        """Swap in a freshly written chunk directory, dropping the old one."""
        chunks_dir = session_dir / CHUNKS_DIR
        staging = Path(tempfile.mkdtemp(dir=session_dir, prefix=".chunks_"))
        try:
            for chunk in chunks:
                write_json_atomic(staging / f"{chunk.id}.json", chunk.to_dict())

            retired: Path | None = None
            if chunks_dir.exists():
                retired = session_dir / f".retired_{uuid.uuid4().hex}"
                chunks_dir.rename(retired)
            staging.rename(chunks_dir)
        except BaseException:
            shutil.rmtree(staging, ignore_errors=True)
            raise

        if retired is not None:
            shutil.rmtree(retired, ignore_errors=True)

    def load(self, session_id: str) -> Transcript | None:
        """Load a complete transcript.

        Returns:
            Transcript with chunks ordered by timestamp, or None if the
            record is missing or unreadable
        """
        if not is_valid_session_id(session_id):
            return None

        session_dir = self.session_dir(session_id)
        try:
            metadata = TranscriptMetadata.from_dict(read_json(session_dir / METADATA_FILE))
            markdown = read_text(session_dir / MARKDOWN_FILE)
            text = read_text(session_dir / TEXT_FILE)
            chunks = self._load_chunks(session_dir / CHUNKS_DIR)
        except FileNotFoundError:
            return None
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning("Unreadable transcript: session_id=%s error=%s", session_id, e)
            return None

        return Transcript(metadata=metadata, markdown=markdown, text=text, chunks=chunks)

    def _load_chunks(self, chunks_dir: Path) -> list[TranscriptChunk]:
        if not chunks_dir.is_dir():
            return []

        chunks = [
            TranscriptChunk.from_dict(read_json(chunk_file))
            for chunk_file in chunks_dir.glob("chunk_*.json")
        ]
        chunks.sort(key=lambda c: (c.timestamp, c.index))
        return chunks

    def load_metadata(self, session_id: str) -> TranscriptMetadata | None:
        if not is_valid_session_id(session_id):
            return None
        try:
            return TranscriptMetadata.from_dict(read_json(self.session_dir(session_id) / METADATA_FILE))
        except FileNotFoundError:
            return None
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning("Unreadable transcript metadata: session_id=%s error=%s", session_id, e)
            return None

    def load_markdown(self, session_id: str) -> str | None:
        """Rendered markdown of a transcript, or None if unavailable."""
        return self._load_rendered(session_id, MARKDOWN_FILE)

    def load_text(self, session_id: str) -> str | None:
        """Rendered plain text of a transcript, or None if unavailable."""
        return self._load_rendered(session_id, TEXT_FILE)

    def _load_rendered(self, session_id: str, filename: str) -> str | None:
        if not is_valid_session_id(session_id):
            return None
        try:
            return read_text(self.session_dir(session_id) / filename)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.warning("Unreadable transcript file: session_id=%s file=%s error=%s", session_id, filename, e)
            return None

    def list_transcripts(
        self,
        project_id: str | None = None,
        session_id: str | None = None,
        limit: int | None = None,
    ) -> list[TranscriptMetadata]:
        """List saved transcripts, most recently updated first."""
        return self._index.list_entries(project_id=project_id, session_id=session_id, limit=limit)

    def delete(self, session_id: str) -> None:
        """Remove a transcript and its index entry.

        Best effort: every failure is logged and the remaining steps still run.
        Never raises.
        """
        if not is_valid_session_id(session_id):
            logger.error("Refusing to delete invalid session id: session_id=%r", session_id)
            return

        session_dir = self.session_dir(session_id)

        with self._session_lock(session_id):
            try:
                if session_dir.exists():
                    self._remove_session_files(session_dir, session_id)
            except OSError:
                logger.exception("Failed to delete transcript files: session_id=%s", session_id)

            try:
                self._index.remove(session_id)
            except Exception:
                logger.exception("Failed to remove index entry: session_id=%s", session_id)

        logger.info("Deleted transcript: session_id=%s", session_id)

    def _remove_session_files(self, session_dir: Path, session_id: str) -> None:
        # Chunk files first, then the chunk directory
        chunks_dir = session_dir / CHUNKS_DIR
        if chunks_dir.is_dir():
            for chunk_file in chunks_dir.iterdir():
                self._unlink(chunk_file, session_id)
            self._rmdir(chunks_dir, session_id)

        for path in session_dir.iterdir():
            if path.is_dir():
                # Leftover staging directories from interrupted saves
                shutil.rmtree(path, ignore_errors=True)
            else:
                self._unlink(path, session_id)

        self._rmdir(session_dir, session_id)

    def _unlink(self, path: Path, session_id: str) -> None:
        try:
            path.unlink()
        except OSError:
            logger.exception("Failed to delete transcript file: session_id=%s path=%s", session_id, path)

    def _rmdir(self, path: Path, session_id: str) -> None:
        try:
            path.rmdir()
        except OSError:
            logger.exception("Failed to remove transcript directory: session_id=%s path=%s", session_id, path)
