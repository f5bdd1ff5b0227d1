"""Lifecycle integration: saves transcripts on session events.

The host calls handle_event() for session lifecycle events and
compaction_context() right before it compacts a session. Saved transcripts
are expired by a background retention sweeper started on the first event.
"""

import threading
from pathlib import Path
from typing import Any

from chat_recall.config import Config
from chat_recall.logging import get_logger
from chat_recall.models import parse_messages
from chat_recall.search.engine import SearchEngine
from chat_recall.sources.base import MessageSource
from chat_recall.storage.retention import RetentionSweeper
from chat_recall.storage.store import TranscriptStore
from chat_recall.transcript.builder import build_transcript

logger = get_logger("plugin")

COMPACTION_CONTEXT_TEMPLATE = """## IMPORTANT: Conversation History Available

The full transcript of this conversation (before this summary) has been saved. You have access to recall any details that may have been lost during summarization.

**Transcript location:** `{path}`

### When to use transcript recall:
- You need exact file paths, URLs, or identifiers mentioned earlier
- You need to reference specific command outputs or error messages
- You need code snippets that were discussed or shown
- You need to recall specific decisions, requirements, or instructions from the user
- The user references something from "earlier" that isn't in your current context

### How to recall information:

1. **Search for specific information:**
   `recall_transcript({{ query: "the keywords you're looking for" }})`

2. **Get the full transcript:**
   `recall_transcript({{ sessionID: "{session_id}", fullTranscript: true }})`

3. **List all available transcripts (including other sessions):**
   `list_transcripts({{ allSessions: true }})`

If the user asks about something you don't remember or need more details about, USE THESE TOOLS to search the conversation history rather than asking the user to repeat themselves."""


class ChatRecall:
    """Saves session transcripts in response to host lifecycle events."""

    def __init__(self, config: Config, source: MessageSource) -> None:
        self._config = config
        self._source = source
        self.store = TranscriptStore(config.transcript_dir)
        self.engine = SearchEngine(self.store)
        self._sweeper: RetentionSweeper | None = None
        self._sweeper_lock = threading.Lock()

    @property
    def sweeper(self) -> RetentionSweeper | None:
        return self._sweeper

    def schedule_cleanup(self) -> None:
        """Start the retention sweeper once; later calls do nothing."""
        with self._sweeper_lock:
            if self._sweeper is not None:
                return
            retention = self._config.retention
            self._sweeper = RetentionSweeper(
                self.store,
                interval_seconds=retention.cleanup_interval_seconds,
                startup_delay_seconds=retention.startup_delay_seconds,
            )
            self._sweeper.start()

    def handle_event(self, event: dict[str, Any]) -> Path | None:
        """Handle a host event.

        session.idle saves the transcript; session.compacted saves it and
        marks it compacted. Other events only trigger cleanup scheduling.

        Returns:
            Path of the saved transcript, if one was saved
        """
        self.schedule_cleanup()

        event_type = event.get("type")
        properties = event.get("properties") or {}
        session_id = properties.get("sessionID")
        if not session_id:
            return None

        if event_type == "session.idle":
            return self.save_session(session_id, compacted=False)

        if event_type == "session.compacted":
            logger.info("Session compacted, updating transcript: session_id=%s", session_id)
            return self.save_session(session_id, compacted=True)

        return None

    def save_session(self, session_id: str, compacted: bool = False) -> Path | None:
        """Build and save the transcript of a session.

        Failures are logged, not raised.

        Returns:
            Path of the saved markdown transcript, or None if nothing was saved
        """
        try:
            session = self._source.get_session(session_id)
            if session is None:
                logger.debug("Session not found: session_id=%s", session_id)
                return None

            messages = parse_messages(self._source.get_messages(session_id))
            if not messages:
                logger.debug("No messages to save: session_id=%s", session_id)
                return None

            transcript = build_transcript(
                messages,
                session,
                compacted=compacted,
                previous=self.store.index.get(session_id),
                retention_days=self._config.retention.retention_days,
            )
            path = self.store.save(transcript)
        except Exception:
            logger.exception("Failed to save transcript: session_id=%s", session_id)
            return None

        logger.info(
            "Saved transcript: session_id=%s message_count=%d compacted=%s",
            session_id,
            len(messages),
            transcript.metadata.compacted,
        )
        return path

    def compaction_context(self, session_id: str) -> str | None:
        """Save the session as compacted and describe how to recall it.

        Returns:
            Text to inject into the compaction context, or None if the
            transcript could not be saved
        """
        path = self.save_session(session_id, compacted=True)
        if path is None:
            return None
        return COMPACTION_CONTEXT_TEMPLATE.format(path=path, session_id=session_id)

    def close(self) -> None:
        """Stop the retention sweeper."""
        with self._sweeper_lock:
            if self._sweeper is not None:
                self._sweeper.stop(timeout=5)
                self._sweeper = None
