"""Assemble a complete Transcript from session messages."""

from typing import Any

from chat_recall.models import SessionInfo, Transcript, TranscriptMetadata, now_ms, parse_messages
from chat_recall.storage.retention import RETENTION_DAYS, calculate_expires_at
from chat_recall.transcript.chunker import build_chunks
from chat_recall.transcript.render import render_markdown, render_text


def build_metadata(
    session: SessionInfo,
    message_count: int,
    compacted: bool = False,
    previous: TranscriptMetadata | None = None,
    retention_days: int = RETENTION_DAYS,
    now: int | None = None,
) -> TranscriptMetadata:
    """Compute the metadata for a fresh save of a session.

    Creation time and compaction state carry over from the previous save;
    compaction is never cleared once recorded. Expiry is pushed out from now.
    """
    if now is None:
        now = now_ms()

    created_at = now
    was_compacted = False
    compacted_at = None
    if previous is not None:
        created_at = min(previous.created_at, now)
        was_compacted = previous.compacted
        compacted_at = previous.compacted_at

    if compacted and not was_compacted:
        compacted_at = now

    return TranscriptMetadata(
        session_id=session.id,
        project_id=session.project_id,
        title=session.title,
        directory=session.directory,
        worktree=session.worktree,
        created_at=created_at,
        updated_at=now,
        message_count=message_count,
        compacted=compacted or was_compacted,
        compacted_at=compacted_at,
        expires_at=calculate_expires_at(retention_days, now),
    )


def build_transcript(
    messages: Any,
    session: SessionInfo,
    compacted: bool = False,
    previous: TranscriptMetadata | None = None,
    retention_days: int = RETENTION_DAYS,
    now: int | None = None,
) -> Transcript:
    """Build the transcript aggregate for a session.

    Args:
        messages: Session messages in order, as MessageWithParts or raw host
            mappings (non-list payloads count as empty)
        session: Session attributes from the host
        compacted: Whether this save follows a compaction
        previous: Metadata of the existing saved transcript, if any
        retention_days: Days until the saved transcript expires
        now: Save time in epoch milliseconds (defaults to current time)

    Returns:
        Transcript with metadata, rendered markdown and text, and search chunks
    """
    if isinstance(messages, list):
        # Raw host mappings are parsed; unusable entries are dropped
        messages = parse_messages(messages)
        message_count = len(messages)
    else:
        message_count = 0

    metadata = build_metadata(
        session,
        message_count,
        compacted=compacted,
        previous=previous,
        retention_days=retention_days,
        now=now,
    )

    title = session.title or session.id
    return Transcript(
        metadata=metadata,
        markdown=render_markdown(messages, title),
        text=render_text(messages, title),
        chunks=build_chunks(messages, session.id),
    )
