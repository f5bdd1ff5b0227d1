"""Shared fixtures for chat-recall tests."""

from collections.abc import Callable
from pathlib import Path

import pytest

from chat_recall.models import (
    MessageInfo,
    MessageWithParts,
    Part,
    SessionInfo,
    TextPart,
    Transcript,
)
from chat_recall.storage.store import TranscriptStore
from chat_recall.transcript.builder import build_transcript

BASE_TS = 1706745600000  # 2024-02-01T00:00:00Z in milliseconds


@pytest.fixture
def store(tmp_path: Path) -> TranscriptStore:
    """Provide a TranscriptStore rooted in a temporary directory."""
    return TranscriptStore(tmp_path / "transcripts")


@pytest.fixture
def make_message() -> Callable[..., MessageWithParts]:
    """Factory for messages; plain strings become text parts."""

    def _make(
        message_id: str,
        role: str = "user",
        *parts: Part | str,
        created: int = BASE_TS,
    ) -> MessageWithParts:
        typed = [TextPart(text=p) if isinstance(p, str) else p for p in parts]
        return MessageWithParts(info=MessageInfo(id=message_id, role=role, created=created), parts=typed)

    return _make


@pytest.fixture
def make_session() -> Callable[..., SessionInfo]:
    """Factory for SessionInfo records."""

    def _make(session_id: str = "ses_test", project_id: str = "proj_1", title: str = "Test Session") -> SessionInfo:
        return SessionInfo(
            id=session_id,
            project_id=project_id,
            title=title,
            directory="/home/user/projects/myapp",
            worktree="/home/user/projects/myapp",
        )

    return _make


@pytest.fixture
def save_session(
    store: TranscriptStore,
    make_message: Callable[..., MessageWithParts],
    make_session: Callable[..., SessionInfo],
) -> Callable[..., Transcript]:
    """Build and save a session whose messages are given as (role, text) pairs."""

    def _save(
        session_id: str,
        texts: list[tuple[str, str]],
        project_id: str = "proj_1",
        title: str | None = None,
        now: int = BASE_TS,
    ) -> Transcript:
        messages = [
            make_message(f"msg_{i:03d}", role, text, created=BASE_TS + i * 1000)
            for i, (role, text) in enumerate(texts)
        ]
        session = make_session(session_id, project_id, title or f"Session {session_id}")
        transcript = build_transcript(messages, session, now=now)
        store.save(transcript)
        return transcript

    return _save
