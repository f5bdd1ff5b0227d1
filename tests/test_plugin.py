"""Tests for the session lifecycle integration."""

from collections.abc import Iterator
from pathlib import Path

import pytest

from chat_recall.config import Config, RetentionConfig
from chat_recall.models import MessageInfo, MessageWithParts, SessionInfo, TextPart
from chat_recall.plugin import ChatRecall
from chat_recall.sources.base import MessageSource


class FakeSource(MessageSource):
    """In-memory message source."""

    source_name = "fake"

    def __init__(self) -> None:
        self.sessions: dict[str, SessionInfo] = {}
        self.messages: dict[str, list] = {}
        self.fail = False

    def add(self, session_id: str, *texts: str) -> None:
        self.sessions[session_id] = SessionInfo(
            id=session_id,
            project_id="proj_1",
            title=f"Session {session_id}",
            directory="/work",
            worktree="/work",
        )
        self.messages[session_id] = [
            MessageWithParts(
                info=MessageInfo(id=f"msg_{i}", role="user" if i % 2 == 0 else "assistant", created=1000 + i),
                parts=[TextPart(text=text)],
            )
            for i, text in enumerate(texts)
        ]

    def get_session(self, session_id: str) -> SessionInfo | None:
        if self.fail:
            raise RuntimeError("host unavailable")
        return self.sessions.get(session_id)

    def get_messages(self, session_id: str) -> list:
        return self.messages.get(session_id, [])

    def list_sessions(self) -> list[str]:
        return sorted(self.sessions)


@pytest.fixture
def source() -> FakeSource:
    source = FakeSource()
    source.add("ses_1", "where is the config?", "in /etc/app.yaml")
    return source


@pytest.fixture
def recall(tmp_path: Path, source: FakeSource) -> Iterator[ChatRecall]:
    config = Config(
        transcript_dir=tmp_path / "transcripts",
        log_dir=tmp_path / "log",
        opencode_storage=tmp_path / "storage",
        retention=RetentionConfig(retention_days=7, cleanup_interval_ms=3_600_000, startup_delay_ms=60_000),
    )
    service = ChatRecall(config, source)
    yield service
    service.close()


class TestHandleEvent:
    """Tests for ChatRecall.handle_event."""

    def test_idle_saves_transcript(self, recall: ChatRecall) -> None:
        path = recall.handle_event({"type": "session.idle", "properties": {"sessionID": "ses_1"}})

        assert path == recall.store.locate("ses_1")
        assert path.exists()
        metadata = recall.store.load_metadata("ses_1")
        assert metadata.compacted is False
        assert metadata.message_count == 2

    def test_compacted_marks_transcript(self, recall: ChatRecall) -> None:
        recall.handle_event({"type": "session.idle", "properties": {"sessionID": "ses_1"}})
        recall.handle_event({"type": "session.compacted", "properties": {"sessionID": "ses_1"}})

        metadata = recall.store.load_metadata("ses_1")
        assert metadata.compacted is True
        assert metadata.compacted_at is not None

    def test_idle_after_compaction_keeps_flag(self, recall: ChatRecall) -> None:
        recall.handle_event({"type": "session.compacted", "properties": {"sessionID": "ses_1"}})
        recall.handle_event({"type": "session.idle", "properties": {"sessionID": "ses_1"}})

        assert recall.store.load_metadata("ses_1").compacted is True

    def test_resave_keeps_creation_time(self, recall: ChatRecall, source: FakeSource) -> None:
        recall.save_session("ses_1")
        first = recall.store.load_metadata("ses_1")

        source.add("ses_1", "a", "b", "c")
        recall.save_session("ses_1")
        second = recall.store.load_metadata("ses_1")

        assert second.created_at == first.created_at
        assert second.message_count == 3
        assert second.updated_at >= first.updated_at

    def test_other_events_ignored(self, recall: ChatRecall) -> None:
        assert recall.handle_event({"type": "session.updated", "properties": {"sessionID": "ses_1"}}) is None
        assert recall.store.load("ses_1") is None

    def test_missing_session_id(self, recall: ChatRecall) -> None:
        assert recall.handle_event({"type": "session.idle"}) is None
        assert recall.handle_event({"type": "session.idle", "properties": None}) is None

    def test_schedules_sweeper_once(self, recall: ChatRecall) -> None:
        recall.handle_event({"type": "session.idle", "properties": {"sessionID": "ses_1"}})
        sweeper = recall.sweeper

        recall.handle_event({"type": "session.idle", "properties": {"sessionID": "ses_1"}})

        assert sweeper is not None
        assert sweeper.is_alive()
        assert recall.sweeper is sweeper


class TestSaveSession:
    """Tests for ChatRecall.save_session."""

    def test_unknown_session(self, recall: ChatRecall) -> None:
        assert recall.save_session("ses_missing") is None

    def test_session_without_messages(self, recall: ChatRecall, source: FakeSource) -> None:
        source.add("ses_empty")
        assert recall.save_session("ses_empty") is None
        assert recall.store.load("ses_empty") is None

    def test_non_list_messages(self, recall: ChatRecall, source: FakeSource) -> None:
        source.add("ses_odd")
        source.messages["ses_odd"] = {}
        assert recall.save_session("ses_odd") is None

    def test_source_failure_is_logged_not_raised(self, recall: ChatRecall, source: FakeSource) -> None:
        source.fail = True
        assert recall.save_session("ses_1") is None

    def test_saved_transcript_is_searchable(self, recall: ChatRecall) -> None:
        recall.save_session("ses_1")

        results = recall.engine.search("app.yaml")

        assert [r.message_id for r in results] == ["msg_1"]


class TestCompactionContext:
    """Tests for ChatRecall.compaction_context."""

    def test_describes_saved_transcript(self, recall: ChatRecall) -> None:
        context = recall.compaction_context("ses_1")

        assert context is not None
        assert "Conversation History Available" in context
        assert str(recall.store.locate("ses_1")) in context
        assert 'recall_transcript({ sessionID: "ses_1", fullTranscript: true })' in context
        assert recall.store.load_metadata("ses_1").compacted is True

    def test_nothing_to_save(self, recall: ChatRecall) -> None:
        assert recall.compaction_context("ses_missing") is None


class TestClose:
    """Tests for ChatRecall.close."""

    def test_stops_sweeper(self, recall: ChatRecall) -> None:
        recall.schedule_cleanup()
        sweeper = recall.sweeper

        recall.close()

        assert recall.sweeper is None
        assert not sweeper.is_alive()

    def test_close_without_sweeper(self, recall: ChatRecall) -> None:
        recall.close()
        assert recall.sweeper is None
