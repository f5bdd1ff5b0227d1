"""Tests for the agent-facing recall tools."""

import pytest

from chat_recall.models import SearchContext, SearchResult
from chat_recall.search.engine import SearchEngine
from chat_recall.storage.store import TranscriptStore
from chat_recall.transcript.builder import build_transcript
from chat_recall.tools import (
    NO_TRANSCRIPTS,
    format_full_transcript,
    format_search_results,
    list_transcripts,
    recall_transcript,
)


@pytest.fixture
def engine(store: TranscriptStore) -> SearchEngine:
    return SearchEngine(store)


class TestListTranscripts:
    """Tests for list_transcripts."""

    def test_empty_store(self, store: TranscriptStore) -> None:
        assert list_transcripts(store) == NO_TRANSCRIPTS

    def test_lists_entries(self, store: TranscriptStore, save_session) -> None:
        save_session("ses_1", [("user", "a"), ("assistant", "b")], title="First")
        save_session("ses_2", [("user", "c")], title="Second", now=1706745700000)

        output = list_transcripts(store, current_session_id="ses_2")

        assert output.startswith("Found 2 transcript(s):")
        assert output.index("**Second** (current)") < output.index("**First**")
        assert "Session: ses_1" in output
        assert "Messages: 2" in output
        assert f"Path: {store.locate('ses_1')}" in output

    def test_current_session_only(self, store: TranscriptStore, save_session) -> None:
        save_session("ses_1", [("user", "a")])
        save_session("ses_2", [("user", "b")])

        output = list_transcripts(store, current_session_id="ses_1", current_session=True)

        assert "Found 1 transcript(s)" in output
        assert "ses_2" not in output

    def test_compacted_marker(self, store: TranscriptStore, make_message, make_session) -> None:
        store.save(build_transcript([make_message("m", "user", "x")], make_session("ses_c"), compacted=True))

        assert "[COMPACTED]" in list_transcripts(store)

    def test_project_filter_and_limit(self, store: TranscriptStore, save_session) -> None:
        save_session("ses_1", [("user", "a")], project_id="proj_a")
        save_session("ses_2", [("user", "b")], project_id="proj_b")
        save_session("ses_3", [("user", "c")], project_id="proj_b")

        assert "Found 2 transcript(s)" in list_transcripts(store, project_id="proj_b")
        assert "Found 1 transcript(s)" in list_transcripts(store, limit=1)


class TestFormatting:
    """Tests for result formatting."""

    def test_full_transcript_formats(self) -> None:
        assert format_full_transcript("# md", "txt", "markdown") == "# md"
        assert format_full_transcript("# md", "txt", "text") == "txt"
        both = format_full_transcript("# md", "txt", "both")
        assert both.startswith("## Markdown Format")
        assert "## Text Format\n\ntxt" in both

    def test_no_results_guidance(self) -> None:
        output = format_search_results("xyz", [])
        assert output.startswith('No results found for query: "xyz"')
        assert "list_transcripts" in output

    def test_results_with_context(self) -> None:
        result = SearchResult(
            session_id="ses_1",
            session_title="Debugging",
            message_id="msg_1",
            role="assistant",
            excerpt="the fix is here",
            timestamp=1706745600000,
            score=2,
            context=SearchContext(before="what is the fix?", after="thanks"),
        )

        output = format_search_results("fix", [result], current_session_id="ses_1")

        assert 'Found 1 result(s) for "fix":' in output
        assert "### Debugging (current session)" in output
        assert "*Before:* what is the fix?" in output
        assert "```\nthe fix is here\n```" in output
        assert "*After:* thanks" in output
        assert "fullTranscript: true" in output


class TestRecallTranscript:
    """Tests for recall_transcript."""

    def test_search(self, store: TranscriptStore, engine: SearchEngine, save_session) -> None:
        save_session("ses_1", [("user", "the S3 bucket path is /data/uploads")])

        output = recall_transcript(store, engine, query="s3 bucket")

        assert "Found 1 result(s)" in output
        assert "/data/uploads" in output

    def test_search_within_session(self, store: TranscriptStore, engine: SearchEngine, save_session) -> None:
        save_session("ses_1", [("user", "shared")])
        save_session("ses_2", [("user", "shared")])

        output = recall_transcript(store, engine, query="shared", session_id="ses_2")

        assert "Found 1 result(s)" in output
        assert "**Session:** ses_2" in output

    def test_no_results(self, store: TranscriptStore, engine: SearchEngine, save_session) -> None:
        save_session("ses_1", [("user", "hello")])
        assert "No results found" in recall_transcript(store, engine, query="nonexistent term xyz")

    def test_full_transcript_defaults_to_current_session(
        self, store: TranscriptStore, engine: SearchEngine, save_session
    ) -> None:
        transcript = save_session("ses_1", [("user", "hello")])

        output = recall_transcript(store, engine, current_session_id="ses_1", full_transcript=True)

        assert output == transcript.markdown

    def test_full_transcript_text(self, store: TranscriptStore, engine: SearchEngine, save_session) -> None:
        transcript = save_session("ses_1", [("user", "hello")])

        output = recall_transcript(store, engine, session_id="ses_1", fmt="text", full_transcript=True)

        assert output == transcript.text

    def test_full_transcript_missing(self, store: TranscriptStore, engine: SearchEngine) -> None:
        output = recall_transcript(store, engine, session_id="ses_x", full_transcript=True)
        assert output == "No transcript found for session ses_x"

    def test_unknown_format(self, store: TranscriptStore, engine: SearchEngine) -> None:
        with pytest.raises(ValueError):
            recall_transcript(store, engine, query="x", fmt="html")
