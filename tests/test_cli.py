"""Tests for the command line interface."""

import json
from collections.abc import Iterator
from dataclasses import replace
from pathlib import Path

import pytest
import yaml
from click.testing import CliRunner

from chat_recall.__main__ import cli
from chat_recall.logging import shutdown_logging
from chat_recall.storage.store import TranscriptStore


@pytest.fixture(autouse=True)
def reset_logging() -> Iterator[None]:
    yield
    shutdown_logging()


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(
        yaml.safe_dump({
            "transcript_dir": str(tmp_path / "transcripts"),
            "log_dir": str(tmp_path / "log"),
            "opencode_storage": str(tmp_path / "storage"),
        })
    )
    return path


def write_opencode_session(storage: Path, session_id: str, texts: list[str]) -> None:
    """Write a minimal OpenCode session with one text part per message."""
    session_dir = storage / "session" / "proj_1"
    session_dir.mkdir(parents=True, exist_ok=True)
    (session_dir / f"{session_id}.json").write_text(
        json.dumps({"id": session_id, "projectID": "proj_1", "title": f"Title {session_id}", "directory": "/w"})
    )

    message_dir = storage / "message" / session_id
    message_dir.mkdir(parents=True)
    for i, text in enumerate(texts):
        msg_id = f"msg_{session_id}_{i}"
        role = "user" if i % 2 == 0 else "assistant"
        (message_dir / f"{msg_id}.json").write_text(
            json.dumps({"id": msg_id, "role": role, "time": {"created": 1000 + i}})
        )
        part_dir = storage / "part" / msg_id
        part_dir.mkdir(parents=True)
        (part_dir / "prt_000.json").write_text(json.dumps({"type": "text", "text": text}))


def invoke(config_file: Path, *args: str):
    return CliRunner().invoke(cli, ["--config", str(config_file), *args], obj={})


class TestSave:
    """Tests for the save command."""

    def test_saves_given_sessions(self, tmp_path: Path, config_file: Path, store: TranscriptStore) -> None:
        write_opencode_session(tmp_path / "storage", "ses_1", ["hello", "hi there"])

        result = invoke(config_file, "save", "ses_1")

        assert result.exit_code == 0, result.output
        assert "Saved ses_1" in result.output
        assert store.load_metadata("ses_1").message_count == 2

    def test_save_all_compacted(self, tmp_path: Path, config_file: Path, store: TranscriptStore) -> None:
        write_opencode_session(tmp_path / "storage", "ses_1", ["a"])
        write_opencode_session(tmp_path / "storage", "ses_2", ["b"])

        result = invoke(config_file, "save", "--all", "--compacted")

        assert result.exit_code == 0, result.output
        assert store.load_metadata("ses_1").compacted is True
        assert store.load_metadata("ses_2").compacted is True

    def test_source_and_storage_options(self, tmp_path: Path, config_file: Path, store: TranscriptStore) -> None:
        """Sessions are read through the named source from the given storage directory."""
        write_opencode_session(tmp_path / "elsewhere", "ses_9", ["hello"])

        result = invoke(config_file, "save", "--source", "opencode", "--storage", str(tmp_path / "elsewhere"), "ses_9")

        assert result.exit_code == 0, result.output
        assert store.load_metadata("ses_9") is not None

    def test_unknown_source_rejected(self, config_file: Path) -> None:
        result = invoke(config_file, "save", "--source", "nope", "ses_1")

        assert result.exit_code == 2
        assert "nope" in result.output

    def test_unknown_session_fails(self, config_file: Path) -> None:
        result = invoke(config_file, "save", "ses_missing")
        assert result.exit_code == 1

    def test_nothing_to_save(self, config_file: Path) -> None:
        result = invoke(config_file, "save")
        assert result.exit_code == 1


class TestReadCommands:
    """Tests for list, recall, show, and stats."""

    @pytest.fixture(autouse=True)
    def saved(self, tmp_path: Path, config_file: Path) -> None:
        write_opencode_session(tmp_path / "storage", "ses_1", ["where is the S3 bucket?", "s3://team-bucket/data"])
        assert invoke(config_file, "save", "ses_1").exit_code == 0

    def test_list(self, config_file: Path) -> None:
        result = invoke(config_file, "list")

        assert result.exit_code == 0
        assert "Found 1 transcript(s)" in result.output
        assert "Title ses_1" in result.output

    def test_recall(self, config_file: Path) -> None:
        result = invoke(config_file, "recall", "s3 bucket")

        assert result.exit_code == 0
        assert "Found 2 result(s)" in result.output
        assert "team-bucket" in result.output

    def test_recall_no_match(self, config_file: Path) -> None:
        result = invoke(config_file, "recall", "nonexistent term xyz")

        assert result.exit_code == 0
        assert "No results found" in result.output

    def test_show(self, config_file: Path) -> None:
        result = invoke(config_file, "show", "ses_1", "--format", "text")

        assert result.exit_code == 0
        assert result.output.startswith("=== Title ses_1 ===")

    def test_show_missing(self, config_file: Path) -> None:
        result = invoke(config_file, "show", "ses_missing")
        assert result.exit_code == 1

    def test_stats(self, config_file: Path) -> None:
        result = invoke(config_file, "stats")

        assert result.exit_code == 0
        assert "Transcripts: 1" in result.output
        assert "Messages:    2" in result.output


class TestSweep:
    """Tests for the sweep command."""

    def test_deletes_expired(self, tmp_path: Path, config_file: Path, store: TranscriptStore) -> None:
        config_file.write_text(
            yaml.safe_dump({
                "transcript_dir": str(tmp_path / "transcripts"),
                "log_dir": str(tmp_path / "log"),
                "opencode_storage": str(tmp_path / "storage"),
                "retention": {"retention_days": 0},
            })
        )
        write_opencode_session(tmp_path / "storage", "ses_1", ["a"])
        assert invoke(config_file, "save", "ses_1").exit_code == 0

        # Expiry is strictly in the past once a millisecond has elapsed
        metadata = store.load_metadata("ses_1")
        store.index.upsert(replace(metadata, expires_at=metadata.expires_at - 1))

        result = invoke(config_file, "sweep")

        assert result.exit_code == 0
        assert "Deleted 1 expired transcript(s)" in result.output
        assert store.load("ses_1") is None

    def test_nothing_expired(self, config_file: Path) -> None:
        result = invoke(config_file, "sweep")

        assert result.exit_code == 0
        assert "Deleted 0 expired transcript(s)" in result.output
