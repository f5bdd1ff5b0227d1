"""Message source backed by OpenCode (SST) on-disk storage.

OpenCode stores conversations in a hierarchical structure at:
    ~/.local/share/opencode/storage/

Directory layout:
    session/<projectHash>/ses_<id>.json    - Session metadata
    message/<sessionID>/msg_<id>.json      - Message metadata
    part/<messageID>/prt_<id>.json         - Content parts

Session file contains:
- id: Session identifier (e.g., "ses_419ccecd4ffe0HogypcacqYZnm")
- projectID: Project hash
- directory: Working directory path
- title: Display title
- time.created / time.updated: Timestamps (milliseconds)

Message file contains:
- id, sessionID, role ("user" or "assistant"), time.created

Part files hold the typed parts (text, reasoning, tool, file, step-start,
step-finish, snapshot, patch, compaction).
"""

import json
from pathlib import Path
from typing import Any

from chat_recall.logging import get_logger
from chat_recall.models import MessageWithParts, SessionInfo, parse_message
from chat_recall.sources.base import MessageSource, SourceRegistry

logger = get_logger("sources.opencode")


def _read_json(path: Path) -> dict[str, Any] | None:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError):
        logger.debug("Skipping unreadable file: path=%s", path)
        return None
    return data if isinstance(data, dict) else None


@SourceRegistry.register
class OpenCodeSource(MessageSource):
    """Reads sessions and messages from an OpenCode storage directory."""

    source_name = "opencode"

    def __init__(self, storage_root: Path, worktree: str = "") -> None:
        """Initialize the source.

        Args:
            storage_root: OpenCode storage directory (.../opencode/storage)
            worktree: Worktree recorded on sessions (defaults to the session directory)
        """
        self._root = storage_root
        self._worktree = worktree

    def _find_session_file(self, session_id: str) -> Path | None:
        # Session files are grouped by project hash
        session_base = self._root / "session"
        if not session_base.exists():
            return None
        for candidate in session_base.glob(f"*/{session_id}.json"):
            return candidate
        return None

    def get_session(self, session_id: str) -> SessionInfo | None:
        session_file = self._find_session_file(session_id)
        if session_file is None:
            return None

        data = _read_json(session_file)
        if data is None:
            return None

        time_data = data.get("time", {})
        if not isinstance(time_data, dict):
            time_data = {}
        directory = str(data.get("directory", ""))

        return SessionInfo(
            id=str(data.get("id", session_id)),
            project_id=str(data.get("projectID", session_file.parent.name)),
            title=str(data.get("title", "")),
            directory=directory,
            worktree=self._worktree or directory,
            created=int(time_data.get("created", 0) or 0),
            updated=int(time_data.get("updated", 0) or 0),
        )

    def get_messages(self, session_id: str) -> list[MessageWithParts]:
        message_dir = self._root / "message" / session_id
        if not message_dir.exists():
            return []

        messages: list[MessageWithParts] = []
        for msg_file in sorted(message_dir.glob("msg_*.json")):
            msg_data = _read_json(msg_file)
            if msg_data is None:
                continue

            message_id = msg_data.get("id", msg_file.stem)
            msg = parse_message({
                "info": {**msg_data, "id": message_id},
                "parts": self._load_parts(message_id),
            })
            if msg is not None:
                messages.append(msg)

        # Sort messages by creation time
        messages.sort(key=lambda m: m.info.created)
        return messages

    def _load_parts(self, message_id: str) -> list[dict[str, Any]]:
        # Parts directory: .../storage/part/<messageID>/
        parts_dir = self._root / "part" / message_id
        if not parts_dir.exists():
            return []

        parts = []
        for part_file in sorted(parts_dir.glob("prt_*.json")):
            part_data = _read_json(part_file)
            if part_data is not None:
                parts.append(part_data)
        return parts

    def list_sessions(self) -> list[str]:
        session_base = self._root / "session"
        if not session_base.exists():
            return []
        return sorted(path.stem for path in session_base.glob("*/*.json"))
