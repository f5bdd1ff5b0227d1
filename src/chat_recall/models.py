"""Canonical data models.

Transcript records persisted by the store, search results, and the host
message payload (messages and their typed parts). Timestamps are integer
milliseconds since the epoch throughout.
"""

import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

INDEX_VERSION = 1

ROLES = ("user", "assistant")

# Parts that carry no text of their own
MARKER_PART_TYPES = ("step-start", "step-finish", "snapshot", "patch")


def now_ms() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass
class TranscriptMetadata:
    """Index entry describing one saved session."""

    session_id: str
    project_id: str
    title: str
    directory: str
    worktree: str
    created_at: int
    updated_at: int
    message_count: int
    compacted: bool
    expires_at: int
    compacted_at: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "project_id": self.project_id,
            "title": self.title,
            "directory": self.directory,
            "worktree": self.worktree,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "message_count": self.message_count,
            "compacted": self.compacted,
            "compacted_at": self.compacted_at,
            "expires_at": self.expires_at,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TranscriptMetadata":
        if not isinstance(data, Mapping):
            raise ValueError("transcript metadata must be an object")
        compacted_at = data.get("compacted_at")
        return cls(
            session_id=str(data["session_id"]),
            project_id=str(data.get("project_id", "")),
            title=str(data.get("title", "")),
            directory=str(data.get("directory", "")),
            worktree=str(data.get("worktree", "")),
            created_at=int(data["created_at"]),
            updated_at=int(data["updated_at"]),
            message_count=int(data.get("message_count", 0)),
            compacted=bool(data.get("compacted", False)),
            compacted_at=int(compacted_at) if compacted_at is not None else None,
            expires_at=int(data["expires_at"]),
        )


@dataclass
class MetadataIndex:
    """Mapping of session id to transcript metadata."""

    version: int = INDEX_VERSION
    transcripts: dict[str, TranscriptMetadata] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "transcripts": {sid: meta.to_dict() for sid, meta in self.transcripts.items()},
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MetadataIndex":
        if not isinstance(data, Mapping):
            raise ValueError("index must be an object")
        entries = data.get("transcripts", {})
        if not isinstance(entries, Mapping):
            raise ValueError("index 'transcripts' must be a mapping")
        transcripts = {}
        for session_id, entry in entries.items():
            metadata = TranscriptMetadata.from_dict(entry)
            transcripts[session_id] = metadata
        return cls(version=int(data.get("version", INDEX_VERSION)), transcripts=transcripts)


@dataclass
class TranscriptChunk:
    """Searchable unit built from one message."""

    id: str
    session_id: str
    message_id: str
    role: str
    content: str
    timestamp: int
    part_types: list[str] = field(default_factory=list)

    @property
    def index(self) -> int:
        """Numeric position encoded in the chunk id (chunk_<n>)."""
        try:
            return int(self.id.rsplit("_", 1)[1])
        except (IndexError, ValueError):
            return 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "session_id": self.session_id,
            "message_id": self.message_id,
            "role": self.role,
            "content": self.content,
            "timestamp": self.timestamp,
            "part_types": list(self.part_types),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TranscriptChunk":
        if not isinstance(data, Mapping):
            raise ValueError("transcript chunk must be an object")
        return cls(
            id=str(data["id"]),
            session_id=str(data["session_id"]),
            message_id=str(data["message_id"]),
            role=str(data["role"]),
            content=str(data["content"]),
            timestamp=int(data["timestamp"]),
            part_types=[str(t) for t in data.get("part_types", [])],
        )


@dataclass
class Transcript:
    """Complete durable record of one session."""

    metadata: TranscriptMetadata
    markdown: str
    text: str
    chunks: list[TranscriptChunk] = field(default_factory=list)


@dataclass
class SearchContext:
    before: str | None = None
    after: str | None = None


@dataclass
class SearchResult:
    """A matching chunk with its excerpt and neighbouring context."""

    session_id: str
    session_title: str
    message_id: str
    role: str
    excerpt: str
    timestamp: int
    score: int
    context: SearchContext = field(default_factory=SearchContext)


@dataclass
class TranscriptStats:
    total_transcripts: int
    total_messages: int
    compacted_count: int
    oldest_timestamp: int
    newest_timestamp: int


# Host payload


@dataclass
class TextPart:
    text: str
    type: str = "text"


@dataclass
class ReasoningPart:
    text: str
    type: str = "reasoning"


@dataclass
class ToolState:
    status: str  # pending, running, completed, error
    input: Any = None
    output: str = ""
    title: str = ""
    error: str = ""


@dataclass
class ToolPart:
    tool: str
    state: ToolState
    call_id: str = ""
    type: str = "tool"


@dataclass
class FilePart:
    filename: str = ""
    url: str = ""
    mime: str = ""
    type: str = "file"


@dataclass
class CompactionPart:
    type: str = "compaction"


@dataclass
class MarkerPart:
    """Structural part with no textual contribution (step boundaries, snapshots, patches)."""

    type: str


Part = TextPart | ReasoningPart | ToolPart | FilePart | CompactionPart | MarkerPart


@dataclass
class MessageInfo:
    id: str
    role: str  # user, assistant
    created: int


@dataclass
class MessageWithParts:
    info: MessageInfo
    parts: list[Part] = field(default_factory=list)


@dataclass
class SessionInfo:
    """Session attributes supplied by the host."""

    id: str
    project_id: str = ""
    title: str = ""
    directory: str = ""
    worktree: str = ""
    created: int = 0
    updated: int = 0


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def parse_part(data: Mapping[str, Any]) -> Part:
    """Convert a raw part mapping into its typed part.

    Unrecognised part types become MarkerPart so they are recorded in a
    chunk's part types but contribute no text.
    """
    part_type = _text(data.get("type")) or "unknown"

    if part_type == "text":
        return TextPart(text=_text(data.get("text")))

    if part_type == "reasoning":
        return ReasoningPart(text=_text(data.get("text")))

    if part_type == "tool":
        state_data = data.get("state")
        if not isinstance(state_data, Mapping):
            state_data = {}
        output = state_data.get("output", "")
        state = ToolState(
            status=_text(state_data.get("status")) or "pending",
            input=state_data.get("input"),
            output=output if isinstance(output, str) else str(output),
            title=_text(state_data.get("title")),
            error=_text(state_data.get("error")),
        )
        return ToolPart(
            tool=_text(data.get("tool")) or "unknown",
            state=state,
            call_id=_text(data.get("callID")),
        )

    if part_type == "file":
        return FilePart(
            filename=_text(data.get("filename")),
            url=_text(data.get("url")),
            mime=_text(data.get("mime")),
        )

    if part_type == "compaction":
        return CompactionPart()

    return MarkerPart(type=part_type)


def parse_message(data: Mapping[str, Any]) -> MessageWithParts | None:
    """Convert a raw ``{info, parts}`` mapping into a message.

    Returns:
        MessageWithParts, or None if the entry has no usable user/assistant info
    """
    info = data.get("info")
    if not isinstance(info, Mapping):
        return None

    role = info.get("role")
    if role not in ROLES:
        return None

    time_data = info.get("time")
    created = time_data.get("created", 0) if isinstance(time_data, Mapping) else 0

    raw_parts = data.get("parts")
    if not isinstance(raw_parts, list):
        raw_parts = []

    return MessageWithParts(
        info=MessageInfo(id=str(info.get("id", "")), role=role, created=int(created or 0)),
        parts=[parse_part(p) for p in raw_parts if isinstance(p, Mapping)],
    )


def parse_messages(payload: Any) -> list[MessageWithParts]:
    """Convert a host message payload into messages.

    Some hosts return an empty mapping instead of an empty list; anything
    that is not a list is treated as no messages.
    """
    if not isinstance(payload, list):
        return []

    messages = []
    for entry in payload:
        if isinstance(entry, MessageWithParts):
            messages.append(entry)
        elif isinstance(entry, Mapping):
            message = parse_message(entry)
            if message is not None:
                messages.append(message)
    return messages
