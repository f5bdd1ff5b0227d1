"""Search chunk construction.

One chunk per message that produced text: message text, reasoning text, and
for each tool call its name, serialized input, and (once completed) the start
of its output.
"""

import json
from typing import Any

from chat_recall.models import (
    CompactionPart,
    FilePart,
    MarkerPart,
    MessageWithParts,
    Part,
    ReasoningPart,
    TextPart,
    ToolPart,
    TranscriptChunk,
)

# Characters of tool output kept in a chunk
MAX_CHUNK_OUTPUT = 1000


def part_content(part: Part) -> list[str]:
    """Lines of searchable text contributed by a part."""
    if isinstance(part, (TextPart, ReasoningPart)):
        return [part.text]
    elif isinstance(part, ToolPart):
        lines = [
            f"Tool: {part.tool}",
            f"Input: {json.dumps(part.state.input, default=str)}",
        ]
        if part.state.status == "completed":
            lines.append(f"Output: {part.state.output[:MAX_CHUNK_OUTPUT]}")
        return lines
    elif isinstance(part, (FilePart, CompactionPart, MarkerPart)):
        return []
    raise TypeError(f"Unsupported part: {type(part).__name__}")


def build_chunks(messages: Any, session_id: str) -> list[TranscriptChunk]:
    """Create search chunks from session messages.

    Args:
        messages: Session messages; anything other than a list yields no chunks
        session_id: Session the chunks belong to

    Returns:
        Chunks in message order, ids chunk_0, chunk_1, ...
    """
    if not isinstance(messages, list):
        return []

    chunks: list[TranscriptChunk] = []

    for msg in messages:
        if not isinstance(msg, MessageWithParts):
            continue

        part_types: list[str] = []
        content_lines: list[str] = []

        for part in msg.parts:
            if part.type not in part_types:
                part_types.append(part.type)
            content_lines.extend(part_content(part))

        if not any(content_lines):
            continue

        chunks.append(
            TranscriptChunk(
                id=f"chunk_{len(chunks)}",
                session_id=session_id,
                message_id=msg.info.id,
                role=msg.info.role,
                content="\n".join(content_lines),
                timestamp=msg.info.created,
                part_types=part_types,
            )
        )

    return chunks
