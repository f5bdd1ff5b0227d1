"""Markdown and plain text renderers for session messages."""

import json
from datetime import datetime, timezone
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
)

# Tool outputs longer than this are cut in rendered transcripts
MAX_RENDERED_OUTPUT = 5000


def format_timestamp(ts_ms: int) -> str:
    """Format a millisecond timestamp for display."""
    return datetime.fromtimestamp(ts_ms / 1000).strftime("%Y-%m-%d %H:%M:%S")


def _generated_at() -> str:
    return datetime.now(timezone.utc).isoformat()


def _truncate_output(output: str) -> str:
    if len(output) > MAX_RENDERED_OUTPUT:
        return output[:MAX_RENDERED_OUTPUT] + "\n... [truncated]"
    return output


def _dump_input(tool_input: Any) -> str:
    return json.dumps(tool_input, indent=2, default=str)


def render_markdown(messages: Any, title: str) -> str:
    """Render messages as a markdown transcript."""
    lines = [f"# {title}", ""]

    if not isinstance(messages, list):
        lines.append("*No messages available*")
        return "\n".join(lines)

    messages = [m for m in messages if isinstance(m, MessageWithParts)]

    lines.extend([
        f"Generated: {_generated_at()}",
        f"Messages: {len(messages)}",
        "",
        "---",
        "",
    ])

    for msg in messages:
        role = "User" if msg.info.role == "user" else "Assistant"
        lines.append(f"## {role}")
        lines.append(f"*{format_timestamp(msg.info.created)}*")
        lines.append("")

        for part in msg.parts:
            formatted = format_part_markdown(part)
            if formatted:
                lines.append(formatted)
                lines.append("")

        lines.append("---")
        lines.append("")

    return "\n".join(lines)


def render_text(messages: Any, title: str) -> str:
    """Render messages as a plain text transcript (no markdown)."""
    lines = [f"=== {title} ===", ""]

    if not isinstance(messages, list):
        lines.append("No messages available")
        return "\n".join(lines)

    messages = [m for m in messages if isinstance(m, MessageWithParts)]

    lines.extend([
        f"Generated: {_generated_at()}",
        f"Messages: {len(messages)}",
        "",
        "=" * 50,
        "",
    ])

    for msg in messages:
        role = "USER" if msg.info.role == "user" else "ASSISTANT"
        lines.append(f"[{role}] {format_timestamp(msg.info.created)}")
        lines.append("-" * 30)

        for part in msg.parts:
            formatted = format_part_text(part)
            if formatted:
                lines.append(formatted)
                lines.append("")

        lines.append("=" * 50)
        lines.append("")

    return "\n".join(lines)


def format_part_markdown(part: Part) -> str | None:
    """Format a single part to markdown, or None if it renders nothing."""
    if isinstance(part, TextPart):
        return part.text
    elif isinstance(part, ReasoningPart):
        return f"<details>\n<summary>Reasoning</summary>\n\n{part.text}\n\n</details>"
    elif isinstance(part, ToolPart):
        return _format_tool_markdown(part)
    elif isinstance(part, FilePart):
        return f"**File:** {part.filename or part.url}"
    elif isinstance(part, CompactionPart):
        return "*[Context was compacted at this point]*"
    elif isinstance(part, MarkerPart):
        return None
    raise TypeError(f"Unsupported part: {type(part).__name__}")


def format_part_text(part: Part) -> str | None:
    """Format a single part to plain text, or None if it renders nothing."""
    if isinstance(part, TextPart):
        return part.text
    elif isinstance(part, ReasoningPart):
        return f"[REASONING]\n{part.text}\n[/REASONING]"
    elif isinstance(part, ToolPart):
        return _format_tool_text(part)
    elif isinstance(part, FilePart):
        return f"[FILE: {part.filename or part.url}]"
    elif isinstance(part, CompactionPart):
        return "[CONTEXT COMPACTED]"
    elif isinstance(part, MarkerPart):
        return None
    raise TypeError(f"Unsupported part: {type(part).__name__}")


def _format_tool_markdown(part: ToolPart) -> str:
    lines = [f"### Tool: `{part.tool}`"]
    state = part.state

    if state.status == "completed":
        lines.extend([
            "",
            "<details>",
            "<summary>Input</summary>",
            "",
            "```json",
            _dump_input(state.input),
            "```",
            "",
            "</details>",
            "",
            "<details>",
            f"<summary>Output ({state.title})</summary>",
            "",
            "```",
            _truncate_output(state.output),
            "```",
            "",
            "</details>",
        ])
    elif state.status == "error":
        lines.extend(["", f"**Error:** {state.error}"])
    elif state.status == "running":
        lines.extend(["", f"*Running: {state.title or '...'}*"])

    return "\n".join(lines)


def _format_tool_text(part: ToolPart) -> str:
    lines = [f"[TOOL: {part.tool}]"]
    state = part.state

    if state.status == "completed":
        lines.append(f"Input: {_dump_input(state.input)}")
        lines.append(f"Output ({state.title}): {_truncate_output(state.output)}")
    elif state.status == "error":
        lines.append(f"Error: {state.error}")

    lines.append("[/TOOL]")
    return "\n".join(lines)
