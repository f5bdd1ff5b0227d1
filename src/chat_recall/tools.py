"""Agent-facing recall tools.

Each tool returns the text shown to the agent. Empty results come back as
guidance text rather than errors.
"""

from chat_recall.models import SearchResult, TranscriptMetadata
from chat_recall.search.engine import SearchEngine
from chat_recall.storage.store import TranscriptStore
from chat_recall.transcript.render import format_timestamp

FORMATS = ("markdown", "text", "both")

NO_TRANSCRIPTS = (
    "No transcripts found. Transcripts are saved when sessions become idle or are compacted."
)


def format_transcript_list(
    store: TranscriptStore,
    transcripts: list[TranscriptMetadata],
    current_session_id: str | None = None,
) -> str:
    """Render a list of transcripts for display."""
    if not transcripts:
        return NO_TRANSCRIPTS

    lines = [f"Found {len(transcripts)} transcript(s):\n"]

    for t in transcripts:
        compacted_status = " [COMPACTED]" if t.compacted else ""
        is_current = " (current)" if t.session_id == current_session_id else ""

        lines.append(f"- **{t.title}**{is_current}{compacted_status}")
        lines.append(f"  Session: {t.session_id}")
        lines.append(f"  Messages: {t.message_count}")
        lines.append(f"  Created: {format_timestamp(t.created_at)}")
        lines.append(f"  Path: {store.locate(t.session_id)}")
        lines.append("")

    return "\n".join(lines)


def list_transcripts(
    store: TranscriptStore,
    current_session_id: str | None = None,
    current_session: bool = False,
    project_id: str | None = None,
    limit: int = 20,
) -> str:
    """List saved transcripts.

    Args:
        store: Transcript store
        current_session_id: Session the agent is running in
        current_session: Only list the current session's transcript
        project_id: Only list transcripts of this project
        limit: Maximum transcripts to list
    """
    session_id = current_session_id if current_session else None
    transcripts = store.list_transcripts(project_id=project_id, session_id=session_id, limit=limit)
    return format_transcript_list(store, transcripts, current_session_id)


def format_full_transcript(markdown: str, text: str, fmt: str = "markdown") -> str:
    if fmt == "both":
        return f"## Markdown Format\n\n{markdown}\n\n---\n\n## Text Format\n\n{text}"
    if fmt == "text":
        return text
    return markdown


def format_search_results(
    query: str,
    results: list[SearchResult],
    current_session_id: str | None = None,
) -> str:
    """Render search results for display."""
    if not results:
        return (
            f'No results found for query: "{query}"\n\n'
            "Try different keywords or check available transcripts with list_transcripts."
        )

    lines = [f'Found {len(results)} result(s) for "{query}":\n']

    for result in results:
        is_current = " (current session)" if result.session_id == current_session_id else ""

        lines.append(f"### {result.session_title}{is_current}")
        lines.append(f"**Role:** {result.role} | **Time:** {format_timestamp(result.timestamp)}")
        lines.append(f"**Session:** {result.session_id}")
        lines.append("")

        if result.context.before:
            lines.append(f"*Before:* {result.context.before}")
            lines.append("")

        lines.append("**Match:**")
        lines.append("```")
        lines.append(result.excerpt)
        lines.append("```")

        if result.context.after:
            lines.append("")
            lines.append(f"*After:* {result.context.after}")

        lines.extend(["", "---", ""])

    lines.append("\n*Tip: Use `fullTranscript: true` with a sessionID to get the complete conversation.*")

    return "\n".join(lines)


def recall_transcript(
    store: TranscriptStore,
    engine: SearchEngine,
    query: str = "",
    session_id: str | None = None,
    current_session_id: str | None = None,
    fmt: str = "markdown",
    limit: int = 5,
    full_transcript: bool = False,
) -> str:
    """Search saved transcripts, or return one in full.

    Args:
        store: Transcript store
        engine: Search engine over the store
        query: Search terms
        session_id: Restrict to this session
        current_session_id: Session the agent is running in
        fmt: Full transcript format: markdown, text, or both
        limit: Maximum search results
        full_transcript: Return the whole transcript instead of searching
    """
    if fmt not in FORMATS:
        raise ValueError(f"Unknown format: {fmt!r} (expected one of {', '.join(FORMATS)})")

    if full_transcript:
        target = session_id or current_session_id
        transcript = store.load(target) if target else None
        if transcript is None:
            return f"No transcript found for session {target}"
        return format_full_transcript(transcript.markdown, transcript.text, fmt)

    if session_id:
        results = engine.search_in_session(session_id, query, limit)
    else:
        results = engine.search(query, limit=limit, include_context=True)

    return format_search_results(query, results, current_session_id)
