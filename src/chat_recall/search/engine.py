"""Substring search over saved transcript chunks.

A chunk matches when every query term occurs in it, case-insensitively, as a
plain substring. Matches are scored by raw term frequency and returned with an
excerpt centred on the first hit and the neighbouring chunks as context.
"""

import re

from chat_recall.logging import get_logger
from chat_recall.models import SearchContext, SearchResult, TranscriptStats, now_ms
from chat_recall.storage.store import TranscriptStore

logger = get_logger("search")

DEFAULT_LIMIT = 10
EXCERPT_LENGTH = 500
CONTEXT_LENGTH = 200
ELLIPSIS = "..."


def tokenize_query(query: str) -> list[str]:
    """Lower-cased, whitespace-separated search terms."""
    return query.lower().split()


def chunk_matches(content: str, terms: list[str]) -> bool:
    """True if every term occurs in content (case-insensitive)."""
    content_lower = content.lower()
    return all(term in content_lower for term in terms)


def score_chunk(content: str, terms: list[str]) -> int:
    """Sum of case-insensitive occurrence counts of each term."""
    return sum(len(re.findall(re.escape(term), content, re.IGNORECASE)) for term in terms)


def truncate_text(text: str, max_length: int) -> str:
    """Cut text to max_length characters, ending with an ellipsis if cut."""
    if len(text) <= max_length:
        return text
    return text[: max(0, max_length - len(ELLIPSIS))] + ELLIPSIS


def create_excerpt(content: str, terms: list[str], max_length: int = EXCERPT_LENGTH) -> str:
    """Window of content centred on the earliest term occurrence.

    The window is max_length characters, clamped to the content, with an
    ellipsis on each side where content was cut. If no term occurs the window
    starts at the beginning of the content, so the result is the first
    max_length characters plus a trailing ellipsis (max_length + 3 characters,
    unlike truncate_text, which keeps the ellipsis within max_length).
    """
    content_lower = content.lower()
    positions = [pos for pos in (content_lower.find(term) for term in terms) if pos != -1]
    best_index = min(positions) if positions else 0

    start = max(0, best_index - max_length // 2)
    end = min(len(content), start + max_length)

    # Pull the window back when it runs into the end of the content
    if end == len(content) and end - start < max_length:
        start = max(0, end - max_length)

    excerpt = content[start:end]
    if start > 0:
        excerpt = ELLIPSIS + excerpt
    if end < len(content):
        excerpt = excerpt + ELLIPSIS
    return excerpt


class SearchEngine:
    """Searches transcripts held in a TranscriptStore."""

    def __init__(self, store: TranscriptStore) -> None:
        self._store = store

    def search(
        self,
        query: str,
        session_id: str | None = None,
        project_id: str | None = None,
        limit: int = DEFAULT_LIMIT,
        include_context: bool = True,
    ) -> list[SearchResult]:
        """Search chunks of the selected transcripts.

        Args:
            query: Whitespace-separated terms; all must occur in a chunk
            session_id: Only search this session
            project_id: Only search sessions of this project
            limit: Maximum results to return
            include_context: Attach the previous and next chunk contents

        Returns:
            Results ordered by score (highest first), then newest first.
            An empty query returns no results.
        """
        terms = tokenize_query(query)
        if not terms:
            return []

        results: list[SearchResult] = []

        candidates = self._store.list_transcripts(project_id=project_id, session_id=session_id)
        for metadata in candidates:
            transcript = self._store.load(metadata.session_id)
            if transcript is None:
                logger.debug("Skipping unreadable transcript: session_id=%s", metadata.session_id)
                continue

            chunks = transcript.chunks
            for i, chunk in enumerate(chunks):
                if not chunk_matches(chunk.content, terms):
                    continue

                context = SearchContext()
                if include_context:
                    if i > 0:
                        context.before = truncate_text(chunks[i - 1].content, CONTEXT_LENGTH)
                    if i + 1 < len(chunks):
                        context.after = truncate_text(chunks[i + 1].content, CONTEXT_LENGTH)

                results.append(
                    SearchResult(
                        session_id=metadata.session_id,
                        session_title=metadata.title,
                        message_id=chunk.message_id,
                        role=chunk.role,
                        excerpt=create_excerpt(chunk.content, terms),
                        timestamp=chunk.timestamp,
                        score=score_chunk(chunk.content, terms),
                        context=context,
                    )
                )

        results.sort(key=lambda r: (r.score, r.timestamp), reverse=True)

        logger.debug("Search complete: query=%r candidates=%d matches=%d", query, len(candidates), len(results))

        return results[:limit]

    def search_in_session(self, session_id: str, query: str, limit: int = DEFAULT_LIMIT) -> list[SearchResult]:
        """Search within a single session."""
        return self.search(query, session_id=session_id, limit=limit, include_context=True)

    def search_in_project(self, project_id: str, query: str, limit: int = DEFAULT_LIMIT) -> list[SearchResult]:
        """Search across all sessions of a project."""
        return self.search(query, project_id=project_id, limit=limit, include_context=True)

    def search_all(self, query: str, limit: int = DEFAULT_LIMIT) -> list[SearchResult]:
        """Search across every saved session."""
        return self.search(query, limit=limit, include_context=True)

    def get_stats(self, project_id: str | None = None) -> TranscriptStats:
        """Summary statistics computed from the metadata index alone."""
        transcripts = self._store.list_transcripts(project_id=project_id)

        return TranscriptStats(
            total_transcripts=len(transcripts),
            total_messages=sum(t.message_count for t in transcripts),
            compacted_count=sum(1 for t in transcripts if t.compacted),
            oldest_timestamp=min([t.created_at for t in transcripts] + [now_ms()]),
            newest_timestamp=max([t.updated_at for t in transcripts] + [0]),
        )
