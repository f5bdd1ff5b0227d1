"""Search over saved transcripts."""

from .engine import SearchEngine, create_excerpt, score_chunk, truncate_text

__all__ = ["SearchEngine", "create_excerpt", "score_chunk", "truncate_text"]
