"""Transcript construction: rendering, chunking, and assembly."""

from .builder import build_metadata, build_transcript
from .chunker import build_chunks
from .render import render_markdown, render_text

__all__ = [
    "build_chunks",
    "build_metadata",
    "build_transcript",
    "render_markdown",
    "render_text",
]
