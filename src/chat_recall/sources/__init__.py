"""Sources that supply session messages for transcript saves."""

from .base import MessageSource, SourceRegistry
from .opencode import OpenCodeSource

__all__ = ["MessageSource", "OpenCodeSource", "SourceRegistry"]
