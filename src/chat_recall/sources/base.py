"""Base message source interface and registry."""

from abc import ABC, abstractmethod

from chat_recall.models import MessageWithParts, SessionInfo

__all__ = ["MessageSource", "SourceRegistry"]


class MessageSource(ABC):
    """Supplies session attributes and messages to be saved as transcripts.

    Subclasses must set the `source_name` class attribute, accept the
    storage directory as their first constructor argument, and implement
    the abstract methods. Implementations return an empty list rather than
    raising when a session has no readable messages. Registered sources are
    selectable by name from the command line.
    """

    source_name: str

    @abstractmethod
    def get_session(self, session_id: str) -> SessionInfo | None:
        """Look up a session.

        Args:
            session_id: Session identifier

        Returns:
            SessionInfo, or None if the session is unknown
        """

    @abstractmethod
    def get_messages(self, session_id: str) -> list[MessageWithParts]:
        """Messages of a session in conversation order."""

    @abstractmethod
    def list_sessions(self) -> list[str]:
        """Identifiers of all sessions this source knows about."""


class SourceRegistry:
    """Registry of message sources by name."""

    _sources: dict[str, type[MessageSource]] = {}

    @classmethod
    def register(cls, source_cls: type[MessageSource]) -> type[MessageSource]:
        """Register a source class (usable as a decorator)."""
        cls._sources[source_cls.source_name] = source_cls
        return source_cls

    @classmethod
    def get(cls, source_name: str) -> type[MessageSource] | None:
        """Get source class by name."""
        return cls._sources.get(source_name)

    @classmethod
    def all_sources(cls) -> list[str]:
        """List all registered source names."""
        return list(cls._sources.keys())
