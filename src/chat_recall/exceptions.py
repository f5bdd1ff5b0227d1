"""Exceptions raised by the transcript store."""


class TranscriptStoreError(Exception):
    """Base exception for transcript storage errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class TranscriptWriteError(TranscriptStoreError):
    """Raised when persisting a transcript or the metadata index fails."""

    def __init__(self, operation: str, path: str | None = None, cause: Exception | None = None):
        details = {"operation": operation}
        if path:
            details["path"] = path
        if cause:
            details["cause"] = str(cause)
        message = f"Transcript write failed: {operation}"
        if path:
            message += f" ({path})"
        if cause:
            message += f": {cause}"
        super().__init__(message, details)
        self.operation = operation
        self.path = path
        self.cause = cause
