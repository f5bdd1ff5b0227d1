"""Logging configuration for chat-recall.

Provides centralized logging setup with file output to
~/.local/share/opencode/log/. Records are handed to a background listener
through a bounded queue, so a logging call never blocks on disk and a failing
log file never reaches the caller.
"""

import logging
import queue
import sys
from logging.handlers import QueueHandler, QueueListener
from pathlib import Path

# Default log directory
DEFAULT_LOG_DIR = Path.home() / ".local" / "share" / "opencode" / "log"

# Records beyond this many pending writes are dropped
MAX_PENDING_RECORDS = 10_000

_listeners: dict[str, QueueListener] = {}


class QuietFileHandler(logging.FileHandler):
    """File handler that discards its own I/O errors."""

    def handleError(self, record: logging.LogRecord) -> None:  # noqa: N802
        pass


class QuietStreamHandler(logging.StreamHandler):
    """Stream handler that discards its own I/O errors."""

    def handleError(self, record: logging.LogRecord) -> None:  # noqa: N802
        pass


class DroppingQueueHandler(QueueHandler):
    """Queue handler that drops records when the queue is full."""

    def handleError(self, record: logging.LogRecord) -> None:  # noqa: N802
        pass


def setup_logging(
    name: str,
    log_dir: Path | None = None,
    level: int = logging.INFO,
    console: bool = True,
) -> logging.Logger:
    """Configure logging for a chat-recall component.

    Creates a logger whose records are queued to a file handler and an
    optional console handler. Log files are written to <log_dir>/<name>.log.

    Args:
        name: Logger name (used for log filename)
        log_dir: Directory for log files (defaults to ~/.local/share/opencode/log/)
        level: Logging level (defaults to INFO)
        console: Whether to also log to console (defaults to True)

    Returns:
        Configured logger instance
    """
    if log_dir is None:
        log_dir = DEFAULT_LOG_DIR

    # Configure the package root so every chat_recall.* module logger
    # shares the same sinks.
    root = logging.getLogger("chat_recall")
    root.setLevel(level)

    # Avoid adding duplicate handlers if already configured
    if root.handlers:
        return logging.getLogger(f"chat_recall.{name}")

    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    handlers: list[logging.Handler] = []

    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = QuietFileHandler(log_dir / f"{name}.log", encoding="utf-8", delay=True)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)
    except OSError:
        # Logging must never fail the caller
        pass

    if console:
        console_handler = QuietStreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    records: queue.Queue[logging.LogRecord] = queue.Queue(maxsize=MAX_PENDING_RECORDS)
    listener = QueueListener(records, *handlers, respect_handler_level=True)
    listener.start()
    _listeners[name] = listener

    root.addHandler(DroppingQueueHandler(records))

    return logging.getLogger(f"chat_recall.{name}")


def shutdown_logging() -> None:
    """Flush pending records and detach all configured handlers."""
    root = logging.getLogger("chat_recall")
    for listener in _listeners.values():
        listener.stop()
        for handler in listener.handlers:
            handler.close()
    _listeners.clear()
    for handler in list(root.handlers):
        root.removeHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a chat-recall component.

    This function returns an existing logger or creates a basic one.
    For full configuration with file output, use setup_logging().

    Args:
        name: Logger name (will be prefixed with 'chat_recall.')

    Returns:
        Logger instance
    """
    return logging.getLogger(f"chat_recall.{name}")
