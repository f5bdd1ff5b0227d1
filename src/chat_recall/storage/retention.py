"""Retention: expiry computation and the recurring cleanup sweep."""

import threading
from typing import TYPE_CHECKING

from chat_recall.logging import get_logger
from chat_recall.models import now_ms

if TYPE_CHECKING:
    from chat_recall.storage.store import TranscriptStore

logger = get_logger("retention")

RETENTION_DAYS = 7
DAY_MS = 24 * 60 * 60 * 1000

# Sweep schedule defaults (seconds)
CLEANUP_INTERVAL_SECONDS = 60 * 60
STARTUP_DELAY_SECONDS = 30


def calculate_expires_at(retention_days: int = RETENTION_DAYS, now: int | None = None) -> int:
    """Expiry timestamp for a transcript saved at `now` (epoch milliseconds)."""
    if now is None:
        now = now_ms()
    return now + retention_days * DAY_MS


def sweep(store: "TranscriptStore", now: int | None = None) -> int:
    """Delete every transcript whose expiry time has passed.

    Args:
        store: Transcript store to clean
        now: Reference time in epoch milliseconds (defaults to current time)

    Returns:
        Number of transcripts deleted
    """
    if now is None:
        now = now_ms()

    index = store.index.read()
    deleted = 0
    for session_id, metadata in index.transcripts.items():
        if metadata.expires_at and metadata.expires_at < now:
            store.delete(session_id)
            deleted += 1

    return deleted


class RetentionSweeper(threading.Thread):
    """Background thread that sweeps expired transcripts on a fixed period.

    The first sweep runs after a startup delay; later sweeps run every
    interval until stop() is called. A failing sweep is logged and the
    schedule continues.
    """

    def __init__(
        self,
        store: "TranscriptStore",
        interval_seconds: float = CLEANUP_INTERVAL_SECONDS,
        startup_delay_seconds: float = STARTUP_DELAY_SECONDS,
    ) -> None:
        super().__init__(name="chat-recall-retention", daemon=True)
        self._store = store
        self._interval = interval_seconds
        self._startup_delay = startup_delay_seconds
        self._stop_event = threading.Event()
        self.sweeps_completed = 0

    def stop(self, timeout: float | None = None) -> None:
        """Request the thread to stop and wait for it to finish."""
        self._stop_event.set()
        if self.is_alive() and threading.current_thread() is not self:
            self.join(timeout)

    def is_stop_requested(self) -> bool:
        return self._stop_event.is_set()

    def run_once(self) -> int:
        """Run one guarded sweep.

        Returns:
            Number of transcripts deleted (0 if the sweep failed)
        """
        try:
            deleted = sweep(self._store)
        except Exception:
            logger.exception("Cleanup error")
            return 0
        finally:
            self.sweeps_completed += 1

        if deleted > 0:
            logger.info("Cleaned up expired transcripts: count=%d", deleted)
        else:
            logger.debug("Cleanup complete: no expired transcripts")
        return deleted

    def run(self) -> None:
        logger.debug(
            "Retention sweeper scheduled: delay=%ss interval=%ss",
            self._startup_delay,
            self._interval,
        )

        if self._stop_event.wait(self._startup_delay):
            return

        while not self._stop_event.is_set():
            self.run_once()
            if self._stop_event.wait(self._interval):
                break

        logger.debug("Retention sweeper stopped")
