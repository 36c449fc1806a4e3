"""
ImportSync Debouncer.

Debounces rapid file system events.
Requires Python 3.11+.
"""

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from utils.logger import LoggerMixin
from watcher.scheduler import ScheduledCall, Scheduler, ThreadingScheduler


@dataclass
class PendingChange:
    """A pending file change waiting to be processed."""

    path: Path
    change_type: str  # created, modified, deleted, dir_created, dir_deleted
    timestamp: float


class Debouncer(LoggerMixin):
    """
    Debounces rapid file changes.

    Accumulates changes and triggers the callback once after a delay period
    with no new changes. Every new change restarts the window, so a bulk
    rename or branch checkout produces a single callback.
    """

    def __init__(
        self,
        delay_ms: int = 100,
        callback: Callable[[list[tuple[Path, str]]], Any] | None = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        """
        Initialize the debouncer.

        Args:
            delay_ms: Delay in milliseconds before processing
            callback: Function to call with accumulated changes
            scheduler: Timer source, defaults to threading timers
        """
        self._delay = delay_ms / 1000.0
        self._callback = callback
        self._scheduler = scheduler or ThreadingScheduler()
        self._pending: dict[Path, PendingChange] = {}
        self._timer: ScheduledCall | None = None
        self._lock = threading.Lock()

    def set_callback(self, callback: Callable[[list[tuple[Path, str]]], Any]) -> None:
        """Set or update the callback function."""
        self._callback = callback

    def debounce(self, path: Path, change_type: str) -> None:
        """
        Add a file change to the pending queue.

        The callback will be triggered after delay_ms milliseconds
        of no new changes.

        Args:
            path: Path to the changed file
            change_type: Type of change
        """
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

            self._pending[path] = PendingChange(
                path=path,
                change_type=change_type,
                timestamp=time.time(),
            )

            self._timer = self._scheduler.schedule(self._process_pending, self._delay)

    def _take_pending(self) -> list[tuple[Path, str]]:
        """Drain the pending queue. Caller must hold the lock."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        changes = [(change.path, change.change_type) for change in self._pending.values()]
        self._pending.clear()
        return changes

    def _process_pending(self) -> None:
        """Process all pending changes."""
        with self._lock:
            if not self._pending:
                return
            changes = self._take_pending()

        self.log.debug("processing_debounced_changes", count=len(changes))
        self._invoke(changes)

    def _invoke(self, changes: list[tuple[Path, str]]) -> None:
        if self._callback is None:
            return
        try:
            self._callback(changes)
        except Exception as e:
            self.log.error("debounce_callback_failed", error=str(e))

    def flush(self) -> list[tuple[Path, str]]:
        """
        Immediately process all pending changes.

        Returns:
            List of (path, change_type) tuples that were pending
        """
        with self._lock:
            changes = self._take_pending()

        if changes:
            self._invoke(changes)

        return changes

    def clear(self) -> list[tuple[Path, str]]:
        """
        Cancel the timer and drop all pending changes without processing.

        Returns:
            The changes that were dropped
        """
        with self._lock:
            return self._take_pending()

    @property
    def pending_count(self) -> int:
        """Get number of pending changes."""
        return len(self._pending)

    @property
    def pending_paths(self) -> list[Path]:
        """Get list of paths with pending changes."""
        return list(self._pending.keys())
