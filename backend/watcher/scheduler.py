"""
ImportSync Scheduler.

Time-based callback scheduling behind a small interface so debounce
behaviour can be driven by a manual clock in tests.
Requires Python 3.11+.
"""

import threading
from collections.abc import Callable
from typing import Protocol


class ScheduledCall(Protocol):
    """Handle to a scheduled callback."""

    def cancel(self) -> None:
        """Cancel the callback if it has not run yet."""
        ...


class Scheduler(Protocol):
    """Schedules a callback to run after a delay."""

    def schedule(self, callback: Callable[[], None], delay: float) -> ScheduledCall:
        """Run ``callback`` after ``delay`` seconds."""
        ...


class ThreadingScheduler:
    """Scheduler backed by daemon ``threading.Timer`` instances."""

    def schedule(self, callback: Callable[[], None], delay: float) -> threading.Timer:
        """Start a daemon timer for the callback."""
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return timer
