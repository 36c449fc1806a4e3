"""
ImportSync File Watcher Package.

File system monitoring, scheduling and debouncing.
Requires Python 3.11+.
"""

from watcher.debouncer import Debouncer
from watcher.file_watcher import ChangeObserver, DirectoryObserver, ScssEventHandler
from watcher.scheduler import Scheduler, ThreadingScheduler

__all__ = [
    "Debouncer",
    "ChangeObserver",
    "DirectoryObserver",
    "ScssEventHandler",
    "Scheduler",
    "ThreadingScheduler",
]
