"""
ImportSync Directory Observer.

Cross-platform file system monitoring using watchdog.
Requires Python 3.11+.
"""

from collections.abc import Callable
from pathlib import Path
from typing import Any, Protocol

from watchdog.events import (
    DirCreatedEvent,
    DirDeletedEvent,
    DirModifiedEvent,
    DirMovedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from utils.logger import LoggerMixin
from utils.paths import SCSS_SUFFIX

EventCallback = Callable[[Path, str], Any]


class ChangeObserver(Protocol):
    """A started/stopped source of change events for one directory."""

    def start(self) -> None:
        """Begin delivering events; returns once ready."""
        ...

    def stop(self) -> None:
        """Stop delivering events."""
        ...

    @property
    def is_running(self) -> bool:
        """Check if events are being delivered."""
        ...


ObserverFactory = Callable[[Path, EventCallback], ChangeObserver]


class ScssEventHandler(FileSystemEventHandler, LoggerMixin):
    """
    Handles file system events for stylesheets.

    Forwards stylesheet file events and directory add/remove events;
    everything else is dropped.
    """

    def __init__(self, on_event: EventCallback) -> None:
        """
        Initialize the event handler.

        Args:
            on_event: Called with (path, change_type) for each relevant event
        """
        super().__init__()
        self._on_event = on_event

    @staticmethod
    def _is_stylesheet(path: str | bytes) -> bool:
        """Check if path is a stylesheet."""
        return str(path).endswith(SCSS_SUFFIX)

    def _emit(self, path: str | bytes, change_type: str) -> None:
        self.log.debug("change_event", path=str(path), change_type=change_type)
        self._on_event(Path(str(path)), change_type)

    def on_created(self, event: FileCreatedEvent | DirCreatedEvent) -> None:
        """Handle file/directory creation."""
        if isinstance(event, DirCreatedEvent):
            self._emit(event.src_path, "dir_created")
        elif self._is_stylesheet(event.src_path):
            self._emit(event.src_path, "created")

    def on_modified(self, event: FileModifiedEvent | DirModifiedEvent) -> None:
        """Handle file modification."""
        if isinstance(event, DirModifiedEvent):
            return
        if self._is_stylesheet(event.src_path):
            self._emit(event.src_path, "modified")

    def on_deleted(self, event: FileDeletedEvent | DirDeletedEvent) -> None:
        """Handle file/directory deletion."""
        if isinstance(event, DirDeletedEvent):
            self._emit(event.src_path, "dir_deleted")
        elif self._is_stylesheet(event.src_path):
            self._emit(event.src_path, "deleted")

    def on_moved(self, event: FileMovedEvent | DirMovedEvent) -> None:
        """Handle file/directory move/rename as a delete plus a create."""
        if isinstance(event, DirMovedEvent):
            self._emit(event.src_path, "dir_deleted")
            self._emit(event.dest_path, "dir_created")
            return

        if self._is_stylesheet(event.src_path):
            self._emit(event.src_path, "deleted")
        if self._is_stylesheet(event.dest_path):
            self._emit(event.dest_path, "created")


class DirectoryObserver(LoggerMixin):
    """
    Watches a directory for stylesheet changes.

    Thin wrapper over a watchdog observer. Events are delivered on the
    observer thread; debouncing is left to the consumer.
    """

    def __init__(
        self,
        root_path: Path,
        on_event: EventCallback,
        recursive: bool = True,
        join_timeout: float = 5.0,
    ) -> None:
        """
        Initialize the directory observer.

        Args:
            root_path: Directory to watch
            on_event: Callback for (path, change_type) events
            recursive: Whether to watch subdirectories
            join_timeout: Seconds to wait for the observer thread on stop
        """
        self._root_path = root_path
        self._recursive = recursive
        self._join_timeout = join_timeout
        self._handler = ScssEventHandler(on_event)
        self._observer: Any = None
        self._running = False

    def start(self) -> None:
        """Start watching; returns once the observer thread is running."""
        if self._running:
            return

        observer = Observer()
        observer.schedule(
            self._handler,
            str(self._root_path),
            recursive=self._recursive,
        )
        observer.start()
        self._observer = observer
        self._running = True

        self.log.info(
            "directory_observer_started",
            path=str(self._root_path),
            recursive=self._recursive,
        )

    def stop(self) -> None:
        """Stop watching for file changes."""
        if not self._running:
            return

        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=self._join_timeout)
            self._observer = None

        self._running = False
        self.log.info("directory_observer_stopped", path=str(self._root_path))

    @property
    def is_running(self) -> bool:
        """Check if the observer is running."""
        return self._running

    def __enter__(self) -> "DirectoryObserver":
        """Context manager entry."""
        self.start()
        return self

    def __exit__(self, *args: Any) -> None:
        """Context manager exit."""
        self.stop()
