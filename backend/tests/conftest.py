"""
ImportSync Test Configuration.

Pytest fixtures and configuration.
Requires Python 3.11+.
"""

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from utils.config import Settings, SyncSettings, WatcherSettings


class ManualCall:
    """A callback scheduled on the manual clock."""

    def __init__(self, callback: Callable[[], None], due: float) -> None:
        self.callback = callback
        self.due = due
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Deterministic scheduler: callbacks only run when the clock is advanced."""

    def __init__(self) -> None:
        self.now = 0.0
        self.calls: list[ManualCall] = []

    def schedule(self, callback: Callable[[], None], delay: float) -> ManualCall:
        call = ManualCall(callback, self.now + delay)
        self.calls.append(call)
        return call

    def advance(self, seconds: float) -> None:
        self.now += seconds
        due = [c for c in self.calls if not c.cancelled and c.due <= self.now]
        self.calls = [c for c in self.calls if not c.cancelled and c not in due]
        for call in due:
            call.callback()

    @property
    def pending(self) -> list[ManualCall]:
        return [c for c in self.calls if not c.cancelled]


class FakeObserver:
    """Stands in for the watchdog observer; tests emit events by hand."""

    def __init__(self, path: Path, on_event: Callable[[Path, str], Any]) -> None:
        self.path = path
        self.on_event = on_event
        self.started = False
        self.stopped = False

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.stopped = True

    @property
    def is_running(self) -> bool:
        return self.started and not self.stopped

    def emit(self, path: Path, change_type: str = "created") -> None:
        self.on_event(Path(path), change_type)


@pytest.fixture
def scheduler() -> ManualScheduler:
    """Manual clock for debounce timing."""
    return ManualScheduler()


@pytest.fixture
def observers() -> list[FakeObserver]:
    """Every fake observer created during the test."""
    return []


@pytest.fixture
def observer_factory(observers: list[FakeObserver]) -> Callable[[Path, Callable[[Path, str], Any]], FakeObserver]:
    """Factory producing fake observers and recording them."""

    def factory(path: Path, on_event: Callable[[Path, str], Any]) -> FakeObserver:
        observer = FakeObserver(path, on_event)
        observers.append(observer)
        return observer

    return factory


@pytest.fixture
def settings() -> Settings:
    """Settings with the reference debounce window."""
    return Settings(
        watcher=WatcherSettings(debounce_delay_ms=100),
        sync=SyncSettings(target_at_root=False),
    )


def write_file(root: Path, relative: str, content: str = "") -> Path:
    """Create a file (and its parents) below root."""
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """
    A small project tree.

    root/
      styles.scss
      components/_button.scss
      components/_card.scss
      components/forms/_input.scss
    """
    root = tmp_path / "project"
    root.mkdir()
    write_file(root, "styles.scss", "// Main stylesheet\n")
    write_file(root, "components/_button.scss", ".button {}\n")
    write_file(root, "components/_card.scss", ".card {}\n")
    write_file(root, "components/forms/_input.scss", ".input {}\n")
    return root


@pytest.fixture
def make_file() -> Callable[..., Path]:
    """Helper creating files below a root directory."""
    return write_file
