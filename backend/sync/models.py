"""
ImportSync Watcher Models.

Defines the watcher configuration unit and per-sync outcomes.
Requires Python 3.11+.
"""

import os
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any


class WatcherState(str, Enum):
    """Lifecycle states of a watcher."""

    ACTIVE = "active"
    PAUSED = "paused"
    CLOSED = "closed"


class SyncAction(str, Enum):
    """Outcome of a single synchronize pass."""

    UPDATED = "updated"
    UNCHANGED = "unchanged"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class WatcherSpec:
    """
    Configuration of one watcher.

    ``watch_dir`` and ``target_file`` are resolved against ``root_dir``.
    ``owner_id`` defaults to the basename of the watch directory and
    ``name`` to the owner id.
    """

    root_dir: Path
    watch_dir: Path | str
    target_file: Path | str
    owner_id: str | None = None
    insertion_line: int = 1
    exclude_subtrees: frozenset[str] = field(default_factory=frozenset)
    name: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "root_dir", Path(os.path.abspath(self.root_dir)))
        object.__setattr__(
            self, "exclude_subtrees", frozenset(str(p) for p in self.exclude_subtrees)
        )
        if not self.owner_id:
            object.__setattr__(self, "owner_id", self.watch_path.name)
        if not self.name:
            object.__setattr__(self, "name", self.owner_id)

    @property
    def watch_path(self) -> Path:
        """Absolute watch directory."""
        return Path(os.path.abspath(self.root_dir / self.watch_dir))

    @property
    def target_path(self) -> Path:
        """Absolute target stylesheet."""
        return Path(os.path.abspath(self.root_dir / self.target_file))

    @property
    def excluded_paths(self) -> list[Path]:
        """Excluded subtrees as absolute paths, relative entries resolved against the root."""
        return [Path(os.path.abspath(self.root_dir / p)) for p in sorted(self.exclude_subtrees)]

    def with_excludes(self, exclude_subtrees: set[str] | frozenset[str]) -> "WatcherSpec":
        """Copy of the spec with a different exclusion set."""
        return replace(self, exclude_subtrees=frozenset(exclude_subtrees))

    @property
    def as_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "name": self.name,
            "root_dir": str(self.root_dir),
            "watch_dir": str(self.watch_dir),
            "target_file": str(self.target_file),
            "owner_id": self.owner_id,
            "insertion_line": self.insertion_line,
            "exclude_subtrees": sorted(self.exclude_subtrees),
        }


@dataclass
class SyncResult:
    """Result of one discovery + synchronize pass."""

    action: SyncAction
    import_ids: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        """Check if the pass completed without error."""
        return self.action != SyncAction.FAILED
