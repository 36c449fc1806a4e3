"""
ImportSync Watcher Registry.

Orchestrates every configured watcher of a project: creation, edits and
removal, nested-watcher exclusion, and serialized access to shared target
files.
Requires Python 3.11+.
"""

import threading
from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from markers.region import strip_floating_imports
from sync.engine import SyncEngine, create_watcher, validate_spec
from sync.exceptions import ConfigurationError, ImportSyncError
from sync.models import WatcherSpec
from sync.project_config import ProjectConfig
from sync.target_file import read_target, write_target
from utils.config import Settings, get_settings
from utils.logger import LoggerMixin
from utils.paths import is_within, normalize_abs
from watcher.file_watcher import ObserverFactory
from watcher.scheduler import Scheduler


@dataclass
class RegistryError:
    """A per-watcher failure collected by the registry."""

    name: str
    error: str

    @property
    def as_dict(self) -> dict[str, str]:
        """Convert to dictionary for serialization."""
        return {"name": self.name, "error": self.error}


def compute_exclusions(specs: Mapping[str, WatcherSpec]) -> dict[str, frozenset[str]]:
    """
    Compute nested-watcher exclusions.

    For every pair of watchers A, B where B's watch directory is a strict
    descendant of A's, B's directory is excluded from A.

    Args:
        specs: Watcher specs by name

    Returns:
        Normalized absolute directories to exclude, by watcher name
    """
    watch_dirs = {name: normalize_abs(spec.watch_path) for name, spec in specs.items()}
    exclusions: dict[str, frozenset[str]] = {}

    for name, parent in watch_dirs.items():
        exclusions[name] = frozenset(
            child
            for other, child in watch_dirs.items()
            if other != name and child != parent and is_within(child, parent)
        )

    return exclusions


class TargetLocks:
    """One reentrant lock per target file, shared by all its watchers."""

    def __init__(self) -> None:
        self._locks: dict[str, Any] = {}
        self._guard = threading.Lock()

    def for_path(self, path: Path) -> Any:
        """Get the lock serializing rewrites of ``path``."""
        key = normalize_abs(path)
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.RLock()
            return lock


class WatcherRegistry(LoggerMixin):
    """
    Explicit map of named watchers and their engines.

    Operations run one at a time from the calling thread, so one watcher's
    re-initialization completes before the next begins. Failures of a single
    watcher are logged and collected, never raised past the registry, with
    the exception of configuration errors from a direct ``add``/``update``.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        scheduler: Scheduler | None = None,
        observer_factory: ObserverFactory | None = None,
        start_observers: bool = True,
    ) -> None:
        """
        Initialize the registry.

        Args:
            settings: Application settings
            scheduler: Timer source passed to every engine
            observer_factory: Change observer factory passed to every engine
            start_observers: Attach change observers to new watchers
        """
        self._settings = settings or get_settings()
        self._scheduler = scheduler
        self._observer_factory = observer_factory
        self._start_observers = start_observers
        self._specs: dict[str, WatcherSpec] = {}
        self._engines: dict[str, SyncEngine] = {}
        self._locks = TargetLocks()

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def names(self) -> list[str]:
        """Get the names of all registered watchers."""
        return list(self._engines)

    def get(self, name: str) -> SyncEngine:
        """
        Get a watcher's engine.

        Raises:
            KeyError: If no watcher has that name
        """
        return self._engines[name]

    def __contains__(self, name: object) -> bool:
        return name in self._engines

    def __len__(self) -> int:
        return len(self._engines)

    def status(self) -> list[dict[str, Any]]:
        """Summarize every watcher for display."""
        rows = []
        for name, engine in self._engines.items():
            result = engine.last_result
            rows.append(
                {
                    "name": name,
                    "state": engine.state.value,
                    "watch_dir": str(engine.spec.watch_dir),
                    "insertion_line": engine.spec.insertion_line,
                    "excluded": sorted(engine.spec.exclude_subtrees),
                    "imports": list(result.import_ids) if result else [],
                    "last_action": result.action.value if result else None,
                }
            )
        return rows

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def _effective_excludes(self, name: str, nested: Mapping[str, frozenset[str]]) -> frozenset[str]:
        spec = self._specs[name]
        configured = {normalize_abs(p) for p in spec.excluded_paths}
        return frozenset(configured | nested.get(name, frozenset()))

    def _check_unique_owner(self, spec: WatcherSpec, ignore: str | None = None) -> None:
        for other_name, other in self._specs.items():
            if other_name == ignore:
                continue
            if other.target_path == spec.target_path and other.owner_id == spec.owner_id:
                raise ConfigurationError(
                    f"Owner id {spec.owner_id!r} is already used by watcher {other_name!r}"
                )

    def add(self, spec: WatcherSpec) -> SyncEngine:
        """
        Create and start a watcher.

        Exclusions of the other watchers are recomputed first, so a parent
        drops the new watcher's subtree before the new region is written.

        Raises:
            ConfigurationError: If the name or owner id is taken or the spec is invalid
        """
        name = spec.name or ""
        if name in self._engines:
            raise ConfigurationError(f"Watcher {name!r} already exists")
        self._check_unique_owner(spec)
        validate_spec(spec, self._settings)

        self._specs[name] = spec
        nested = compute_exclusions(self._specs)
        self._reapply_exclusions(nested, skip=name)

        effective = spec.with_excludes(self._effective_excludes(name, nested))
        try:
            engine = create_watcher(
                effective,
                settings=self._settings,
                scheduler=self._scheduler,
                observer_factory=self._observer_factory,
                target_lock=self._locks.for_path(spec.target_path),
                start=self._start_observers,
            )
        except ImportSyncError:
            del self._specs[name]
            self.refresh_exclusions()
            raise

        self._engines[name] = engine
        self.log.info("watcher_added", name=name, watch_dir=str(spec.watch_dir))
        return engine

    def update(self, name: str, spec: WatcherSpec) -> SyncEngine:
        """
        Replace a watcher's configuration.

        The old engine is closed and its region removed together with its
        body before the new engine runs its initial sync.

        Raises:
            KeyError: If no watcher has that name
            ConfigurationError: If the new spec is invalid
        """
        current = self._specs[name]
        if spec.name != name:
            spec = replace(spec, name=name)
        if spec == current:
            return self._engines[name]

        self._check_unique_owner(spec, ignore=name)
        validate_spec(spec, self._settings)

        old = self._engines.pop(name)
        old.close()
        old.remove_markers(delete_body=True)
        del self._specs[name]

        self.log.info("watcher_reconfigured", name=name)
        return self.add(spec)

    def remove(self, name: str, delete_body: bool = True) -> bool:
        """
        Stop a watcher and remove its markers.

        Args:
            name: Watcher to remove
            delete_body: Also delete its generated imports

        Returns:
            True if a watcher was removed
        """
        engine = self._engines.pop(name, None)
        if engine is None:
            return False
        del self._specs[name]

        engine.close()
        engine.remove_markers(delete_body=delete_body)
        self.refresh_exclusions()

        self.log.info("watcher_removed", name=name, delete_body=delete_body)
        return True

    def pause(self, name: str) -> None:
        """Pause a watcher."""
        self._engines[name].pause()

    def resume(self, name: str) -> None:
        """Resume a watcher and catch up on missed changes."""
        self._engines[name].resume()

    def toggle(self, name: str) -> bool:
        """
        Pause an active watcher or resume a paused one.

        Returns:
            True if the watcher is active afterwards
        """
        engine = self._engines[name]
        if engine.is_active:
            engine.pause()
        else:
            engine.resume()
        return engine.is_active

    def refresh_exclusions(self) -> list[str]:
        """
        Recompute nested-watcher exclusions and resync affected watchers.

        Returns:
            Names of the watchers whose exclusions changed
        """
        return self._reapply_exclusions(compute_exclusions(self._specs))

    def _reapply_exclusions(
        self, nested: Mapping[str, frozenset[str]], skip: str | None = None
    ) -> list[str]:
        """
        Push exclusion sets to the engines and resync the ones that changed.

        A paused engine takes its new exclusions but keeps its region as is;
        the catch-up pass on ``resume`` rewrites it. Until then a paused parent
        may import files a new child watcher imports too.
        """
        changed = []
        for name, engine in self._engines.items():
            if name == skip:
                continue
            if engine.set_exclude_subtrees(self._effective_excludes(name, nested)):
                changed.append(name)
                if engine.is_active:
                    engine.sync_now()

        if changed:
            self.log.info("exclusions_refreshed", watchers=changed)
        return changed

    def apply(self, config: ProjectConfig | Mapping[str, WatcherSpec]) -> list[RegistryError]:
        """
        Reconcile running watchers with a configuration.

        Watchers missing from the configuration are removed together with
        their imports, changed ones are re-initialized, new ones created.

        Returns:
            Failures collected per watcher
        """
        errors: list[RegistryError] = []

        try:
            specs = config.to_specs() if isinstance(config, ProjectConfig) else dict(config)
        except ImportSyncError as e:
            self.log.error("config_rejected", error=str(e))
            return [RegistryError(name="*", error=str(e))]

        for name in [n for n in self._engines if n not in specs]:
            self.remove(name, delete_body=True)

        for name, spec in specs.items():
            if spec.name != name:
                spec = replace(spec, name=name)
            try:
                if name in self._engines:
                    self.update(name, spec)
                else:
                    self.add(spec)
            except (ImportSyncError, OSError) as e:
                self.log.error("watcher_apply_failed", name=name, error=str(e))
                errors.append(RegistryError(name=name, error=str(e)))

        return errors

    def adopt_floating_imports(self, name: str) -> int:
        """
        Delete floating copies of a watcher's imports from its target.

        Floating imports are left behind when a region is removed without
        its body. They are never deduplicated automatically; this pass is
        the explicit cleanup.

        Returns:
            Number of floating lines removed
        """
        engine = self._engines[name]
        spec = engine.spec
        import_ids = engine.list_generated_import_ids()
        owners = [
            other.owner_id or ""
            for other in self._specs.values()
            if other.target_path == spec.target_path
        ]

        try:
            with self._locks.for_path(spec.target_path):
                text = read_target(spec.target_path)
                new_text, removed = strip_floating_imports(text, import_ids, owners)
                if removed:
                    write_target(spec.target_path, new_text)
        except ImportSyncError as e:
            self.log.error("floating_cleanup_failed", name=name, error=str(e))
            return 0

        if removed:
            self.log.info("floating_imports_adopted", name=name, removed=removed)
        return removed

    def shutdown(self, remove_markers: bool = True, delete_body: bool = True) -> list[RegistryError]:
        """
        Close every watcher, optionally removing their regions.

        Returns:
            Failures collected per watcher
        """
        errors: list[RegistryError] = []

        for name, engine in list(self._engines.items()):
            try:
                engine.close()
                if remove_markers:
                    engine.remove_markers(delete_body=delete_body)
            except (ImportSyncError, OSError) as e:
                self.log.error("watcher_shutdown_failed", name=name, error=str(e))
                errors.append(RegistryError(name=name, error=str(e)))

        self._engines.clear()
        self._specs.clear()
        self.log.info("registry_shutdown", remove_markers=remove_markers, delete_body=delete_body)
        return errors

