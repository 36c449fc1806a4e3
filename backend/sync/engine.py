"""
ImportSync Engine.

Keeps one watcher's marker region in the target stylesheet synchronized
with the partials found under its watch directory, both on demand and
in reaction to debounced file system events.
Requires Python 3.11+.
"""

import threading
from collections.abc import Iterable
from contextlib import AbstractContextManager
from pathlib import Path
from typing import Any

from discovery.discoverer import FileDiscoverer, render_import_lines
from discovery.models import DiscoveredImport, ImportBase, ImportPolicy
from markers.region import remove, synchronize
from sync.exceptions import ConfigurationError, TargetFileError
from sync.models import SyncAction, SyncResult, WatcherSpec, WatcherState
from sync.target_file import read_target, write_target
from utils.config import Settings, get_settings
from utils.logger import LoggerMixin, watcher_context
from utils.paths import is_within
from watcher.debouncer import Debouncer
from watcher.file_watcher import ChangeObserver, DirectoryObserver, EventCallback, ObserverFactory
from watcher.scheduler import Scheduler


def validate_spec(spec: WatcherSpec, settings: Settings | None = None) -> None:
    """
    Check that a watcher spec can be started.

    Raises:
        ConfigurationError: If the root, target, watch directory, insertion
            line or owner id is invalid
    """
    settings = settings or get_settings()
    root = spec.root_dir

    if not root.is_dir():
        raise ConfigurationError("Root directory does not exist", root)

    target = spec.target_path
    if not is_within(target, root) or target == root:
        raise ConfigurationError("Target file must be inside the root directory", target)
    if settings.sync.target_at_root and target.parent != root:
        raise ConfigurationError("Target file must sit directly inside the root directory", target)
    if not target.is_file():
        raise ConfigurationError("Target file not found", target)

    if not is_within(spec.watch_path, root):
        raise ConfigurationError("Watch directory must be inside the root directory", spec.watch_path)

    if not isinstance(spec.insertion_line, int) or spec.insertion_line < 1:
        raise ConfigurationError(f"Insertion line must be a positive integer, got {spec.insertion_line!r}")

    owner_id = spec.owner_id or ""
    if not owner_id.strip() or "*/" in owner_id or "\n" in owner_id or "\r" in owner_id:
        raise ConfigurationError(f"Invalid owner id {owner_id!r}")


def build_discoverer(settings: Settings) -> FileDiscoverer:
    """Create a discoverer from the discovery settings."""
    return FileDiscoverer(
        ImportPolicy(
            partials_only=settings.discovery.partials_only,
            import_base=ImportBase(settings.discovery.import_base),
        )
    )


class SyncEngine(LoggerMixin):
    """
    Synchronizes one watcher's generated import region.

    Change events are debounced into sync requests. Requests are handled one
    at a time: a request arriving while a pass is in flight marks the engine
    dirty and the running pass loops once more instead of starting a second,
    concurrent rewrite. Every read-modify-write of the target holds
    ``target_lock``, which the registry shares between all watchers writing
    to the same file.
    """

    def __init__(
        self,
        spec: WatcherSpec,
        *,
        settings: Settings | None = None,
        discoverer: FileDiscoverer | None = None,
        scheduler: Scheduler | None = None,
        observer_factory: ObserverFactory | None = None,
        target_lock: AbstractContextManager[Any] | None = None,
    ) -> None:
        """
        Initialize the engine.

        Args:
            spec: Watcher configuration
            settings: Application settings, defaults to the cached settings
            discoverer: File discoverer, built from settings when omitted
            scheduler: Timer source for debouncing
            observer_factory: Builds the change observer for the watch directory
            target_lock: Lock serializing writes to the target file
        """
        self._settings = settings or get_settings()
        self._spec = spec
        self._discoverer = discoverer or build_discoverer(self._settings)
        self._observer_factory = observer_factory or self._default_observer_factory
        self._observer: ChangeObserver | None = None
        self._target_lock = target_lock or threading.RLock()

        self._debouncer = Debouncer(
            delay_ms=self._settings.watcher.debounce_delay_ms,
            callback=self._on_debounced,
            scheduler=scheduler,
        )

        self._state_lock = threading.Lock()
        self._state = WatcherState.ACTIVE
        self._paused_events: list[tuple[Path, str]] = []
        self._syncing = False
        self._dirty = False
        self._last_result: SyncResult | None = None

        self.bind_log(watcher=spec.name)

    def _default_observer_factory(self, path: Path, on_event: EventCallback) -> ChangeObserver:
        return DirectoryObserver(
            path,
            on_event,
            recursive=self._settings.watcher.recursive,
            join_timeout=self._settings.watcher.observer_join_timeout,
        )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def spec(self) -> WatcherSpec:
        """Get the current watcher spec."""
        return self._spec

    @property
    def name(self) -> str:
        """Get the watcher name."""
        return self._spec.name or ""

    @property
    def state(self) -> WatcherState:
        """Get the lifecycle state."""
        return self._state

    @property
    def is_active(self) -> bool:
        """Check if the watcher reacts to change events."""
        return self._state == WatcherState.ACTIVE

    @property
    def is_watching(self) -> bool:
        """Check if a change observer is attached."""
        return self._observer is not None and self._observer.is_running

    @property
    def last_result(self) -> SyncResult | None:
        """Get the result of the most recent pass."""
        return self._last_result

    @property
    def pending_events(self) -> int:
        """Number of change events not yet turned into a pass."""
        return len(self._paused_events) + self._debouncer.pending_count

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """
        Attach the change observer to the watch directory.

        A missing watch directory is logged and leaves the engine without
        reactive events; explicit syncs keep working.
        """
        if self._state == WatcherState.CLOSED or self._observer is not None:
            return

        watch_path = self._spec.watch_path
        if not watch_path.is_dir():
            self.log.warning("watch_dir_missing", path=str(watch_path))
            return

        observer = self._observer_factory(watch_path, self._on_event)
        try:
            observer.start()
        except OSError as e:
            self.log.error("observer_start_failed", path=str(watch_path), error=str(e))
            return
        self._observer = observer

    def initial_sync(self) -> SyncResult:
        """Run one discovery + synchronize pass before reactive watching."""
        self.log.info("initial_sync", watch_dir=str(self._spec.watch_path))
        return self.sync_now()

    def pause(self) -> None:
        """Stop reacting to events; incoming events are kept as pending."""
        with self._state_lock:
            if self._state != WatcherState.ACTIVE:
                return
            self._state = WatcherState.PAUSED
            self._paused_events.extend(self._debouncer.clear())

        self.log.info("watcher_paused", pending=len(self._paused_events))

    def resume(self) -> SyncResult | None:
        """
        Resume reacting to events and catch up immediately.

        Returns:
            Result of the catch-up pass, or None if the watcher was not paused
        """
        with self._state_lock:
            if self._state != WatcherState.PAUSED:
                return None
            self._state = WatcherState.ACTIVE
            missed = len(self._paused_events)
            self._paused_events.clear()

        self.log.info("watcher_resumed", missed_events=missed)
        return self.sync_now()

    def close(self) -> None:
        """
        Stop watching for good.

        Pending debounced events are dropped; a pass already in flight is
        allowed to finish. Markers are left in place.
        """
        with self._state_lock:
            if self._state == WatcherState.CLOSED:
                return
            self._state = WatcherState.CLOSED
            self._paused_events.clear()
            self._debouncer.clear()
            observer, self._observer = self._observer, None

        if observer is not None:
            observer.stop()

        self.log.info("watcher_closed")

    # ------------------------------------------------------------------
    # Event handling
    # ------------------------------------------------------------------

    def _on_event(self, path: Path, change_type: str) -> None:
        """Receive a raw change event from the observer."""
        if path == self._spec.target_path:
            return
        if any(is_within(path, excluded) for excluded in self._spec.excluded_paths):
            return

        with self._state_lock:
            if self._state == WatcherState.CLOSED:
                return
            if self._state == WatcherState.PAUSED:
                self._paused_events.append((path, change_type))
                return

        self._debouncer.debounce(path, change_type)

    def _on_debounced(self, changes: list[tuple[Path, str]]) -> None:
        """Turn a debounced batch into a sync request."""
        with self._state_lock:
            if self._state == WatcherState.CLOSED:
                return
            if self._state == WatcherState.PAUSED:
                self._paused_events.extend(changes)
                return

        self.log.debug("changes_debounced", count=len(changes))
        self.sync_now()

    # ------------------------------------------------------------------
    # Synchronization
    # ------------------------------------------------------------------

    def sync_now(self) -> SyncResult:
        """
        Run a discovery + synchronize pass now.

        If a pass is already running the request is folded into it and a
        SKIPPED result is returned; the running pass repeats once more.
        """
        with self._state_lock:
            if self._state == WatcherState.CLOSED:
                return SyncResult(action=SyncAction.SKIPPED, error="watcher closed")
            if self._syncing:
                self._dirty = True
                return SyncResult(action=SyncAction.SKIPPED)
            self._syncing = True

        try:
            while True:
                result = self._sync_once()
                with self._state_lock:
                    if not self._dirty or self._state == WatcherState.CLOSED:
                        self._dirty = False
                        self._syncing = False
                        return result
                    self._dirty = False
        except BaseException:
            with self._state_lock:
                self._syncing = False
                self._dirty = False
            raise

    def _discover(self, spec: WatcherSpec) -> list[DiscoveredImport]:
        return self._discoverer.discover(
            spec.watch_path,
            exclude_subtrees=spec.excluded_paths,
            target_file=spec.target_path,
            root_dir=spec.root_dir,
        )

    def _sync_once(self) -> SyncResult:
        """One discovery + rewrite cycle; errors leave the file untouched."""
        spec = self._spec
        try:
            with watcher_context(spec.name or ""):
                imports = self._discover(spec)
                body = render_import_lines(imports)
                import_ids = [item.import_id for item in imports]

                with self._target_lock:
                    text = read_target(spec.target_path)
                    new_text = synchronize(text, spec.owner_id or "", body, spec.insertion_line)
                    if new_text == text:
                        result = SyncResult(action=SyncAction.UNCHANGED, import_ids=import_ids)
                    else:
                        write_target(spec.target_path, new_text)
                        result = SyncResult(action=SyncAction.UPDATED, import_ids=import_ids)

        except (TargetFileError, OSError) as e:
            self.log.error("sync_failed", target=str(spec.target_path), error=str(e))
            result = SyncResult(action=SyncAction.FAILED, error=str(e))

        if result.action == SyncAction.UPDATED:
            self.log.info("imports_updated", target=str(spec.target_path), count=len(result.import_ids))

        self._last_result = result
        return result

    def remove_markers(self, delete_body: bool) -> bool:
        """
        Remove this watcher's marker pair from the target.

        Args:
            delete_body: Also delete the generated imports; otherwise they
                stay behind as floating imports

        Returns:
            True if the file was changed
        """
        spec = self._spec
        try:
            with watcher_context(spec.name or ""), self._target_lock:
                text = read_target(spec.target_path)
                new_text = remove(text, spec.owner_id or "", delete_body)
                if new_text == text:
                    return False
                write_target(spec.target_path, new_text)
        except TargetFileError as e:
            self.log.error("marker_removal_failed", target=str(spec.target_path), error=str(e))
            return False

        self.log.info("markers_removed", target=str(spec.target_path), delete_body=delete_body)
        return True

    def list_generated_import_ids(self) -> list[str]:
        """
        Run a fresh discovery and return the identifiers this watcher owns.

        Returns:
            Identifiers in rendered order; empty if discovery fails
        """
        try:
            return [item.import_id for item in self._discover(self._spec)]
        except OSError as e:
            self.log.error("discovery_failed", watch_dir=str(self._spec.watch_path), error=str(e))
            return []

    def set_exclude_subtrees(self, exclude_subtrees: Iterable[str]) -> bool:
        """
        Replace the excluded subtrees.

        Returns:
            True if the exclusion set changed
        """
        new_excludes = frozenset(str(p) for p in exclude_subtrees)
        if new_excludes == self._spec.exclude_subtrees:
            return False
        self._spec = self._spec.with_excludes(new_excludes)
        self.log.debug("exclusions_updated", excludes=sorted(new_excludes))
        return True

    def __repr__(self) -> str:
        return f"SyncEngine(name={self.name!r}, state={self._state.value})"


def create_watcher(
    spec: WatcherSpec,
    *,
    settings: Settings | None = None,
    scheduler: Scheduler | None = None,
    observer_factory: ObserverFactory | None = None,
    target_lock: AbstractContextManager[Any] | None = None,
    start: bool = True,
) -> SyncEngine:
    """
    Validate a spec, run its initial sync and begin watching.

    Args:
        spec: Watcher configuration
        settings: Application settings
        scheduler: Timer source for debouncing
        observer_factory: Builds the change observer
        target_lock: Lock shared by all watchers of the same target
        start: Attach the change observer after the initial sync

    Returns:
        The running engine

    Raises:
        ConfigurationError: If the spec is invalid
    """
    settings = settings or get_settings()
    validate_spec(spec, settings)

    engine = SyncEngine(
        spec,
        settings=settings,
        scheduler=scheduler,
        observer_factory=observer_factory,
        target_lock=target_lock,
    )
    engine.initial_sync()
    if start:
        engine.start()
    return engine
