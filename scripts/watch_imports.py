#!/usr/bin/env python3
"""
ImportSync Watch Script.

Keeps the generated @import regions of a project's target stylesheet in
sync with its watched partial directories.
Requires Python 3.11+.

Usage:
    python scripts/watch_imports.py --root /path/to/project
    python scripts/watch_imports.py --root /path/to/project --once
    python scripts/watch_imports.py --root . --target src/styles.scss \\
        --add components=src/components:3
"""

import argparse
import signal
import sys
import threading
from pathlib import Path
from typing import Any

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from sync.exceptions import ImportSyncError
from sync.project_config import (
    ProjectConfig,
    WatcherEntry,
    default_config_path,
    load_project_config,
    save_project_config,
)
from sync.registry import WatcherRegistry
from utils.logger import configure_logging, get_logger
from watcher.debouncer import Debouncer

logger = get_logger("watch_imports")


class ConfigFileHandler(FileSystemEventHandler):
    """Signals when the configuration record changes on disk."""

    def __init__(self, config_path: Path, debouncer: Debouncer) -> None:
        super().__init__()
        self._config_path = config_path.resolve()
        self._debouncer = debouncer

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        for raw in (event.src_path, getattr(event, "dest_path", "")):
            if raw and Path(str(raw)).resolve() == self._config_path:
                self._debouncer.debounce(self._config_path, event.event_type)
                return


def parse_watcher_arg(value: str) -> tuple[str, WatcherEntry]:
    """Parse ``name=watch_dir[:line]`` into a watcher entry."""
    name, sep, rest = value.partition("=")
    if not sep or not name or not rest:
        raise argparse.ArgumentTypeError(f"expected name=watch_dir[:line], got {value!r}")

    watch_dir, _, line = rest.rpartition(":")
    if not watch_dir or not line.isdigit():
        watch_dir, line = rest, "1"
    return name, WatcherEntry(watch_dir=watch_dir, insertion_line=int(line))


def print_status(registry: WatcherRegistry, config: ProjectConfig) -> None:
    """Print a summary of every watcher."""
    settings = config.project_settings
    print("\n--- Watchers ---")
    print(f"Project Root: {settings.root_dir}")
    print(f"Target File: {settings.target_file}")

    rows = registry.status()
    if not rows:
        print("No watchers configured yet.")
    for row in rows:
        print(f"\n  Name: {row['name']} ({row['state']})")
        print(f"  Watch Dir: {row['watch_dir']}")
        print(f"  Line: {row['insertion_line']}")
        if row["excluded"]:
            print(f"  Excluded: {', '.join(row['excluded'])}")
        print(f"  Imports ({len(row['imports'])}):")
        for import_id in row["imports"]:
            print(f"    - {import_id}")
    print("----------------\n")


def run(args: argparse.Namespace) -> int:
    """Reconcile watchers from the config and watch until interrupted."""
    root = args.root.resolve()
    config_path = (args.config or default_config_path(root)).resolve()
    config = load_project_config(config_path)

    settings = config.project_settings
    dirty = False
    if settings.root_dir is None:
        settings.root_dir = root
        dirty = True
    if args.target:
        settings.target_file = args.target
        dirty = True
    for name, entry in args.add or []:
        config.watchers[name] = entry
        dirty = True
    if dirty:
        save_project_config(config, config_path)

    if not settings.is_complete:
        print("Error: no target stylesheet configured, pass --target FILE")
        return 1

    registry = WatcherRegistry(start_observers=not args.once)
    errors = registry.apply(config)
    for error in errors:
        print(f"Error: watcher {error.name}: {error.error}")

    print_status(registry, config)

    if args.once:
        registry.shutdown(remove_markers=False)
        return 1 if errors else 0

    stop = threading.Event()
    reload_requested = threading.Event()

    def request_stop(signum: int, frame: Any) -> None:
        stop.set()

    signal.signal(signal.SIGINT, request_stop)
    signal.signal(signal.SIGTERM, request_stop)

    config_debouncer = Debouncer(delay_ms=200, callback=lambda _changes: reload_requested.set())
    config_observer = Observer()
    config_observer.schedule(
        ConfigFileHandler(config_path, config_debouncer),
        str(config_path.parent),
        recursive=False,
    )
    config_observer.start()
    logger.info("watching", config=str(config_path), watchers=registry.names())

    try:
        while not stop.is_set():
            if not reload_requested.wait(timeout=0.5):
                continue
            reload_requested.clear()
            logger.info("config_changed", path=str(config_path))
            try:
                config = load_project_config(config_path)
            except ImportSyncError as e:
                logger.error("config_reload_failed", error=str(e))
                continue
            for error in registry.apply(config):
                print(f"Error: watcher {error.name}: {error.error}")
    finally:
        config_observer.stop()
        config_observer.join(timeout=5.0)
        config_debouncer.clear()

        print("\nStopping all watchers and cleaning up...")
        errors = registry.shutdown(
            remove_markers=not args.no_cleanup,
            delete_body=not args.keep_imports,
        )
        for error in errors:
            print(f"Error: watcher {error.name}: {error.error}")

    print("Bye!")
    return 0


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Keep generated SCSS @import blocks in sync with watched directories"
    )
    parser.add_argument(
        "--root",
        type=Path,
        default=Path.cwd(),
        help="Project root directory (default: current directory)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Configuration file (default: <root>/.scss-import-watcher-config.json)",
    )
    parser.add_argument(
        "--target",
        default=None,
        help="Target stylesheet relative to the root; saved to the config",
    )
    parser.add_argument(
        "--add",
        type=parse_watcher_arg,
        action="append",
        metavar="NAME=DIR[:LINE]",
        help="Add a watcher to the config before starting",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Synchronize every watcher once and exit, leaving markers in place",
    )
    parser.add_argument(
        "--keep-imports",
        action="store_true",
        help="On exit remove only the markers, leaving the imports in place",
    )
    parser.add_argument(
        "--no-cleanup",
        action="store_true",
        help="On exit leave markers and imports in place",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Override LOG_LEVEL (DEBUG, INFO, WARNING, ERROR)",
    )

    args = parser.parse_args()
    configure_logging(args.log_level)

    if not args.root.is_dir():
        print(f"Error: Root is not a directory: {args.root}")
        sys.exit(1)

    try:
        sys.exit(run(args))
    except ImportSyncError as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
