"""
ImportSync Synchronization Package.

Watcher engines, orchestration and the project configuration record.
Requires Python 3.11+.
"""

from sync.engine import SyncEngine, create_watcher, validate_spec
from sync.exceptions import ConfigurationError, ImportSyncError, TargetFileError
from sync.models import SyncAction, SyncResult, WatcherSpec, WatcherState
from sync.project_config import (
    ProjectConfig,
    ProjectSettings,
    WatcherEntry,
    default_config_path,
    load_project_config,
    save_project_config,
)
from sync.registry import RegistryError, TargetLocks, WatcherRegistry, compute_exclusions

__all__ = [
    "SyncEngine",
    "create_watcher",
    "validate_spec",
    "ConfigurationError",
    "ImportSyncError",
    "TargetFileError",
    "SyncAction",
    "SyncResult",
    "WatcherSpec",
    "WatcherState",
    "ProjectConfig",
    "ProjectSettings",
    "WatcherEntry",
    "default_config_path",
    "load_project_config",
    "save_project_config",
    "RegistryError",
    "TargetLocks",
    "WatcherRegistry",
    "compute_exclusions",
]
