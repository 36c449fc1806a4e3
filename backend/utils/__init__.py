"""
ImportSync Utilities Package.

Common utilities shared across all backend modules.
Requires Python 3.11+.
"""

from utils.config import Settings, get_settings
from utils.logger import configure_logging, get_logger, LoggerMixin, watcher_context
from utils.paths import derive_import_id, is_within, normalize_abs, to_posix

__all__ = [
    "Settings",
    "get_settings",
    "configure_logging",
    "get_logger",
    "LoggerMixin",
    "watcher_context",
    "derive_import_id",
    "is_within",
    "normalize_abs",
    "to_posix",
]
