"""
ImportSync Exceptions.

Requires Python 3.11+.
"""

from pathlib import Path


class ImportSyncError(Exception):
    """Base class for all import sync errors."""

    def __init__(self, message: str, path: Path | str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.path = str(path) if path is not None else None

    def __str__(self) -> str:
        if self.path:
            return f"{self.message}: {self.path}"
        return self.message


class ConfigurationError(ImportSyncError):
    """A watcher spec or project config is invalid; the watcher never starts."""


class TargetFileError(ImportSyncError):
    """The target stylesheet is missing, unreadable or unwritable."""
