"""
ImportSync Discovery Data Models.

Defines the records produced by a discovery pass.
Requires Python 3.11+.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

# Group key for files sitting directly inside the watch directory
UNGROUPED = ""


class ImportBase(str, Enum):
    """Directory that import identifiers are computed relative to."""

    WATCH_DIR = "watch_dir"
    ROOT_DIR = "root_dir"


@dataclass(frozen=True, slots=True)
class ImportPolicy:
    """Which files qualify and how their identifiers are formed."""

    partials_only: bool = True
    import_base: ImportBase = ImportBase.WATCH_DIR


@dataclass(frozen=True, slots=True)
class DiscoveredImport:
    """A matched stylesheet and the identifier it is imported by."""

    source_path: Path
    import_id: str
    group_key: str = UNGROUPED

    @property
    def is_grouped(self) -> bool:
        """Check if the import belongs to a named sub-heading group."""
        return self.group_key != UNGROUPED

    @property
    def import_line(self) -> str:
        """The ``@import`` directive rendered for this file."""
        return format_import_line(self.import_id)

    @property
    def as_dict(self) -> dict[str, str]:
        """Convert to dictionary for serialization."""
        return {
            "source_path": str(self.source_path),
            "import_id": self.import_id,
            "group_key": self.group_key,
        }


def format_import_line(import_id: str) -> str:
    """Render a single ``@import`` directive."""
    return f'@import "{import_id}";'


def format_group_header(group_key: str) -> str:
    """Render the sub-heading comment for a group."""
    return f"/* {group_key} */"


def is_renderable(import_id: str, group_key: str = UNGROUPED) -> bool:
    """
    Check that an import renders to well-formed lines.

    The identifier sits inside a double-quoted string and the group inside a
    block comment, each on a line of its own.
    """
    if '"' in import_id or "\n" in import_id or "\r" in import_id:
        return False
    return "*/" not in group_key and "\n" not in group_key and "\r" not in group_key
