"""
ImportSync File Discoverer.

Walks a watch directory and derives the import identifier and group of
every qualifying stylesheet.
Requires Python 3.11+.
"""

import os
from collections.abc import Iterable
from pathlib import Path

from discovery.models import (
    UNGROUPED,
    DiscoveredImport,
    ImportBase,
    ImportPolicy,
    format_group_header,
    format_import_line,
    is_renderable,
)
from utils.logger import LoggerMixin
from utils.paths import SCSS_SUFFIX, derive_import_id, is_within, normalize_abs, to_posix

INDEX_NAMES = frozenset({"index.scss", "_index.scss"})


class FileDiscoverer(LoggerMixin):
    """
    Discovers the stylesheets owned by one watcher.

    Directories inside any excluded subtree are pruned before they are
    entered, and the target file is never reported, so a stylesheet cannot
    import itself.
    """

    def __init__(self, policy: ImportPolicy | None = None) -> None:
        """
        Initialize the discoverer.

        Args:
            policy: File qualification and identifier policy
        """
        self._policy = policy or ImportPolicy()

    @property
    def policy(self) -> ImportPolicy:
        """Get the active discovery policy."""
        return self._policy

    def discover(
        self,
        watch_dir: Path,
        exclude_subtrees: Iterable[Path | str] = (),
        target_file: Path | None = None,
        root_dir: Path | None = None,
    ) -> list[DiscoveredImport]:
        """
        Discover every qualifying stylesheet under a watch directory.

        Args:
            watch_dir: Absolute directory to scan recursively
            exclude_subtrees: Absolute directories pruned from the walk
            target_file: Stylesheet receiving the imports, always skipped
            root_dir: Project root, required when identifiers are root-relative

        Returns:
            Imports ordered by group (ungrouped first) then identifier

        Raises:
            OSError: If a directory inside the tree cannot be listed; directories
                that disappear during the walk are skipped instead
        """
        watch_dir = Path(watch_dir)
        excludes = [normalize_abs(p) for p in exclude_subtrees]
        target = normalize_abs(target_file) if target_file is not None else None

        if self._policy.import_base == ImportBase.ROOT_DIR and root_dir is None:
            raise ValueError("root_dir is required for root-relative import identifiers")
        base_dir = Path(root_dir) if self._policy.import_base == ImportBase.ROOT_DIR else watch_dir

        if not watch_dir.is_dir():
            self.log.warning("watch_dir_missing", path=str(watch_dir))
            return []

        if self._is_excluded(watch_dir, excludes):
            self.log.debug("watch_dir_excluded", path=str(watch_dir))
            return []

        found: dict[str, DiscoveredImport] = {}

        for dirpath, dirnames, filenames in os.walk(watch_dir, onerror=self._on_walk_error):
            # Prune excluded subtrees in place so os.walk never descends
            dirnames[:] = sorted(
                d for d in dirnames
                if not self._is_excluded(os.path.join(dirpath, d), excludes)
            )

            for filename in sorted(filenames):
                file_path = Path(dirpath) / filename
                if target is not None and normalize_abs(file_path) == target:
                    continue

                item = self._build_import(file_path, watch_dir, base_dir)
                if item is None:
                    continue

                existing = found.get(item.import_id)
                if existing is not None:
                    self.log.warning(
                        "duplicate_import_id",
                        import_id=item.import_id,
                        kept=str(existing.source_path),
                        skipped=str(item.source_path),
                    )
                    continue
                found[item.import_id] = item

        imports = sort_imports(found.values())
        self.log.debug("discovery_completed", path=str(watch_dir), count=len(imports))
        return imports

    def _build_import(
        self, file_path: Path, watch_dir: Path, base_dir: Path
    ) -> DiscoveredImport | None:
        """Build the import record for a file, or None if it does not qualify."""
        name = file_path.name
        if not name.endswith(SCSS_SUFFIX):
            return None

        is_index = not self._policy.partials_only and name in INDEX_NAMES
        if self._policy.partials_only and not name.startswith("_"):
            return None

        if is_index:
            # index files import their containing directory
            import_id = to_posix(os.path.relpath(file_path.parent, base_dir))
            if import_id == ".":
                import_id = ""
        else:
            import_id = derive_import_id(os.path.relpath(file_path, base_dir))

        if not import_id or import_id.endswith("/"):
            self.log.warning("degenerate_import_skipped", path=str(file_path))
            return None

        parts = Path(os.path.relpath(file_path, watch_dir)).parts
        group_key = parts[0] if len(parts) > 1 else UNGROUPED

        if not is_renderable(import_id, group_key):
            self.log.warning("unrenderable_import_skipped", path=str(file_path), import_id=import_id)
            return None

        return DiscoveredImport(
            source_path=file_path,
            import_id=import_id,
            group_key=group_key,
        )

    def _on_walk_error(self, error: OSError) -> None:
        """Skip directories that vanished mid-walk; fail on anything else."""
        if isinstance(error, (FileNotFoundError, NotADirectoryError)):
            self.log.warning("directory_vanished", path=str(error.filename), error=str(error))
            return
        raise error

    @staticmethod
    def _is_excluded(path: Path | str, excludes: list[str]) -> bool:
        """Check if a directory falls inside any excluded subtree."""
        return any(is_within(path, excluded) for excluded in excludes)


def sort_imports(imports: Iterable[DiscoveredImport]) -> list[DiscoveredImport]:
    """
    Order imports deterministically.

    The ungrouped sentinel sorts before every named group because it is the
    empty string; within a group imports are ordered by identifier.
    """
    return sorted(imports, key=lambda item: (item.group_key, item.import_id))


def render_import_lines(imports: Iterable[DiscoveredImport]) -> list[str]:
    """
    Render the region body for a set of imports.

    Each named group is preceded by a ``/* group */`` heading; the ungrouped
    heading is omitted.
    """
    lines: list[str] = []
    current_group: str | None = None

    for item in sort_imports(imports):
        if item.group_key != current_group:
            current_group = item.group_key
            if item.is_grouped:
                lines.append(format_group_header(item.group_key))
        lines.append(format_import_line(item.import_id))

    return lines
