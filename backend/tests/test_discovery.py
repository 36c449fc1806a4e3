"""
Tests for File Discovery.

Requires Python 3.11+.
"""

import errno
import os
import sys
from pathlib import Path

import pytest

from discovery.discoverer import FileDiscoverer, render_import_lines
from discovery.models import UNGROUPED, DiscoveredImport, ImportBase, ImportPolicy, is_renderable


class TestFileDiscoverer:
    """Test cases for FileDiscoverer with the partials-only policy."""

    @pytest.fixture
    def discoverer(self) -> FileDiscoverer:
        """Create a discoverer with the default policy."""
        return FileDiscoverer()

    def test_discover_partials(self, discoverer: FileDiscoverer, project: Path):
        """Test recursive discovery and ordering."""
        imports = discoverer.discover(project / "components")

        assert [i.import_id for i in imports] == ["button", "card", "forms/input"]
        assert [i.group_key for i in imports] == [UNGROUPED, UNGROUPED, "forms"]
        assert imports[0].source_path == project / "components" / "_button.scss"

    def test_non_partials_skipped(self, discoverer: FileDiscoverer, project: Path, make_file):
        """Test that files without a leading underscore are ignored."""
        make_file(project, "components/standalone.scss")
        make_file(project, "components/_notes.txt")

        ids = [i.import_id for i in discoverer.discover(project / "components")]

        assert "standalone" not in ids
        assert "notes" not in ids

    def test_excluded_subtree_pruned(self, discoverer: FileDiscoverer, project: Path):
        """Test that excluded directories are not walked."""
        imports = discoverer.discover(
            project / "components",
            exclude_subtrees=[project / "components" / "forms"],
        )

        assert [i.import_id for i in imports] == ["button", "card"]

    def test_exclusion_respects_separator_boundary(self, discoverer: FileDiscoverer, project: Path, make_file):
        """Test that excluding 'forms' keeps the sibling 'formsets'."""
        make_file(project, "components/formsets/_set.scss")

        imports = discoverer.discover(
            project / "components",
            exclude_subtrees=[project / "components" / "forms"],
        )

        assert "formsets/set" in [i.import_id for i in imports]
        assert "forms/input" not in [i.import_id for i in imports]

    def test_target_file_never_discovered(self, discoverer: FileDiscoverer, project: Path, make_file):
        """Test that the target stylesheet cannot import itself."""
        target = make_file(project, "components/_all.scss")

        imports = discoverer.discover(project / "components", target_file=target)

        assert "all" not in [i.import_id for i in imports]
        assert all(i.source_path != target for i in imports)

    def test_missing_directory_is_empty(self, discoverer: FileDiscoverer, tmp_path: Path):
        """Test that a missing watch directory yields no imports."""
        assert discoverer.discover(tmp_path / "does-not-exist") == []

    def test_degenerate_partial_skipped(self, discoverer: FileDiscoverer, project: Path, make_file):
        """Test that '_.scss' is skipped instead of producing an empty import."""
        make_file(project, "components/_.scss")
        make_file(project, "components/forms/_.scss")

        ids = [i.import_id for i in discoverer.discover(project / "components")]

        assert "" not in ids
        assert "forms/" not in ids
        assert ids == ["button", "card", "forms/input"]

    def test_groups_sorted_with_ungrouped_first(self, discoverer: FileDiscoverer, tmp_path: Path, make_file):
        """Test group ordering."""
        make_file(tmp_path, "w/zeta/_z.scss")
        make_file(tmp_path, "w/alpha/_b.scss")
        make_file(tmp_path, "w/alpha/_a.scss")
        make_file(tmp_path, "w/_root.scss")

        imports = discoverer.discover(tmp_path / "w")

        assert [i.import_id for i in imports] == ["root", "alpha/a", "alpha/b", "zeta/z"]

    def test_deep_nesting_groups_by_first_segment(self, discoverer: FileDiscoverer, tmp_path: Path, make_file):
        """Test that the group key is the first directory under the watch dir."""
        make_file(tmp_path, "w/layout/grid/cols/_twelve.scss")

        (item,) = discoverer.discover(tmp_path / "w")

        assert item.import_id == "layout/grid/cols/twelve"
        assert item.group_key == "layout"

    def test_root_relative_identifiers(self, tmp_path: Path, make_file):
        """Test identifiers relative to the project root."""
        make_file(tmp_path, "src/components/_button.scss")
        discoverer = FileDiscoverer(ImportPolicy(import_base=ImportBase.ROOT_DIR))

        imports = discoverer.discover(tmp_path / "src" / "components", root_dir=tmp_path)

        assert [i.import_id for i in imports] == ["src/components/button"]

    def test_root_relative_requires_root(self, tmp_path: Path):
        """Test that the root-relative policy needs a root directory."""
        discoverer = FileDiscoverer(ImportPolicy(import_base=ImportBase.ROOT_DIR))

        with pytest.raises(ValueError):
            discoverer.discover(tmp_path)


class TestWalkErrors:
    """Test cases for directories failing during the walk."""

    def fail_scandir_for(self, monkeypatch, directory: Path, error: type[OSError]) -> None:
        real_scandir = os.scandir

        def scandir(path="."):
            if os.fspath(path) == str(directory):
                raise error(errno.ENOENT if error is FileNotFoundError else errno.EACCES, "fail", str(path))
            return real_scandir(path)

        monkeypatch.setattr(os, "scandir", scandir)

    def test_vanished_subdirectory_is_empty(self, project: Path, monkeypatch):
        """Test that a directory deleted mid-walk is skipped, not fatal."""
        self.fail_scandir_for(monkeypatch, project / "components" / "forms", FileNotFoundError)

        imports = FileDiscoverer().discover(project / "components")

        assert [i.import_id for i in imports] == ["button", "card"]

    def test_unreadable_subdirectory_fails(self, project: Path, monkeypatch):
        """Test that other walk errors still abort discovery."""
        self.fail_scandir_for(monkeypatch, project / "components" / "forms", PermissionError)

        with pytest.raises(PermissionError):
            FileDiscoverer().discover(project / "components")


@pytest.mark.skipif(sys.platform == "win32", reason="names are not valid on Windows")
class TestUnrenderableNames:
    """Test cases for file and directory names that cannot be written as imports."""

    def test_quote_in_file_name_skipped(self, project: Path, make_file):
        """Test that a double quote in the identifier is skipped."""
        make_file(project, 'components/_say"hi".scss')

        ids = [i.import_id for i in FileDiscoverer().discover(project / "components")]

        assert ids == ["button", "card", "forms/input"]

    def test_newline_in_directory_name_skipped(self, project: Path, make_file):
        """Test that a group name spanning lines is skipped."""
        make_file(project, "components/bad\nname/_x.scss")

        imports = FileDiscoverer().discover(project / "components")

        assert [i.import_id for i in imports] == ["button", "card", "forms/input"]
        assert all("\n" not in line for line in render_import_lines(imports))


@pytest.mark.parametrize(
    "import_id, group_key, expected",
    [
        ("forms/input", "forms", True),
        ("a*/b", "a*", True),
        ('say"hi"', "", False),
        ("x\ny", "", False),
        ("g/x", "g*/", False),
    ],
)
def test_is_renderable(import_id: str, group_key: str, expected: bool):
    """Test which identifiers and groups render to well-formed lines."""
    assert is_renderable(import_id, group_key) is expected


class TestLoosePolicy:
    """Test cases for the policy admitting non-partials and index files."""

    @pytest.fixture
    def discoverer(self) -> FileDiscoverer:
        """Create a discoverer admitting every stylesheet."""
        return FileDiscoverer(ImportPolicy(partials_only=False))

    def test_non_partials_admitted(self, discoverer: FileDiscoverer, tmp_path: Path, make_file):
        """Test that plain stylesheets qualify."""
        make_file(tmp_path, "w/theme.scss")
        make_file(tmp_path, "w/_vars.scss")

        ids = [i.import_id for i in discoverer.discover(tmp_path / "w")]

        assert ids == ["theme", "vars"]

    def test_index_imports_directory(self, discoverer: FileDiscoverer, tmp_path: Path, make_file):
        """Test that index files import their containing directory."""
        make_file(tmp_path, "w/buttons/index.scss")
        make_file(tmp_path, "w/cards/_index.scss")

        ids = [i.import_id for i in discoverer.discover(tmp_path / "w")]

        assert ids == ["buttons", "cards"]

    def test_index_at_watch_root_skipped(self, discoverer: FileDiscoverer, tmp_path: Path, make_file):
        """Test that an index directly in the watch dir has no identifier."""
        make_file(tmp_path, "w/index.scss")

        assert discoverer.discover(tmp_path / "w") == []

    def test_duplicate_identifier_keeps_first(self, discoverer: FileDiscoverer, tmp_path: Path, make_file):
        """Test that two files mapping to the same identifier produce one import."""
        make_file(tmp_path, "w/_card.scss")
        make_file(tmp_path, "w/card.scss")

        imports = discoverer.discover(tmp_path / "w")

        assert [i.import_id for i in imports] == ["card"]
        assert imports[0].source_path.name == "_card.scss"


class TestRenderImportLines:
    """Test cases for region body rendering."""

    def test_render_with_group_headers(self, project: Path):
        """Test that named groups get a comment heading."""
        imports = FileDiscoverer().discover(project / "components")

        assert render_import_lines(imports) == [
            '@import "button";',
            '@import "card";',
            "/* forms */",
            '@import "forms/input";',
        ]

    def test_render_sorts_input(self):
        """Test that rendering does not depend on input order."""
        imports = [
            DiscoveredImport(Path("/w/b/_y.scss"), "b/y", "b"),
            DiscoveredImport(Path("/w/_x.scss"), "x"),
            DiscoveredImport(Path("/w/a/_z.scss"), "a/z", "a"),
        ]

        assert render_import_lines(imports) == render_import_lines(reversed(imports))
        assert render_import_lines(imports) == [
            '@import "x";',
            "/* a */",
            '@import "a/z";',
            "/* b */",
            '@import "b/y";',
        ]

    def test_render_empty(self):
        """Test that no imports renders an empty body."""
        assert render_import_lines([]) == []
