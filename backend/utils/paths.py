"""
ImportSync Path Helpers.

Separator normalization, containment tests and import-identifier derivation.
"""

import os
from pathlib import Path

SCSS_SUFFIX = ".scss"


def to_posix(path: Path | str) -> str:
    """Convert platform path separators to forward slashes."""
    text = str(path)
    if os.sep != "/":
        text = text.replace(os.sep, "/")
    return text.replace("\\", "/")


def normalize_abs(path: Path | str) -> str:
    """Absolute, forward-slash form of a path used for prefix comparisons."""
    return to_posix(os.path.abspath(os.fspath(path)))


def is_within(path: Path | str, parent: Path | str) -> bool:
    """
    Check whether path equals parent or lies underneath it.

    The comparison is a string prefix test on normalized absolute paths with a
    separator boundary, so ``/a/foobar`` is not within ``/a/foo``.
    """
    child = normalize_abs(path)
    base = normalize_abs(parent).rstrip("/")
    if not base:
        # Filesystem root contains everything
        return True
    return child == base or child.startswith(base + "/")


def derive_import_id(relative_path: Path | str) -> str:
    """
    Derive the ``@import`` identifier for a partial.

    Separators become ``/``, the ``.scss`` suffix is dropped and a single
    leading underscore is stripped from the final segment only.

    Examples:
        - _button.scss -> button
        - nested/_card.scss -> nested/card
        - _mixins/_grid.scss -> _mixins/grid
        - _.scss -> "" (degenerate, callers must skip it)
    """
    text = to_posix(relative_path)
    if text.endswith(SCSS_SUFFIX):
        text = text[: -len(SCSS_SUFFIX)]

    head, _, name = text.rpartition("/")
    if name.startswith("_"):
        name = name[1:]

    return f"{head}/{name}" if head else name
