"""
ImportSync Markers Package.

Locates and rewrites owner-scoped marker regions in text files.
Requires Python 3.11+.
"""

from markers.region import (
    RegionSpan,
    TextDocument,
    end_marker,
    locate,
    normalize_blank_lines,
    region_import_ids,
    remove,
    start_marker,
    strip_floating_imports,
    synchronize,
)

__all__ = [
    "RegionSpan",
    "TextDocument",
    "end_marker",
    "locate",
    "normalize_blank_lines",
    "region_import_ids",
    "remove",
    "start_marker",
    "strip_floating_imports",
    "synchronize",
]
