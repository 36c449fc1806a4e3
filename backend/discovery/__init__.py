"""
ImportSync Discovery Package.

Finds partials under a watch directory and derives their import identifiers.
Requires Python 3.11+.
"""

from discovery.discoverer import FileDiscoverer, render_import_lines, sort_imports
from discovery.models import (
    UNGROUPED,
    DiscoveredImport,
    ImportBase,
    ImportPolicy,
    format_import_line,
    is_renderable,
)

__all__ = [
    "FileDiscoverer",
    "render_import_lines",
    "sort_imports",
    "UNGROUPED",
    "DiscoveredImport",
    "ImportBase",
    "ImportPolicy",
    "format_import_line",
    "is_renderable",
]
