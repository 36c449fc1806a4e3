"""
ImportSync Marker Regions.

Line-oriented editing of the generated block delimited by an owner's
start/end comment pair inside a stylesheet:

    /* <owner> import start */
    /* <group> */
    @import "<id>";
    /* <owner> import end */

Every operation works on whole lines and leaves lines outside the owner's
pair untouched, so several owners can share one target file.
Requires Python 3.11+.
"""

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from discovery.models import format_import_line
from utils.logger import get_logger

logger = get_logger(__name__)

# Longest run of consecutive blank lines kept after an edit
MAX_BLANK_RUN = 2

_IMPORT_LINE_RE = re.compile(r'^\s*@import\s+"([^"]*)"\s*;\s*$')


def start_marker(owner_id: str) -> str:
    """Start marker comment for an owner."""
    return f"/* {owner_id} import start */"


def end_marker(owner_id: str) -> str:
    """End marker comment for an owner."""
    return f"/* {owner_id} import end */"


@dataclass(frozen=True, slots=True)
class RegionSpan:
    """0-based line indices of an owner's start and end marker lines."""

    start: int
    end: int

    @property
    def body(self) -> range:
        """Indices of the lines strictly between the markers."""
        return range(self.start + 1, self.end)

    def covers(self, index: int) -> bool:
        """Check if a line index falls on the markers or the body."""
        return self.start <= index <= self.end


@dataclass(slots=True)
class TextDocument:
    """
    A text file split into lines.

    Every line keeps its own terminator (``\\n``, ``\\r\\n`` or none for an
    unterminated last line), so lines an edit does not touch render back
    byte for byte even in files with mixed line endings. Inserted lines use
    the dominant terminator of the file.
    """

    lines: list[str]
    endings: list[str] = field(default_factory=list)
    newline: str = "\n"

    @classmethod
    def parse(cls, text: str) -> "TextDocument":
        """Split text into lines."""
        parts = text.split("\n")
        tail = parts.pop()

        lines: list[str] = []
        endings: list[str] = []
        for part in parts:
            if part.endswith("\r"):
                lines.append(part[:-1])
                endings.append("\r\n")
            else:
                lines.append(part)
                endings.append("\n")
        if tail:
            lines.append(tail)
            endings.append("")

        newline = "\r\n" if endings.count("\r\n") > endings.count("\n") else "\n"
        return cls(lines=lines, endings=endings, newline=newline)

    @property
    def trailing_newline(self) -> bool:
        """Check if the last line is terminated (an empty document counts as terminated)."""
        return not self.endings or self.endings[-1] != ""

    def replace(self, start: int, stop: int, new_lines: Sequence[str]) -> None:
        """Replace ``lines[start:stop]``; new lines take the dominant terminator."""
        terminated = self.trailing_newline
        self.lines[start:stop] = list(new_lines)
        self.endings[start:stop] = [self.newline] * len(new_lines)
        self._repair_endings(terminated)

    def retain(self, indices: Iterable[int]) -> None:
        """Keep only the lines at ``indices`` (ascending), dropping the rest."""
        terminated = self.trailing_newline
        keep = list(indices)
        self.lines = [self.lines[i] for i in keep]
        self.endings = [self.endings[i] for i in keep]
        self._repair_endings(terminated)

    def _repair_endings(self, terminated: bool) -> None:
        # Only the last line may be unterminated, and only if it was before
        for i in range(len(self.endings) - 1):
            if not self.endings[i]:
                self.endings[i] = self.newline
        if self.endings:
            if terminated and not self.endings[-1]:
                self.endings[-1] = self.newline
            elif not terminated:
                self.endings[-1] = ""

    def render(self) -> str:
        """Join the lines back into text."""
        return "".join(line + ending for line, ending in zip(self.lines, self.endings))


def locate(lines: Sequence[str], owner_id: str) -> RegionSpan | None:
    """
    Find an owner's marker pair.

    The start is the first line containing the start marker and the end is
    the first later line containing the end marker. A lone marker, or an end
    marker appearing only before the start, is reported as corrupt and
    treated as not found.

    Args:
        lines: File content split into lines
        owner_id: Owner whose markers to find

    Returns:
        The region span, or None if no intact pair exists
    """
    start_text = start_marker(owner_id)
    end_text = end_marker(owner_id)

    start = next((i for i, line in enumerate(lines) if start_text in line), None)
    if start is None:
        if any(end_text in line for line in lines):
            logger.warning("marker_pair_corrupt", owner_id=owner_id, missing="start")
        return None

    end = next(
        (i for i in range(start + 1, len(lines)) if end_text in lines[i]),
        None,
    )
    if end is None:
        logger.warning("marker_pair_corrupt", owner_id=owner_id, missing="end", start_line=start + 1)
        return None

    return RegionSpan(start=start, end=end)


def blank_run_survivors(lines: Sequence[str], max_run: int = MAX_BLANK_RUN) -> list[int]:
    """Indices of the lines kept when blank runs are capped at ``max_run``."""
    kept: list[int] = []
    run = 0
    for index, line in enumerate(lines):
        if line.strip():
            run = 0
        else:
            run += 1
            if run > max_run:
                continue
        kept.append(index)
    return kept


def normalize_blank_lines(lines: Sequence[str], max_run: int = MAX_BLANK_RUN) -> list[str]:
    """Collapse every run of more than ``max_run`` blank lines."""
    return [lines[i] for i in blank_run_survivors(lines, max_run)]


def clamp_insertion_index(insertion_line: int, line_count: int) -> int:
    """Convert a 1-indexed insertion line into a list index inside the file."""
    return max(0, min(insertion_line - 1, line_count))


def synchronize(
    text: str,
    owner_id: str,
    body_lines: Sequence[str],
    insertion_line: int = 1,
) -> str:
    """
    Replace an owner's region body, creating the region if needed.

    When the marker pair exists every line strictly between the markers is
    replaced and the marker lines are kept. Otherwise a new
    start/body/end block is inserted before ``insertion_line`` (1-indexed,
    clamped to the file). Runs of blank lines are normalized afterwards.

    Args:
        text: Current file content
        owner_id: Owner of the region
        body_lines: Lines to place between the markers
        insertion_line: Where to seed a new region

    Returns:
        The new file content
    """
    doc = TextDocument.parse(text)
    span = locate(doc.lines, owner_id)

    if span is not None:
        doc.replace(span.start + 1, span.end, body_lines)
    else:
        index = clamp_insertion_index(insertion_line, len(doc.lines))
        block = [start_marker(owner_id), *body_lines, end_marker(owner_id)]
        doc.replace(index, index, block)
        logger.debug("marker_region_inserted", owner_id=owner_id, line=index + 1)

    doc.retain(blank_run_survivors(doc.lines))
    return doc.render()


def remove(text: str, owner_id: str, delete_body: bool) -> str:
    """
    Remove an owner's marker pair.

    Args:
        text: Current file content
        owner_id: Owner of the region
        delete_body: Also delete the generated lines; when False they are
            left in place as floating imports

    Returns:
        The new file content (unchanged if the region does not exist)
    """
    doc = TextDocument.parse(text)
    span = locate(doc.lines, owner_id)
    if span is None:
        return text

    if delete_body:
        doc.replace(span.start, span.end + 1, [])
    else:
        doc.replace(span.end, span.end + 1, [])
        doc.replace(span.start, span.start + 1, [])

    doc.retain(blank_run_survivors(doc.lines))
    return doc.render()


def region_import_ids(text: str, owner_id: str) -> list[str]:
    """Identifiers currently imported inside an owner's region."""
    doc = TextDocument.parse(text)
    span = locate(doc.lines, owner_id)
    if span is None:
        return []

    ids = []
    for index in span.body:
        match = _IMPORT_LINE_RE.match(doc.lines[index])
        if match:
            ids.append(match.group(1))
    return ids


def strip_floating_imports(
    text: str,
    import_ids: Iterable[str],
    owner_ids: Iterable[str],
) -> tuple[str, int]:
    """
    Delete floating copies of imports now owned by a marker region.

    Only ``@import`` lines outside every located region of ``owner_ids`` are
    considered; content inside any of those regions is never touched.

    Args:
        text: Current file content
        import_ids: Identifiers whose floating duplicates should go
        owner_ids: Owners whose regions are protected

    Returns:
        Tuple of (new content, number of lines removed)
    """
    wanted = {format_import_line(import_id) for import_id in import_ids}
    if not wanted:
        return text, 0

    doc = TextDocument.parse(text)
    spans = [span for owner in owner_ids if (span := locate(doc.lines, owner)) is not None]

    kept: list[int] = []
    removed = 0
    for index, line in enumerate(doc.lines):
        protected = any(span.covers(index) for span in spans)
        if not protected and line.strip() in wanted:
            removed += 1
            continue
        kept.append(index)

    if not removed:
        return text, 0

    doc.retain(kept)
    doc.retain(blank_run_survivors(doc.lines))
    return doc.render(), removed
