"""
ImportSync Target File I/O.

Reads and atomically rewrites the stylesheet receiving generated imports.
"""

import os
import tempfile
from pathlib import Path

from sync.exceptions import TargetFileError

ENCODING = "utf-8"


def read_target(path: Path) -> str:
    """
    Read the target stylesheet.

    Raises:
        TargetFileError: If the file is missing, not a regular file or unreadable
    """
    if not path.is_file():
        raise TargetFileError("Target file not found", path)
    try:
        # newline="" keeps \r\n intact for the line splitter
        with open(path, encoding=ENCODING, newline="") as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise TargetFileError(f"Cannot read target file ({e})", path) from e


def write_target(path: Path, text: str) -> None:
    """
    Replace the target stylesheet's content atomically.

    The text is written to a temporary file in the same directory and moved
    over the target, so a failed write leaves the previous content intact.

    Raises:
        TargetFileError: If the file cannot be written
    """
    try:
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent)
        )
    except OSError as e:
        raise TargetFileError(f"Cannot write target file ({e})", path) from e

    try:
        with os.fdopen(fd, "w", encoding=ENCODING, newline="") as f:
            f.write(text)
        try:
            os.chmod(tmp_name, path.stat().st_mode & 0o7777)
        except OSError:
            pass
        os.replace(tmp_name, path)
    except OSError as e:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise TargetFileError(f"Cannot write target file ({e})", path) from e
