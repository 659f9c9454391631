"""Small file helpers."""

from __future__ import annotations

import os

_CHUNK_SIZE = 1 << 20


def file_lines(path: str | os.PathLike[str]) -> int:
    """Count the lines of a file; a final line without newline still counts.

    Raises ``ValueError`` for an empty file and ``OSError`` if the file
    cannot be opened.
    """
    count = 0
    last_byte = b""
    with open(path, "rb") as handle:
        while chunk := handle.read(_CHUNK_SIZE):
            count += chunk.count(b"\n")
            last_byte = chunk[-1:]
    if not last_byte:
        raise ValueError(f"Could not read empty file: {os.fspath(path)}")
    if last_byte != b"\n":
        count += 1
    return count