"""Content sources for package entries.

A content source is a zero-argument callable returning a fresh binary
stream. Sources are opened once for digesting and once more when the
archive is written; callers always close what they open.
"""

from __future__ import annotations

import io
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import BinaryIO

ContentSource = Callable[[], BinaryIO]

COPY_CHUNK_SIZE = 1024 * 1024


def file_source(path: Path) -> ContentSource:
    """Source that reopens `path` for reading on every call."""

    def _open() -> BinaryIO:
        return open(path, "rb")

    return _open


def bytes_source(data: bytes) -> ContentSource:
    """Source over an in-memory blob."""

    def _open() -> BinaryIO:
        return io.BytesIO(data)

    return _open


def iter_chunks(stream: BinaryIO, *, chunk_size: int = COPY_CHUNK_SIZE) -> Iterator[bytes]:
    """Yield fixed-size chunks until EOF."""
    while True:
        chunk = stream.read(chunk_size)
        if not chunk:
            break
        yield chunk
