"""mtree manifest writer.

Output looks like:

    #mtree
    /set type=file uid=0 gid=0 mode=644
    ./.PKGINFO time=1467238830.999000000 size=412 md5digest=... sha256digest=...
    ./opt time=1467238830.999000000 mode=755 type=dir
    ./opt/lib.so time=1467238830.999000000 mode=777 type=link link=/opt/lib.so.0.0

Fields equal to the `/set` defaults are left out. Filenames are escaped so a
line can always be split on whitespace: anything outside printable ASCII, and
the backslash itself, becomes `\\nnn` octal per UTF-8 byte.
"""

from __future__ import annotations

import io
import re
from collections.abc import Iterable
from typing import TextIO

from .entry import PackageEntry
from .types import DEFAULTS, EntryKind

MAGIC = "#mtree"
SET_DEFAULTS = f"/set type={EntryKind.FILE.value} uid=0 gid=0 mode={DEFAULTS.file_mode:o}"

_ESCAPE_RE = re.compile(r"\\([0-7]{3})")


def _format_octal(value: int) -> str:
    return f"{value:03o}"


def escape_filename(name: str) -> str:
    out: list[str] = []
    for ch in name:
        cp = ord(ch)
        if 0x20 <= cp <= 0x7E and ch != "\\":
            out.append(ch)
            continue
        for b in ch.encode("utf-8", "surrogateescape"):
            out.append("\\" + _format_octal(b))
    return "".join(out)


def unescape_filename(text: str) -> bytes:
    """Reverse `escape_filename` at the byte level."""
    out = bytearray()
    pos = 0
    for m in _ESCAPE_RE.finditer(text):
        out += text[pos : m.start()].encode("ascii")
        out.append(int(m.group(1), 8))
        pos = m.end()
    out += text[pos:].encode("ascii")
    return bytes(out)


def format_time(mtime_ns: int) -> str:
    seconds, nanos = divmod(mtime_ns, 1_000_000_000)
    return f"{seconds}.{nanos:09d}"


class MtreeWriter:
    """Write mtree lines to a text stream."""

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream

    def write_header(self) -> MtreeWriter:
        self._stream.write(MAGIC + "\n")
        self._stream.write(SET_DEFAULTS + "\n")
        return self

    def write_entry(self, entry: PackageEntry) -> MtreeWriter:
        fields = ["./" + escape_filename(entry.path).rstrip("/")]
        fields.append(f"time={format_time(entry.mtime_ns)}")

        # Compared with the file default only; /set declares type=file.
        if entry.mode != DEFAULTS.file_mode:
            fields.append(f"mode={_format_octal(entry.mode)}")

        if entry.uid != 0 or entry.gid != 0:
            fields.append(f"uid={entry.uid}")
            fields.append(f"gid={entry.gid}")

        if entry.kind is EntryKind.FILE:
            fields.append(f"size={entry.size}")
        else:
            fields.append(f"type={entry.kind.value}")

        if entry.link_target:
            fields.append(f"link={entry.link_target}")

        if entry.kind is EntryKind.FILE and entry.md5 is not None:
            fields.append(f"md5digest={entry.md5}")
        if entry.kind is EntryKind.FILE and entry.sha256 is not None:
            fields.append(f"sha256digest={entry.sha256}")

        self._stream.write(" ".join(fields) + "\n")
        return self


def render_mtree(entries: Iterable[PackageEntry]) -> str:
    """Render the full manifest text for `entries` in iteration order."""
    buf = io.StringIO()
    writer = MtreeWriter(buf).write_header()
    for entry in entries:
        writer.write_entry(entry)
    return buf.getvalue()
