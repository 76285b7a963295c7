"""Unit tests for the mtree manifest writer."""

from __future__ import annotations

import io
import re
from dataclasses import replace

import pytest

from pacforge.package import (
    EntryKind,
    EntrySet,
    MtreeWriter,
    PackageEntry,
    escape_filename,
    render_mtree,
    unescape_filename,
)
from pacforge.package.mtree import format_time


def _file(path: str, mtime_ns: int, *, size: int = 123, mode: int = 0o644, uid=0, gid=0):
    return PackageEntry(
        path=path, kind=EntryKind.FILE, mtime_ns=mtime_ns, mode=mode, uid=uid, gid=gid, size=size
    )


def _line(entry: PackageEntry) -> str:
    buf = io.StringIO()
    MtreeWriter(buf).write_entry(entry)
    return buf.getvalue()


class TestMtreeWriter:
    def test_write_entry(self, fixed_time_ns):
        """Header plus one file and one symlink, escaped filename included."""
        buf = io.StringIO()
        (
            MtreeWriter(buf)
            .write_header()
            .write_entry(_file("opt/testąš.txt", fixed_time_ns))
            .write_entry(PackageEntry.symlink("opt/lib.so", "/opt/lib.so.0.0", fixed_time_ns))
        )

        lines = buf.getvalue().split("\n")
        assert lines[-1] == ""
        lines = lines[:-1]
        assert len(lines) == 4
        assert lines[0] == "#mtree"
        assert lines[1] == "/set type=file uid=0 gid=0 mode=644"
        assert lines[2] == "./opt/test\\304\\205\\305\\241.txt time=1467238830.999000000 size=123"
        assert (
            lines[3]
            == "./opt/lib.so time=1467238830.999000000 mode=777 type=link link=/opt/lib.so.0.0"
        )

    def test_default_fields_suppressed(self, fixed_time_ns):
        line = _line(_file("a", fixed_time_ns))

        assert "mode=" not in line
        assert "uid=" not in line
        assert "gid=" not in line

    @pytest.mark.parametrize("uid,gid", [(5, 0), (0, 5), (3, 4)])
    def test_nonzero_owner_forces_both(self, fixed_time_ns, uid, gid):
        line = _line(_file("a", fixed_time_ns, uid=uid, gid=gid))

        assert f" uid={uid} gid={gid} " in line

    def test_directory_always_prints_mode(self, fixed_time_ns):
        line = _line(PackageEntry.directory("usr/share", fixed_time_ns))

        assert line == "./usr/share time=1467238830.999000000 mode=755 type=dir\n"

    def test_field_order_with_digests(self, fixed_time_ns):
        e = PackageEntry.from_bytes("bin/tool", b"abc", fixed_time_ns)
        e = replace(e, mode=0o755, uid=1, gid=2)

        line = _line(e)

        assert line == (
            "./bin/tool time=1467238830.999000000 mode=755 uid=1 gid=2 size=3"
            " md5digest=900150983cd24fb0d6963f7d28e17f72"
            " sha256digest=ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad\n"
        )

    def test_sha256_field_is_not_md5(self, fixed_time_ns):
        line = _line(PackageEntry.from_bytes("x", b"payload", fixed_time_ns))

        md5 = re.search(r"md5digest=(\w+)", line).group(1)
        sha = re.search(r"sha256digest=(\w+)", line).group(1)
        assert len(md5) == 32
        assert len(sha) == 64
        assert md5 != sha

    def test_trailing_slashes_stripped(self, fixed_time_ns):
        e = PackageEntry(path="opt//", kind=EntryKind.DIR, mtime_ns=fixed_time_ns, mode=0o755)

        assert _line(e).startswith("./opt time=")

    def test_render_follows_entry_order(self, fixed_time_ns):
        entries = EntrySet()
        for name in ["zz", "a/b", "a", ".PKGINFO"]:
            entries.add(_file(name, fixed_time_ns))

        body = render_mtree(entries).splitlines()[2:]

        assert [line.split(" ")[0] for line in body] == ["./.PKGINFO", "./a", "./a/b", "./zz"]


class TestEscaping:
    def test_printable_ascii_verbatim(self):
        assert escape_filename("usr/share/doc/a b~c.txt") == "usr/share/doc/a b~c.txt"

    def test_backslash_escaped(self):
        assert escape_filename("a\\b") == "a\\134b"

    def test_control_characters_escaped(self):
        assert escape_filename("a\tb\x7f") == "a\\011b\\177"

    def test_two_byte_characters(self):
        escaped = escape_filename("ąš")

        assert escaped == "\\304\\205\\305\\241"
        assert len(re.findall(r"\\[0-7]{3}", escaped)) == 4

    def test_four_byte_character(self):
        assert escape_filename("\U0001f600") == "\\360\\237\\230\\200"

    @pytest.mark.parametrize(
        "name", ["plain.txt", "dir/ünï cödé\\x.txt", "日本語/ファイル", "tab\there"]
    )
    def test_round_trip_bytes(self, name):
        escaped = escape_filename(name)

        assert all(0x20 <= ord(c) <= 0x7E for c in escaped)
        assert unescape_filename(escaped) == name.encode("utf-8")

    def test_undecodable_filename_bytes_preserved(self):
        name = b"caf\xe9.txt".decode("utf-8", "surrogateescape")

        assert escape_filename(name) == "caf\\351.txt"
        assert unescape_filename(escape_filename(name)) == b"caf\xe9.txt"


@pytest.mark.parametrize(
    "mtime_ns,expected",
    [
        (1467238830_999_000_000, "1467238830.999000000"),
        (1_000_000_005, "1.000000005"),
        (0, "0.000000000"),
    ],
)
def test_format_time(mtime_ns, expected):
    assert format_time(mtime_ns) == expected
