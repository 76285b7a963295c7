"""Tests for writing packages to disk."""

from __future__ import annotations

import tarfile
from dataclasses import replace
from pathlib import Path

import pytest

from pacforge.core.errors import DuplicatePathError, ValidationError
from pacforge.core.log_bus import LogRecord, get_log_bus
from pacforge.package import (
    BuildSettings,
    PackageMetadata,
    default_output_name,
    resolve_output_path,
    write_package,
)


class TestResolveOutputPath:
    def test_default_name(self, payload_root, metadata, tmp_path):
        settings = BuildSettings(root_dir=payload_root, metadata=metadata)

        out = resolve_output_path(settings, None, tmp_path / "dist")

        assert out == tmp_path / "dist" / "demo-1.0.0-1-any.pkg.tar.xz"

    def test_explicit_output_wins(self, payload_root, metadata, tmp_path):
        settings = BuildSettings(root_dir=payload_root, metadata=metadata)

        out = resolve_output_path(settings, tmp_path / "x.pkg.tar.xz", tmp_path / "dist")

        assert out == tmp_path / "x.pkg.tar.xz"

    def test_default_output_name(self):
        meta = PackageMetadata(name="foo", version="2.1", release="3", arch="x86_64")
        assert default_output_name(meta) == "foo-2.1-3-x86_64.pkg.tar.xz"


class TestWritePackage:
    def test_writes_archive(self, payload_root, metadata, tmp_path):
        out = tmp_path / "dist" / "demo.pkg.tar.xz"

        result = write_package(BuildSettings(root_dir=payload_root, metadata=metadata), out)

        assert out.is_file()
        with tarfile.open(out, mode="r:xz") as tar:
            assert tar.getnames() == [".MTREE", ".PKGINFO", "opt", "opt/test.txt"]
        assert result.entry_count == 4

    def test_validation_failure_creates_nothing(self, payload_root, tmp_path):
        out = tmp_path / "bad.pkg.tar.xz"
        meta = PackageMetadata(name="demo", version="1-0", release="1", arch="any")

        with pytest.raises(ValidationError):
            write_package(BuildSettings(root_dir=payload_root, metadata=meta), out)

        assert not out.exists()

    def test_partial_file_removed(self, payload_root, metadata, tmp_path):
        records: list[LogRecord] = []
        get_log_bus().subscribe(records.append)
        out = tmp_path / "dup.pkg.tar.xz"
        settings = BuildSettings(
            root_dir=payload_root, metadata=metadata, symlinks={"opt/test.txt": "x"}
        )

        with pytest.raises(DuplicatePathError):
            write_package(settings, out)

        assert not out.exists()
        assert f"[warning] removed partial package {out}" in [r.plain for r in records]

    def test_existing_file_overwritten(self, payload_root, metadata, tmp_path):
        out = tmp_path / "demo.pkg.tar.xz"
        out.write_bytes(b"stale")

        write_package(BuildSettings(root_dir=payload_root, metadata=metadata), out)

        assert Path(out).read_bytes()[:6] == b"\xfd7zXZ\x00"

    def test_open_failure_removes_nothing(self, payload_root, metadata, tmp_path):
        records: list[LogRecord] = []
        get_log_bus().subscribe(records.append)
        out = tmp_path / "taken"
        out.mkdir()

        with pytest.raises(IsADirectoryError):
            write_package(BuildSettings(root_dir=payload_root, metadata=metadata), out)

        assert out.is_dir()
        assert not any("removed partial package" in r.plain for r in records)

    def test_multiline_description_writes_nothing(self, payload_root, metadata, tmp_path):
        out = tmp_path / "demo.pkg.tar.xz"
        settings = BuildSettings(
            root_dir=payload_root, metadata=replace(metadata, description="ok\ndepend = evil")
        )

        with pytest.raises(ValidationError, match="line breaks"):
            write_package(settings, out)

        assert not out.exists()
