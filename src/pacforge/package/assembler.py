"""Package assembly: settings + payload tree -> .pkg.tar.xz byte stream.

One build is a single linear pass:

1. validate settings (nothing is written on failure)
2. walk the payload tree into an EntrySet
3. add declared symlinks and the directories they imply
4. add .INSTALL, .PKGINFO and .MTREE
5. write every entry, in path order, into an xz-compressed tar on the sink

The sink belongs to the caller. It is never closed here, and a failed build
may leave it partially written; see `pacforge.package.output` for the
write-to-file helper that removes the partial file.
"""

from __future__ import annotations

import gzip
import os
import tarfile
import time
import traceback
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Any, BinaryIO

from pacforge.core.diagnostics import build_envelope
from pacforge.core.events import get_event_bus
from pacforge.core.logging import get_logger

from .entry import EntrySet, PackageEntry
from .mtree import render_mtree
from .permissions import PermissionPolicy, PermissionResolver
from .pkginfo import render_pkginfo
from .settings import BuildSettings
from .types import EntryKind

_logger = get_logger(__name__)

INSTALL_NAME = ".INSTALL"
PKGINFO_NAME = ".PKGINFO"
MTREE_NAME = ".MTREE"


def _short_traceback(*, max_lines: int = 20) -> str:
    tb_lines = traceback.format_exc().strip().splitlines()
    return "\n".join(tb_lines[-max_lines:])


def _safe_publish(event: str, payload: dict[str, Any]) -> None:
    try:
        get_event_bus().publish(event, payload)
    except Exception:
        return


def _raise_walk_error(err: OSError) -> None:
    raise err


@dataclass(frozen=True)
class BuildResult:
    """Summary of a finished build."""

    name: str
    full_version: str
    arch: str
    entry_count: int
    installed_size: int
    pkginfo: str
    mtree: str


class PackageAssembler:
    """Assemble one package from immutable BuildSettings."""

    def __init__(
        self, settings: BuildSettings, *, permissions: PermissionResolver | None = None
    ) -> None:
        self._settings = settings
        self._permissions = permissions or PermissionPolicy(settings.permission_rules)

    def build(self, sink: BinaryIO) -> BuildResult:
        """Write the package to `sink`.

        Raises:
            ValidationError: before any write, on invalid settings
            DuplicatePathError: a declared symlink collides with another entry
            UnsupportedFileTypeError: payload holds a socket, FIFO or device
            OSError / lzma.LZMAError: I/O failures, propagated unchanged
        """
        meta = self._settings.metadata
        base = {
            "package": meta.name,
            "version": f"{meta.version}-{meta.release}",
            "root": str(self._settings.root_dir),
        }
        start = time.perf_counter()
        _safe_publish(
            "operation.start",
            build_envelope(
                event="operation.start",
                component="package",
                operation="package.build",
                data=dict(base),
            ),
        )

        try:
            result = self._build(sink)
        except Exception as e:
            duration_ms = int((time.perf_counter() - start) * 1000)
            _safe_publish(
                "operation.end",
                build_envelope(
                    event="operation.end",
                    component="package",
                    operation="package.build",
                    data={
                        **base,
                        "status": "failed",
                        "duration_ms": duration_ms,
                        "error_type": type(e).__name__,
                        "error_message": str(e),
                        "traceback": _short_traceback(),
                    },
                ),
            )
            _logger.warning(
                f"package.build status=failed duration_ms={duration_ms} "
                f"package={meta.name!r} error_type={type(e).__name__!r}"
            )
            raise

        duration_ms = int((time.perf_counter() - start) * 1000)
        _safe_publish(
            "operation.end",
            build_envelope(
                event="operation.end",
                component="package",
                operation="package.build",
                data={
                    **base,
                    "status": "succeeded",
                    "duration_ms": duration_ms,
                    "entries": result.entry_count,
                    "installed_size": result.installed_size,
                },
            ),
        )
        _logger.info(
            f"package.build status=succeeded duration_ms={duration_ms} "
            f"package={meta.name!r} entries={result.entry_count} size={result.installed_size}"
        )
        return result

    def _build(self, sink: BinaryIO) -> BuildResult:
        settings = self._settings
        settings.validate()

        now_ns = settings.build_time_ns if settings.build_time_ns is not None else time.time_ns()
        entries = EntrySet()

        installed_size = self._add_payload(entries)
        self._add_symlinks(entries, now_ns)

        if settings.install_script is not None:
            entries.add(PackageEntry.from_bytes(INSTALL_NAME, settings.install_script, now_ns))

        pkginfo = render_pkginfo(
            settings.metadata,
            build_date=now_ns // 1_000_000_000,
            installed_size=installed_size,
        )
        entries.add(PackageEntry.from_bytes(PKGINFO_NAME, pkginfo.encode("utf-8"), now_ns))

        mtree = render_mtree(entries)
        mtree_gz = gzip.compress(mtree.encode("utf-8"), mtime=0)
        entries.add(PackageEntry.from_bytes(MTREE_NAME, mtree_gz, now_ns))

        self._write_archive(entries, sink)

        return BuildResult(
            name=settings.metadata.name,
            full_version=settings.metadata.full_version,
            arch=settings.metadata.arch,
            entry_count=len(entries),
            installed_size=installed_size,
            pkginfo=pkginfo,
            mtree=mtree,
        )

    def _add_payload(self, entries: EntrySet) -> int:
        """Walk the root (excluding itself); return the installed size."""
        root = self._settings.root_dir
        installed_size = 0

        for dirpath, dirnames, filenames in os.walk(
            root, onerror=_raise_walk_error, followlinks=False
        ):
            for name in sorted(dirnames) + sorted(filenames):
                abs_path = Path(dirpath) / name
                rel_path = abs_path.relative_to(root).as_posix()
                entry = PackageEntry.from_path(abs_path, rel_path, self._permissions)
                entries.add(entry)
                if entry.kind is EntryKind.FILE:
                    installed_size += entry.size
                _logger.verbose(f"payload {entry.kind.value} {rel_path}")
                _logger.debug(
                    f"payload {rel_path} mode={entry.mode:03o} uid={entry.uid} gid={entry.gid} "
                    f"sha256={entry.sha256}"
                )

        return installed_size

    def _add_symlinks(self, entries: EntrySet, now_ns: int) -> None:
        for name, target in sorted(self._settings.symlinks.items()):
            link = PackageEntry.symlink(name, target, now_ns)
            entries.add(link)
            _logger.verbose(f"symlink {link.path} -> {target}")

            parent = PurePosixPath(link.path).parent
            while parent != PurePosixPath("."):
                if entries.add_if_absent(PackageEntry.directory(parent.as_posix(), now_ns)):
                    _logger.debug(f"implied directory {parent.as_posix()}")
                parent = parent.parent

    def _write_archive(self, entries: EntrySet, sink: BinaryIO) -> None:
        # Closing the TarFile also closes the xz stream but not `sink`.
        with tarfile.open(fileobj=sink, mode="w:xz", format=tarfile.PAX_FORMAT) as tar:
            for entry in entries:
                entry.write_to(tar)


def build_package(
    settings: BuildSettings,
    sink: BinaryIO,
    *,
    permissions: PermissionResolver | None = None,
) -> BuildResult:
    """Build a package from `settings` into `sink`."""
    return PackageAssembler(settings, permissions=permissions).build(sink)
