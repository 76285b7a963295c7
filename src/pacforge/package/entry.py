"""Package entries and the path-ordered entry set.

An entry is one archive member. The four construction paths are:

- `PackageEntry.from_path`: something found while walking the payload tree
- `PackageEntry.from_bytes`: a synthetic in-memory file (.PKGINFO, .MTREE, .INSTALL)
- `PackageEntry.symlink`: a symlink declared by the caller
- `PackageEntry.directory`: a parent directory implied by a declared symlink
"""

from __future__ import annotations

import os
import stat
import tarfile
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from pacforge.core.errors import DuplicatePathError, UnsupportedFileTypeError, ValidationError

from .checksums import compute_digests
from .permissions import PermissionResolver
from .streams import ContentSource, bytes_source, file_source
from .types import DEFAULTS, EntryKind


def normalize_entry_path(name: str) -> str:
    """Canonical package path: '/' separated, no leading './' or '/', no trailing '/'.

    Raises:
        ValidationError: for empty paths or '..' segments
    """
    p = PurePosixPath(str(name).replace("\\", "/"))
    parts = [part for part in p.parts if part not in ("/", ".")]
    if not parts:
        raise ValidationError(f"Invalid package path: {name!r}")
    if ".." in parts:
        raise ValidationError(f"Parent path segments ('..') are not allowed: {name!r}")
    return "/".join(parts)


def path_sort_key(path: str) -> bytes:
    """Byte-wise ordering of package paths."""
    return path.encode("utf-8", "surrogateescape")


@dataclass(frozen=True)
class PackageEntry:
    """One archive member, tagged by `kind`.

    Only FILE entries carry `source`, `md5` and `sha256`; only LINK entries
    carry `link_target`.
    """

    path: str
    kind: EntryKind
    mtime_ns: int
    mode: int
    uid: int = DEFAULTS.uid
    gid: int = DEFAULTS.gid
    size: int = 0
    link_target: str | None = None
    md5: str | None = None
    sha256: str | None = None
    source: ContentSource | None = None

    @classmethod
    def from_path(
        cls, abs_path: Path, rel_path: str, permissions: PermissionResolver
    ) -> PackageEntry:
        """Build an entry from a filesystem object.

        Symlinks are detected before anything else: following checks would
        report a link to a regular file as a regular file.

        Raises:
            UnsupportedFileTypeError: for sockets, FIFOs, devices
            OSError: when the object cannot be read
        """
        st = os.lstat(abs_path)

        if stat.S_ISLNK(st.st_mode):
            perms = permissions(rel_path, False)
            return cls(
                path=rel_path,
                kind=EntryKind.LINK,
                mtime_ns=st.st_mtime_ns,
                mode=DEFAULTS.link_mode,
                uid=perms.uid,
                gid=perms.gid,
                link_target=os.readlink(abs_path),
            )

        if stat.S_ISDIR(st.st_mode):
            perms = permissions(rel_path, True)
            return cls(
                path=rel_path,
                kind=EntryKind.DIR,
                mtime_ns=st.st_mtime_ns,
                mode=perms.mode,
                uid=perms.uid,
                gid=perms.gid,
            )

        if stat.S_ISREG(st.st_mode):
            perms = permissions(rel_path, False)
            source = file_source(abs_path)
            digest = compute_digests(source)
            return cls(
                path=rel_path,
                kind=EntryKind.FILE,
                mtime_ns=st.st_mtime_ns,
                mode=perms.mode,
                uid=perms.uid,
                gid=perms.gid,
                size=st.st_size,
                md5=digest.md5,
                sha256=digest.sha256,
                source=source,
            )

        raise UnsupportedFileTypeError(rel_path)

    @classmethod
    def from_bytes(cls, name: str, data: bytes, mtime_ns: int) -> PackageEntry:
        source = bytes_source(data)
        digest = compute_digests(source)
        return cls(
            path=normalize_entry_path(name),
            kind=EntryKind.FILE,
            mtime_ns=mtime_ns,
            mode=DEFAULTS.file_mode,
            size=len(data),
            md5=digest.md5,
            sha256=digest.sha256,
            source=source,
        )

    @classmethod
    def symlink(cls, name: str, target: str, mtime_ns: int) -> PackageEntry:
        if not target:
            raise ValidationError(f"Symlink {name!r} has an empty target")
        return cls(
            path=normalize_entry_path(name),
            kind=EntryKind.LINK,
            mtime_ns=mtime_ns,
            mode=DEFAULTS.link_mode,
            link_target=target,
        )

    @classmethod
    def directory(cls, name: str, mtime_ns: int) -> PackageEntry:
        return cls(
            path=normalize_entry_path(name),
            kind=EntryKind.DIR,
            mtime_ns=mtime_ns,
            mode=DEFAULTS.dir_mode,
        )

    @property
    def member_name(self) -> str:
        """Tar member name; directories carry a trailing slash."""
        if self.kind is EntryKind.DIR:
            return self.path + "/"
        return self.path

    def to_tarinfo(self) -> tarfile.TarInfo:
        ti = tarfile.TarInfo(name=self.member_name)
        ti.mtime = self.mtime_ns // 1_000_000_000
        ti.mode = self.mode
        ti.uid = self.uid
        ti.gid = self.gid
        ti.uname = DEFAULTS.user_name
        ti.gname = DEFAULTS.group_name

        if self.kind is EntryKind.FILE:
            ti.type = tarfile.REGTYPE
            ti.size = self.size
        elif self.kind is EntryKind.DIR:
            ti.type = tarfile.DIRTYPE
        else:
            ti.type = tarfile.SYMTYPE
            ti.linkname = self.link_target or ""
        return ti

    def write_to(self, tar: tarfile.TarFile) -> None:
        """Append this entry to `tar`, re-reading file content from its source."""
        info = self.to_tarinfo()
        if self.source is None:
            tar.addfile(info)
            return
        with self.source() as f:
            tar.addfile(info, f)


class EntrySet:
    """Entries keyed by path, iterated in byte-wise path order."""

    def __init__(self) -> None:
        self._entries: dict[str, PackageEntry] = {}

    def add(self, entry: PackageEntry) -> None:
        """Insert an entry.

        Raises:
            DuplicatePathError: if the path is already taken
        """
        if entry.path in self._entries:
            raise DuplicatePathError(entry.path)
        self._entries[entry.path] = entry

    def add_if_absent(self, entry: PackageEntry) -> bool:
        if entry.path in self._entries:
            return False
        self._entries[entry.path] = entry
        return True

    def paths(self) -> list[str]:
        return sorted(self._entries, key=path_sort_key)

    def __contains__(self, path: object) -> bool:
        return path in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[PackageEntry]:
        for path in self.paths():
            yield self._entries[path]
