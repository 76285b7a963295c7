"""Types shared by the package assembly engine.

ASCII-only.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from pacforge.core.errors import InvalidPermissionsError

MODE_MASK = 0o777


class EntryKind(StrEnum):
    """Archive member kinds; the value is the mtree type code."""

    FILE = "file"
    DIR = "dir"
    LINK = "link"


@dataclass(frozen=True)
class PermissionDefaults:
    """Default ownership and modes applied when no rule overrides them."""

    file_mode: int = 0o644
    dir_mode: int = 0o755
    link_mode: int = 0o777
    uid: int = 0
    gid: int = 0
    user_name: str = "root"
    group_name: str = "root"


DEFAULTS = PermissionDefaults()


@dataclass(frozen=True)
class FilePermissions:
    """Resolved (mode, uid, gid) for one entry."""

    mode: int
    uid: int = DEFAULTS.uid
    gid: int = DEFAULTS.gid

    def __post_init__(self) -> None:
        if self.mode & ~MODE_MASK or self.mode < 0:
            raise InvalidPermissionsError(f"Illegal mode {self.mode:o}")
        if self.uid < 0 or self.gid < 0:
            raise InvalidPermissionsError(f"Illegal owner {self.uid}:{self.gid}")


@dataclass(frozen=True)
class ContentDigest:
    """Lowercase hex digests of one content stream."""

    md5: str
    sha256: str
