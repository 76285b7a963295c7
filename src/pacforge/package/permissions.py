"""Per-path ownership and permission policy."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from fnmatch import fnmatchcase

from .types import DEFAULTS, FilePermissions, PermissionDefaults

PermissionResolver = Callable[[str, bool], FilePermissions]


@dataclass(frozen=True)
class PermissionRule:
    """Glob pattern plus the fields it overrides.

    The pattern is matched against the whole relative path, e.g.
    `usr/bin/*` or `etc/myapp/**`. `*` also crosses `/`.
    """

    pattern: str
    file_mode: int | None = None
    dir_mode: int | None = None
    uid: int | None = None
    gid: int | None = None

    def matches(self, path: str) -> bool:
        return fnmatchcase(path, self.pattern)


class PermissionPolicy:
    """Resolve (mode, uid, gid) from ordered rules; later rules win per field."""

    def __init__(
        self, rules: Iterable[PermissionRule] = (), defaults: PermissionDefaults = DEFAULTS
    ) -> None:
        self._rules = tuple(rules)
        self._defaults = defaults

    def resolve(self, path: str, is_directory: bool) -> FilePermissions:
        mode = self._defaults.dir_mode if is_directory else self._defaults.file_mode
        uid = self._defaults.uid
        gid = self._defaults.gid

        for rule in self._rules:
            if not rule.matches(path):
                continue
            override = rule.dir_mode if is_directory else rule.file_mode
            if override is not None:
                mode = override
            if rule.uid is not None:
                uid = rule.uid
            if rule.gid is not None:
                gid = rule.gid

        return FilePermissions(mode=mode, uid=uid, gid=gid)

    __call__ = resolve
