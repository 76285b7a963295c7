"""Immutable build settings and their validation.

Settings are constructed once by the caller (directly, or from a
ConfigResolver via `settings_from_resolver`) and handed to the assembler.
"""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pacforge.core.config import ConfigResolver
from pacforge.core.errors import ConfigError, ValidationError

from .permissions import PermissionRule
from .types import MODE_MASK

_NAME_RE = re.compile(r"^[A-Za-z0-9@._+-]+$")


@dataclass(frozen=True)
class PackageMetadata:
    """Identity and relations of the package, as written to .PKGINFO."""

    name: str
    version: str
    release: str
    arch: str
    description: str | None = None
    url: str | None = None
    packager: str | None = None
    licenses: tuple[str, ...] = ()
    depends: tuple[str, ...] = ()
    optdepends: tuple[str, ...] = ()

    @property
    def full_version(self) -> str:
        return f"{self.version}-{self.release}"

    def validate(self) -> None:
        """Raise ValidationError on the first violated rule."""
        for label, value in (
            ("Package name", self.name),
            ("Package version", self.version),
            ("Release number", self.release),
            ("Target architecture", self.arch),
        ):
            if value is None or not str(value).strip():
                raise ValidationError(f"{label} must be specified")

        if not _NAME_RE.match(self.name) or self.name[0] in "-.":
            raise ValidationError(
                f"Invalid package name {self.name!r}",
                "Use alphanumerics and @ . _ + -, not starting with a hyphen or dot",
            )
        if ":" in self.version or "-" in self.version:
            raise ValidationError("Package version is not allowed to contain colons or hyphens")
        if "-" in self.release:
            raise ValidationError("Release number is not allowed to contain hyphens")

        for label, value in self._pkginfo_values():
            if "\n" in value or "\r" in value:
                raise ValidationError(f"{label} must not contain line breaks: {value!r}")

    def _pkginfo_values(self) -> list[tuple[str, str]]:
        values: list[tuple[str, str | None]] = [
            ("Package version", self.version),
            ("Release number", self.release),
            ("Target architecture", self.arch),
            ("Description", self.description),
            ("URL", self.url),
            ("Packager", self.packager),
        ]
        values += [("License", v) for v in self.licenses]
        values += [("Dependency", v) for v in self.depends]
        values += [("Optional dependency", v) for v in self.optdepends]
        return [(label, v) for label, v in values if v is not None]


@dataclass(frozen=True)
class BuildSettings:
    """Everything one build needs besides the destination stream."""

    root_dir: Path
    metadata: PackageMetadata
    install_script: bytes | None = None
    symlinks: Mapping[str, str] = field(default_factory=dict)
    permission_rules: tuple[PermissionRule, ...] = ()
    build_time_ns: int | None = None

    def validate(self) -> None:
        """Validate settings; performs no writes.

        Raises:
            ValidationError
        """
        if self.root_dir is None:
            raise ValidationError("Root directory must be specified")
        if not self.root_dir.exists():
            raise ValidationError(f"Root directory {self.root_dir} does not exist")
        if not self.root_dir.is_dir():
            raise ValidationError(f"Root directory {self.root_dir} is not a directory")
        self.metadata.validate()


def default_output_name(metadata: PackageMetadata) -> str:
    return f"{metadata.name}-{metadata.full_version}-{metadata.arch}.pkg.tar.xz"


def _str_or_none(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


def _str_tuple(resolver: ConfigResolver, key: str) -> tuple[str, ...]:
    value = resolver.get(key, [])
    if isinstance(value, str):
        # env values arrive as a single comma separated string
        return tuple(v.strip() for v in value.split(",") if v.strip())
    if not isinstance(value, list):
        raise ConfigError(f"Config key '{key}' must be a list")
    return tuple(str(v) for v in value)


def _parse_mode(value: Any, key: str) -> int | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigError(
            f"Config key '{key}' must be a quoted octal string, got {value!r}",
            'Quote the mode, e.g. "0644"',
        )
    try:
        mode = int(value.strip(), 8)
    except ValueError:
        raise ConfigError(f"Config key '{key}' must be an octal mode, got {value!r}") from None
    if not 0 <= mode <= MODE_MASK:
        raise ConfigError(f"Config key '{key}' is out of range: {value!r}")
    return mode


def _parse_id(value: Any, key: str) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Config key '{key}' must be an integer, got {value!r}") from None


def parse_permission_rules(items: Any) -> tuple[PermissionRule, ...]:
    """Parse `package.permissions` entries.

    Modes must be quoted strings such as `"0755"` or `"755"`. A bare YAML
    integer is rejected: `0755` loads as 493 and `444` as decimal 444, so
    the digits the user wrote cannot be recovered.
    """
    if items is None:
        return ()
    if not isinstance(items, list):
        raise ConfigError("Config key 'package.permissions' must be a list")

    rules: list[PermissionRule] = []
    for i, item in enumerate(items):
        key = f"package.permissions[{i}]"
        if not isinstance(item, dict) or not item.get("pattern"):
            raise ConfigError(f"Config key '{key}' must be a mapping with a 'pattern'")
        rules.append(
            PermissionRule(
                pattern=str(item["pattern"]),
                file_mode=_parse_mode(item.get("file_mode"), f"{key}.file_mode"),
                dir_mode=_parse_mode(item.get("dir_mode"), f"{key}.dir_mode"),
                uid=_parse_id(item.get("uid"), f"{key}.uid"),
                gid=_parse_id(item.get("gid"), f"{key}.gid"),
            )
        )
    return tuple(rules)


def _resolve_build_time_ns(resolver: ConfigResolver) -> int | None:
    value = resolver.get("package.build_date")
    if value is None:
        value = os.environ.get("SOURCE_DATE_EPOCH")
    if value is None:
        return None
    try:
        return int(value) * 1_000_000_000
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid build date {value!r}; expected Unix seconds") from None


def settings_from_resolver(resolver: ConfigResolver) -> BuildSettings:
    """Assemble BuildSettings from configuration.

    Relative paths are resolved against the descriptor directory. The result
    is not validated here; the assembler validates before writing.
    """
    base = resolver.base_dir

    root = resolver.get("package.root")
    if root is None:
        raise ConfigError("Config key 'package.root' is required", "Set package.root or pass --root")

    install_script: bytes | None = None
    script_path = resolver.get("package.install_script")
    if script_path:
        p = base / str(script_path)
        try:
            install_script = p.read_bytes()
        except OSError as e:
            raise ConfigError(f"Cannot read install script {p}: {e}") from e

    symlinks = resolver.get("package.symlinks", {})
    if not isinstance(symlinks, dict):
        raise ConfigError("Config key 'package.symlinks' must be a mapping of name to target")

    metadata = PackageMetadata(
        name=_str_or_none(resolver.get("package.name")) or "",
        version=_str_or_none(resolver.get("package.version")) or "",
        release=_str_or_none(resolver.get("package.release")) or "",
        arch=_str_or_none(resolver.get("package.arch")) or "",
        description=_str_or_none(resolver.get("package.description")),
        url=_str_or_none(resolver.get("package.url")),
        packager=_str_or_none(resolver.get("package.packager")),
        licenses=_str_tuple(resolver, "package.licenses"),
        depends=_str_tuple(resolver, "package.depends"),
        optdepends=_str_tuple(resolver, "package.optdepends"),
    )

    return BuildSettings(
        root_dir=base / str(root),
        metadata=metadata,
        install_script=install_script,
        symlinks={str(k): str(v) for k, v in symlinks.items()},
        permission_rules=parse_permission_rules(resolver.get("package.permissions", [])),
        build_time_ns=_resolve_build_time_ns(resolver),
    )
