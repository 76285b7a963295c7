"""Package assembly engine."""

from .assembler import BuildResult, PackageAssembler, build_package
from .checksums import compute_digests, digest_bytes
from .entry import EntrySet, PackageEntry, normalize_entry_path
from .mtree import MtreeWriter, escape_filename, render_mtree, unescape_filename
from .output import resolve_output_path, write_package
from .permissions import PermissionPolicy, PermissionRule
from .pkginfo import render_pkginfo
from .settings import BuildSettings, PackageMetadata, default_output_name, settings_from_resolver
from .types import DEFAULTS, ContentDigest, EntryKind, FilePermissions, PermissionDefaults

__all__ = [
    "DEFAULTS",
    "BuildResult",
    "BuildSettings",
    "ContentDigest",
    "EntryKind",
    "EntrySet",
    "FilePermissions",
    "MtreeWriter",
    "PackageAssembler",
    "PackageEntry",
    "PackageMetadata",
    "PermissionDefaults",
    "PermissionPolicy",
    "PermissionRule",
    "build_package",
    "compute_digests",
    "default_output_name",
    "digest_bytes",
    "escape_filename",
    "normalize_entry_path",
    "render_mtree",
    "render_pkginfo",
    "resolve_output_path",
    "settings_from_resolver",
    "unescape_filename",
    "write_package",
]
