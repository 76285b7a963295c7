"""Render the .PKGINFO metadata record."""

from __future__ import annotations

from .settings import PackageMetadata


def render_pkginfo(metadata: PackageMetadata, *, build_date: int, installed_size: int) -> str:
    """Return the `key = value` record in pacman's field order.

    `pkgdesc` is always present (empty when unset); `url` and `packager` are
    omitted when unset.
    """
    lines: list[str] = []

    def put(key: str, value: str | None, *, empty_if_none: bool = False) -> None:
        if value is None:
            if not empty_if_none:
                return
            value = ""
        lines.append(f"{key} = {value}")

    put("pkgname", metadata.name)
    put("pkgver", metadata.full_version)
    put("pkgdesc", metadata.description, empty_if_none=True)
    put("url", metadata.url)
    put("builddate", str(build_date))
    put("packager", metadata.packager)
    put("size", str(installed_size))
    put("arch", metadata.arch)
    for license_id in metadata.licenses:
        put("license", license_id)
    for depend in metadata.depends:
        put("depend", depend)
    for optdepend in metadata.optdepends:
        put("optdepend", optdepend)

    return "".join(line + "\n" for line in lines)
