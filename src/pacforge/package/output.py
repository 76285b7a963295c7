"""Write a package to a file, removing the partial file on failure."""

from __future__ import annotations

from pathlib import Path

from pacforge.core.logging import get_logger

from .assembler import BuildResult, PackageAssembler
from .permissions import PermissionResolver
from .settings import BuildSettings, default_output_name

_logger = get_logger(__name__)


def resolve_output_path(settings: BuildSettings, output: Path | None, output_dir: Path) -> Path:
    """Explicit `output` wins; otherwise `<output_dir>/<name>-<ver>-<rel>-<arch>.pkg.tar.xz`."""
    if output is not None:
        return output
    return output_dir / default_output_name(settings.metadata)


def write_package(
    settings: BuildSettings,
    output_path: Path,
    *,
    permissions: PermissionResolver | None = None,
) -> BuildResult:
    """Build `settings` into `output_path`.

    Settings are validated before the file is created, so a validation
    failure leaves no file behind. Any later failure deletes the partially
    written file and re-raises.
    """
    settings.validate()

    output_path.parent.mkdir(parents=True, exist_ok=True)
    opened = succeeded = False
    try:
        with open(output_path, "wb") as f:
            opened = True
            result = PackageAssembler(settings, permissions=permissions).build(f)
        succeeded = True
    finally:
        if opened and not succeeded:
            try:
                output_path.unlink()
            except FileNotFoundError:
                pass
            else:
                _logger.warning(f"removed partial package {output_path}")

    _logger.info(f"wrote {output_path}")
    return result
