"""Command line interface.

Implements:
  pacforge build [--config PATH] [--root DIR] [--install-script PATH]
                 [--name N] [--pkgver V] [--release R] [--arch A]
                 [--packager P] [--output PATH] [--output-dir DIR] [-q|-v|-d]

Values given on the command line override the build descriptor; see
`pacforge.core.config` for the full priority order.
"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any

from pacforge import __version__
from pacforge.core.config import DEFAULT_DESCRIPTOR_NAME, ConfigResolver
from pacforge.core.diagnostics import install_jsonl_sink
from pacforge.core.errors import PacforgeError
from pacforge.core.events import get_event_bus
from pacforge.core.logging import apply_logging_policy, get_logger
from pacforge.package.output import resolve_output_path, write_package
from pacforge.package.settings import settings_from_resolver

log = get_logger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="pacforge")
    p.add_argument("--version", action="version", version=f"pacforge {__version__}")
    sub = p.add_subparsers(dest="cmd")

    build = sub.add_parser("build", help="build a .pkg.tar.xz package")
    build.add_argument("--config", dest="config", default=None)
    build.add_argument("--root", dest="root", default=None)
    build.add_argument("--install-script", dest="install_script", default=None)
    build.add_argument("--name", dest="name", default=None)
    build.add_argument("--pkgver", dest="pkgver", default=None)
    build.add_argument("--release", dest="release", default=None)
    build.add_argument("--arch", dest="arch", default=None)
    build.add_argument("--packager", dest="packager", default=None)
    build.add_argument("--output", "-o", dest="output", default=None)
    build.add_argument("--output-dir", dest="output_dir", default=None)

    level = build.add_mutually_exclusive_group()
    level.add_argument("-q", "--quiet", dest="level", action="store_const", const="quiet")
    level.add_argument("-v", "--verbose", dest="level", action="store_const", const="verbose")
    level.add_argument("-d", "--debug", dest="level", action="store_const", const="debug")
    return p


def _abs(value: str | None) -> str | None:
    if value is None:
        return None
    return str(Path(value).resolve())


def _cli_args(ns: argparse.Namespace) -> dict[str, Any]:
    """Nested dict for ConfigResolver; unset options are left out."""
    package = {
        "root": _abs(ns.root),
        "install_script": _abs(ns.install_script),
        "name": ns.name,
        "version": ns.pkgver,
        "release": ns.release,
        "arch": ns.arch,
        "packager": ns.packager,
    }
    output = {"file": _abs(ns.output), "dir": _abs(ns.output_dir)}

    cli_args: dict[str, Any] = {}
    if any(v is not None for v in package.values()):
        cli_args["package"] = {k: v for k, v in package.items() if v is not None}
    if any(v is not None for v in output.values()):
        cli_args["output"] = {k: v for k, v in output.items() if v is not None}
    if ns.level is not None:
        cli_args["logging"] = {"level": ns.level}
    return cli_args


def _descriptor_path(ns: argparse.Namespace) -> Path | None:
    if ns.config is not None:
        return Path(ns.config)
    default = Path.cwd() / DEFAULT_DESCRIPTOR_NAME
    return default if default.exists() else None


def _run_build(ns: argparse.Namespace) -> int:
    resolver = ConfigResolver(cli_args=_cli_args(ns), descriptor_path=_descriptor_path(ns))
    apply_logging_policy(resolver.resolve_logging_policy())

    sink = install_jsonl_sink(resolver=resolver)
    try:
        settings = settings_from_resolver(resolver)
        output_file = resolver.get("output.file")
        output_dir = resolver.get("output.dir", ".")
        out_path = resolve_output_path(
            settings,
            resolver.base_dir / str(output_file) if output_file else None,
            resolver.base_dir / str(output_dir),
        )
        result = write_package(settings, out_path)
    finally:
        if sink is not None:
            get_event_bus().unsubscribe_all(sink)

    log.info(
        f"built {result.name} {result.full_version} ({result.arch}): "
        f"{result.entry_count} entries, {result.installed_size} bytes installed"
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    ns = parser.parse_args(argv)

    if ns.cmd != "build":
        parser.print_help()
        return 2

    try:
        return _run_build(ns)
    except PacforgeError as e:
        log.error(str(e))
        return 1
    except OSError as e:
        log.error(f"{type(e).__name__}: {e}")
        return 1
