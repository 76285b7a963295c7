"""Pytest configuration and fixtures."""

import os
import sys
from pathlib import Path

import pytest

# Add src to path (for 'pacforge.*' imports without an install)
repo_root = Path(__file__).parent.parent
sys.path.insert(0, str(repo_root / "src"))

# 2016-06-29T22:20:30.999Z
FIXED_TIME_NS = 1467238830_999_000_000


@pytest.fixture(autouse=True)
def _reset_global_state(monkeypatch):
    """Keep verbosity and bus subscribers from leaking between tests."""
    from pacforge.core.events import get_event_bus
    from pacforge.core.log_bus import get_log_bus
    from pacforge.core.logging import VerbosityLevel, set_colors, set_verbosity

    monkeypatch.delenv("SOURCE_DATE_EPOCH", raising=False)
    for key in list(os.environ):
        if key.startswith("PACFORGE_"):
            monkeypatch.delenv(key)

    set_verbosity(VerbosityLevel.NORMAL)
    set_colors(False)
    get_event_bus().clear()
    get_log_bus().clear()
    yield
    set_verbosity(VerbosityLevel.NORMAL)
    get_event_bus().clear()
    get_log_bus().clear()


def set_mtime(path: Path, mtime_ns: int = FIXED_TIME_NS) -> None:
    os.utime(path, ns=(mtime_ns, mtime_ns), follow_symlinks=False)


@pytest.fixture
def payload_root(tmp_path):
    """Payload tree with opt/test.txt, all mtimes fixed.

    Returns:
        Path to the root directory
    """
    root = tmp_path / "root"
    (root / "opt").mkdir(parents=True)
    test_txt = root / "opt" / "test.txt"
    test_txt.write_bytes(b"hello pacman\n")
    set_mtime(test_txt)
    set_mtime(root / "opt")
    return root


@pytest.fixture
def metadata():
    from pacforge.package import PackageMetadata

    return PackageMetadata(name="demo", version="1.0.0", release="1", arch="any")


@pytest.fixture
def isolated_resolver_paths(tmp_path):
    """User/system config paths that do not exist."""
    return {
        "user_config_path": tmp_path / "no-user.yaml",
        "system_config_path": tmp_path / "no-system.yaml",
    }


@pytest.fixture
def fixed_time_ns():
    return FIXED_TIME_NS


@pytest.fixture
def touch():
    """Return a helper that pins a path's mtime (symlinks are not followed)."""
    return set_mtime
