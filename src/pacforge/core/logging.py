"""Centralized logging for pacforge.

Four verbosity levels:
- QUIET (0): warnings + errors
- NORMAL (1): info + warnings + errors
- VERBOSE (2): per-entry progress
- DEBUG (3): everything, including digests and resolved permissions

Usage:
    from pacforge.core.logging import get_logger, set_verbosity

    logger = get_logger(__name__)
    set_verbosity(2)

    logger.verbose("adding opt/app/bin/tool")
    logger.info("built demo-1.0-1-any.pkg.tar.xz")
"""

from __future__ import annotations

import sys
from enum import IntEnum

from pacforge.core.config import LoggingPolicy
from pacforge.core.log_bus import LogRecord, get_log_bus


class VerbosityLevel(IntEnum):
    """Verbosity levels for pacforge."""

    QUIET = 0
    NORMAL = 1
    VERBOSE = 2
    DEBUG = 3


_VERBOSITY: VerbosityLevel = VerbosityLevel.NORMAL
_USE_COLORS: bool = True


def set_verbosity(level: int | VerbosityLevel) -> None:
    """Set global verbosity level.

    Args:
        level: Verbosity level (0-3 or VerbosityLevel enum)
    """
    global _VERBOSITY
    _VERBOSITY = VerbosityLevel(level)


def get_verbosity() -> VerbosityLevel:
    return _VERBOSITY


def apply_logging_policy(policy: LoggingPolicy) -> None:
    """Map a resolved LoggingPolicy onto the global verbosity."""
    if policy.level_name == "debug":
        set_verbosity(VerbosityLevel.DEBUG)
    elif policy.level_name == "verbose":
        set_verbosity(VerbosityLevel.VERBOSE)
    elif policy.emit_info:
        set_verbosity(VerbosityLevel.NORMAL)
    else:
        set_verbosity(VerbosityLevel.QUIET)
    set_colors(policy.color)


def set_colors(enabled: bool) -> None:
    global _USE_COLORS
    _USE_COLORS = enabled


class PacforgeLogger:
    """Logger with verbosity support."""

    COLORS = {
        "DEBUG": "\033[36m",
        "VERBOSE": "\033[34m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "RESET": "\033[0m",
    }

    def __init__(self, name: str):
        self.name = name

    def _format_message(self, level_name: str, message: str) -> str:
        stream = sys.stderr if level_name == "ERROR" else sys.stdout
        if _USE_COLORS and stream.isatty():
            color = self.COLORS.get(level_name, "")
            reset = self.COLORS["RESET"]
            return f"{color}[{level_name.lower()}]{reset} {message}"
        return f"[{level_name.lower()}] {message}"

    def _log(self, level: VerbosityLevel, level_name: str, message: str) -> None:
        if level > _VERBOSITY:
            return

        plain = f"[{level_name.lower()}] {message}"
        get_log_bus().publish(LogRecord(level_name=level_name, plain=plain, logger_name=self.name))

        formatted = self._format_message(level_name, message)
        print(formatted, file=sys.stderr if level_name == "ERROR" else sys.stdout)

    def debug(self, message: str) -> None:
        self._log(VerbosityLevel.DEBUG, "DEBUG", message)

    def verbose(self, message: str) -> None:
        self._log(VerbosityLevel.VERBOSE, "VERBOSE", message)

    def info(self, message: str) -> None:
        self._log(VerbosityLevel.NORMAL, "INFO", message)

    def warning(self, message: str) -> None:
        self._log(VerbosityLevel.QUIET, "WARNING", message)

    def error(self, message: str) -> None:
        """Log error message (always shown)."""
        self._log(VerbosityLevel.QUIET, "ERROR", message)


_LOGGERS: dict[str, PacforgeLogger] = {}


def get_logger(name: str = __name__) -> PacforgeLogger:
    """Get logger instance for module.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Logger instance
    """
    if name not in _LOGGERS:
        _LOGGERS[name] = PacforgeLogger(name)

    return _LOGGERS[name]
