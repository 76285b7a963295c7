"""pacforge core: configuration, errors, logging and events."""

from pacforge.core.config import ConfigResolver, LoggingPolicy
from pacforge.core.errors import (
    ConfigError,
    DuplicatePathError,
    InvalidPermissionsError,
    PacforgeError,
    UnsupportedFileTypeError,
    ValidationError,
)
from pacforge.core.events import EventBus, get_event_bus
from pacforge.core.logging import VerbosityLevel, get_logger, get_verbosity, set_verbosity

__all__ = [
    "ConfigError",
    "ConfigResolver",
    "DuplicatePathError",
    "EventBus",
    "InvalidPermissionsError",
    "LoggingPolicy",
    "PacforgeError",
    "UnsupportedFileTypeError",
    "ValidationError",
    "VerbosityLevel",
    "get_event_bus",
    "get_logger",
    "get_verbosity",
    "set_verbosity",
]
