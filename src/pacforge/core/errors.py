"""Error handling with friendly messages."""

from __future__ import annotations


class PacforgeError(Exception):
    """Base exception for all pacforge errors."""

    def __init__(self, message: str, suggestion: str | None = None) -> None:
        self.message = message
        self.suggestion = suggestion
        super().__init__(message)

    def __str__(self) -> str:
        if self.suggestion:
            return f"{self.message}\nSuggestion: {self.suggestion}"
        return self.message


class ConfigError(PacforgeError):
    """Configuration error."""

    pass


class ValidationError(PacforgeError):
    """Build settings failed validation (raised before any output is written)."""

    pass


class InvalidPermissionsError(PacforgeError):
    """Mode, uid or gid outside the allowed range."""

    pass


class DuplicatePathError(PacforgeError):
    """Two entries claim the same package path."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(
            f"Duplicate path '{path}'",
            "Remove the declared symlink or the payload file with the same name",
        )


class UnsupportedFileTypeError(PacforgeError):
    """Payload contains something other than a file, directory or symlink."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(
            f"Unsupported file type: '{path}'",
            "Only regular files, directories and symlinks can be packaged",
        )
