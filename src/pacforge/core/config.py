"""Configuration resolver with layered priority.

Priority (highest to lowest):
1. CLI arguments
2. Environment variables (PACFORGE_*)
3. Build descriptor (pacforge.yaml of the package being built)
4. Config files (user > system)
5. Defaults
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from pacforge.core.errors import ConfigError

ALLOWED_LOGGING_LEVELS = frozenset({"quiet", "normal", "verbose", "debug"})
DEFAULT_LOGGING_LEVEL = "normal"
DEFAULT_DESCRIPTOR_NAME = "pacforge.yaml"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class LoggingPolicy:
    """Resolved, immutable logging policy."""

    level_name: str  # quiet | normal | verbose | debug
    emit_info: bool
    emit_debug: bool
    color: bool


class ConfigResolver:
    """Resolve configuration with strict layered priority.

    Example:
        resolver = ConfigResolver(
            cli_args={'package': {'release': '2'}},
            descriptor_path=Path('pacforge.yaml'),
        )

        release, source = resolver.resolve('package.release')
        # release = '2', source = 'cli'
    """

    def __init__(
        self,
        cli_args: dict[str, Any] | None = None,
        descriptor_path: Path | None = None,
        user_config_path: Path | None = None,
        system_config_path: Path | None = None,
        defaults: dict[str, Any] | None = None,
    ) -> None:
        """Initialize config resolver.

        Args:
            cli_args: Arguments from CLI (highest priority), nested dicts
            descriptor_path: Build descriptor; relative paths inside it are
                resolved against its directory
            user_config_path: Path to user config file
            system_config_path: Path to system config file
            defaults: Default values (lowest priority)
        """
        self.cli_args = cli_args or {}
        self.descriptor_path = descriptor_path
        self.user_config_path = user_config_path or Path.home() / ".config/pacforge/config.yaml"
        self.system_config_path = system_config_path or Path("/etc/pacforge/config.yaml")
        self.defaults = defaults if defaults is not None else self._default_config()

        self._descriptor: dict[str, Any] | None = None
        self._user_config: dict[str, Any] | None = None
        self._system_config: dict[str, Any] | None = None

    @property
    def base_dir(self) -> Path:
        """Directory that relative paths in configuration are resolved against."""
        if self.descriptor_path is not None:
            return self.descriptor_path.resolve().parent
        return Path.cwd()

    def resolve(self, key: str) -> tuple[Any, str]:
        """Resolve config value with priority.

        Args:
            key: Config key (supports dot notation: 'package.name')

        Returns:
            (value, source) tuple

        Raises:
            ConfigError: If key not found in any source
        """
        value = self._get_nested(self.cli_args, key)
        if value is not None:
            return value, "cli"

        value = self._from_env(key)
        if value is not None:
            return value, "env"

        value = self._get_nested(self._get_descriptor(), key)
        if value is not None:
            return value, "descriptor"

        value = self._get_nested(self._get_user_config(), key)
        if value is not None:
            return value, "user_config"

        value = self._get_nested(self._get_system_config(), key)
        if value is not None:
            return value, "system_config"

        value = self._get_nested(self.defaults, key)
        if value is not None:
            return value, "default"

        raise ConfigError(f"Config key '{key}' not found in any source")

    def get(self, key: str, default: Any = None) -> Any:
        """Resolve a key, returning `default` when no source provides it."""
        try:
            value, _src = self.resolve(key)
        except ConfigError as e:
            if "not found in any source" in str(e):
                return default
            raise
        return value

    def get_bool(self, key: str, default: bool = False) -> bool:
        """Resolve a boolean key; env values arrive as strings and are normalized."""
        value = self.get(key)
        if value is None:
            return default
        if isinstance(value, bool):
            return value
        s = str(value).strip().lower()
        if s in _TRUE_VALUES:
            return True
        if s in _FALSE_VALUES:
            return False
        raise ConfigError(f"Config key '{key}' must be a bool, got {value!r}")

    def resolve_logging_level(self) -> str:
        """Resolve and validate logging.level.

        Allowed values (after normalization):
            quiet | normal | verbose | debug

        Raises:
            ConfigError: If the resolved value is invalid.
        """
        key = "logging.level"
        value = self.get(key)
        if value is None:
            return DEFAULT_LOGGING_LEVEL
        if not isinstance(value, str):
            raise ConfigError(f"Config key '{key}' must be a string, got {type(value).__name__}")

        norm = value.strip().lower()
        if norm not in ALLOWED_LOGGING_LEVELS:
            allowed = ", ".join(sorted(ALLOWED_LOGGING_LEVELS))
            raise ConfigError(f"Invalid '{key}': {value!r}. Allowed values: {allowed}")
        return norm

    def resolve_logging_policy(self) -> LoggingPolicy:
        """Resolve canonical logging policy (side-effect free)."""
        level_name = self.resolve_logging_level()
        return LoggingPolicy(
            level_name=level_name,
            emit_info=level_name != "quiet",
            emit_debug=level_name == "debug",
            color=self.get_bool("logging.color", True),
        )

    def _from_env(self, key: str) -> Any | None:
        """Get value from environment variables.

        Environment variable format: PACFORGE_KEY_NAME
        Example: PACFORGE_PACKAGE_PACKAGER, PACFORGE_LOGGING_LEVEL
        """
        env_key = f"PACFORGE_{key.upper().replace('.', '_')}"
        return os.environ.get(env_key)

    def _get_descriptor(self) -> dict[str, Any]:
        if self._descriptor is None:
            if self.descriptor_path is None:
                self._descriptor = {}
            else:
                if not self.descriptor_path.exists():
                    raise ConfigError(
                        f"Build descriptor not found: {self.descriptor_path}",
                        f"Create {DEFAULT_DESCRIPTOR_NAME} or pass --config",
                    )
                self._descriptor = self._load_yaml(self.descriptor_path)
        return self._descriptor

    def _get_user_config(self) -> dict[str, Any]:
        """Load user config file (cached)."""
        if self._user_config is None:
            self._user_config = self._load_yaml(self.user_config_path)
        return self._user_config

    def _get_system_config(self) -> dict[str, Any]:
        """Load system config file (cached)."""
        if self._system_config is None:
            self._system_config = self._load_yaml(self.system_config_path)
        return self._system_config

    def _load_yaml(self, path: Path) -> dict[str, Any]:
        """Load YAML file; a missing file is an empty layer."""
        if not path.exists():
            return {}

        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to load config from {path}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping at top level")
        return data

    def _get_nested(self, data: dict[str, Any], key: str) -> Any | None:
        """Get nested value using dot notation.

        Example:
            data = {'package': {'name': 'demo'}}
            _get_nested(data, 'package.name') -> 'demo'
        """
        current: Any = data

        for part in key.split("."):
            if not isinstance(current, dict):
                return None
            current = current.get(part)
            if current is None:
                return None

        return current

    @staticmethod
    def _default_config() -> dict[str, Any]:
        """Default configuration."""
        return {
            "package": {
                "release": "1",
                "arch": "any",
                "licenses": [],
                "depends": [],
                "optdepends": [],
                "symlinks": {},
                "permissions": [],
            },
            "output": {
                "dir": ".",
            },
            "logging": {
                "level": DEFAULT_LOGGING_LEVEL,
                "color": True,
            },
            "diagnostics": {
                "enabled": False,
            },
        }
