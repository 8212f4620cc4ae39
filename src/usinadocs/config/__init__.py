"""Configuration management for usinadocs."""

from __future__ import annotations

import os
import textwrap
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

import yaml

from .exceptions import ConfigError
from .models import AuthSettings, LoggingSettings, StorageSettings, UsinaConfig
from .resolver import (
    assign_nested,
    env_to_overrides,
    flatten_for_env,
    resolve_with_precedence,
)

DEFAULT_CONFIG_PATH = Path("~/.usinadocs/config.yaml")
_CONFIG_HEADER = textwrap.dedent(
    """\
    # usinadocs configuration file
    # Manage with `usinadocs config set` or `usinadocs config edit`.
    """
)


class ConfigManager:
    """Read and write the YAML configuration file and resolve overrides."""

    def __init__(
        self,
        config_path: Path | None = None,
        *,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._config_path = (config_path or DEFAULT_CONFIG_PATH).expanduser()
        self._env = env if env is not None else os.environ

    @property
    def config_path(self) -> Path:
        """Return the resolved configuration path."""
        return self._config_path

    def load(
        self,
        *,
        cli_overrides: Mapping[str, Any] | None = None,
        include_env: bool = True,
        ensure_file: bool = True,
    ) -> UsinaConfig:
        """Return the effective configuration.

        Args:
            cli_overrides: Dotted-key overrides supplied on the command line.
            include_env: Whether ``USINADOCS__`` environment variables apply.
            ensure_file: Whether to write a default file when none exists.

        Returns:
            UsinaConfig: Validated configuration.

        Raises:
            ConfigError: If the file or any override is invalid.
        """
        if ensure_file:
            self.ensure_exists()

        return resolve_with_precedence(
            defaults=UsinaConfig(),
            file_overrides=self._read_file(),
            env_overrides=env_to_overrides(self._env) if include_env else None,
            cli_overrides=cli_overrides,
        )

    def load_file_overrides(self) -> dict[str, Any]:
        """Return raw overrides stored on disk."""
        return self._read_file()

    def save(self, config: UsinaConfig | Mapping[str, Any]) -> None:
        """Write ``config`` to disk with the standard header."""
        if isinstance(config, UsinaConfig):
            data = config.model_dump(mode="python")
        else:
            data = dict(config)
        self._config_path.parent.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
        body = yaml.safe_dump(data, sort_keys=False)
        self._config_path.write_text(
            f"{_CONFIG_HEADER}# Last updated: {stamp}\n{body}", encoding="utf-8"
        )

    def ensure_exists(self) -> Path:
        """Create a configuration file with defaults if one does not exist."""
        if not self._config_path.exists():
            self.save(UsinaConfig())
        return self._config_path

    def read_text(self) -> str:
        """Return the current configuration file contents."""
        if not self._config_path.exists():
            return ""
        return self._config_path.read_text(encoding="utf-8")

    def _read_file(self) -> dict[str, Any]:
        if not self._config_path.exists():
            return {}

        try:
            raw = yaml.safe_load(self._config_path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Failed to parse configuration file: {exc}") from exc

        if not isinstance(raw, dict):
            raise ConfigError("Configuration file must contain a mapping at the top level.")
        return raw


__all__ = [
    "ConfigManager",
    "DEFAULT_CONFIG_PATH",
    "UsinaConfig",
    "StorageSettings",
    "AuthSettings",
    "LoggingSettings",
    "resolve_with_precedence",
    "flatten_for_env",
    "assign_nested",
    "ConfigError",
]
