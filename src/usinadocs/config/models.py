"""Configuration models describing usinadocs settings."""

from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class UsinaBaseModel(BaseModel):
    """Shared configuration for usinadocs Pydantic models."""

    model_config = ConfigDict(extra="forbid")


class StorageSettings(UsinaBaseModel):
    """Storage backend selection and locations.

    Attributes:
        backend: Which persistence adapter to build at startup.
        state_dir: Directory holding local state, the session file, and logs.
        database_url: SQLAlchemy URL for the database backend.
        blob_dir: Directory used as object storage for uploaded content.
        seed_default_sectors: Whether a new store receives the default sectors.
        echo_sql: Whether SQLAlchemy should log emitted SQL.
    """

    backend: Literal["database", "local"] = "database"
    state_dir: str = "~/.usinadocs"
    database_url: Optional[str] = None
    blob_dir: Optional[str] = None
    seed_default_sectors: bool = True
    echo_sql: bool = False

    def resolved_state_dir(self) -> Path:
        """Return the expanded state directory path."""
        return Path(self.state_dir).expanduser()

    def resolved_database_url(self) -> str:
        """Return the configured database URL or the SQLite file default."""
        if self.database_url:
            return self.database_url
        return f"sqlite:///{self.resolved_state_dir() / 'usinadocs.db'}"

    def resolved_blob_dir(self) -> Path:
        """Return the configured blob directory or the default under the state dir."""
        if self.blob_dir:
            return Path(self.blob_dir).expanduser()
        return self.resolved_state_dir() / "blobs"


class AuthSettings(UsinaBaseModel):
    """Credentials accepted by the mocked sign-in check.

    Attributes:
        user_id: Identifier stamped on created records.
        email: Accepted sign-in email.
        password: Accepted sign-in password.
        name: Display name of the signed-in user.
    """

    user_id: str = "1"
    email: str = "admin@usinaedu.com.br"
    password: str = "admin123"
    name: str = "Administrador"


class LoggingSettings(UsinaBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
        max_size_mb: Maximum log size before rotation.
        backup_count: Number of historical log files to retain.
    """

    level: str = "WARNING"
    max_size_mb: int = 10
    backup_count: int = 5


class CLIOptions(UsinaBaseModel):
    """CLI behavior defaults and presentation preferences.

    Attributes:
        quiet_default: Whether commands suppress non-error output by default.
        search_limit: Maximum number of rows rendered per search section.
    """

    quiet_default: bool = False
    search_limit: int = 20


class UsinaConfig(UsinaBaseModel):
    """Top-level configuration struct for usinadocs.

    Attributes:
        storage: Persistence backend settings.
        auth: Mocked credential settings.
        logging: Logging configuration.
        cli: CLI presentation defaults.
    """

    storage: StorageSettings = Field(default_factory=StorageSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cli: CLIOptions = Field(default_factory=CLIOptions)


__all__ = [
    "UsinaBaseModel",
    "StorageSettings",
    "AuthSettings",
    "LoggingSettings",
    "CLIOptions",
    "UsinaConfig",
]
