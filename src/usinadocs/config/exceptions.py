"""Exceptions raised while loading configuration."""


class ConfigError(Exception):
    """Raised when configuration files or overrides are invalid."""
