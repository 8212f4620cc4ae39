"""Configuration resolution helpers."""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from copy import deepcopy
from typing import Any, Dict, Iterator, Mapping, Tuple

import yaml
from pydantic import ValidationError

from .exceptions import ConfigError
from .models import UsinaConfig

ENV_PREFIX = "USINADOCS__"


def resolve_with_precedence(
    *,
    defaults: UsinaConfig,
    file_overrides: Mapping[str, Any] | None = None,
    env_overrides: Mapping[str, Any] | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> UsinaConfig:
    """Layer overrides on top of ``defaults`` and validate the result.

    Later sources win: file values override defaults, environment values
    override the file, and CLI values override everything.

    Args:
        defaults: Baseline configuration.
        file_overrides: Mapping read from the YAML configuration file.
        env_overrides: Nested mapping extracted from ``USINADOCS__`` variables.
        cli_overrides: Mapping keyed by dotted paths such as ``storage.backend``.

    Returns:
        UsinaConfig: Validated configuration.

    Raises:
        ConfigError: If an override source is malformed or a value is invalid.
    """
    merged = defaults.model_dump(mode="python")
    layers = (("file", file_overrides), ("environment", env_overrides), ("cli", cli_overrides))
    for source_name, source in layers:
        if source is None:
            continue
        merged = _deep_merge(merged, _expand_dotted(source, source_name))

    try:
        return UsinaConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration values: {exc}") from exc


def flatten_for_env(config: UsinaConfig) -> Dict[str, str]:
    """Render every leaf setting as a ``USINADOCS__SECTION__KEY`` variable."""
    flat: Dict[str, str] = {}
    for path, value in _leaves(config.model_dump(mode="python"), ()):
        if isinstance(value, list):
            rendered = yaml.safe_dump(value, default_flow_style=True).strip()
        elif value is None:
            rendered = "null"
        else:
            rendered = str(value)
        flat[ENV_PREFIX + "__".join(part.upper() for part in path)] = rendered
    return flat


def env_to_overrides(env: Mapping[str, str]) -> dict[str, Any]:
    """Extract nested overrides from ``USINADOCS__`` environment variables.

    Values are parsed as YAML literals so ``true`` and ``42`` become typed values.
    """
    overrides: dict[str, Any] = {}
    for key, raw_value in env.items():
        if not key.startswith(ENV_PREFIX):
            continue
        segments = [segment.lower() for segment in key[len(ENV_PREFIX) :].split("__") if segment]
        if not segments:
            continue
        try:
            value = yaml.safe_load(raw_value)
        except yaml.YAMLError:
            value = raw_value
        assign_nested(overrides, segments, value)
    return overrides


def assign_nested(target: dict[str, Any], path: list[str], value: Any) -> None:
    """Set ``value`` at ``path`` inside ``target``, creating mappings as needed.

    Raises:
        ConfigError: If a non-mapping value sits on the path.
    """
    node = target
    for segment in path[:-1]:
        child = node.setdefault(segment, {})
        if not isinstance(child, dict):
            raise ConfigError(f"Cannot assign into '{segment}' because it is not a mapping.")
        node = child
    node[path[-1]] = value


def _expand_dotted(source: Mapping[str, Any], source_name: str) -> dict[str, Any]:
    if not isinstance(source, MappingABC):
        raise ConfigError(f"{source_name.capitalize()} overrides must be a mapping.")

    expanded: dict[str, Any] = {}
    for key, value in source.items():
        if not isinstance(key, str):
            raise ConfigError(f"{source_name.capitalize()} override keys must be strings.")
        if isinstance(value, MappingABC):
            value = _expand_dotted(value, source_name)
        path = key.split(".")
        node = expanded
        for segment in path[:-1]:
            child = node.setdefault(segment, {})
            if not isinstance(child, dict):
                raise ConfigError(
                    f"{source_name.capitalize()} override for {key} conflicts with existing value."
                )
            node = child
        leaf = path[-1]
        if isinstance(value, dict) and isinstance(node.get(leaf), dict):
            node[leaf] = _deep_merge(node[leaf], value)
        else:
            node[leaf] = value
    return expanded


def _deep_merge(base: Mapping[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    merged = deepcopy(dict(base))
    for key, value in overrides.items():
        current = merged.get(key)
        if isinstance(value, MappingABC) and isinstance(current, MappingABC):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = deepcopy(value)
    return merged


def _leaves(
    data: Mapping[str, Any], prefix: Tuple[str, ...]
) -> Iterator[Tuple[Tuple[str, ...], Any]]:
    for key, value in data.items():
        path = prefix + (str(key),)
        if isinstance(value, dict):
            yield from _leaves(value, path)
        else:
            yield path, value


__all__ = [
    "ENV_PREFIX",
    "resolve_with_precedence",
    "flatten_for_env",
    "env_to_overrides",
    "assign_nested",
]
