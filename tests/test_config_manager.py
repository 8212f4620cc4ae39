"""Unit tests for configuration management."""

from pathlib import Path

import pytest

from usinadocs.config import (
    ConfigError,
    ConfigManager,
    UsinaConfig,
    flatten_for_env,
    resolve_with_precedence,
)


def _fresh_manager(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, env: dict[str, str] | None = None
) -> ConfigManager:
    monkeypatch.setenv("HOME", str(tmp_path))
    return ConfigManager(env=env or {})


def test_ensure_exists_creates_default_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)

    path = manager.ensure_exists()

    assert path == tmp_path / ".usinadocs" / "config.yaml"
    text = path.read_text(encoding="utf-8")
    assert "usinadocs configuration file" in text
    assert "Last updated:" in text

    config = manager.load(include_env=False)
    assert isinstance(config, UsinaConfig)
    assert config.storage.backend == "database"
    assert config.storage.resolved_state_dir() == tmp_path / ".usinadocs"


def test_resolve_with_precedence_respects_order(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    env = {
        "USINADOCS__STORAGE__BACKEND": "local",
        "USINADOCS__CLI__SEARCH_LIMIT": "50",
        "UNRELATED": "ignored",
    }
    manager = _fresh_manager(tmp_path, monkeypatch, env)
    manager.save({"storage": {"backend": "database", "echo_sql": True}, "cli": {"search_limit": 5}})

    config = manager.load(cli_overrides={"cli.search_limit": 7})

    assert config.storage.echo_sql is True
    # environment beats the file, CLI beats the environment
    assert config.storage.backend == "local"
    assert config.cli.search_limit == 7

    without_env = manager.load(include_env=False)
    assert without_env.storage.backend == "database"
    assert without_env.cli.search_limit == 5


def test_invalid_yaml_raises_config_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)
    manager.ensure_exists()

    manager.config_path.write_text("- not-a-mapping", encoding="utf-8")

    with pytest.raises(ConfigError):
        manager.load()


def test_flatten_for_env_renders_defaults() -> None:
    flat = flatten_for_env(UsinaConfig())

    assert flat["USINADOCS__STORAGE__BACKEND"] == "database"
    assert flat["USINADOCS__STORAGE__DATABASE_URL"] == "null"
    assert flat["USINADOCS__LOGGING__MAX_SIZE_MB"] == "10"


def test_resolve_with_precedence_invalid_value_raises() -> None:
    with pytest.raises(ConfigError):
        resolve_with_precedence(
            defaults=UsinaConfig(),
            file_overrides={"storage": {"backend": "cloud"}},
        )
    with pytest.raises(ConfigError):
        resolve_with_precedence(
            defaults=UsinaConfig(),
            file_overrides={"storage": {"unknown_key": 1}},
        )


def test_storage_paths_default_under_state_dir(tmp_path: Path) -> None:
    config = resolve_with_precedence(
        defaults=UsinaConfig(),
        cli_overrides={"storage.state_dir": str(tmp_path)},
    )

    assert config.storage.resolved_database_url() == f"sqlite:///{tmp_path / 'usinadocs.db'}"
    assert config.storage.resolved_blob_dir() == tmp_path / "blobs"
