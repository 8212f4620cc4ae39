"""CLI integration tests for sign-in and document management commands."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from usinadocs.cli import cli
from usinadocs.config import ConfigManager


def _env_with_home(tmp_path: Path, **overrides: str) -> dict[str, str]:
    """Return environment variables pointing HOME to a temp directory.

    Args:
        tmp_path: Temporary directory provided by pytest.
        **overrides: Extra variables such as ``USINADOCS__STORAGE__BACKEND``.

    Returns:
        dict[str, str]: Environment for ``CliRunner.invoke``.
    """
    env = {key: value for key, value in os.environ.items() if not key.startswith("USINADOCS__")}
    env["HOME"] = str(tmp_path / "home")
    env.update(overrides)
    return env


def _invoke_json(runner: CliRunner, args: list[str], env: dict[str, str]) -> Any:
    result = runner.invoke(cli, [*args, "--json"], env=env)
    assert result.exit_code == 0, result.output
    return json.loads(result.output)


def _login(runner: CliRunner, env: dict[str, str]) -> None:
    result = runner.invoke(
        cli, ["login", "--email", "admin@usinaedu.com.br", "--password", "admin123"], env=env
    )
    assert result.exit_code == 0, result.output
    assert "Signed in as Administrador" in result.output


def test_cli_help_displays_commands() -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["--help"])

    assert result.exit_code == 0
    assert "usinadocs organizes documents into sectors and folders" in result.output
    for command in ("login", "sector", "folder", "doc", "search", "config"):
        assert command in result.output


def test_commands_require_sign_in(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)

    result = runner.invoke(cli, ["sector", "list"], env=env)
    assert result.exit_code != 0
    assert "Not signed in" in result.output

    json_result = runner.invoke(cli, ["whoami", "--json"], env=env)
    assert json_result.exit_code == 1
    assert json.loads(json_result.output)["error"]["code"] == "not_authenticated"


def test_login_rejects_bad_credentials(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)

    result = runner.invoke(
        cli, ["login", "--email", "admin@usinaedu.com.br", "--password", "nope"], env=env
    )

    assert result.exit_code != 0
    assert "Invalid email or password" in result.output
    assert not (tmp_path / "home" / ".usinadocs" / "session.json").exists()


def test_document_workflow_on_database_backend(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)
    _login(runner, env)

    assert _invoke_json(runner, ["whoami"], env)["email"] == "admin@usinaedu.com.br"
    sectors = _invoke_json(runner, ["sector", "list"], env)["sectors"]
    assert {entry["name"] for entry in sectors} == {"Geral", "RH", "Financeiro", "Marketing", "TI"}

    sector = _invoke_json(runner, ["sector", "add", "Jurídico", "--icon", "Scale"], env)
    parent = _invoke_json(runner, ["folder", "add", sector["id"][:8], "Contratos"], env)
    child = _invoke_json(
        runner, ["folder", "add", sector["id"], "2024", "--parent", parent["id"]], env
    )
    assert child["path"] == ["Contratos", "2024"]

    source = tmp_path / "contrato.pdf"
    source.write_bytes(b"%PDF-1.4 contrato")
    upload = _invoke_json(
        runner,
        ["doc", "upload", child["id"], str(source), "--description", "Assinado"],
        env,
    )
    assert upload["failed"] == []
    document = upload["documents"][0]
    assert document["name"] == "contrato"
    assert document["type"] == "pdf"
    assert document["file"]["kind"] == "durable"

    shown = _invoke_json(runner, ["doc", "show", document["id"]], env)
    assert shown["content_available"] is True

    out_dir = tmp_path / "downloads"
    out_dir.mkdir()
    download = runner.invoke(cli, ["doc", "download", document["id"], str(out_dir)], env=env)
    assert download.exit_code == 0, download.output
    assert (out_dir / "contrato.pdf").read_bytes() == b"%PDF-1.4 contrato"

    results = _invoke_json(runner, ["search", "CONTRAT"], env)
    assert results["counts"] == {"sectors": 0, "folders": 1, "documents": 1, "total": 2}

    deleted = runner.invoke(cli, ["folder", "delete", parent["id"], "--yes"], env=env)
    assert deleted.exit_code == 0, deleted.output
    after = _invoke_json(runner, ["search", "contrat"], env)
    assert after["counts"]["total"] == 0
    counts = _invoke_json(runner, ["status"], env)["counts"]
    assert counts["documents"] == 0
    assert counts["sectors"] == 6


def test_local_backend_content_is_session_scoped(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path, USINADOCS__STORAGE__BACKEND="local")
    _login(runner, env)

    sector = _invoke_json(runner, ["sector", "list"], env)["sectors"][0]
    folder = _invoke_json(runner, ["folder", "add", sector["id"], "Rascunhos"], env)
    source = tmp_path / "nota.txt"
    source.write_text("rascunho", encoding="utf-8")
    upload = _invoke_json(runner, ["doc", "upload", folder["id"], str(source)], env)
    document = upload["documents"][0]
    assert document["file"]["kind"] == "transient"

    shown = _invoke_json(runner, ["doc", "show", document["id"]], env)
    assert shown["content_available"] is False

    download = runner.invoke(
        cli, ["doc", "download", document["id"], str(tmp_path / "out.txt")], env=env
    )
    assert download.exit_code == 0
    assert "unavailable" in download.output
    assert not (tmp_path / "out.txt").exists()


def test_edit_and_rename_commands(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)
    _login(runner, env)

    sector = _invoke_json(runner, ["sector", "add", "Compras", "--color", "#00ff00"], env)
    updated = runner.invoke(
        cli, ["sector", "update", sector["id"], "--name", "Suprimentos", "--color", ""], env=env
    )
    assert updated.exit_code == 0, updated.output

    folder = _invoke_json(runner, ["folder", "add", sector["id"], "Pedidos"], env)
    renamed = runner.invoke(cli, ["folder", "rename", folder["id"], "Ordens"], env=env)
    assert renamed.exit_code == 0, renamed.output

    listed = _invoke_json(runner, ["folder", "list", sector["id"]], env)["folders"]
    assert [entry["name"] for entry in listed] == ["Ordens"]
    refreshed = next(
        entry
        for entry in _invoke_json(runner, ["sector", "list"], env)["sectors"]
        if entry["id"] == sector["id"]
    )
    assert (refreshed["name"], refreshed["color"]) == ("Suprimentos", None)

    missing = runner.invoke(cli, ["folder", "rename", "does-not-exist", "X"], env=env)
    assert missing.exit_code != 0
    assert "No folder matches" in missing.output


def test_quiet_flag_suppresses_messages(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)
    _login(runner, env)

    result = runner.invoke(cli, ["--quiet", "sector", "add", "Silencioso"], env=env)

    assert result.exit_code == 0
    assert result.output.strip() == ""


def test_logout_discards_session(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)
    _login(runner, env)

    result = runner.invoke(cli, ["logout"], env=env)
    assert result.exit_code == 0
    assert "Signed out" in result.output

    after = runner.invoke(cli, ["status"], env=env)
    assert after.exit_code != 0


def test_config_set_updates_value_and_writes_diff(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)

    result = runner.invoke(cli, ["config", "set", "cli.search_limit", "--value", "42"], env=env)

    assert result.exit_code == 0, result.output
    assert "42" in result.output

    manager = ConfigManager(config_path=tmp_path / "home" / ".usinadocs" / "config.yaml", env={})
    assert manager.load().cli.search_limit == 42

    rejected = runner.invoke(cli, ["config", "set", "storage.backend", "--value", "cloud"], env=env)
    assert rejected.exit_code != 0


def test_config_edit_applies_changes(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)
    manager = ConfigManager(config_path=tmp_path / "home" / ".usinadocs" / "config.yaml", env={})
    manager.ensure_exists()

    def _mock_edit(text: str, **_: Any) -> str:
        return text.replace("backend: database", "backend: local")

    monkeypatch.setattr("usinadocs.cli.click.edit", _mock_edit)

    result = runner.invoke(cli, ["config", "edit"], env=env)

    assert result.exit_code == 0
    assert "updated" in result.output.lower()
    assert manager.load().storage.backend == "local"

    view = runner.invoke(cli, ["config", "view", "--no-env"], env=env)
    assert view.exit_code == 0
    assert "backend: local" in view.output


def test_logout_recovers_from_corrupt_session_file(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)
    session_file = tmp_path / "home" / ".usinadocs" / "session.json"
    session_file.parent.mkdir(parents=True)
    session_file.write_text("{broken", encoding="utf-8")

    blocked = runner.invoke(cli, ["status", "--json"], env=env)
    assert blocked.exit_code == 1
    assert json.loads(blocked.output)["error"]["code"] == "session_error"

    result = runner.invoke(cli, ["logout"], env=env)
    assert result.exit_code == 0
    assert not session_file.exists()
