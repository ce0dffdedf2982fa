"""Tests for CLI commands."""

import asyncio
import textwrap

import pytest
from typer.testing import CliRunner

from pako import __version__
from pako.cli.main import app
from pako.store.audit import AuditEntry, AuditLog


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def project(tmp_path, monkeypatch):
    """A pako.toml pointing at ./commands and ./audit.db beside it."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("pathlib.Path.home", lambda: tmp_path / "home")
    config = tmp_path / "pako.toml"
    config.write_text(
        textwrap.dedent("""
            [telegram]
            token = "123456:secret-token"
            allowed_chat_ids = [42]

            [commands]
            dir = "./commands"

            [database]
            path = "./audit.db"
        """)
    )
    (tmp_path / "commands").mkdir()
    return tmp_path


def test_version(runner):
    """pako version shows version."""
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_check_lists_commands(runner, project):
    (project / "commands" / "backup.yaml").write_text(
        textwrap.dedent("""
            name: backup
            description: Nightly backup
            command: echo backing up
            confirm: true
            schedule: ["02:30"]
        """)
    )

    result = runner.invoke(app, ["check", "--config", str(project / "pako.toml")])

    assert result.exit_code == 0, result.stdout
    assert "/backup" in result.stdout
    assert "1 command(s) OK" in result.stdout


def test_check_reports_invalid_file(runner, project):
    (project / "commands" / "broken.yaml").write_text("name: broken\n")

    result = runner.invoke(app, ["check", "-c", str(project / "pako.toml")])

    assert result.exit_code == 1
    assert "✗" in result.stdout


def test_check_empty_directory(runner, project):
    result = runner.invoke(app, ["check", "-c", str(project / "pako.toml")])
    assert result.exit_code == 0
    assert "No commands found" in result.stdout


def test_missing_config_file(runner, tmp_path):
    result = runner.invoke(app, ["check", "-c", str(tmp_path / "absent.toml")])
    assert result.exit_code == 1
    assert "Config error" in result.stdout


def test_run_requires_chat_ids(runner, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("pathlib.Path.home", lambda: tmp_path / "home")
    monkeypatch.delenv("PAKO_ALLOWED_CHAT_IDS", raising=False)
    config = tmp_path / "pako.toml"
    config.write_text('[telegram]\ntoken = "t"\n')

    result = runner.invoke(app, ["run", "-c", str(config)])

    assert result.exit_code == 1
    assert "allowed_chat_ids" in result.stdout


def test_history(runner, project):
    async def seed():
        audit = AuditLog(project / "audit.db")
        await audit.initialize()
        await audit.log(AuditEntry(chat_id=42, command="deploy", args="prod", exit_code=0, duration_ms=12))
        await audit.close()

    asyncio.run(seed())

    result = runner.invoke(app, ["history", "-c", str(project / "pako.toml")])

    assert result.exit_code == 0, result.stdout
    assert "/deploy" in result.stdout


def test_history_without_database(runner, project):
    result = runner.invoke(app, ["history", "-c", str(project / "pako.toml")])
    assert result.exit_code == 0
    assert "No audit log yet" in result.stdout


def test_config_masks_token(runner, project):
    result = runner.invoke(app, ["config", "-c", str(project / "pako.toml")])
    assert result.exit_code == 0
    assert "secret-token" not in result.stdout
    assert "1234…" in result.stdout
    assert "Commands dir:" in result.stdout
