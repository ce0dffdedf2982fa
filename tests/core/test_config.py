"""Tests for the Config system."""

import os
import pytest
from pathlib import Path
from pako.core.config import PakoConfig, _deep_merge, _substitute_env_vars, _convert_value
from pako.core.errors import ConfigError


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch):
    """No stray pako.toml, user config or PAKO_* variables."""
    monkeypatch.chdir(tmp_path)
    for name in list(os.environ):
        if name.startswith("PAKO_"):
            monkeypatch.delenv(name)


def load(**kwargs) -> PakoConfig:
    kwargs.setdefault("user_path", Path("/nonexistent/config.toml"))
    return PakoConfig.load(**kwargs)


def test_default_config():
    """Default config has sensible values."""
    config = PakoConfig()

    assert config.telegram.token == ""
    assert config.telegram.allowed_chat_ids == []
    assert config.telegram.api_url == "https://api.telegram.org"
    assert config.commands.dir == "./commands"
    assert config.database.audit_enabled is True
    assert config.defaults.timeout == 60
    assert config.defaults.max_output == 5000
    assert config.defaults.max_files_per_group == 10
    assert config.messages.store_path == ""
    assert config.confirm.ttl == 300
    assert config.arguments.timeout == 120


def test_load_project_toml(tmp_path):
    path = tmp_path / "bot.toml"
    path.write_text(
        "[telegram]\n"
        'token = "123:abc"\n'
        "allowed_chat_ids = [42, -1001]\n"
        "\n"
        "[defaults]\n"
        "timeout = 15\n"
    )

    config = load(project_path=path)

    assert config.telegram.token == "123:abc"
    assert config.telegram.allowed_chat_ids == [42, -1001]
    assert config.telegram.configured
    assert config.defaults.timeout == 15
    # Untouched sections keep their defaults
    assert config.defaults.max_output == 5000


def test_user_config_is_overridden_by_project(tmp_path):
    user = tmp_path / "user.toml"
    user.write_text('[commands]\ndir = "/etc/pako/commands"\n[logging]\nlevel = "DEBUG"\n')
    project = tmp_path / "pako.toml"
    project.write_text('[commands]\ndir = "./cmds"\n')

    config = PakoConfig.load(project_path=project, user_path=user)

    assert config.commands.dir == "./cmds"
    assert config.logging.level == "DEBUG"


def test_load_with_overrides():
    """Explicit overrides take highest precedence."""
    config = load(overrides={"telegram": {"token": "t"}, "defaults": {"max_output": 100}})

    assert config.telegram.token == "t"
    assert config.defaults.max_output == 100
    assert config.defaults.timeout == 60


def test_env_var_loading(monkeypatch):
    """PAKO_* environment variables are loaded."""
    monkeypatch.setenv("PAKO_TELEGRAM_TOKEN", "999:xyz")
    monkeypatch.setenv("PAKO_ALLOWED_CHAT_IDS", "1, 2,3")
    monkeypatch.setenv("PAKO_AUDIT_ENABLED", "false")
    monkeypatch.setenv("PAKO_DEFAULT_TIMEOUT", "90")
    monkeypatch.setenv("PAKO_MESSAGE_STORE_PATH", "/var/lib/pako/messages.json")

    config = load()

    assert config.telegram.token == "999:xyz"
    assert config.telegram.allowed_chat_ids == [1, 2, 3]
    assert config.database.audit_enabled is False
    assert config.defaults.timeout == 90
    assert config.messages.store_path == "/var/lib/pako/messages.json"


def test_bad_chat_id_env(monkeypatch):
    monkeypatch.setenv("PAKO_ALLOWED_CHAT_IDS", "12,abc")
    with pytest.raises(ConfigError):
        load()


def test_env_var_substitution(monkeypatch):
    """${VAR} in config values gets replaced with env var values."""
    monkeypatch.setenv("MY_TOKEN", "secret123")
    data = {"key": "${HOME}/something", "nested": {"token": "${MY_TOKEN}"}, "list": ["${MY_TOKEN}", 3]}

    _substitute_env_vars(data)

    assert data["key"].endswith("/something")
    assert "${HOME}" not in data["key"]
    assert data["nested"]["token"] == "secret123"
    assert data["list"] == ["secret123", 3]


def test_token_from_env_reference(tmp_path, monkeypatch):
    monkeypatch.setenv("BOT_TOKEN", "42:from-env")
    path = tmp_path / "pako.toml"
    path.write_text('[telegram]\ntoken = "${BOT_TOKEN}"\n')

    assert load(project_path=path).telegram.token == "42:from-env"


def test_deep_merge():
    base = {"a": 1, "b": {"c": 2, "d": 3}, "e": 5}
    override = {"b": {"c": 20, "f": 6}, "g": 7}

    _deep_merge(base, override)

    assert base == {"a": 1, "b": {"c": 20, "d": 3, "f": 6}, "e": 5, "g": 7}


def test_convert_value():
    assert _convert_value("true") is True
    assert _convert_value("no") is False
    assert _convert_value("42") == 42
    assert _convert_value("2.5") == 2.5
    assert _convert_value("hello") == "hello"


def test_missing_explicit_config_file():
    with pytest.raises(ConfigError, match="Config file not found"):
        load(project_path=Path("/nonexistent/pako.toml"))


def test_malformed_toml(tmp_path):
    path = tmp_path / "pako.toml"
    path.write_text("[telegram\ntoken = ")
    with pytest.raises(ConfigError, match="Failed to load config"):
        load(project_path=path)


def test_invalid_values(tmp_path):
    path = tmp_path / "pako.toml"
    path.write_text('[defaults]\ntimeout = "soon"\n')
    with pytest.raises(ConfigError, match="Invalid configuration"):
        load(project_path=path)


def test_validate_for_run():
    config = PakoConfig()
    with pytest.raises(ConfigError, match="token"):
        config.validate_for_run()

    config = load(overrides={"telegram": {"token": "t"}})
    with pytest.raises(ConfigError, match="allowed_chat_ids"):
        config.validate_for_run()

    load(overrides={"telegram": {"token": "t", "allowed_chat_ids": [1]}}).validate_for_run()


def test_resolve_path_is_relative_to_config_file(tmp_path):
    conf_dir = tmp_path / "etc"
    conf_dir.mkdir()
    path = conf_dir / "pako.toml"
    path.write_text("")

    config = load(project_path=path)

    assert config.resolve_path("./commands") == conf_dir.resolve() / "commands"
    assert config.resolve_path("/abs/audit.db") == Path("/abs/audit.db")


def test_get_pako_home():
    assert PakoConfig().get_pako_home().is_absolute()
