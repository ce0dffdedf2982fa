"""
Pako Configuration — loads and merges config from multiple sources.

Precedence (highest to lowest):
1. Explicit overrides (passed in code)
2. Environment variables (PAKO_*)
3. Project config (./pako.toml, or the path given with --config)
4. User config (~/.pako/config.toml)
5. Defaults (hardcoded)

Environment variable mapping:
    PAKO_TELEGRAM_TOKEN      → telegram.token
    PAKO_ALLOWED_CHAT_IDS    → telegram.allowed_chat_ids (comma-separated)
    PAKO_COMMANDS_DIR        → commands.dir
    PAKO_DATABASE_PATH       → database.path
    PAKO_MESSAGE_STORE_PATH  → messages.store_path
    PAKO_LOG_LEVEL           → logging.level
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, PrivateAttr

from pako.core.errors import ConfigError

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Config Sub-Models
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class TelegramConfig(BaseModel):
    """Telegram bot settings."""

    token: str = ""
    allowed_chat_ids: list[int] = Field(default_factory=list)
    api_url: str = "https://api.telegram.org"
    poll_timeout: int = 30  # seconds, long-poll

    @property
    def configured(self) -> bool:
        return bool(self.token and self.allowed_chat_ids)


class CommandsConfig(BaseModel):
    """Where YAML command definitions live."""

    dir: str = "./commands"


class DatabaseConfig(BaseModel):
    """Audit log database."""

    path: str = "./audit.db"
    audit_enabled: bool = True


class DefaultsConfig(BaseModel):
    """Default values applied to commands that don't set their own."""

    timeout: float = 60.0  # seconds
    max_output: int = 5000
    max_files_per_group: int = 10


class MessagesConfig(BaseModel):
    """Sent-message tracking used by /cleanup. Empty path disables it."""

    store_path: str = ""


class ArgumentsConfig(BaseModel):
    """Interactive argument collection."""

    timeout: float = 120.0
    sweep_interval: float = 60.0


class ConfirmConfig(BaseModel):
    """Confirmation dialogs."""

    ttl: float = 300.0
    sweep_interval: float = 60.0


class StatusConfig(BaseModel):
    """System metrics for /status."""

    disk_path: str = "/"


class LoggingConfig(BaseModel):
    """Log output."""

    dir: str = "~/.pako/logs"
    level: str = "INFO"


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Main Config
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class PakoConfig(BaseModel):
    """Root configuration for Pako."""

    telegram: TelegramConfig = Field(default_factory=TelegramConfig)
    commands: CommandsConfig = Field(default_factory=CommandsConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)
    messages: MessagesConfig = Field(default_factory=MessagesConfig)
    arguments: ArgumentsConfig = Field(default_factory=ArgumentsConfig)
    confirm: ConfirmConfig = Field(default_factory=ConfirmConfig)
    status: StatusConfig = Field(default_factory=StatusConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    # Directory relative paths are resolved against (the project config's dir)
    _base_dir: Path = PrivateAttr(default_factory=Path.cwd)

    @staticmethod
    def load(
        overrides: dict[str, Any] | None = None,
        project_path: Path | None = None,
        user_path: Path | None = None,
    ) -> PakoConfig:
        """
        Load configuration from all sources and merge.

        Precedence: overrides > env vars > project toml > user toml > defaults
        """
        merged: dict[str, Any] = {}

        # Layer 1: User config (~/.pako/config.toml)
        user_config_path = user_path or Path.home() / ".pako" / "config.toml"
        if user_config_path.exists():
            _deep_merge(merged, _load_toml(user_config_path))

        # Layer 2: Project config (./pako.toml or --config)
        project_config_path = project_path or Path.cwd() / "pako.toml"
        if project_path is not None and not project_path.exists():
            raise ConfigError(f"Config file not found: {project_path}")
        if project_config_path.exists():
            _deep_merge(merged, _load_toml(project_config_path))

        # Layer 3: Environment variables
        _deep_merge(merged, _load_from_env())

        # Layer 4: Explicit overrides
        if overrides:
            _deep_merge(merged, overrides)

        _substitute_env_vars(merged)

        try:
            config = PakoConfig(**merged)
        except Exception as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

        config._base_dir = project_config_path.resolve().parent
        return config

    def validate_for_run(self) -> None:
        """Check the settings the bot can't start without."""
        if not self.telegram.token:
            raise ConfigError("telegram.token is required")
        if not self.telegram.allowed_chat_ids:
            raise ConfigError("telegram.allowed_chat_ids must have at least one entry")

    def resolve_path(self, path: str) -> Path:
        """Resolve a configured path relative to the config file directory."""
        p = Path(path).expanduser()
        if p.is_absolute():
            return p
        return self._base_dir / p

    def get_pako_home(self) -> Path:
        """Get the Pako home directory (~/.pako)."""
        return Path.home() / ".pako"


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Internal Helpers
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def _load_toml(path: Path) -> dict[str, Any]:
    """Load a TOML file."""
    try:
        import tomllib
    except ImportError:
        import tomli as tomllib  # type: ignore[no-redef]

    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except Exception as e:
        raise ConfigError(f"Failed to load config from {path}: {e}") from e


def _load_from_env() -> dict[str, Any]:
    """Load configuration from PAKO_* environment variables."""
    result: dict[str, Any] = {}

    env_mapping = {
        "PAKO_TELEGRAM_TOKEN": ("telegram", "token"),
        "PAKO_TELEGRAM_API_URL": ("telegram", "api_url"),
        "PAKO_COMMANDS_DIR": ("commands", "dir"),
        "PAKO_DATABASE_PATH": ("database", "path"),
        "PAKO_AUDIT_ENABLED": ("database", "audit_enabled"),
        "PAKO_DEFAULT_TIMEOUT": ("defaults", "timeout"),
        "PAKO_MESSAGE_STORE_PATH": ("messages", "store_path"),
        "PAKO_LOG_LEVEL": ("logging", "level"),
    }

    for env_var, (section, key) in env_mapping.items():
        value = os.environ.get(env_var)
        if value is not None:
            result.setdefault(section, {})[key] = _convert_value(value)

    # Chat ids are a list; everything else above is a scalar
    raw_ids = os.environ.get("PAKO_ALLOWED_CHAT_IDS")
    if raw_ids is not None:
        try:
            ids = [int(part) for part in raw_ids.split(",") if part.strip()]
        except ValueError as e:
            raise ConfigError(f"PAKO_ALLOWED_CHAT_IDS must be comma-separated integers: {e}") from e
        result.setdefault("telegram", {})["allowed_chat_ids"] = ids

    return result


def _convert_value(value: str) -> Any:
    """Convert string value to appropriate type."""
    if value.lower() in ("true", "yes"):
        return True
    if value.lower() in ("false", "no"):
        return False
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        pass
    return value


def _deep_merge(base: dict, override: dict) -> None:
    """Deep merge override into base (mutates base)."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value


_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")


def _expand(value: str) -> str:
    for var_name in _ENV_PATTERN.findall(value):
        value = value.replace(f"${{{var_name}}}", os.environ.get(var_name, ""))
    return value


def _substitute_env_vars(data: dict) -> None:
    """Recursively substitute ${ENV_VAR} patterns in string values."""
    for key, value in data.items():
        if isinstance(value, dict):
            _substitute_env_vars(value)
        elif isinstance(value, str):
            data[key] = _expand(value)
        elif isinstance(value, list):
            data[key] = [_expand(item) if isinstance(item, str) else item for item in value]
