"""
YAML command discovery.

Every *.yaml / *.yml file under the commands directory (recursively)
defines one command:

    name: deploy
    description: Deploy the app
    command: ./deploy.sh {{.env}} {{.version | quote}}
    timeout: 5m
    confirm: true
    category: ops
    icon: 🚀
    schedule: ["09:00", "18:30"]     # or: interval: 30m
    paused: false
    arguments:
      - name: env
        type: choice
        choices: [staging, prod]
        required: true
      - name: version
        description: Version to deploy
        required: true

Files are validated when loaded. A bad schedule time, an unknown
argument type or a missing field fails the load with the file path,
so nothing malformed ever reaches the registry or the scheduler.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from pako.arguments.spec import ArgumentKind, ArgumentSpec
from pako.commands.base import Command
from pako.commands.shell import ShellCommand
from pako.core.config import DefaultsConfig
from pako.core.errors import CommandLoadError, TimeFormatError
from pako.scheduler.timeofday import TimeOfDay, parse_duration, parse_time_of_day_list
from pako.shell.executor import ShellExecutor

logger = logging.getLogger(__name__)

_EXTENSIONS = {".yaml", ".yml"}


# ━━━ Definition models ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class ArgumentDefinition(BaseModel):
    """One entry of a command's `arguments:` list."""

    name: str = Field(min_length=1)
    description: str = ""
    required: bool = False
    type: ArgumentKind = ArgumentKind.STRING
    choices: list[str] = Field(default_factory=list)
    default: str = ""
    sensitive: bool = False

    @field_validator("default", mode="before")
    @classmethod
    def _stringify_default(cls, value: Any) -> Any:
        # YAML turns `default: 3` or `default: yes` into int/bool
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (int, float)):
            return str(value)
        return value

    @field_validator("choices", mode="before")
    @classmethod
    def _stringify_choices(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [str(v) for v in value]
        return value

    @model_validator(mode="after")
    def _choices_required(self) -> ArgumentDefinition:
        if self.type == ArgumentKind.CHOICE and not self.choices:
            raise ValueError(f"choice argument {self.name!r} needs a non-empty choices list")
        return self

    def to_spec(self) -> ArgumentSpec:
        return ArgumentSpec(
            name=self.name,
            description=self.description,
            required=self.required,
            kind=self.type,
            choices=tuple(self.choices),
            default=self.default,
            sensitive=self.sensitive,
        )


class CommandDefinition(BaseModel):
    """A YAML command file, validated."""

    name: str = Field(min_length=1)
    command: str = Field(min_length=1)
    description: str = ""
    timeout: float = 0.0            # seconds; 0 means the configured default
    max_output: int = 0             # 0 means the configured default
    confirm: bool = False
    category: str = ""
    icon: str = ""
    workdir: str = ""
    quiet: bool = False
    schedule: list[TimeOfDay] = Field(default_factory=list)
    interval: timedelta = Field(default_factory=timedelta)
    paused: bool = False
    arguments: list[ArgumentDefinition] = Field(default_factory=list)
    argument_timeout: float = 0.0
    response_file: str = ""
    response_caption: str = ""
    response_cleanup: bool = False

    @field_validator("name", mode="before")
    @classmethod
    def _strip_slash(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lstrip("/")
        return value

    @field_validator("timeout", "argument_timeout", mode="before")
    @classmethod
    def _parse_seconds(cls, value: Any) -> Any:
        if value is None:
            return 0.0
        try:
            return parse_duration(value).total_seconds()
        except TimeFormatError as e:
            raise ValueError(e.message) from e

    @field_validator("interval", mode="before")
    @classmethod
    def _parse_interval(cls, value: Any) -> Any:
        if value is None or value == "":
            return timedelta(0)
        try:
            return parse_duration(value)
        except TimeFormatError as e:
            raise ValueError(e.message) from e

    @field_validator("schedule", mode="before")
    @classmethod
    def _parse_schedule(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, list):
            raise ValueError("schedule must be a list of HH:MM times")
        try:
            return parse_time_of_day_list(str(v) for v in value)
        except TimeFormatError as e:
            raise ValueError(f"invalid schedule time {e.value!r}: {e.message}") from e

    @model_validator(mode="after")
    def _unique_arguments(self) -> CommandDefinition:
        names = [a.name for a in self.arguments]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"duplicate argument names: {', '.join(duplicates)}")
        return self


# ━━━ Loader ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class CommandLoader:
    """
    Loads ShellCommands from a directory of YAML files.

    Usage:
        loader = CommandLoader(Path("./commands"), config.defaults, ShellExecutor())
        commands = loader.load()
    """

    def __init__(
        self,
        directory: Path,
        defaults: DefaultsConfig,
        executor: ShellExecutor,
    ) -> None:
        self._directory = Path(directory)
        self._defaults = defaults
        self._executor = executor

    @property
    def directory(self) -> Path:
        return self._directory

    def load(self) -> list[Command]:
        """
        Load every command definition.

        A missing directory is not an error and yields no commands.

        Raises:
            CommandLoadError: A file is unreadable or invalid, or two files
                define the same command name.
        """
        if not self._directory.exists():
            logger.info(f"Commands directory {self._directory} does not exist, no commands loaded")
            return []

        commands: list[Command] = []
        seen: dict[str, Path] = {}
        for path in sorted(p for p in self._directory.rglob("*") if p.suffix in _EXTENSIONS):
            if not path.is_file():
                continue
            command = self.load_file(path)
            if command.name in seen:
                raise CommandLoadError(
                    f"Command /{command.name} defined twice ({seen[command.name]} and {path})",
                    path=str(path),
                )
            seen[command.name] = path
            commands.append(command)
            logger.debug(f"Loaded command /{command.name} from {path.name}")

        logger.info(f"Loaded {len(commands)} command(s) from {self._directory}")
        return commands

    def load_file(self, path: Path) -> ShellCommand:
        """Parse and validate a single YAML command file."""
        try:
            raw = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as e:
            raise CommandLoadError(f"Failed to read {path}: {e}", path=str(path)) from e

        if not isinstance(raw, dict):
            raise CommandLoadError(f"{path}: expected a mapping at the top level", path=str(path))

        try:
            definition = CommandDefinition.model_validate(raw)
        except ValidationError as e:
            raise CommandLoadError(f"{path}: {_format_errors(e)}", path=str(path)) from e

        definition = self._apply_defaults(definition)
        return ShellCommand(definition, self._executor, source=path)

    def _apply_defaults(self, definition: CommandDefinition) -> CommandDefinition:
        updates: dict[str, Any] = {}
        if definition.timeout <= 0:
            updates["timeout"] = self._defaults.timeout
        if definition.max_output <= 0:
            updates["max_output"] = self._defaults.max_output
        if not definition.description:
            updates["description"] = definition.command
        return definition.model_copy(update=updates) if updates else definition


def _format_errors(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(p) for p in item["loc"]) or "definition"
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)
