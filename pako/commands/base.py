"""
Command interface and capability set.

A Command is anything an operator can invoke from chat. Optional behaviour
(confirmation, custom timeout, scheduling, argument collection, file
responses, ...) is advertised through an explicit capability set so the
bot and scheduler never need to inspect concrete types.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import Protocol

from pako.arguments.spec import ArgumentSpec
from pako.scheduler.timeofday import TimeOfDay


class Capability(str, Enum):
    """Optional behaviour a command opts into."""

    CONFIRM = "confirm"
    TIMEOUT = "timeout"
    FILE_RESPONSE = "file_response"
    SCHEDULE = "schedule"
    ARGUMENTS = "arguments"
    CATEGORY = "category"
    QUIET = "quiet"


@dataclass(frozen=True, slots=True)
class CommandMetadata:
    """Execution limits and gating."""

    timeout: float = 60.0
    max_output: int = 5000
    require_confirm: bool = False


@dataclass(frozen=True, slots=True)
class CategoryInfo:
    """Menu grouping."""

    name: str = ""
    icon: str = ""


@dataclass(frozen=True, slots=True)
class ScheduleSpec:
    """When a command fires unattended."""

    times: tuple[TimeOfDay, ...] = ()
    interval: timedelta = field(default_factory=timedelta)
    initial_paused: bool = False

    @property
    def scheduled(self) -> bool:
        return bool(self.times) or self.interval > timedelta(0)


@dataclass(frozen=True, slots=True)
class FileResponse:
    """A file the command produced that should be sent back to the chat."""

    path: str
    caption: str = ""
    cleanup: bool = False


class OutputWriter(Protocol):
    """Where a command streams its output."""

    async def write(self, text: str) -> None: ...


class BufferWriter:
    """OutputWriter that just accumulates text."""

    def __init__(self) -> None:
        self._parts: list[str] = []

    async def write(self, text: str) -> None:
        self._parts.append(text)

    def getvalue(self) -> str:
        return "".join(self._parts)


class Command(ABC):
    """
    Abstract base class for commands.

    Minimal implementation requires name, description and execute().
    Everything else has a neutral default; override the accessor AND add
    the matching Capability to `capabilities` to opt in.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Command name without the leading slash, e.g. "deploy"."""
        ...

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable description for /help."""
        ...

    @abstractmethod
    async def execute(self, args: list[str], output: OutputWriter) -> None:
        """Run the command, streaming output to `output`."""
        ...

    @property
    def capabilities(self) -> frozenset[Capability]:
        return frozenset()

    def has(self, capability: Capability) -> bool:
        return capability in self.capabilities

    @property
    def metadata(self) -> CommandMetadata:
        return CommandMetadata()

    @property
    def category(self) -> CategoryInfo:
        return CategoryInfo()

    @property
    def schedule(self) -> ScheduleSpec | None:
        return None

    @property
    def arguments(self) -> list[ArgumentSpec]:
        return []

    @property
    def argument_timeout(self) -> float:
        """Seconds to wait for argument input; 0 means the collector default."""
        return 0.0

    @property
    def workdir(self) -> str:
        return ""

    @property
    def quiet(self) -> bool:
        """Quiet commands send no placeholder or status notices, only output."""
        return self.has(Capability.QUIET)

    def file_response(self) -> FileResponse | None:
        return None

    def render(self, values: dict[str, str]) -> str:
        """Build the final command line from collected arguments (ARGUMENTS only)."""
        raise NotImplementedError(f"/{self.name} does not take arguments")

    async def execute_rendered(self, rendered: str, output: OutputWriter) -> None:
        """Run a command line produced by render() (ARGUMENTS only)."""
        raise NotImplementedError(f"/{self.name} does not take arguments")

    def __repr__(self) -> str:
        return f"<{type(self).__name__} /{self.name}>"
