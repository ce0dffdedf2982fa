"""
ShellCommand — a command backed by a shell command line from YAML.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from pako.arguments.spec import ArgumentSpec
from pako.arguments.template import placeholders, render_command
from pako.commands.base import (
    Capability,
    CategoryInfo,
    Command,
    CommandMetadata,
    FileResponse,
    OutputWriter,
    ScheduleSpec,
)

if TYPE_CHECKING:
    from pako.commands.loader import CommandDefinition
    from pako.shell.executor import ShellExecutor


class ShellCommand(Command):
    """
    Runs its `command` template through the ShellExecutor.

    Capabilities follow the definition: `confirm` adds CONFIRM, a schedule
    or interval adds SCHEDULE, `arguments` adds ARGUMENTS and so on.
    TIMEOUT is always present since every shell command has one.
    """

    def __init__(
        self,
        definition: "CommandDefinition",
        executor: "ShellExecutor",
        source: Path | None = None,
    ) -> None:
        self._def = definition
        self._executor = executor
        self._source = source
        self._arguments = [a.to_spec() for a in definition.arguments]
        self._capabilities = self._derive_capabilities()

    def _derive_capabilities(self) -> frozenset[Capability]:
        d = self._def
        caps = {Capability.TIMEOUT}
        if d.confirm:
            caps.add(Capability.CONFIRM)
        if d.schedule or d.interval.total_seconds() > 0:
            caps.add(Capability.SCHEDULE)
        if d.arguments:
            caps.add(Capability.ARGUMENTS)
        if d.category:
            caps.add(Capability.CATEGORY)
        if d.quiet:
            caps.add(Capability.QUIET)
        if d.response_file:
            caps.add(Capability.FILE_RESPONSE)
        return frozenset(caps)

    @property
    def name(self) -> str:
        return self._def.name

    @property
    def description(self) -> str:
        return self._def.description

    @property
    def template(self) -> str:
        return self._def.command

    @property
    def source(self) -> Path | None:
        return self._source

    @property
    def capabilities(self) -> frozenset[Capability]:
        return self._capabilities

    @property
    def metadata(self) -> CommandMetadata:
        return CommandMetadata(
            timeout=self._def.timeout,
            max_output=self._def.max_output,
            require_confirm=self._def.confirm,
        )

    @property
    def category(self) -> CategoryInfo:
        return CategoryInfo(name=self._def.category, icon=self._def.icon)

    @property
    def schedule(self) -> ScheduleSpec | None:
        if Capability.SCHEDULE not in self._capabilities:
            return None
        return ScheduleSpec(
            times=tuple(self._def.schedule),
            interval=self._def.interval,
            initial_paused=self._def.paused,
        )

    @property
    def arguments(self) -> list[ArgumentSpec]:
        return list(self._arguments)

    @property
    def argument_timeout(self) -> float:
        return self._def.argument_timeout

    @property
    def workdir(self) -> str:
        return self._def.workdir

    def file_response(self) -> FileResponse | None:
        if not self._def.response_file:
            return None
        path = Path(self._def.response_file).expanduser()
        if not path.is_absolute() and self._def.workdir:
            path = Path(self._def.workdir).expanduser() / path
        return FileResponse(
            path=str(path),
            caption=self._def.response_caption,
            cleanup=self._def.response_cleanup,
        )

    def render(self, values: dict[str, str]) -> str:
        return render_command(self._def.command, values)

    async def execute(self, args: list[str], output: OutputWriter) -> None:
        """
        Run with positional args.

        Templated commands map args onto their arguments in order (defaults
        fill the rest); plain commands get the args appended.
        """
        if self._arguments or placeholders(self._def.command):
            values = {a.name: a.default for a in self._arguments if a.default}
            for spec, value in zip(self._arguments, args):
                values[spec.name] = value
            await self.execute_rendered(self.render(values), output)
            return

        await self._executor.execute(
            self._def.command,
            args,
            output,
            timeout=self._def.timeout,
            workdir=self._def.workdir or None,
        )

    async def execute_rendered(self, rendered: str, output: OutputWriter) -> None:
        await self._executor.execute(
            rendered,
            [],
            output,
            timeout=self._def.timeout,
            workdir=self._def.workdir or None,
        )
