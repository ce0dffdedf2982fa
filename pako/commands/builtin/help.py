"""
/help — list every registered command.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pako.commands.base import Command, OutputWriter

if TYPE_CHECKING:
    from pako.commands.registry import CommandRegistry


class HelpCommand(Command):
    def __init__(self, registry: "CommandRegistry") -> None:
        self._registry = registry

    @property
    def name(self) -> str:
        return "help"

    @property
    def description(self) -> str:
        return "List available commands"

    async def execute(self, args: list[str], output: OutputWriter) -> None:
        lines = ["Available commands:", ""]
        lines += [f"/{cmd.name} - {cmd.description}" for cmd in self._registry.all()]
        await output.write("\n".join(lines) + "\n")
