"""
/version — report the running Pako version.
"""

from __future__ import annotations

import platform

from pako.commands.base import Capability, CategoryInfo, Command, OutputWriter


class VersionCommand(Command):
    @property
    def name(self) -> str:
        return "version"

    @property
    def description(self) -> str:
        return "Show current bot version"

    @property
    def capabilities(self) -> frozenset[Capability]:
        return frozenset({Capability.CATEGORY})

    @property
    def category(self) -> CategoryInfo:
        return CategoryInfo(name="system", icon="ℹ️")

    async def execute(self, args: list[str], output: OutputWriter) -> None:
        from pako import __version__

        await output.write(
            f"Version:    {__version__}\n"
            f"Python:     {platform.python_version()}\n"
            f"Platform:   {platform.system().lower()}\n"
        )
