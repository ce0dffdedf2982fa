"""
/reload — re-read command definitions without restarting.

The registry and the scheduler are updated from the same load, so a
command that gained or lost a schedule takes effect immediately. A load
error leaves both untouched.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pako.commands.base import Capability, CategoryInfo, Command, OutputWriter
from pako.scheduler.engine import extract_scheduled

if TYPE_CHECKING:
    from pako.commands.loader import CommandLoader
    from pako.commands.registry import CommandRegistry
    from pako.scheduler.engine import Scheduler

logger = logging.getLogger(__name__)


class ReloadCommand(Command):
    def __init__(
        self,
        loader: "CommandLoader",
        registry: "CommandRegistry",
        scheduler: "Scheduler | None" = None,
    ) -> None:
        self._loader = loader
        self._registry = registry
        self._scheduler = scheduler

    def attach_scheduler(self, scheduler: "Scheduler") -> None:
        self._scheduler = scheduler

    @property
    def name(self) -> str:
        return "reload"

    @property
    def description(self) -> str:
        return "Reload command configurations"

    @property
    def capabilities(self) -> frozenset[Capability]:
        return frozenset({Capability.CATEGORY})

    @property
    def category(self) -> CategoryInfo:
        return CategoryInfo(name="system", icon="🔄")

    async def execute(self, args: list[str], output: OutputWriter) -> None:
        # CommandLoadError propagates; the bot reports it in the chat
        commands = self._loader.load()
        self._registry.reload(commands)
        if self._scheduler is not None:
            self._scheduler.update_commands(extract_scheduled(commands))
        logger.info(f"Reloaded {len(commands)} command(s)")
        await output.write(f"Reloaded {len(commands)} commands\n")
