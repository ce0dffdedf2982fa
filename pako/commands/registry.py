"""
Command registry — name lookup plus category grouping for menus.

Built-in commands are registered with builtin=True and survive reload();
everything else is replaced wholesale when definitions are reloaded.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Iterable

from pako.commands.base import Capability, Command

logger = logging.getLogger(__name__)

OTHER_CATEGORY = "other"


@dataclass
class CategoryGroup:
    """A category and its commands, sorted by name."""

    name: str
    icon: str = ""
    commands: list[Command] = field(default_factory=list)


def category_of(command: Command) -> tuple[str, str]:
    """(name, icon) for grouping; uncategorised commands land in "other"."""
    if command.has(Capability.CATEGORY):
        info = command.category
        if info.name:
            return info.name, info.icon
    return OTHER_CATEGORY, ""


class CommandRegistry:
    """
    Thread-safe command lookup.

    Usage:
        registry = CommandRegistry()
        registry.register(HelpCommand(registry), builtin=True)
        registry.reload(loader.load())
        cmd = registry.get("deploy")
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._commands: dict[str, Command] = {}
        self._builtins: set[str] = set()

    def register(self, command: Command, builtin: bool = False) -> None:
        """Add a command. An existing command with the same name is replaced."""
        with self._lock:
            self._commands[command.name] = command
            if builtin:
                self._builtins.add(command.name)
        logger.debug(f"Registered /{command.name}{' (builtin)' if builtin else ''}")

    def get(self, name: str) -> Command | None:
        with self._lock:
            return self._commands.get(name)

    def all(self) -> list[Command]:
        with self._lock:
            commands = list(self._commands.values())
        return sorted(commands, key=lambda c: c.name)

    def is_builtin(self, name: str) -> bool:
        with self._lock:
            return name in self._builtins

    def reload(self, commands: Iterable[Command]) -> None:
        """Replace every non-builtin command in one step."""
        fresh = {cmd.name: cmd for cmd in commands}
        with self._lock:
            for name in self._builtins:
                if name in fresh:
                    logger.warning(f"Command /{name} shadows a built-in and is ignored")
                fresh[name] = self._commands[name]
            self._commands = fresh
        logger.info(f"Registry reloaded: {len(fresh)} command(s)")

    def categories(self) -> list[CategoryGroup]:
        """Commands grouped by category, alphabetically, with "other" last."""
        groups: dict[str, CategoryGroup] = {}
        for cmd in self.all():
            name, icon = category_of(cmd)
            group = groups.setdefault(name, CategoryGroup(name=name))
            if icon and not group.icon:
                group.icon = icon
            group.commands.append(cmd)
        return sorted(groups.values(), key=lambda g: (g.name == OTHER_CATEGORY, g.name))

    def by_category(self, category: str) -> list[Command]:
        return [cmd for cmd in self.all() if category_of(cmd)[0] == category]

    def __len__(self) -> int:
        with self._lock:
            return len(self._commands)

    def __contains__(self, name: str) -> bool:
        with self._lock:
            return name in self._commands
