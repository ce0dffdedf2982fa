"""Built-in commands that ship with Pako."""

from pako.commands.builtin.help import HelpCommand
from pako.commands.builtin.logs import LogsCommand
from pako.commands.builtin.status import StatusCommand
from pako.commands.builtin.reload import ReloadCommand
from pako.commands.builtin.version import VersionCommand
from pako.commands.builtin.scheduled import ScheduledListCommand
from pako.commands.builtin.cleanup import CleanupCommand, CleanupOption

__all__ = [
    "HelpCommand",
    "LogsCommand",
    "StatusCommand",
    "ReloadCommand",
    "VersionCommand",
    "ScheduledListCommand",
    "CleanupCommand",
    "CleanupOption",
]
