"""
Pako — run your shell commands from a Telegram chat.

Public API:
    from pako import Command, Scheduler, ArgumentCollector
"""

__version__ = "0.1.0"

# Core
from pako.core.config import PakoConfig
from pako.core.errors import PakoError

# Commands
from pako.commands.base import Capability, Command
from pako.commands.registry import CommandRegistry

# Scheduling & arguments
from pako.scheduler.engine import Scheduler
from pako.scheduler.job import ScheduledCommand
from pako.arguments.collector import ArgumentCollector
from pako.arguments.spec import ArgumentKind, ArgumentSpec

__all__ = [
    # Core
    "PakoConfig",
    "PakoError",
    # Commands
    "Capability",
    "Command",
    "CommandRegistry",
    # Scheduling & arguments
    "Scheduler",
    "ScheduledCommand",
    "ArgumentCollector",
    "ArgumentKind",
    "ArgumentSpec",
]
