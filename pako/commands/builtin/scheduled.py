"""
/scheduled — list active scheduled commands and when they run next.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Callable

from pako.commands.base import Capability, CategoryInfo, Command, OutputWriter

if TYPE_CHECKING:
    from pako.scheduler.engine import Scheduler


def format_until(next_run: datetime, now: datetime) -> str:
    """"in 45s", "in 12m", "in 3h 5m", or "Mon 15:04" beyond a day."""
    seconds = int((next_run - now).total_seconds())
    if seconds < 60:
        return f"in {max(seconds, 0)}s"
    if seconds < 3600:
        return f"in {seconds // 60}m"
    if seconds < 86400:
        return f"in {seconds // 3600}h {(seconds // 60) % 60}m"
    return next_run.strftime("%a %H:%M")


class ScheduledListCommand(Command):
    def __init__(
        self,
        scheduler: "Scheduler | None" = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._scheduler = scheduler
        self._clock = clock

    def attach_scheduler(self, scheduler: "Scheduler") -> None:
        self._scheduler = scheduler

    @property
    def name(self) -> str:
        return "scheduled"

    @property
    def description(self) -> str:
        return "Show active scheduled commands"

    @property
    def capabilities(self) -> frozenset[Capability]:
        return frozenset({Capability.CATEGORY})

    @property
    def category(self) -> CategoryInfo:
        return CategoryInfo(name="system", icon="📅")

    async def execute(self, args: list[str], output: OutputWriter) -> None:
        if self._scheduler is None:
            await output.write("Scheduler not available.\n")
            return

        now = self._clock()
        active = self._scheduler.active_commands(now)
        if not active:
            await output.write("No active scheduled commands.\n")
            return

        lines = ["Active scheduled commands:", ""]
        for info in active:
            lines.append(f"/{info.name}")
            lines.append(f"  {info.schedule}, next: {format_until(info.next_run, now)}")
            lines.append("")
        await output.write("\n".join(lines))
