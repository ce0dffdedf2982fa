"""
Scheduled command records — the data the Scheduler owns.

A ScheduledCommand fires either at fixed times of day or on a fixed
interval. When both are configured the interval wins. No times and a
non-positive interval means the command never fires.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from pako.scheduler.timeofday import TimeOfDay, format_duration


@dataclass
class ScheduledCommand:
    """A command plus its schedule."""

    name: str                                  # stable key for reload and pause state
    times: tuple[TimeOfDay, ...] = ()
    interval: timedelta = field(default_factory=timedelta)
    initial_paused: bool = False               # applied once, when the name first appears
    command: Any = None                        # opaque to the scheduler, handed to the executor
    last_run: datetime | None = None           # set by the firing step only

    @property
    def uses_interval(self) -> bool:
        return self.interval > timedelta(0)

    @property
    def is_schedulable(self) -> bool:
        return self.uses_interval or bool(self.times)

    def describe(self) -> str:
        """Short schedule summary: "every 5m" or "at 09:00 (+1 more)"."""
        if self.uses_interval:
            return f"every {format_duration(self.interval)}"
        if not self.times:
            return "not scheduled"
        text = f"at {self.times[0]}"
        if len(self.times) > 1:
            text += f" (+{len(self.times) - 1} more)"
        return text


@dataclass(frozen=True, slots=True)
class ActiveCommandInfo:
    """Snapshot of a non-paused scheduled command, for display."""

    name: str
    next_run: datetime
    schedule: str
