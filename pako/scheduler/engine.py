"""
Scheduler — the background asyncio task that fires scheduled commands.

Design:
- Owns the scheduled command set and the pause set; both are only
  changed through the public methods below
- One wait/fire loop: compute the earliest due command, sleep until then
  unless woken by a change (pause, resume, reload), fire, recompute
- Firing calls the injected executor once per target, sequentially, in
  target order. A failing target is logged and the loop carries on
- Wake-ups coalesce: any number of changes while the loop sleeps cause
  a single recomputation
- No missed-run replay: if the process was down at 09:00 the command
  simply fires at the next 09:00

The lock around the command and pause sets is a plain threading.Lock and
is never held across an await.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import threading
from datetime import datetime
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Iterable, Sequence

from pako.core.errors import PakoError, SchedulerError
from pako.scheduler.job import ActiveCommandInfo, ScheduledCommand
from pako.scheduler.timeofday import next_occurrence

if TYPE_CHECKING:
    from pako.commands.base import Command

logger = logging.getLogger(__name__)

Executor = Callable[[int, Any], Awaitable[None]]


class Scheduler:
    """
    Time-of-day / interval scheduler with pause/resume and hot reload.

    Args:
        targets: Chat ids notified on every fire, in order.
        executor: async (target, command) -> None. Raising signals failure.
        clock: Returns the current datetime. Defaults to local time.
    """

    def __init__(
        self,
        targets: Sequence[int],
        executor: Executor,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._targets = list(targets)
        self._executor = executor
        self._clock = clock or datetime.now

        self._lock = threading.Lock()
        self._commands: dict[str, ScheduledCommand] = {}
        self._paused: set[str] = set()

        self._wakeup = asyncio.Event()
        self._task: asyncio.Task | None = None
        self._running = False

    # ── Pause state ───────────────────────────────────────────────────────────

    def set_paused(self, name: str, paused: bool) -> None:
        """
        Pause or resume a command by name.

        Unknown names are recorded too, so pausing before a reload that
        introduces the command still takes effect.
        """
        with self._lock:
            if paused:
                self._paused.add(name)
            else:
                self._paused.discard(name)
        logger.info(f"Scheduled command /{name} {'paused' if paused else 'resumed'}")
        self._signal()

    def is_paused(self, name: str) -> bool:
        with self._lock:
            return name in self._paused

    # ── Command set ───────────────────────────────────────────────────────────

    def update_commands(self, commands: Iterable[ScheduledCommand] | None) -> None:
        """
        Replace the whole scheduled command set.

        last_run carries over by name. initial_paused only applies to names
        not seen before. The pause set itself survives reloads.
        """
        with self._lock:
            previous = self._commands
            fresh: dict[str, ScheduledCommand] = {}
            for sc in commands or ():
                old = previous.get(sc.name)
                if old is not None:
                    fresh[sc.name] = dataclasses.replace(sc, last_run=old.last_run)
                else:
                    fresh[sc.name] = dataclasses.replace(sc)
                    if sc.initial_paused:
                        self._paused.add(sc.name)
            self._commands = fresh
        logger.info(f"Scheduler loaded {len(fresh)} scheduled command(s)")
        self._signal()

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._commands)

    def get(self, name: str) -> ScheduledCommand | None:
        with self._lock:
            return self._commands.get(name)

    # ── Timing ────────────────────────────────────────────────────────────────

    def next_execution(
        self, now: datetime | None = None
    ) -> tuple[datetime | None, ScheduledCommand | None]:
        """Earliest fire time across non-paused commands, or (None, None)."""
        now = now or self._clock()
        best_time: datetime | None = None
        best: ScheduledCommand | None = None

        with self._lock:
            for sc in self._commands.values():
                if sc.name in self._paused:
                    continue
                candidate = self._next_time(sc, now)
                if candidate is None:
                    continue
                if best_time is None or candidate < best_time:
                    best_time, best = candidate, sc

        return best_time, best

    @staticmethod
    def _next_time(sc: ScheduledCommand, now: datetime) -> datetime | None:
        if sc.uses_interval:
            if sc.last_run is None:
                return now
            return sc.last_run + sc.interval
        if not sc.times:
            return None
        # A run recorded after "now" (clock skew around the fire) must not repeat
        base = sc.last_run if sc.last_run is not None and sc.last_run > now else now
        return min(next_occurrence(base, t) for t in sc.times)

    def active_commands(self, now: datetime | None = None) -> list[ActiveCommandInfo]:
        """Non-paused scheduled commands with their next run, soonest first."""
        now = now or self._clock()
        result = []
        with self._lock:
            for sc in self._commands.values():
                if sc.name in self._paused:
                    continue
                next_run = self._next_time(sc, now)
                if next_run is not None:
                    result.append(ActiveCommandInfo(sc.name, next_run, sc.describe()))
        result.sort(key=lambda info: info.next_run)
        return result

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the background loop."""
        if self._task is not None and not self._task.done():
            raise SchedulerError("Scheduler is already running")
        self._task = asyncio.create_task(self.run(), name="scheduler")
        logger.info("Scheduler started")

    async def stop(self) -> None:
        """Cancel the background loop and wait for it to exit."""
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info("Scheduler stopped")

    async def run(self) -> None:
        """
        Main loop. Only returns by raising CancelledError.

        Idle when nothing is schedulable, otherwise sleeps until the next
        fire time or until a change wakes it up.
        """
        if self._running:
            raise SchedulerError("Scheduler.run() is already active")
        self._running = True
        try:
            while True:
                # Clear before computing so changes made afterwards re-trigger
                self._wakeup.clear()
                next_time, sc = self.next_execution()

                if sc is None or next_time is None:
                    await self._wakeup.wait()
                    continue

                delay = max(0.0, (next_time - self._clock()).total_seconds())
                try:
                    await asyncio.wait_for(self._wakeup.wait(), timeout=delay)
                    continue
                except asyncio.TimeoutError:
                    pass

                # The loop timer can run slightly ahead of the wall clock
                if self._clock() < next_time:
                    continue

                await self._fire(sc)
        finally:
            self._running = False

    async def _fire(self, sc: ScheduledCommand) -> None:
        now = self._clock()
        with self._lock:
            current = self._commands.get(sc.name)
            if current is None or sc.name in self._paused:
                return
            # Time-of-day commands record it too, so one slot never fires twice
            current.last_run = now

        logger.info(f"Firing scheduled command /{current.name} ({current.describe()})")
        for target in self._targets:
            await self._call_executor(target, current)

    async def _call_executor(self, target: int, sc: ScheduledCommand) -> None:
        call = asyncio.ensure_future(self._executor(target, sc.command))
        try:
            await asyncio.shield(call)
        except asyncio.CancelledError:
            # Let the in-flight call finish before honouring the cancel
            await asyncio.wait({call})
            if not call.cancelled() and call.exception() is not None:
                logger.error(
                    f"Scheduled /{sc.name} failed for chat {target}: {call.exception()}"
                )
            raise
        except Exception as e:
            logger.error(f"Scheduled /{sc.name} failed for chat {target}: {e}")

    def _signal(self) -> None:
        self._wakeup.set()


def extract_scheduled(commands: Iterable["Command"]) -> list[ScheduledCommand]:
    """Build ScheduledCommand records for every command that carries a schedule."""
    from pako.commands.base import Capability

    result = []
    for cmd in commands:
        if not cmd.has(Capability.SCHEDULE):
            continue
        try:
            spec = cmd.schedule
        except PakoError as e:
            logger.warning(f"Skipping schedule for /{cmd.name}: {e}")
            continue
        if spec is None or not spec.scheduled:
            continue
        result.append(
            ScheduledCommand(
                name=cmd.name,
                times=tuple(spec.times),
                interval=spec.interval,
                initial_paused=spec.initial_paused,
                command=cmd,
            )
        )
    return result
