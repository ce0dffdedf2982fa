"""
Confirmation flow for commands marked `confirm: true`.

1. The bot calls request() and sends a prompt with Confirm / Cancel
   buttons whose callback data is confirm:<id> / cancel:<id>
2. The operator presses one; the bot passes the callback data to resolve()
3. resolve() removes the pending entry and says whether to run it

Entries expire after `ttl` seconds. Expired entries are rejected on
resolve and swept out by a periodic task that the owner starts with
start() and stops with stop(); nothing runs in the background until then.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import threading
import time
from dataclasses import dataclass, field
from typing import Callable

logger = logging.getLogger(__name__)

CONFIRM_PREFIX = "confirm:"
CANCEL_PREFIX = "cancel:"


@dataclass
class PendingConfirmation:
    """A command waiting for the operator's go-ahead."""

    id: str
    chat_id: int
    command: str
    args: tuple[str, ...] = ()
    rendered: str | None = None        # already-rendered command line, for argument commands
    shown: str | None = None           # rendered with sensitive values masked
    message_id: int | None = None
    expires_at: float = field(default=0.0)

    def prompt(self) -> str:
        if self.rendered is not None:
            text = self.shown if self.shown is not None else self.rendered
            return f"Confirm execution of /{self.command}?\n\n{text}"
        shown = f"/{self.command}"
        if self.args:
            shown += " " + " ".join(self.args)
        return f"Confirm execution of {shown}?"


class ConfirmationManager:
    """
    Tracks pending confirmations.

    Usage:
        confirmations = ConfirmationManager(ttl=300)
        await confirmations.start()
        pending = confirmations.request(chat_id, "deploy", ["prod"])
        ...
        pending, confirmed = confirmations.resolve(callback_data)
        await confirmations.stop()
    """

    def __init__(
        self,
        ttl: float = 300.0,
        sweep_interval: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl
        self._sweep_interval = sweep_interval
        self._clock = clock
        self._pending: dict[str, PendingConfirmation] = {}
        self._lock = threading.Lock()
        self._task: asyncio.Task | None = None

    def request(
        self,
        chat_id: int,
        command: str,
        args: tuple[str, ...] | list[str] = (),
        rendered: str | None = None,
        shown: str | None = None,
    ) -> PendingConfirmation:
        """Register a pending confirmation and return it (with its id)."""
        pending = PendingConfirmation(
            id=secrets.token_hex(8),
            chat_id=chat_id,
            command=command,
            args=tuple(args),
            rendered=rendered,
            shown=shown,
            expires_at=self._clock() + self._ttl,
        )
        with self._lock:
            self._pending[pending.id] = pending
        logger.debug(f"Confirmation {pending.id} requested for /{command} in chat {chat_id}")
        return pending

    def attach_message(self, confirmation_id: str, message_id: int) -> None:
        """Remember which message carries the buttons, so it can be edited later."""
        with self._lock:
            pending = self._pending.get(confirmation_id)
            if pending is not None:
                pending.message_id = message_id

    def resolve(self, callback_data: str) -> tuple[PendingConfirmation | None, bool]:
        """
        Handle a confirm:/cancel: callback.

        Returns (pending, True) to run, (pending, False) when cancelled,
        and (None, False) for unknown, expired or malformed callbacks.
        """
        if callback_data.startswith(CONFIRM_PREFIX):
            confirmation_id, confirmed = callback_data[len(CONFIRM_PREFIX):], True
        elif callback_data.startswith(CANCEL_PREFIX):
            confirmation_id, confirmed = callback_data[len(CANCEL_PREFIX):], False
        else:
            return None, False

        with self._lock:
            pending = self._pending.pop(confirmation_id, None)

        if pending is None:
            return None, False
        if self._clock() > pending.expires_at:
            logger.debug(f"Confirmation {confirmation_id} expired")
            return None, False
        return pending, confirmed

    def sweep(self) -> int:
        """Drop expired confirmations. Returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [cid for cid, p in self._pending.items() if now > p.expires_at]
            for cid in expired:
                del self._pending[cid]
        if expired:
            logger.debug(f"Swept {len(expired)} expired confirmation(s)")
        return len(expired)

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    async def start(self) -> None:
        """Start the periodic sweep."""
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.create_task(self._sweep_loop(), name="confirmation-sweep")

    async def stop(self) -> None:
        """Stop the periodic sweep and wait for it to exit."""
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval)
            self.sweep()


def is_confirmation_callback(data: str) -> bool:
    return data.startswith(CONFIRM_PREFIX) or data.startswith(CANCEL_PREFIX)
