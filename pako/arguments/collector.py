"""
ArgumentCollector — per-chat interactive argument sessions.

Flow:
1. The bot calls start_session() when a command needs input
2. Each reply goes through submit(); a non-empty return is a validation
   message and the same argument is asked again
3. Once is_complete, complete_session() hands back the values and the
   command, removing the session

One session per chat key; starting another discards the first. Sessions
expire lazily: an expired session reads as absent everywhere, and
cleanup_expired() can sweep them out periodically.

Nothing here awaits. Every access to the session map goes through one
lock, so concurrent handlers for the same chat always see a session as
either fully present or fully gone.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

from pako.arguments.spec import ArgumentSpec
from pako.arguments.validation import validate_argument
from pako.core.errors import ArgumentValidationError

logger = logging.getLogger(__name__)

NO_SESSION_MESSAGE = "No active argument collection session."
DEFAULT_TIMEOUT = 120.0  # seconds


@dataclass
class ArgumentSession:
    """One in-progress input dialog."""

    chat_key: int
    command: Any
    specs: list[ArgumentSpec]               # only the arguments still to prompt
    collected: dict[str, str] = field(default_factory=dict)
    cursor: int = 0
    started_at: float = 0.0
    timeout: float = DEFAULT_TIMEOUT
    last_prompt_id: int | None = None

    @property
    def current(self) -> ArgumentSpec | None:
        if self.cursor >= len(self.specs):
            return None
        return self.specs[self.cursor]

    @property
    def is_complete(self) -> bool:
        return self.cursor >= len(self.specs)

    def is_expired(self, now: float) -> bool:
        return now - self.started_at > self.timeout


class ArgumentCollector:
    """Session store for interactive argument collection."""

    def __init__(
        self,
        default_timeout: float = DEFAULT_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._default_timeout = default_timeout
        self._clock = clock
        self._sessions: dict[int, ArgumentSession] = {}
        self._lock = threading.Lock()

    def start_session(
        self,
        chat_key: int,
        specs: Iterable[ArgumentSpec],
        command: Any = None,
        timeout: float | None = None,
    ) -> ArgumentSession:
        """
        Begin collecting arguments for a chat, replacing any existing session.

        Optional arguments with a default are filled in immediately and
        never prompted.
        """
        collected: dict[str, str] = {}
        to_prompt: list[ArgumentSpec] = []
        for spec in specs:
            if spec.auto_resolved:
                collected[spec.name] = spec.default
            else:
                to_prompt.append(spec)

        session = ArgumentSession(
            chat_key=chat_key,
            command=command,
            specs=to_prompt,
            collected=collected,
            started_at=self._clock(),
            timeout=timeout if timeout and timeout > 0 else self._default_timeout,
        )

        with self._lock:
            replaced = self._sessions.pop(chat_key, None)
            self._sessions[chat_key] = session

        if replaced is not None:
            logger.debug(f"Discarded previous argument session for chat {chat_key}")
        logger.debug(
            f"Argument session started for chat {chat_key}: "
            f"{len(to_prompt)} to prompt, {len(collected)} defaulted"
        )
        return session

    def _live(self, chat_key: int) -> ArgumentSession | None:
        # Caller holds the lock
        session = self._sessions.get(chat_key)
        if session is None or session.is_expired(self._clock()):
            return None
        return session

    def get_session(self, chat_key: int) -> ArgumentSession | None:
        with self._lock:
            return self._live(chat_key)

    def has_session(self, chat_key: int) -> bool:
        return self.get_session(chat_key) is not None

    def current_spec(self, chat_key: int) -> ArgumentSpec | None:
        with self._lock:
            session = self._live(chat_key)
            return session.current if session else None

    def submit(self, chat_key: int, raw: str) -> str:
        """
        Validate and store input for the current argument.

        Returns "" on success, otherwise a message for the operator. A
        rejected value leaves the session untouched.
        """
        with self._lock:
            session = self._live(chat_key)
            if session is None:
                return NO_SESSION_MESSAGE

            spec = session.current
            if spec is None:
                return ""

            try:
                validate_argument(spec, raw)
            except ArgumentValidationError as e:
                return e.message

            session.collected[spec.name] = raw
            session.cursor += 1
            return ""

    def complete_session(self, chat_key: int) -> tuple[dict[str, str] | None, Any]:
        """Remove the session and return (collected, command), or (None, None)."""
        with self._lock:
            session = self._sessions.pop(chat_key, None)
        if session is None:
            return None, None
        return session.collected, session.command

    def cancel_session(self, chat_key: int) -> None:
        with self._lock:
            self._sessions.pop(chat_key, None)

    def set_last_prompt(self, chat_key: int, message_id: int) -> None:
        with self._lock:
            session = self._sessions.get(chat_key)
            if session is not None:
                session.last_prompt_id = message_id

    def last_prompt(self, chat_key: int) -> int | None:
        with self._lock:
            session = self._sessions.get(chat_key)
            return session.last_prompt_id if session else None

    def cleanup_expired(self) -> int:
        """Drop every expired session. Returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, s in self._sessions.items() if s.is_expired(now)]
            for key in expired:
                del self._sessions[key]
        if expired:
            logger.debug(f"Removed {len(expired)} expired argument session(s)")
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
