"""
MessageStreamer — shows command output live in a single chat message.

The first write lands in a "Running..." placeholder which is then
re-edited at most once per edit_interval while output keeps arriving;
flush() pushes the final state. Telegram rate-limits edits, so failed
edits are logged and skipped rather than retried.

The full output is kept for file-reference parsing; only the displayed
text is cut down, keeping the tail since the end of a command's output
is usually what matters.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Callable

from pako.core.errors import TransportError

if TYPE_CHECKING:
    from pako.bot.telegram import TelegramAPI

logger = logging.getLogger(__name__)

PLACEHOLDER = "Running..."
EMPTY_OUTPUT = "(no output)"
TRUNCATED_MARKER = "[truncated]\n"
TELEGRAM_LIMIT = 4096


class MessageStreamer:
    """
    OutputWriter that mirrors output into a Telegram message.

    Quiet streamers never send a placeholder; they post one message at
    flush() time, and only when there is something to show.
    """

    def __init__(
        self,
        api: "TelegramAPI",
        chat_id: int,
        max_output: int = 5000,
        edit_interval: float = 1.0,
        quiet: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._api = api
        self._chat_id = chat_id
        self._limit = max(1, min(max_output, TELEGRAM_LIMIT - len(TRUNCATED_MARKER)))
        self._edit_interval = edit_interval
        self._quiet = quiet
        self._clock = clock

        self._parts: list[str] = []
        self._message_id: int | None = None
        self._last_edit = 0.0
        self._dirty = False
        self._shown = ""

    @property
    def message_id(self) -> int | None:
        return self._message_id

    @property
    def quiet(self) -> bool:
        return self._quiet

    def content(self) -> str:
        return "".join(self._parts)

    async def start(self) -> None:
        """Send the placeholder message (no-op when quiet)."""
        if self._quiet:
            return
        sent = await self._api.send_message(self._chat_id, PLACEHOLDER)
        self._message_id = sent["message_id"]
        self._last_edit = self._clock()

    async def write(self, text: str) -> None:
        if not text:
            return
        self._parts.append(text)
        self._dirty = True
        if self._message_id is not None and self._clock() - self._last_edit >= self._edit_interval:
            await self._edit(self.content())

    async def flush(self, display: str | None = None) -> None:
        """
        Show the final output.

        `display` replaces the accumulated output as the text to show,
        e.g. with file markers stripped out.
        """
        text = self.content() if display is None else display
        if self._quiet:
            if text.strip():
                sent = await self._api.send_message(self._chat_id, self.render(text))
                self._message_id = sent["message_id"]
            return
        if self._message_id is None:
            return
        if self._dirty or display is not None or not self._shown:
            await self._edit(text)

    def render(self, text: str) -> str:
        if not text.strip():
            return EMPTY_OUTPUT
        if len(text) > self._limit:
            return TRUNCATED_MARKER + text[-self._limit:]
        return text

    async def _edit(self, text: str) -> None:
        rendered = self.render(text)
        self._last_edit = self._clock()
        self._dirty = False
        if rendered == self._shown:
            return
        try:
            await self._api.edit_message_text(self._chat_id, self._message_id, rendered)
            self._shown = rendered
        except TransportError as e:
            logger.debug(f"Output edit skipped for chat {self._chat_id}: {e}")
