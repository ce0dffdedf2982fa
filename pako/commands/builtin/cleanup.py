"""
/cleanup — delete previously sent messages from the chat.

The command itself only points at the cleanup menu; the bot shows the
options and calls execute_cleanup() with the one the operator picks.
Needs a message store path in the config, otherwise it reports itself
disabled.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Protocol

from pako.commands.base import Command, OutputWriter
from pako.core.errors import PakoError
from pako.store.messages import MessageEntry, MessageKind, MessageStore

logger = logging.getLogger(__name__)

DISABLED_MESSAGE = "Cleanup is not enabled. Set messages.store_path in config."


class CleanupOption(str, Enum):
    ALL_MSGS_LAST_HOUR = "all_msgs_last_hour"
    ALL_MSGS_LAST_DAY = "all_msgs_last_day"
    LAST_HOUR = "last_hour"
    LAST_DAY = "last_day"
    BEFORE_LAST_DAY = "before_last_day"
    BEFORE_LAST_WEEK = "before_last_week"
    BEFORE_LAST_MONTH = "before_last_month"
    ALL = "all"


# (option, button label, description), in menu order
CLEANUP_OPTIONS: list[tuple[CleanupOption, str, str]] = [
    (CleanupOption.ALL_MSGS_LAST_HOUR, "All messages (1h)", "Delete ALL messages from the last hour"),
    (CleanupOption.ALL_MSGS_LAST_DAY, "All messages (24h)", "Delete ALL messages from the last 24 hours"),
    (CleanupOption.LAST_HOUR, "Files (1h)", "Delete files sent in the last hour"),
    (CleanupOption.LAST_DAY, "Files (24h)", "Delete files sent in the last 24 hours"),
    (CleanupOption.BEFORE_LAST_DAY, "Files older 1d", "Delete files sent more than 24 hours ago"),
    (CleanupOption.BEFORE_LAST_WEEK, "Files older 1w", "Delete files sent more than 7 days ago"),
    (CleanupOption.BEFORE_LAST_MONTH, "Files older 1mo", "Delete files sent more than 30 days ago"),
    (CleanupOption.ALL, "All files", "Delete all tracked files"),
]


class MessageDeleter(Protocol):
    async def delete_message(self, chat_id: int, message_id: int) -> None: ...


class CleanupCommand(Command):
    def __init__(
        self,
        store: MessageStore,
        deleter: MessageDeleter,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._store = store
        self._deleter = deleter
        self._clock = clock

    @property
    def name(self) -> str:
        return "cleanup"

    @property
    def description(self) -> str:
        return "Delete previously sent files from chat"

    @property
    def enabled(self) -> bool:
        return self._store.enabled

    async def execute(self, args: list[str], output: OutputWriter) -> None:
        if not self.enabled:
            await output.write(DISABLED_MESSAGE + "\n")
            return
        await output.write("Use the cleanup menu to select what to delete.\n")

    def count(self, chat_id: int) -> int:
        return self._store.count(chat_id)

    def entries_to_delete(self, chat_id: int, option: CleanupOption | str) -> list[MessageEntry]:
        try:
            option = CleanupOption(option)
        except ValueError:
            return []

        now = self._clock()
        hour, day = timedelta(hours=1), timedelta(days=1)
        store = self._store

        if option == CleanupOption.ALL_MSGS_LAST_HOUR:
            return store.after(chat_id, now - hour)
        if option == CleanupOption.ALL_MSGS_LAST_DAY:
            return store.after(chat_id, now - day)
        if option == CleanupOption.LAST_HOUR:
            return store.after_by_kind(chat_id, now - hour, MessageKind.FILE)
        if option == CleanupOption.LAST_DAY:
            return store.after_by_kind(chat_id, now - day, MessageKind.FILE)
        if option == CleanupOption.BEFORE_LAST_DAY:
            return store.before(chat_id, now - day)
        if option == CleanupOption.BEFORE_LAST_WEEK:
            return store.before(chat_id, now - 7 * day)
        if option == CleanupOption.BEFORE_LAST_MONTH:
            return store.before(chat_id, now - 30 * day)
        return store.all(chat_id)

    def menu_options(self, chat_id: int) -> list[tuple[str, str, int]]:
        """(option, label, matching count) for every option, for the cleanup menu."""
        return [
            (option.value, label, len(self.entries_to_delete(chat_id, option)))
            for option, label, _ in CLEANUP_OPTIONS
        ]

    async def execute_cleanup(self, chat_id: int, option: CleanupOption | str) -> tuple[int, int]:
        """
        Delete the selected messages.

        Returns (deleted, failed). Every attempted message is dropped from
        the store either way, since failures are almost always messages
        that are already gone or too old for Telegram to delete.
        """
        if not self.enabled:
            raise PakoError("Cleanup is not enabled")

        entries = self.entries_to_delete(chat_id, option)
        deleted = failed = 0
        for entry in entries:
            try:
                await self._deleter.delete_message(entry.chat_id, entry.message_id)
                deleted += 1
            except PakoError as e:
                logger.debug(f"Could not delete message {entry.message_id}: {e}")
                failed += 1

        await self._store.remove(chat_id, [e.message_id for e in entries])
        logger.info(f"Cleanup {option} in chat {chat_id}: {deleted} deleted, {failed} failed")
        return deleted, failed
