"""
Chat allowlist — only configured chat ids may talk to the bot.
"""

from __future__ import annotations

import logging
import threading
from typing import Iterable

logger = logging.getLogger(__name__)


class Allowlist:
    """Set of chat ids allowed to issue commands."""

    def __init__(self, chat_ids: Iterable[int]) -> None:
        self._lock = threading.Lock()
        self._ids = frozenset(chat_ids)

    def is_allowed(self, chat_id: int) -> bool:
        with self._lock:
            return chat_id in self._ids

    def reload(self, chat_ids: Iterable[int]) -> None:
        ids = frozenset(chat_ids)
        with self._lock:
            self._ids = ids
        logger.info(f"Allowlist updated: {len(ids)} chat(s)")

    @property
    def chat_ids(self) -> list[int]:
        with self._lock:
            return sorted(self._ids)
