"""
Sent-message tracking for /cleanup.

Every message the bot sends can be recorded here so the operator can
later delete output in bulk. With a store path the entries are saved as
JSON after every change; without one entries live in memory only and
/cleanup reports itself disabled.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import asdict, dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Iterable

import aiofiles

from pako.core.errors import StorageError

logger = logging.getLogger(__name__)


class MessageKind(str, Enum):
    TEXT = "text"
    FILE = "file"


@dataclass
class MessageEntry:
    chat_id: int
    message_id: int
    sent_at: datetime
    kind: MessageKind = MessageKind.FILE

    def to_dict(self) -> dict:
        data = asdict(self)
        data["sent_at"] = self.sent_at.isoformat()
        data["kind"] = self.kind.value
        return data

    @classmethod
    def from_dict(cls, d: dict) -> "MessageEntry":
        return cls(
            chat_id=int(d["chat_id"]),
            message_id=int(d["message_id"]),
            sent_at=datetime.fromisoformat(d["sent_at"]),
            kind=MessageKind(d.get("kind", MessageKind.FILE.value)),  # older files have no kind
        )


class MessageStore:
    """
    Tracked messages, optionally persisted to a JSON file.

    Usage:
        store = MessageStore(Path("~/.pako/messages.json"))
        await store.load()
        await store.add(chat_id, message_id, MessageKind.TEXT)
        old = store.before(chat_id, datetime.now() - timedelta(days=1))
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self._path = Path(path).expanduser() if path else None
        self._entries: list[MessageEntry] = []
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self._path is not None

    async def load(self) -> None:
        """Read existing entries. A missing file just means nothing is tracked yet."""
        if self._path is None or not self._path.exists():
            return
        try:
            async with aiofiles.open(self._path, mode="r", encoding="utf-8") as f:
                raw = await f.read()
            entries = [MessageEntry.from_dict(d) for d in json.loads(raw or "[]")]
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise StorageError(f"Failed to load message store {self._path}: {e}") from e
        with self._lock:
            self._entries = entries
        logger.debug(f"Loaded {len(entries)} tracked message(s) from {self._path}")

    async def _save(self) -> None:
        if self._path is None:
            return
        with self._lock:
            payload = json.dumps([e.to_dict() for e in self._entries], indent=2)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(self._path, mode="w", encoding="utf-8") as f:
                await f.write(payload)
        except OSError as e:
            raise StorageError(f"Failed to save message store {self._path}: {e}") from e

    # ── Mutations ─────────────────────────────────────────────────────────────

    async def add(self, chat_id: int, message_id: int, kind: MessageKind = MessageKind.FILE) -> None:
        await self.add_batch(chat_id, [message_id], kind)

    async def add_batch(
        self,
        chat_id: int,
        message_ids: Iterable[int],
        kind: MessageKind = MessageKind.FILE,
    ) -> None:
        now = datetime.now()
        new = [MessageEntry(chat_id, mid, now, kind) for mid in message_ids]
        if not new:
            return
        with self._lock:
            self._entries.extend(new)
        await self._save()

    async def remove(self, chat_id: int, message_ids: Iterable[int]) -> None:
        doomed = set(message_ids)
        if not doomed:
            return
        with self._lock:
            self._entries = [
                e for e in self._entries
                if e.chat_id != chat_id or e.message_id not in doomed
            ]
        await self._save()

    # ── Queries ───────────────────────────────────────────────────────────────

    def _select(self, chat_id: int, predicate=None) -> list[MessageEntry]:
        with self._lock:
            return [
                e for e in self._entries
                if e.chat_id == chat_id and (predicate is None or predicate(e))
            ]

    def all(self, chat_id: int) -> list[MessageEntry]:
        return self._select(chat_id)

    def before(self, chat_id: int, moment: datetime) -> list[MessageEntry]:
        return self._select(chat_id, lambda e: e.sent_at < moment)

    def after(self, chat_id: int, moment: datetime) -> list[MessageEntry]:
        return self._select(chat_id, lambda e: e.sent_at > moment)

    def after_by_kind(self, chat_id: int, moment: datetime, kind: MessageKind) -> list[MessageEntry]:
        return self._select(chat_id, lambda e: e.sent_at > moment and e.kind == kind)

    def count(self, chat_id: int) -> int:
        return len(self._select(chat_id))
