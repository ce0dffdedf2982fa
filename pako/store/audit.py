"""
Audit log — one row per command execution, in SQLite.

Uses aiosqlite for async SQLite access.
WAL mode enabled so `pako logs`-style readers don't block the bot.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path

import aiosqlite

from pako.core.errors import StorageError

logger = logging.getLogger(__name__)


@dataclass
class AuditEntry:
    """One executed command."""

    chat_id: int
    command: str
    args: str = ""
    username: str = ""
    exit_code: int = 0
    duration_ms: int = 0
    timestamp: float = field(default_factory=time.time)


class AuditLog:
    """
    SQLite-backed audit log.

    Usage:
        audit = AuditLog("./audit.db")
        await audit.initialize()
        await audit.log(AuditEntry(chat_id=1, command="deploy", args="prod"))
    """

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = Path(db_path).expanduser()
        self._db: aiosqlite.Connection | None = None

    @property
    def enabled(self) -> bool:
        return True

    async def initialize(self) -> None:
        """Open the database and create the table."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            self._db = await aiosqlite.connect(str(self._db_path))

            await self._db.execute("PRAGMA journal_mode=WAL")
            await self._db.execute("PRAGMA synchronous=NORMAL")

            await self._db.execute(
                """
                CREATE TABLE IF NOT EXISTS audit_log (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp REAL NOT NULL,
                    chat_id INTEGER NOT NULL,
                    username TEXT NOT NULL DEFAULT '',
                    command TEXT NOT NULL,
                    args TEXT NOT NULL DEFAULT '',
                    exit_code INTEGER NOT NULL DEFAULT 0,
                    duration_ms INTEGER NOT NULL DEFAULT 0
                )
                """
            )
            await self._db.execute(
                "CREATE INDEX IF NOT EXISTS idx_audit_timestamp ON audit_log(timestamp)"
            )
            await self._db.commit()
            logger.debug(f"Audit log initialized at {self._db_path}")

        except Exception as e:
            raise StorageError(f"Failed to initialize audit log at {self._db_path}: {e}")

    async def _ensure_db(self) -> aiosqlite.Connection:
        if self._db is None:
            await self.initialize()
        return self._db  # type: ignore[return-value]

    async def log(self, entry: AuditEntry) -> None:
        db = await self._ensure_db()
        try:
            await db.execute(
                """
                INSERT INTO audit_log
                    (timestamp, chat_id, username, command, args, exit_code, duration_ms)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    entry.timestamp,
                    entry.chat_id,
                    entry.username,
                    entry.command,
                    entry.args,
                    entry.exit_code,
                    entry.duration_ms,
                ),
            )
            await db.commit()
        except Exception as e:
            raise StorageError(f"Failed to write audit entry for /{entry.command}: {e}")

    async def recent(self, limit: int = 20) -> list[AuditEntry]:
        """Newest entries first."""
        db = await self._ensure_db()
        try:
            async with db.execute(
                """
                SELECT timestamp, chat_id, username, command, args, exit_code, duration_ms
                FROM audit_log ORDER BY id DESC LIMIT ?
                """,
                (limit,),
            ) as cursor:
                rows = await cursor.fetchall()
        except Exception as e:
            raise StorageError(f"Failed to read audit log: {e}")

        return [
            AuditEntry(
                timestamp=row[0],
                chat_id=row[1],
                username=row[2],
                command=row[3],
                args=row[4],
                exit_code=row[5],
                duration_ms=row[6],
            )
            for row in rows
        ]

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None


class NopAuditLog:
    """Stand-in used when auditing is disabled."""

    @property
    def enabled(self) -> bool:
        return False

    async def initialize(self) -> None:
        pass

    async def log(self, entry: AuditEntry) -> None:
        pass

    async def recent(self, limit: int = 20) -> list[AuditEntry]:
        return []

    async def close(self) -> None:
        pass
