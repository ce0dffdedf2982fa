"""
TelegramAPI — a thin async client for the Telegram Bot API.

Only the methods the bot needs. Every call is a POST to
{api_url}/bot{token}/{method}; a response with "ok": false (or a
transport failure) raises TransportError carrying the method name.

To get a chat id:
    1. Create a bot via @BotFather, copy the token.
    2. Send your bot any message.
    3. Visit https://api.telegram.org/bot<TOKEN>/getUpdates
       and read the "chat.id" field.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Sequence

import aiofiles
import httpx

from pako.bot.fileref import FileKind, FileRef
from pako.core.errors import TransportError

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.telegram.org"
MAX_MESSAGE_LENGTH = 4096

_SEND_METHOD = {
    FileKind.PHOTO: ("sendPhoto", "photo"),
    FileKind.VIDEO: ("sendVideo", "video"),
    FileKind.AUDIO: ("sendAudio", "audio"),
    FileKind.DOCUMENT: ("sendDocument", "document"),
}


class TelegramAPI:
    """
    Bot API client over httpx.

    Usage:
        api = TelegramAPI(token)
        me = await api.get_me()
        msg = await api.send_message(chat_id, "hello")
        await api.close()
    """

    def __init__(
        self,
        token: str,
        base_url: str = DEFAULT_API_URL,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._token = token.strip()
        self._base = f"{base_url.rstrip('/')}/bot{self._token}"
        self._timeout = timeout
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def close(self) -> None:
        await self._client.aclose()

    async def _call(
        self,
        method: str,
        payload: dict[str, Any] | None = None,
        files: dict[str, tuple[str, bytes]] | None = None,
        timeout: float | None = None,
    ) -> Any:
        url = f"{self._base}/{method}"
        try:
            if files:
                # multipart: nested values (reply_markup, media) must be JSON strings
                data = {
                    k: json.dumps(v) if isinstance(v, (dict, list)) else str(v)
                    for k, v in (payload or {}).items()
                }
                resp = await self._client.post(url, data=data, files=files, timeout=timeout or self._timeout)
            else:
                resp = await self._client.post(url, json=payload or {}, timeout=timeout or self._timeout)
            body = resp.json()
        except httpx.HTTPError as e:
            raise TransportError(f"{method} failed: {e}", method=method) from e
        except ValueError as e:
            raise TransportError(f"{method} returned invalid JSON: {e}", method=method) from e

        if not body.get("ok"):
            description = body.get("description", f"HTTP {resp.status_code}")
            raise TransportError(f"{method} failed: {description}", method=method, details=body)
        return body.get("result")

    # ── Updates & identity ────────────────────────────────────────────────────

    async def get_me(self) -> dict:
        return await self._call("getMe")

    async def get_updates(self, offset: int = 0, timeout: int = 30) -> list[dict]:
        """Long-poll for updates newer than offset."""
        return await self._call(
            "getUpdates",
            {
                "offset": offset,
                "timeout": timeout,
                "allowed_updates": ["message", "callback_query"],
            },
            timeout=timeout + 10,
        )

    # ── Messages ──────────────────────────────────────────────────────────────

    async def send_message(
        self,
        chat_id: int,
        text: str,
        reply_markup: dict | None = None,
        parse_mode: str | None = None,
    ) -> dict:
        payload: dict[str, Any] = {"chat_id": chat_id, "text": text[:MAX_MESSAGE_LENGTH]}
        if reply_markup is not None:
            payload["reply_markup"] = reply_markup
        if parse_mode:
            payload["parse_mode"] = parse_mode
        return await self._call("sendMessage", payload)

    async def edit_message_text(
        self,
        chat_id: int,
        message_id: int,
        text: str,
        reply_markup: dict | None = None,
    ) -> None:
        payload: dict[str, Any] = {
            "chat_id": chat_id,
            "message_id": message_id,
            "text": text[:MAX_MESSAGE_LENGTH],
        }
        if reply_markup is not None:
            payload["reply_markup"] = reply_markup
        try:
            await self._call("editMessageText", payload)
        except TransportError as e:
            # Editing to identical text is rejected; nothing to do
            if "message is not modified" not in e.message:
                raise

    async def delete_message(self, chat_id: int, message_id: int) -> None:
        await self._call("deleteMessage", {"chat_id": chat_id, "message_id": message_id})

    async def answer_callback_query(self, callback_query_id: str, text: str = "") -> None:
        payload: dict[str, Any] = {"callback_query_id": callback_query_id}
        if text:
            payload["text"] = text
        await self._call("answerCallbackQuery", payload)

    # ── Files ─────────────────────────────────────────────────────────────────

    async def send_file(self, chat_id: int, ref: FileRef, caption: str = "") -> dict:
        method, field = _SEND_METHOD[ref.kind]
        payload: dict[str, Any] = {"chat_id": chat_id}
        if caption:
            payload["caption"] = caption
        files = {field: (Path(ref.path).name, await _read_bytes(ref.path))}
        return await self._call(method, payload, files=files, timeout=120)

    async def send_media_group(self, chat_id: int, refs: Sequence[FileRef]) -> list[int]:
        """
        Upload files and return the sent message ids.

        Telegram albums hold 2-10 items and can't mix documents or audio
        with photos/videos, so incompatible sets are sent one by one.
        """
        if not refs:
            return []
        if len(refs) == 1 or not _album_compatible(refs):
            ids = []
            for ref in refs:
                sent = await self.send_file(chat_id, ref)
                ids.append(sent["message_id"])
            return ids

        media = []
        files: dict[str, tuple[str, bytes]] = {}
        for i, ref in enumerate(refs):
            attach = f"file{i}"
            media.append({"type": ref.kind.value, "media": f"attach://{attach}"})
            files[attach] = (Path(ref.path).name, await _read_bytes(ref.path))

        sent = await self._call(
            "sendMediaGroup",
            {"chat_id": chat_id, "media": media},
            files=files,
            timeout=300,
        )
        return [m["message_id"] for m in sent]


def _album_compatible(refs: Sequence[FileRef]) -> bool:
    kinds = {ref.kind for ref in refs}
    if kinds <= {FileKind.PHOTO, FileKind.VIDEO}:
        return True
    return len(kinds) == 1  # all documents or all audio


async def _read_bytes(path: str) -> bytes:
    try:
        async with aiofiles.open(path, mode="rb") as f:
            return await f.read()
    except OSError as e:
        raise TransportError(f"Cannot read {path}: {e}") from e
