"""Shared test fixtures for Pako."""

from __future__ import annotations

import asyncio
import itertools

import pytest

from pako.arguments.collector import ArgumentCollector
from pako.commands.base import Capability, CategoryInfo, Command, CommandMetadata, ScheduleSpec
from pako.commands.registry import CommandRegistry
from pako.core.config import DefaultsConfig, PakoConfig
from pako.core.errors import TransportError
from pako.security.auth import Allowlist
from pako.security.confirm import ConfirmationManager
from pako.store.messages import MessageStore


class FakeAPI:
    """
    Records every Bot API call instead of talking to Telegram.

    Message ids are handed out sequentially starting at 100.
    """

    def __init__(self) -> None:
        self._ids = itertools.count(100)
        self.sent: list[dict] = []
        self.edits: list[dict] = []
        self.deleted: list[tuple[int, int]] = []
        self.answered: list[str] = []
        self.files: list[tuple[int, list]] = []
        self.updates: asyncio.Queue = asyncio.Queue()
        self.fail_delete = False

    async def get_me(self) -> dict:
        return {"id": 1, "username": "pako_test_bot"}

    async def get_updates(self, offset: int = 0, timeout: int = 30) -> list[dict]:
        return [await self.updates.get()]

    async def send_message(self, chat_id, text, reply_markup=None, parse_mode=None) -> dict:
        message_id = next(self._ids)
        self.sent.append(
            {"chat_id": chat_id, "text": text, "reply_markup": reply_markup, "message_id": message_id}
        )
        return {"message_id": message_id}

    async def edit_message_text(self, chat_id, message_id, text, reply_markup=None) -> None:
        self.edits.append(
            {"chat_id": chat_id, "message_id": message_id, "text": text, "reply_markup": reply_markup}
        )

    async def delete_message(self, chat_id, message_id) -> None:
        if self.fail_delete:
            raise TransportError("deleteMessage failed: message can't be deleted", method="deleteMessage")
        self.deleted.append((chat_id, message_id))

    async def answer_callback_query(self, callback_query_id, text="") -> None:
        self.answered.append(callback_query_id)

    async def send_file(self, chat_id, ref, caption="") -> dict:
        self.files.append((chat_id, [ref]))
        return {"message_id": next(self._ids)}

    async def send_media_group(self, chat_id, refs) -> list[int]:
        self.files.append((chat_id, list(refs)))
        return [next(self._ids) for _ in refs]

    async def close(self) -> None:
        pass

    # ── Helpers ───────────────────────────────────────────────────────────────

    def texts(self) -> list[str]:
        return [m["text"] for m in self.sent]

    def edit_texts(self) -> list[str]:
        return [e["text"] for e in self.edits]


class FakeCommand(Command):
    """Configurable command for coordinator and registry tests."""

    def __init__(
        self,
        name: str,
        output: str = "",
        capabilities: frozenset[Capability] = frozenset(),
        category: CategoryInfo | None = None,
        schedule: ScheduleSpec | None = None,
        arguments=None,
        template: str = "",
        error: Exception | None = None,
        timeout: float = 60.0,
        delay: float = 0.0,
    ) -> None:
        self._name = name
        self._output = output
        self._caps = frozenset(capabilities)
        self._category = category or CategoryInfo()
        self._schedule = schedule
        self._arguments = list(arguments or [])
        self._template = template
        self._error = error
        self._timeout = timeout
        self._delay = delay
        self.calls: list[list[str]] = []
        self.rendered: list[str] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return f"{self._name} command"

    @property
    def capabilities(self) -> frozenset[Capability]:
        return self._caps

    @property
    def metadata(self) -> CommandMetadata:
        return CommandMetadata(timeout=self._timeout, max_output=5000)

    @property
    def category(self) -> CategoryInfo:
        return self._category

    @property
    def schedule(self) -> ScheduleSpec | None:
        return self._schedule

    @property
    def arguments(self):
        return list(self._arguments)

    async def execute(self, args, output) -> None:
        self.calls.append(list(args))
        await self._run(output)

    def render(self, values) -> str:
        from pako.arguments.template import render_command

        return render_command(self._template, values)

    async def execute_rendered(self, rendered, output) -> None:
        self.rendered.append(rendered)
        await self._run(output)

    async def _run(self, output) -> None:
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._output:
            await output.write(self._output)
        if self._error is not None:
            raise self._error


@pytest.fixture
def config():
    """Create a default config without loading from disk."""
    return PakoConfig()


@pytest.fixture
def defaults():
    return DefaultsConfig()


@pytest.fixture
def fake_api():
    return FakeAPI()


@pytest.fixture
def registry():
    """Create a fresh command registry."""
    return CommandRegistry()


@pytest.fixture
def allowlist():
    return Allowlist([42])


@pytest.fixture
def collector():
    return ArgumentCollector(default_timeout=120)


@pytest.fixture
def confirmations():
    return ConfirmationManager(ttl=300)


@pytest.fixture
def message_store():
    """In-memory message store (no persistence)."""
    return MessageStore()
