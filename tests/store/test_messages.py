"""Tests for pako/store/messages.py"""
from __future__ import annotations

import json
from datetime import datetime, timedelta

import pytest

from pako.core.errors import StorageError
from pako.store.messages import MessageKind, MessageStore


@pytest.mark.asyncio
class TestMessageStore:
    async def test_memory_only_store_still_tracks(self):
        store = MessageStore()
        assert not store.enabled
        await store.add(1, 10, MessageKind.TEXT)
        assert store.count(1) == 1

    async def test_add_batch_and_queries(self, tmp_path):
        store = MessageStore(tmp_path / "m.json")
        await store.add_batch(1, [10, 11], MessageKind.FILE)
        await store.add(1, 12, MessageKind.TEXT)
        await store.add(2, 20)

        assert store.count(1) == 3
        cutoff = datetime.now() - timedelta(minutes=1)
        assert {e.message_id for e in store.after_by_kind(1, cutoff, MessageKind.FILE)} == {10, 11}
        assert store.before(1, cutoff) == []
        assert {e.message_id for e in store.after(1, cutoff)} == {10, 11, 12}

    async def test_remove_only_touches_one_chat(self, tmp_path):
        store = MessageStore(tmp_path / "m.json")
        await store.add(1, 10)
        await store.add(2, 10)
        await store.remove(1, [10])
        assert store.count(1) == 0
        assert store.count(2) == 1

    async def test_persists_and_reloads(self, tmp_path):
        path = tmp_path / "nested" / "m.json"
        store = MessageStore(path)
        await store.add(1, 10, MessageKind.TEXT)

        data = json.loads(path.read_text())
        assert data[0]["kind"] == "text"

        fresh = MessageStore(path)
        await fresh.load()
        [entry] = fresh.all(1)
        assert entry.message_id == 10
        assert entry.kind == MessageKind.TEXT

    async def test_missing_file_loads_empty(self, tmp_path):
        store = MessageStore(tmp_path / "none.json")
        await store.load()
        assert store.count(1) == 0

    async def test_corrupt_file_raises(self, tmp_path):
        path = tmp_path / "m.json"
        path.write_text("{not json")
        with pytest.raises(StorageError):
            await MessageStore(path).load()
