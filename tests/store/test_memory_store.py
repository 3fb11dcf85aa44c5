"""Tests for MemoryStore."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rebuild_relay.store.base import KeyValueStore
from rebuild_relay.store.memory import MemoryStore

if TYPE_CHECKING:
    from conftest import FakeClock


class TestMemoryStore:
    def test_satisfies_protocol(self, store: MemoryStore) -> None:
        assert isinstance(store, KeyValueStore)

    async def test_put_then_get(self, store: MemoryStore) -> None:
        await store.put("k", "v", 10)
        assert await store.get("k") == "v"

    async def test_missing_key(self, store: MemoryStore) -> None:
        assert await store.get("nope") is None

    async def test_expires_after_ttl(self, store: MemoryStore, clock: FakeClock) -> None:
        await store.put("k", "v", 10)
        clock.advance(9999)
        assert await store.get("k") == "v"
        clock.advance(1)
        assert await store.get("k") is None

    async def test_put_refreshes_ttl(self, store: MemoryStore, clock: FakeClock) -> None:
        await store.put("k", "v1", 10)
        clock.advance(8000)
        await store.put("k", "v2", 10)
        clock.advance(8000)
        assert await store.get("k") == "v2"

    async def test_delete(self, store: MemoryStore) -> None:
        await store.put("k", "v", 10)
        await store.delete("k")
        await store.delete("k")
        assert await store.get("k") is None
