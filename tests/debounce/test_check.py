"""Tests for ScheduledCheck: flushing due batches."""

from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import AsyncMock

import pytest

from rebuild_relay.debounce.models import PENDING_BATCH_KEY, SCHEDULED_REBUILD_KEY
from rebuild_relay.errors import ConfigurationError, StoreError, UpstreamError

if TYPE_CHECKING:
    from conftest import FakeClock

    from rebuild_relay.debounce.check import ScheduledCheck
    from rebuild_relay.debounce.scheduler import DebounceScheduler
    from rebuild_relay.store.memory import MemoryStore


async def _snapshot(store: MemoryStore) -> tuple[str | None, str | None]:
    return await store.get(PENDING_BATCH_KEY), await store.get(SCHEDULED_REBUILD_KEY)


class TestNothingToDo:
    async def test_no_marker(self, check: ScheduledCheck, trigger: AsyncMock) -> None:
        result = await check.check_and_dispatch()
        assert result.dispatched is False
        trigger.dispatch.assert_not_awaited()

    async def test_before_trigger_time_leaves_state(
        self,
        check: ScheduledCheck,
        scheduler: DebounceScheduler,
        store: MemoryStore,
        trigger: AsyncMock,
        clock: FakeClock,
    ) -> None:
        await scheduler.record_change("posts", "42")
        before = await _snapshot(store)
        clock.advance(29999)

        result = await check.check_and_dispatch()

        assert result.dispatched is False
        assert await _snapshot(store) == before
        trigger.dispatch.assert_not_awaited()

    async def test_due_marker_without_batch(
        self, check: ScheduledCheck, store: MemoryStore, trigger: AsyncMock
    ) -> None:
        await store.put(SCHEDULED_REBUILD_KEY, '{"triggerTime":0,"type":"content_update"}', 60)
        result = await check.check_and_dispatch()
        assert result.dispatched is False
        trigger.dispatch.assert_not_awaited()

    async def test_due_marker_with_empty_batch(
        self, check: ScheduledCheck, store: MemoryStore, trigger: AsyncMock
    ) -> None:
        await store.put(SCHEDULED_REBUILD_KEY, '{"triggerTime":0,"type":"content_update"}', 60)
        await store.put(PENDING_BATCH_KEY, '{"lastUpdate":0,"pendingChanges":[]}', 60)
        result = await check.check_and_dispatch()
        assert result.dispatched is False
        trigger.dispatch.assert_not_awaited()


class TestDispatch:
    async def test_single_change_scenario(
        self,
        check: ScheduledCheck,
        scheduler: DebounceScheduler,
        store: MemoryStore,
        trigger: AsyncMock,
        clock: FakeClock,
    ) -> None:
        await scheduler.record_change("posts", "42")

        clock.now = 29999
        assert (await check.check_and_dispatch()).dispatched is False

        clock.now = 30001
        result = await check.check_and_dispatch()

        assert result.dispatched is True
        assert result.total_changes == 1
        trigger.dispatch.assert_awaited_once_with(
            "content_update",
            {
                "batchedChanges": [{"collection": "posts", "docId": "42", "timestamp": 0}],
                "totalChanges": 1,
                "timestamp": 30001,
            },
        )
        assert await _snapshot(store) == (None, None)

    async def test_burst_dispatches_once_in_order(
        self,
        check: ScheduledCheck,
        scheduler: DebounceScheduler,
        trigger: AsyncMock,
        clock: FakeClock,
    ) -> None:
        for i in range(5):
            await scheduler.record_change("posts", str(i))
            clock.advance(1000)
            assert (await check.check_and_dispatch()).dispatched is False

        clock.now = 30000
        assert (await check.check_and_dispatch()).dispatched is True
        assert (await check.check_and_dispatch()).dispatched is False

        trigger.dispatch.assert_awaited_once()
        payload = trigger.dispatch.await_args.args[1]
        assert payload["totalChanges"] == 5
        assert [c["docId"] for c in payload["batchedChanges"]] == ["0", "1", "2", "3", "4"]

    async def test_next_change_after_dispatch_opens_new_window(
        self,
        check: ScheduledCheck,
        scheduler: DebounceScheduler,
        store: MemoryStore,
        clock: FakeClock,
    ) -> None:
        await scheduler.record_change("posts", "1")
        clock.now = 30000
        await check.check_and_dispatch()

        clock.advance(500)
        await scheduler.record_change("posts", "2")

        marker = await store.get(SCHEDULED_REBUILD_KEY)
        assert marker is not None
        assert '"triggerTime":60500' in marker


class TestFailures:
    async def test_upstream_error_keeps_state_for_retry(
        self,
        check: ScheduledCheck,
        scheduler: DebounceScheduler,
        store: MemoryStore,
        trigger: AsyncMock,
        clock: FakeClock,
    ) -> None:
        await scheduler.record_change("posts", "42")
        clock.now = 30000
        before = await _snapshot(store)
        trigger.dispatch.side_effect = UpstreamError(500, "boom")

        with pytest.raises(UpstreamError):
            await check.check_and_dispatch()
        assert await _snapshot(store) == before

        trigger.dispatch.side_effect = None
        result = await check.check_and_dispatch()
        assert result.dispatched is True
        assert trigger.dispatch.await_count == 2
        assert await _snapshot(store) == (None, None)

    async def test_configuration_error_propagates(
        self,
        check: ScheduledCheck,
        scheduler: DebounceScheduler,
        store: MemoryStore,
        trigger: AsyncMock,
        clock: FakeClock,
    ) -> None:
        await scheduler.record_change("posts", "42")
        clock.now = 30000
        trigger.dispatch.side_effect = ConfigurationError("no token")

        with pytest.raises(ConfigurationError):
            await check.check_and_dispatch()
        assert await store.get(PENDING_BATCH_KEY) is not None

    async def test_corrupt_marker_raises_store_error(
        self, check: ScheduledCheck, store: MemoryStore
    ) -> None:
        await store.put(SCHEDULED_REBUILD_KEY, '{"type":"content_update"}', 60)
        with pytest.raises(StoreError):
            await check.check_and_dispatch()
