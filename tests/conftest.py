"""Shared test fixtures."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from rebuild_relay.config import DebounceConfig
from rebuild_relay.debounce.check import ScheduledCheck
from rebuild_relay.debounce.scheduler import DebounceScheduler
from rebuild_relay.dispatch.github import RebuildTrigger
from rebuild_relay.store.memory import MemoryStore


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, start: int = 0) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> MemoryStore:
    return MemoryStore(clock=clock)


@pytest.fixture
def debounce_config() -> DebounceConfig:
    return DebounceConfig(delay_seconds=30, batch_ttl_buffer_seconds=60, marker_ttl_buffer_seconds=300)


@pytest.fixture
def scheduler(
    store: MemoryStore, clock: FakeClock, debounce_config: DebounceConfig
) -> DebounceScheduler:
    return DebounceScheduler(store, config=debounce_config, clock=clock)


@pytest.fixture
def trigger() -> AsyncMock:
    return AsyncMock(spec=RebuildTrigger)


@pytest.fixture
def check(store: MemoryStore, trigger: AsyncMock, clock: FakeClock) -> ScheduledCheck:
    return ScheduledCheck(store, trigger, clock=clock)
