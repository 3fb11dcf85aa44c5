"""In-process key-value store for tests and single-instance deployments."""

from __future__ import annotations

import logging

from rebuild_relay.utils.clock import Clock, now_ms

logger = logging.getLogger(__name__)


class MemoryStore:
    """Dict-backed store; state is lost when the process exits."""

    def __init__(self, *, clock: Clock = now_ms) -> None:
        self._clock = clock
        self._items: dict[str, tuple[str, int]] = {}

    async def get(self, key: str) -> str | None:
        item = self._items.get(key)
        if item is None:
            return None
        value, expires_at = item
        if self._clock() >= expires_at:
            del self._items[key]
            logger.debug("Key expired: %s", key)
            return None
        return value

    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        self._items[key] = (value, self._clock() + ttl_seconds * 1000)

    async def delete(self, key: str) -> None:
        self._items.pop(key, None)

    async def close(self) -> None:
        """Nothing to release; entries stay readable until they expire."""
