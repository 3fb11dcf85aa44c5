"""Scheduled check: flushes the pending batch once its window has elapsed."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from rebuild_relay.debounce.models import (
    PENDING_BATCH_KEY,
    SCHEDULED_REBUILD_KEY,
    CheckResult,
    decode_batch,
    decode_marker,
)
from rebuild_relay.utils.clock import Clock, now_ms

if TYPE_CHECKING:
    from rebuild_relay.dispatch.github import RebuildTrigger
    from rebuild_relay.store.base import KeyValueStore

logger = logging.getLogger(__name__)


class ScheduledCheck:
    """Dispatches the accumulated batch when the armed marker is due.

    Safe to call redundantly: without a due marker and a non-empty batch it
    does nothing. Two overlapping calls can both dispatch the same batch.
    """

    def __init__(
        self,
        store: KeyValueStore,
        trigger: RebuildTrigger,
        *,
        clock: Clock = now_ms,
    ) -> None:
        self._store = store
        self._trigger = trigger
        self._clock = clock

    async def check_and_dispatch(self) -> CheckResult:
        """Run one check.

        Raises:
            StoreError: the store could not be read or cleaned up.
            ConfigurationError, UpstreamError: the dispatch failed; stored
                state is kept so the next check retries.
        """
        marker = decode_marker(await self._store.get(SCHEDULED_REBUILD_KEY))
        if marker is None:
            logger.debug("Check: nothing armed")
            return CheckResult(dispatched=False)

        now = self._clock()
        if now < marker.trigger_time:
            logger.debug("Check: rebuild due in %dms", marker.trigger_time - now)
            return CheckResult(dispatched=False)

        batch = decode_batch(await self._store.get(PENDING_BATCH_KEY))
        if batch is None or not batch.pending_changes:
            logger.info("Check: marker due but no pending changes")
            return CheckResult(dispatched=False)

        total = len(batch.pending_changes)
        payload = {
            "batchedChanges": [c.to_dict() for c in batch.pending_changes],
            "totalChanges": total,
            "timestamp": now,
        }
        logger.info("Check: dispatching %d batched change(s)", total)
        await self._trigger.dispatch(marker.type, payload)

        await self._store.delete(PENDING_BATCH_KEY)
        await self._store.delete(SCHEDULED_REBUILD_KEY)
        logger.info("Check: batch dispatched and cleared")
        return CheckResult(dispatched=True, total_changes=total)
