"""Debounce scheduler: folds content changes into one pending batch."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from rebuild_relay.debounce.models import (
    PENDING_BATCH_KEY,
    SCHEDULED_REBUILD_KEY,
    ChangeRecord,
    PendingBatch,
    RecordResult,
    ScheduledRebuild,
    decode_batch,
    encode,
)
from rebuild_relay.utils.clock import Clock, now_ms

if TYPE_CHECKING:
    from rebuild_relay.config import DebounceConfig
    from rebuild_relay.store.base import KeyValueStore

logger = logging.getLogger(__name__)


class DebounceScheduler:
    """Appends changes to the pending batch and arms the rebuild marker.

    A new window is armed when no batch exists, or when the previous batch has
    been idle for longer than the debounce delay. Changes arriving inside an
    open window only extend the batch; the marker keeps its original
    ``trigger_time``.

    Recording never dispatches. ``ScheduledCheck`` owns every dispatch.

    The read-modify-write below is not atomic: two concurrent calls may read
    the same batch and the later write drops the other's change.
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        config: DebounceConfig,
        clock: Clock = now_ms,
    ) -> None:
        self._store = store
        self._config = config
        self._clock = clock

    async def record_change(self, collection: str, doc_id: str) -> RecordResult:
        previous = decode_batch(await self._store.get(PENDING_BATCH_KEY))
        now = self._clock()

        record = ChangeRecord(collection=collection, doc_id=doc_id, timestamp=now)
        if previous is None:
            batch = PendingBatch(last_update=now, pending_changes=[record])
        else:
            batch = previous.appended(record, now)

        await self._store.put(PENDING_BATCH_KEY, encode(batch), self._config.batch_ttl_seconds)

        if previous is None or now - previous.last_update > self._config.delay_ms:
            marker = ScheduledRebuild(trigger_time=now + self._config.delay_ms)
            await self._store.put(
                SCHEDULED_REBUILD_KEY,
                encode(marker),
                self._config.marker_ttl_seconds,
            )
            logger.info(
                "Rebuild armed for %d (%d pending change(s))",
                marker.trigger_time,
                len(batch.pending_changes),
            )
        else:
            logger.debug("Change appended to open window (%d pending)", len(batch.pending_changes))
            if await self._store.get(SCHEDULED_REBUILD_KEY) is None:
                logger.warning(
                    "Pending batch has no armed rebuild (marker expired); "
                    "it dispatches only after %ds of inactivity or is dropped on expiry",
                    self._config.delay_seconds,
                )

        return RecordResult(triggered=False)
