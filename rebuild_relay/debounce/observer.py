"""Check observer: drives ``ScheduledCheck`` on a fixed interval."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING

from rebuild_relay.log_context import set_log_context

if TYPE_CHECKING:
    from rebuild_relay.config import CheckConfig
    from rebuild_relay.debounce.check import ScheduledCheck

logger = logging.getLogger(__name__)


class CheckObserver:
    """Runs the scheduled check in a background asyncio task.

    A failing tick is logged and the loop keeps going; the stored batch is
    left in place, so the next tick retries the dispatch.
    """

    def __init__(self, check: ScheduledCheck, config: CheckConfig) -> None:
        self._check = check
        self._config = config
        self._task: asyncio.Task[None] | None = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the check loop."""
        if not self._config.enabled:
            logger.info("Periodic rebuild check disabled in config")
            return
        self._running = True
        self._task = asyncio.create_task(self._loop())
        self._task.add_done_callback(_log_task_crash)
        logger.info("Rebuild check started (every %.0fs)", self._config.interval_seconds)

    async def stop(self) -> None:
        """Stop the check loop."""
        self._running = False
        if self._task:
            task = self._task
            self._task = None
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        logger.info("Rebuild check stopped")

    async def _loop(self) -> None:
        """Sleep -> check -> repeat."""
        set_log_context(operation="check")
        try:
            while self._running:
                await asyncio.sleep(self._config.interval_seconds)
                if not self._running:
                    continue
                await self.tick()
        except asyncio.CancelledError:
            logger.debug("Rebuild check loop cancelled")

    async def tick(self) -> None:
        """Run a single check, logging instead of raising."""
        try:
            result = await self._check.check_and_dispatch()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Rebuild check failed (state kept for retry)")
            return
        if result.dispatched:
            logger.info("Periodic check dispatched %d change(s)", result.total_changes)


def _log_task_crash(task: asyncio.Task[None]) -> None:
    """Log if the check background task crashes unexpectedly."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Rebuild check loop crashed: %s", exc, exc_info=exc)
