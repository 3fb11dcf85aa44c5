"""Component wiring and the long-running serve loop."""

from __future__ import annotations

import asyncio
import logging
import signal
import sys
from dataclasses import dataclass
from typing import TYPE_CHECKING

from rebuild_relay.debounce.check import ScheduledCheck
from rebuild_relay.debounce.observer import CheckObserver
from rebuild_relay.debounce.scheduler import DebounceScheduler
from rebuild_relay.dispatch.github import RebuildTrigger
from rebuild_relay.errors import ConfigurationError
from rebuild_relay.store import create_store
from rebuild_relay.webhook.server import RelayServer

if TYPE_CHECKING:
    from rebuild_relay.config import RelayConfig
    from rebuild_relay.debounce.models import CheckResult
    from rebuild_relay.store.base import KeyValueStore

logger = logging.getLogger(__name__)


@dataclass
class Relay:
    """Everything one relay process needs, built from a single config."""

    config: RelayConfig
    store: KeyValueStore
    trigger: RebuildTrigger
    scheduler: DebounceScheduler
    check: ScheduledCheck

    @classmethod
    def from_config(cls, config: RelayConfig, *, store: KeyValueStore | None = None) -> Relay:
        store = store if store is not None else create_store(config.store)
        trigger = RebuildTrigger(config.dispatch)
        return cls(
            config=config,
            store=store,
            trigger=trigger,
            scheduler=DebounceScheduler(store, config=config.debounce),
            check=ScheduledCheck(store, trigger),
        )

    def server(self) -> RelayServer:
        return RelayServer(
            self.config,
            scheduler=self.scheduler,
            check=self.check,
            trigger=self.trigger,
        )

    async def close(self) -> None:
        await self.store.close()


def _warn_incomplete(config: RelayConfig) -> None:
    if not config.dispatch.token:
        logger.warning("No dispatch token configured; every dispatch will fail")
    if not config.dispatch.repo and not config.deploy.project_repos:
        logger.warning("No dispatch repository configured")
    if not config.deploy.auth.secret:
        logger.warning("No deploy webhook secret configured; /deploy-webhook rejects all requests")
    if not config.content.auth.secret:
        logger.warning("No content webhook secret configured; /content-webhook rejects all requests")


async def serve(config: RelayConfig, *, stop_event: asyncio.Event | None = None) -> None:
    """Run the HTTP server and the periodic check until *stop_event* is set.

    SIGINT/SIGTERM set the event when running on a POSIX event loop.
    """
    _warn_incomplete(config)
    relay = Relay.from_config(config)
    server = relay.server()
    observer = CheckObserver(relay.check, config.check)
    stop = stop_event or asyncio.Event()

    if stop_event is None and sys.platform != "win32":
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, stop.set)

    await server.start()
    try:
        await observer.start()
        await stop.wait()
        logger.info("Shutting down...")
    finally:
        await observer.stop()
        await server.stop()
        await relay.close()


async def run_check_once(config: RelayConfig) -> CheckResult:
    """Run a single scheduled check (for cron-driven deployments).

    A memory store dies with the process, so it would never hold a batch here.
    """
    if config.store.backend == "memory":
        msg = "The check command needs a shared store; set store.backend to 'file' or 'redis'"
        raise ConfigurationError(msg)
    relay = Relay.from_config(config)
    try:
        return await relay.check.check_and_dispatch()
    finally:
        await relay.close()
