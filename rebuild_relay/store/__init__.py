"""Key-value store backends for debounce state."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from rebuild_relay.store.base import KeyValueStore
from rebuild_relay.store.file import JsonFileStore
from rebuild_relay.store.memory import MemoryStore

if TYPE_CHECKING:
    from rebuild_relay.config import StoreConfig

logger = logging.getLogger(__name__)

__all__ = ["JsonFileStore", "KeyValueStore", "MemoryStore", "create_store"]


def create_store(config: StoreConfig) -> KeyValueStore:
    """Build the backend selected by ``config.backend``."""
    if config.backend == "redis":
        from rebuild_relay.store.redis_store import RedisStore

        logger.info("Using Redis store (prefix=%s)", config.redis_prefix)
        return RedisStore.from_url(config.redis_url, prefix=config.redis_prefix)
    if config.backend == "file":
        logger.info("Using JSON file store at %s", config.path)
        return JsonFileStore(Path(config.path))
    logger.info("Using in-memory store")
    return MemoryStore()
