"""Process-wide logging, driven by ``RelayConfig.log_level`` and ``log_dir``."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING

from rebuild_relay.log_context import ContextFilter

if TYPE_CHECKING:
    from rebuild_relay.config import RelayConfig

LOG_FILE = "relay.log"
MAX_BYTES = 5 * 1024 * 1024
BACKUP_COUNT = 3

LOG_FMT = "%(asctime)s %(levelname)-8s %(name)s: %(ctx)s%(message)s"
DATE_FMT = "%Y-%m-%d %H:%M:%S"

_NOISY_LOGGERS = ("aiohttp.access", "aiohttp.client", "redis")

logger = logging.getLogger(__name__)

# Handlers this module installed; anything else on the root logger is not ours to close.
_owned: list[logging.Handler] = []


def resolve_level(name: str) -> int:
    """Map a config level name (``"debug"``, ``"INFO"``...) to a logging constant."""
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(config: RelayConfig | None = None, *, verbose: bool = False) -> None:
    """Install the console handler, plus a rotating file when ``log_dir`` is set.

    Called without *config* before the config file is read, then again with it.
    Every handler carries the ``[op:subject]`` context prefix.
    """
    if verbose:
        level = logging.DEBUG
    elif config is not None:
        level = resolve_level(config.log_level)
    else:
        level = logging.INFO

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if config is not None and config.log_dir:
        log_dir = Path(config.log_dir).expanduser()
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                log_dir / LOG_FILE,
                maxBytes=MAX_BYTES,
                backupCount=BACKUP_COUNT,
                encoding="utf-8",
            )
        )

    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    while _owned:
        _owned.pop().close()

    formatter = logging.Formatter(LOG_FMT, datefmt=DATE_FMT)
    ctx_filter = ContextFilter()
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(ctx_filter)
        root.addHandler(handler)
        _owned.append(handler)
    root.setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger.debug("Logging configured (level=%s)", logging.getLevelName(level))
