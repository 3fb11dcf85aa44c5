"""Logging context: ContextVar-based log enrichment for request handling.

Every log record is automatically enriched with a ``[op:subject]`` prefix
via a `ContextFilter` attached to the root logger handlers.

Operation codes: ``deploy`` (deploy webhook), ``content`` (content webhook),
``check`` (scheduled rebuild check).
"""

from __future__ import annotations

import logging
from contextvars import ContextVar

ctx_operation: ContextVar[str | None] = ContextVar("ctx_operation", default=None)
ctx_subject: ContextVar[str | None] = ContextVar("ctx_subject", default=None)


class ContextFilter(logging.Filter):
    """Inject ContextVar values into every LogRecord as ``record.ctx``."""

    def filter(self, record: logging.LogRecord) -> bool:
        op = ctx_operation.get(None)
        subject = ctx_subject.get(None)
        parts = [p for p in (op, subject) if p]
        record.ctx = f"[{':'.join(parts)}] " if parts else ""
        return True


def set_log_context(
    *,
    operation: str | None = None,
    subject: str | None = None,
) -> None:
    """Set logging context for the current asyncio task.

    aiohttp runs every request handler in its own task, so values set here
    never leak between requests.
    """
    if operation is not None:
        ctx_operation.set(operation)
    if subject is not None:
        ctx_subject.set(subject)
