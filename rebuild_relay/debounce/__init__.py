"""Debounce core: batches content changes into a single rebuild dispatch."""

from rebuild_relay.debounce.check import ScheduledCheck
from rebuild_relay.debounce.models import ChangeRecord, CheckResult, PendingBatch, RecordResult
from rebuild_relay.debounce.observer import CheckObserver
from rebuild_relay.debounce.scheduler import DebounceScheduler

__all__ = [
    "ChangeRecord",
    "CheckObserver",
    "CheckResult",
    "DebounceScheduler",
    "PendingBatch",
    "RecordResult",
    "ScheduledCheck",
]
