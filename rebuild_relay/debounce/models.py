"""Debounce state records and their JSON text encoding."""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

from rebuild_relay.errors import StoreError

PENDING_BATCH_KEY = "pending_changes"
SCHEDULED_REBUILD_KEY = "scheduled_rebuild"
CONTENT_UPDATE = "content_update"

_T = TypeVar("_T")


def _typed(data: dict[str, Any], key: str, kind: type[_T]) -> _T:
    """Return ``data[key]`` if it is a *kind*; bool never passes as int."""
    value = data[key]
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        msg = f"Field '{key}' must be {kind.__name__}, got {type(value).__name__}"
        raise TypeError(msg)
    return value


@dataclass(frozen=True)
class ChangeRecord:
    """One content-change notification, stamped with its ingestion time."""

    collection: str
    doc_id: str
    timestamp: int

    def to_dict(self) -> dict[str, Any]:
        return {"collection": self.collection, "docId": self.doc_id, "timestamp": self.timestamp}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChangeRecord:
        return cls(
            collection=_typed(data, "collection", str),
            doc_id=_typed(data, "docId", str),
            timestamp=_typed(data, "timestamp", int),
        )


@dataclass
class PendingBatch:
    """Content changes collected in the current debounce window."""

    last_update: int
    pending_changes: list[ChangeRecord] = field(default_factory=list)

    def appended(self, record: ChangeRecord, now: int) -> PendingBatch:
        """Return a new batch with *record* added; ``self`` is left untouched."""
        return PendingBatch(last_update=now, pending_changes=[*self.pending_changes, record])

    def to_dict(self) -> dict[str, Any]:
        return {
            "lastUpdate": self.last_update,
            "pendingChanges": [c.to_dict() for c in self.pending_changes],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PendingBatch:
        return cls(
            last_update=_typed(data, "lastUpdate", int),
            pending_changes=[ChangeRecord.from_dict(c) for c in _typed(data, "pendingChanges", list)],
        )


@dataclass(frozen=True)
class ScheduledRebuild:
    """Marker that a batch dispatch is armed and due at ``trigger_time``."""

    trigger_time: int
    type: str = CONTENT_UPDATE

    def to_dict(self) -> dict[str, Any]:
        return {"triggerTime": self.trigger_time, "type": self.type}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ScheduledRebuild:
        return cls(
            trigger_time=_typed(data, "triggerTime", int),
            type=_typed({"type": CONTENT_UPDATE, **data}, "type", str),
        )


@dataclass(frozen=True)
class RecordResult:
    """Outcome of recording one change. Recording never dispatches."""

    triggered: bool = False


@dataclass(frozen=True)
class CheckResult:
    """Outcome of one scheduled check."""

    dispatched: bool
    total_changes: int = 0


def encode(record: PendingBatch | ScheduledRebuild) -> str:
    return json.dumps(record.to_dict(), ensure_ascii=False, separators=(",", ":"))


def decode_batch(raw: str | None) -> PendingBatch | None:
    return _decode(raw, PENDING_BATCH_KEY, PendingBatch.from_dict)


def decode_marker(raw: str | None) -> ScheduledRebuild | None:
    return _decode(raw, SCHEDULED_REBUILD_KEY, ScheduledRebuild.from_dict)


def _decode(raw: str | None, key: str, factory: Callable[[dict[str, Any]], _T]) -> _T | None:
    if raw is None:
        return None
    try:
        data = json.loads(raw)
        if not isinstance(data, dict):
            msg = f"Corrupt record under '{key}': expected object"
            raise StoreError(msg)
        return factory(data)
    except (json.JSONDecodeError, KeyError, TypeError) as exc:
        msg = f"Corrupt record under '{key}': {exc}"
        raise StoreError(msg) from exc
