"""JSON-file key-value store.

All keys live in one JSON document ``{"entries": {key: {"value", "expires_at"}}}``.
Writes go to a temp file that is renamed over the original, so a reader
never sees a half-written document.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from rebuild_relay.errors import StoreError
from rebuild_relay.utils.clock import Clock, now_ms

logger = logging.getLogger(__name__)


class JsonFileStore:
    """Persistent store for single-host deployments.

    Blocking file I/O runs in a worker thread. Each operation re-reads the
    file, so several processes may share it (with the same lost-update
    caveat as every other backend).
    """

    def __init__(self, path: Path, *, clock: Clock = now_ms) -> None:
        self._path = path
        self._clock = clock

    async def get(self, key: str) -> str | None:
        return await asyncio.to_thread(self._get, key)

    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        await asyncio.to_thread(self._put, key, value, ttl_seconds)

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self._delete, key)

    async def close(self) -> None:
        """Nothing to release; the file is opened per operation."""

    # -- Sync implementations --

    def _get(self, key: str) -> str | None:
        entry = self._load().get(key)
        if entry is None:
            return None
        if self._clock() >= entry["expires_at"]:
            logger.debug("Key expired: %s", key)
            return None
        value: str = entry["value"]
        return value

    def _put(self, key: str, value: str, ttl_seconds: int) -> None:
        entries = self._prune(self._load())
        entries[key] = {"value": value, "expires_at": self._clock() + ttl_seconds * 1000}
        self._save(entries)

    def _delete(self, key: str) -> None:
        entries = self._prune(self._load())
        if entries.pop(key, None) is not None:
            self._save(entries)

    def _prune(self, entries: dict[str, Any]) -> dict[str, Any]:
        now = self._clock()
        return {k: e for k, e in entries.items() if e["expires_at"] > now}

    # -- Persistence --

    def _load(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except OSError as exc:
            msg = f"Cannot read store file {self._path}: {exc}"
            raise StoreError(msg) from exc
        except json.JSONDecodeError as exc:
            msg = f"Corrupt store file {self._path}"
            raise StoreError(msg) from exc
        entries = data.get("entries") if isinstance(data, dict) else None
        if not isinstance(entries, dict):
            msg = f"Corrupt store file {self._path}: missing 'entries' object"
            raise StoreError(msg)
        for key, entry in entries.items():
            if not _valid_entry(entry):
                msg = f"Corrupt store file {self._path}: bad entry '{key}'"
                raise StoreError(msg)
        return entries

    def _save(self, entries: dict[str, Any]) -> None:
        """Save entries atomically (temp write + rename)."""
        content = json.dumps({"entries": entries}, indent=2, ensure_ascii=False) + "\n"
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=str(self._path.parent), suffix=".tmp")
        except OSError as exc:
            msg = f"Cannot write store file {self._path}: {exc}"
            raise StoreError(msg) from exc
        tmp = Path(tmp_path)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            tmp.replace(self._path)
        except OSError as exc:
            tmp.unlink(missing_ok=True)
            msg = f"Cannot write store file {self._path}: {exc}"
            raise StoreError(msg) from exc
        except BaseException:
            tmp.unlink(missing_ok=True)
            raise


def _valid_entry(entry: Any) -> bool:
    if not isinstance(entry, dict):
        return False
    expires_at = entry.get("expires_at")
    return (
        isinstance(entry.get("value"), str)
        and isinstance(expires_at, int)
        and not isinstance(expires_at, bool)
    )
