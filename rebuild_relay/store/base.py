"""Key-value store contract shared by all backends."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class KeyValueStore(Protocol):
    """Text values under string keys, each with its own expiry.

    Expired keys read as absent. No transactions, no compare-and-swap:
    concurrent read-modify-write cycles may lose updates.
    """

    async def get(self, key: str) -> str | None: ...

    async def put(self, key: str, value: str, ttl_seconds: int) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def close(self) -> None: ...
