"""Redis key-value store for multi-instance deployments."""

from __future__ import annotations

import logging

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from rebuild_relay.errors import StoreError

logger = logging.getLogger(__name__)

_SOCKET_TIMEOUT = 5.0


class RedisStore:
    """Store backed by plain ``GET``/``SET EX``/``DEL`` commands.

    Keys are namespaced as ``{prefix}:{key}``.
    """

    def __init__(self, client: aioredis.Redis, *, prefix: str = "") -> None:
        self._client = client
        self._prefix = prefix

    @classmethod
    def from_url(cls, url: str, *, prefix: str = "") -> RedisStore:
        client = aioredis.Redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=_SOCKET_TIMEOUT,
            socket_connect_timeout=_SOCKET_TIMEOUT,
        )
        return cls(client, prefix=prefix)

    def _key(self, key: str) -> str:
        return f"{self._prefix}:{key}" if self._prefix else key

    async def get(self, key: str) -> str | None:
        try:
            value = await self._client.get(self._key(key))
        except RedisError as exc:
            msg = f"Redis GET failed for {key}: {exc}"
            raise StoreError(msg) from exc
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            await self._client.set(self._key(key), value, ex=ttl_seconds)
        except RedisError as exc:
            msg = f"Redis SET failed for {key}: {exc}"
            raise StoreError(msg) from exc

    async def delete(self, key: str) -> None:
        try:
            await self._client.delete(self._key(key))
        except RedisError as exc:
            msg = f"Redis DEL failed for {key}: {exc}"
            raise StoreError(msg) from exc

    async def close(self) -> None:
        try:
            await self._client.aclose()
        except RedisError:
            logger.warning("Error closing Redis connection", exc_info=True)
