"""Rebuild trigger: GitHub ``repository_dispatch`` client."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import aiohttp

from rebuild_relay.errors import ConfigurationError, UpstreamError

if TYPE_CHECKING:
    from rebuild_relay.config import DispatchConfig

logger = logging.getLogger(__name__)

_API_VERSION = "2022-11-28"
_USER_AGENT = "rebuild-relay"
_MAX_ERROR_BODY = 2000


class RebuildTrigger:
    """Sends typed rebuild events to a repository's dispatch endpoint.

    One attempt per call. Callers decide whether and when to retry.
    """

    def __init__(self, config: DispatchConfig) -> None:
        self._config = config

    async def dispatch(
        self,
        event_type: str,
        client_payload: dict[str, Any],
        *,
        repo: str | None = None,
    ) -> None:
        """POST ``{event_type, client_payload}`` to ``/repos/{repo}/dispatches``.

        Raises:
            ConfigurationError: no token, or no target repo.
            UpstreamError: non-2xx response, or the request never completed
                (``status=0``).
        """
        target = repo or self._config.repo
        if not self._config.token:
            msg = "Dispatch token is not configured"
            raise ConfigurationError(msg)
        if not target:
            msg = "Dispatch target repository is not configured"
            raise ConfigurationError(msg)

        url = f"{self._config.api_url.rstrip('/')}/repos/{target}/dispatches"
        headers = {
            "Authorization": f"Bearer {self._config.token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": _API_VERSION,
            "User-Agent": _USER_AGENT,
        }
        body = {"event_type": event_type, "client_payload": client_payload}
        timeout = aiohttp.ClientTimeout(total=self._config.timeout_seconds)

        logger.info("Dispatching event=%s to repo=%s", event_type, target)
        try:
            async with (
                aiohttp.ClientSession(timeout=timeout, headers=headers) as session,
                session.post(url, json=body) as resp,
            ):
                if 200 <= resp.status < 300:
                    logger.info("Dispatch accepted event=%s repo=%s", event_type, target)
                    return
                text = (await resp.text())[:_MAX_ERROR_BODY]
                status = resp.status
        except (aiohttp.ClientError, TimeoutError) as exc:
            logger.warning("Dispatch request failed event=%s repo=%s: %r", event_type, target, exc)
            raise UpstreamError(0, repr(exc)) from exc

        logger.warning(
            "Dispatch rejected event=%s repo=%s status=%d body=%s",
            event_type,
            target,
            status,
            text,
        )
        raise UpstreamError(status, text)
