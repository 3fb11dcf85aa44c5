"""Relay HTTP server: aiohttp ingress for deploy, content and check requests."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING, Any

from aiohttp import web

from rebuild_relay.errors import (
    ConfigurationError,
    StoreError,
    UpstreamError,
    ValidationError,
)
from rebuild_relay.log_context import set_log_context
from rebuild_relay.webhook.auth import validate_bearer_token, validate_source_auth
from rebuild_relay.webhook.payloads import parse_content_event, parse_deploy_event

if TYPE_CHECKING:
    from rebuild_relay.config import RelayConfig, SourceAuthConfig
    from rebuild_relay.debounce.check import ScheduledCheck
    from rebuild_relay.debounce.scheduler import DebounceScheduler
    from rebuild_relay.dispatch.github import RebuildTrigger

logger = logging.getLogger(__name__)

DEPLOY_EVENT_TYPE = "railway_deploy"


class RelayServer:
    """HTTP server relaying webhooks into rebuild dispatches.

    Routes (POST only; other methods get 405, other paths 404):
    - ``/deploy-webhook``  -- dispatch ``railway_deploy`` immediately.
    - ``/content-webhook`` -- record the change in the pending batch.
    - ``/rebuild-check``   -- run one scheduled check.
    """

    def __init__(
        self,
        config: RelayConfig,
        *,
        scheduler: DebounceScheduler,
        check: ScheduledCheck,
        trigger: RebuildTrigger,
    ) -> None:
        self._config = config
        self._scheduler = scheduler
        self._check = check
        self._trigger = trigger
        self._runner: web.AppRunner | None = None

    def build_app(self) -> web.Application:
        app = web.Application(client_max_size=self._config.server.max_body_bytes)
        app.router.add_post("/deploy-webhook", self._handle_deploy)
        app.router.add_post("/content-webhook", self._handle_content)
        app.router.add_post("/rebuild-check", self._handle_check)
        return app

    async def start(self) -> None:
        """Create the aiohttp app and start listening."""
        self._runner = web.AppRunner(self.build_app(), access_log=None)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self._config.server.host, self._config.server.port)
        await site.start()
        logger.info(
            "Relay server listening on %s:%d",
            self._config.server.host,
            self._config.server.port,
        )

    async def stop(self) -> None:
        """Shut down the server."""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
        logger.info("Relay server stopped")

    # -- Handlers --

    async def _handle_deploy(self, request: web.Request) -> web.Response:
        set_log_context(operation="deploy")
        payload = await self._read_payload(request, self._config.deploy.auth)
        if isinstance(payload, web.Response):
            return payload

        try:
            event = parse_deploy_event(payload)
        except ValidationError as exc:
            logger.warning("Deploy webhook rejected: %s", exc)
            return _error(400, "invalid_payload", str(exc))
        set_log_context(subject=event.project_id)

        repos = self._config.deploy.project_repos
        repo = repos.get(event.project_id) if repos else None
        if repos and repo is None:
            logger.warning("Deploy webhook rejected: unknown project")
            return _error(404, "project_not_found")

        try:
            async with asyncio.timeout(self._config.server.operation_timeout_seconds):
                await self._trigger.dispatch(DEPLOY_EVENT_TYPE, event.payload, repo=repo)
        except (ConfigurationError, UpstreamError, TimeoutError) as exc:
            return _failure(exc, DEPLOY_EVENT_TYPE)

        target = repo or self._config.dispatch.repo
        logger.info("Deploy dispatched to %s", target)
        return web.json_response({"dispatched": True, "repo": target})

    async def _handle_content(self, request: web.Request) -> web.Response:
        set_log_context(operation="content")
        payload = await self._read_payload(request, self._config.content.auth)
        if isinstance(payload, web.Response):
            return payload

        try:
            event = parse_content_event(payload)
        except ValidationError as exc:
            logger.warning("Content webhook rejected: %s", exc)
            return _error(400, "invalid_payload", str(exc))
        set_log_context(subject=f"{event.collection}/{event.doc_id}")

        try:
            async with asyncio.timeout(self._config.server.operation_timeout_seconds):
                result = await self._scheduler.record_change(event.collection, event.doc_id)
        except (StoreError, TimeoutError) as exc:
            return _failure(exc, "content_update")

        logger.info("Content change recorded")
        return web.json_response({"triggered": result.triggered}, status=202)

    async def _handle_check(self, request: web.Request) -> web.Response:
        set_log_context(operation="check")
        secret = self._config.check.secret
        if secret and not validate_bearer_token(request.headers.get("Authorization", ""), secret):
            logger.warning("Rebuild check rejected: unauthorized")
            return _error(401, "unauthorized")

        try:
            async with asyncio.timeout(self._config.server.operation_timeout_seconds):
                result = await self._check.check_and_dispatch()
        except (ConfigurationError, UpstreamError, StoreError, TimeoutError) as exc:
            return _failure(exc, "content_update")

        return web.json_response(
            {"dispatched": result.dispatched, "totalChanges": result.total_changes}
        )

    async def _read_payload(
        self,
        request: web.Request,
        auth: SourceAuthConfig,
    ) -> dict[str, Any] | web.Response:
        """Authenticate the raw body, then decode it as a JSON object.

        Returns the payload, or the error response to send back.
        """
        if request.content_type != "application/json":
            logger.warning("Webhook rejected: bad content-type %s", request.content_type)
            return _error(415, "content_type_must_be_json")

        raw_body = await request.read()

        sig_value = request.headers.get(auth.hmac_header, "") if auth.auth_mode == "hmac" else ""
        if not validate_source_auth(
            auth,
            authorization=request.headers.get("Authorization", ""),
            signature_header_value=sig_value,
            body=raw_body,
        ):
            logger.warning("Webhook rejected: unauthorized")
            return _error(401, "unauthorized")

        try:
            payload: Any = json.loads(raw_body)
        except (json.JSONDecodeError, ValueError):
            logger.warning("Webhook rejected: invalid JSON")
            return _error(400, "invalid_json")

        if not isinstance(payload, dict):
            logger.warning("Webhook rejected: body not object")
            return _error(400, "body_must_be_object")
        return payload


def _error(status: int, error: str, detail: str = "") -> web.Response:
    body = {"error": error}
    if detail:
        body["detail"] = detail
    return web.json_response(body, status=status)


def _failure(exc: Exception, event_type: str) -> web.Response:
    """Map a dispatch/store failure to its HTTP response and log it."""
    if isinstance(exc, ConfigurationError):
        logger.error("Relay misconfigured (event=%s): %s", event_type, exc)
        return _error(500, "configuration_error", str(exc))
    if isinstance(exc, UpstreamError):
        logger.error("Dispatch failed (event=%s) status=%d", event_type, exc.status)
        return _error(502, "upstream_error", f"status={exc.status} {exc.body}")
    if isinstance(exc, StoreError):
        logger.error("Store unavailable (event=%s): %s", event_type, exc)
        return _error(503, "store_unavailable")
    logger.error("Operation timed out (event=%s)", event_type)
    return _error(504, "timeout")
