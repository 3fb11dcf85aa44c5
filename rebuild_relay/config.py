"""Relay configuration: JSON file + environment overrides."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from rebuild_relay.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("rebuild-relay.json")
CONFIG_PATH_ENV = "REBUILD_RELAY_CONFIG"


class ServerConfig(BaseModel):
    """Settings for the inbound HTTP server."""

    host: str = "127.0.0.1"
    port: int = 8787
    max_body_bytes: int = 262144
    operation_timeout_seconds: float = 15.0


class DispatchConfig(BaseModel):
    """Settings for the GitHub ``repository_dispatch`` call."""

    token: str = ""
    repo: str = ""  # "owner/name"
    api_url: str = "https://api.github.com"
    timeout_seconds: float = 10.0


class DebounceConfig(BaseModel):
    """Settings for batching content changes."""

    delay_seconds: int = Field(default=30, ge=1)
    batch_ttl_buffer_seconds: int = Field(default=60, ge=0)
    marker_ttl_buffer_seconds: int = Field(default=300, ge=0)

    @property
    def delay_ms(self) -> int:
        return self.delay_seconds * 1000

    @property
    def batch_ttl_seconds(self) -> int:
        return self.delay_seconds + self.batch_ttl_buffer_seconds

    @property
    def marker_ttl_seconds(self) -> int:
        return self.delay_seconds + self.marker_ttl_buffer_seconds


class CheckConfig(BaseModel):
    """Settings for the periodic rebuild check."""

    enabled: bool = True
    interval_seconds: float = 10.0
    secret: str = ""  # empty = /rebuild-check accepts unauthenticated calls


class SourceAuthConfig(BaseModel):
    """Shared-secret validation for one inbound webhook source."""

    auth_mode: Literal["bearer", "hmac"] = "bearer"
    secret: str = ""
    hmac_header: str = "X-Signature-256"
    hmac_sig_prefix: str = "sha256="


class DeploySourceConfig(BaseModel):
    """Deploy-platform webhook source."""

    auth: SourceAuthConfig = Field(default_factory=SourceAuthConfig)
    # project id -> "owner/name"; empty map routes every project to dispatch.repo
    project_repos: dict[str, str] = Field(default_factory=dict)


class ContentSourceConfig(BaseModel):
    """CMS content-change webhook source."""

    auth: SourceAuthConfig = Field(default_factory=SourceAuthConfig)


class StoreConfig(BaseModel):
    """Key-value store backend selection."""

    backend: Literal["memory", "file", "redis"] = "memory"
    path: str = "relay-state.json"
    redis_url: str = "redis://localhost:6379/0"
    redis_prefix: str = "rebuild-relay"


class RelayConfig(BaseModel):
    """Top-level configuration loaded from ``rebuild-relay.json``."""

    log_level: str = "INFO"
    log_dir: str | None = None
    server: ServerConfig = Field(default_factory=ServerConfig)
    dispatch: DispatchConfig = Field(default_factory=DispatchConfig)
    debounce: DebounceConfig = Field(default_factory=DebounceConfig)
    check: CheckConfig = Field(default_factory=CheckConfig)
    deploy: DeploySourceConfig = Field(default_factory=DeploySourceConfig)
    content: ContentSourceConfig = Field(default_factory=ContentSourceConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)


def deep_merge_config(
    user: dict[str, object],
    defaults: dict[str, object],
) -> dict[str, object]:
    """Recursively merge *defaults* into *user*, preserving user values."""
    result: dict[str, object] = dict(user)
    for key, default_val in defaults.items():
        if key not in result:
            result[key] = default_val
        elif isinstance(default_val, dict) and isinstance(result[key], dict):
            result[key] = deep_merge_config(
                result[key],  # type: ignore[arg-type]
                default_val,
            )
    return result


def _apply_env_overrides(data: dict[str, object], env: dict[str, str]) -> None:
    """Copy secrets and targets from the environment into *data* in place."""

    def _section(*keys: str) -> dict[str, object]:
        node = data
        for key in keys:
            node = node.setdefault(key, {})  # type: ignore[assignment]
        return node

    mapping: list[tuple[str, tuple[str, ...], str]] = [
        ("GITHUB_TOKEN", ("dispatch",), "token"),
        ("GITHUB_REPO", ("dispatch",), "repo"),
        ("DEPLOY_WEBHOOK_SECRET", ("deploy", "auth"), "secret"),
        ("CONTENT_WEBHOOK_SECRET", ("content", "auth"), "secret"),
        ("REBUILD_CHECK_SECRET", ("check",), "secret"),
    ]
    for env_name, section, key in mapping:
        value = env.get(env_name, "").strip()
        if value:
            _section(*section)[key] = value
            logger.debug("Config override from env: %s", env_name)

    redis_url = env.get("REDIS_URL", "").strip()
    if redis_url:
        store = _section("store")
        store["redis_url"] = redis_url
        store["backend"] = "redis"
        logger.debug("Config override from env: REDIS_URL (backend=redis)")


def load_config(
    path: Path | None = None,
    *,
    env: dict[str, str] | None = None,
) -> RelayConfig:
    """Load the relay config.

    Resolution order:
    1. *path*, else ``$REBUILD_RELAY_CONFIG``, else ``./rebuild-relay.json``
    2. Pydantic defaults for every key the file does not set
    3. Environment variables for secrets (override file values)

    A missing file is not an error; the relay then runs on defaults + env.
    """
    env = dict(os.environ) if env is None else env
    if path is None:
        path = Path(env.get(CONFIG_PATH_ENV, "") or DEFAULT_CONFIG_PATH)

    user: dict[str, object] = {}
    if path.exists():
        try:
            loaded = json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            msg = f"Cannot read config file {path}: {exc}"
            raise ConfigurationError(msg) from exc
        if not isinstance(loaded, dict):
            msg = f"Config file {path} must contain a JSON object"
            raise ConfigurationError(msg)
        user = loaded
        logger.info("Config loaded from %s", path)
    else:
        logger.info("No config file at %s, using defaults + environment", path)

    data = deep_merge_config(user, RelayConfig().model_dump())
    _apply_env_overrides(data, env)

    try:
        return RelayConfig.model_validate(data)
    except PydanticValidationError as exc:
        msg = f"Invalid config: {exc}"
        raise ConfigurationError(msg) from exc
