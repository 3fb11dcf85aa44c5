"""Project-level exception hierarchy."""

from __future__ import annotations


class RelayError(Exception):
    """Base for all rebuild-relay exceptions."""


class ValidationError(RelayError):
    """Inbound payload is malformed or unauthorized."""


class ConfigurationError(RelayError):
    """Required credential or dispatch target is missing or invalid."""


class StoreError(RelayError):
    """Key-value store is unavailable or holds a corrupt record."""


class UpstreamError(RelayError):
    """Dispatch API rejected the request or could not be reached.

    ``status`` is ``0`` when no HTTP response was received.
    """

    def __init__(self, status: int, body: str) -> None:
        super().__init__(f"Dispatch failed with status {status}: {body}")
        self.status = status
        self.body = body
