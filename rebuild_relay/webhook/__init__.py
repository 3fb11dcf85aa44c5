"""Webhook ingress: HTTP routes for deploy, content and check requests."""

from rebuild_relay.webhook.server import RelayServer

__all__ = ["RelayServer"]
