"""Outbound rebuild dispatch."""

from rebuild_relay.dispatch.github import RebuildTrigger

__all__ = ["RebuildTrigger"]
