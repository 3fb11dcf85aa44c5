"""Inbound payload parsing for the deploy and content sources."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from rebuild_relay.errors import ValidationError


@dataclass(frozen=True)
class DeployEvent:
    """A deploy-platform notification (Railway-style payload)."""

    project_id: str
    payload: dict[str, Any]


@dataclass(frozen=True)
class ContentEvent:
    """A CMS document change."""

    collection: str
    doc_id: str


def _as_id(value: Any) -> str | None:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def parse_deploy_event(payload: dict[str, Any]) -> DeployEvent:
    """Extract ``project.id``; the whole payload is forwarded as-is."""
    project = payload.get("project")
    project_id = _as_id(project.get("id")) if isinstance(project, dict) else None
    if project_id is None:
        msg = "Missing project ID in payload"
        raise ValidationError(msg)
    return DeployEvent(project_id=project_id, payload=payload)


def parse_content_event(payload: dict[str, Any]) -> ContentEvent:
    """Extract ``collection`` and the document id.

    The id is read from ``docId``, then ``id``, then ``doc.id``.
    """
    collection = payload.get("collection")
    if not isinstance(collection, str) or not collection.strip():
        msg = "Missing collection in payload"
        raise ValidationError(msg)

    doc = payload.get("doc")
    candidates = [payload.get("docId"), payload.get("id")]
    if isinstance(doc, dict):
        candidates.append(doc.get("id"))
    doc_id = next((i for i in map(_as_id, candidates) if i is not None), None)
    if doc_id is None:
        msg = "Missing document ID in payload"
        raise ValidationError(msg)
    return ContentEvent(collection=collection.strip(), doc_id=doc_id)
