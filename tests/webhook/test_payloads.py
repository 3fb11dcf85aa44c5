"""Tests for deploy and content payload parsing."""

from __future__ import annotations

from typing import Any

import pytest

from rebuild_relay.errors import ValidationError
from rebuild_relay.webhook.payloads import parse_content_event, parse_deploy_event


class TestDeployPayload:
    def test_extracts_project_id_and_keeps_payload(self) -> None:
        payload = {"type": "DEPLOY", "project": {"id": "p-1", "name": "site"}}
        event = parse_deploy_event(payload)
        assert event.project_id == "p-1"
        assert event.payload is payload

    @pytest.mark.parametrize(
        "payload",
        [{}, {"project": None}, {"project": {}}, {"project": {"id": ""}}, {"project": "p-1"}],
    )
    def test_missing_project_id(self, payload: dict[str, Any]) -> None:
        with pytest.raises(ValidationError, match="project ID"):
            parse_deploy_event(payload)


class TestContentPayload:
    def test_doc_id_field(self) -> None:
        event = parse_content_event({"collection": "posts", "docId": "42"})
        assert (event.collection, event.doc_id) == ("posts", "42")

    def test_integer_id_normalized(self) -> None:
        assert parse_content_event({"collection": "posts", "id": 42}).doc_id == "42"

    def test_nested_doc_id(self) -> None:
        assert parse_content_event({"collection": "posts", "doc": {"id": "abc"}}).doc_id == "abc"

    def test_doc_id_takes_precedence(self) -> None:
        event = parse_content_event({"collection": "posts", "docId": "1", "id": "2"})
        assert event.doc_id == "1"

    @pytest.mark.parametrize(
        "payload",
        [
            {"docId": "42"},
            {"collection": "", "docId": "42"},
            {"collection": 5, "docId": "42"},
        ],
    )
    def test_missing_collection(self, payload: dict[str, Any]) -> None:
        with pytest.raises(ValidationError, match="collection"):
            parse_content_event(payload)

    @pytest.mark.parametrize(
        "payload",
        [
            {"collection": "posts"},
            {"collection": "posts", "docId": ""},
            {"collection": "posts", "docId": True},
            {"collection": "posts", "doc": "42"},
        ],
    )
    def test_missing_doc_id(self, payload: dict[str, Any]) -> None:
        with pytest.raises(ValidationError, match="document ID"):
            parse_content_event(payload)
