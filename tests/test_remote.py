from __future__ import annotations

import json
from datetime import datetime, timezone

import httpx
import pytest

from glowup_tracker.config import FirebaseConfig
from glowup_tracker.remote import (
    FirestoreDocumentStore,
    RemoteStoreError,
    decode_fields,
    decode_value,
    encode_fields,
    encode_value,
)

CONFIG = FirebaseConfig(api_key="api-key", project_id="glowup-test")
DOCUMENT_PATH = "/v1/projects/glowup-test/databases/(default)/documents/users/uid-1"


def _store(responder) -> FirestoreDocumentStore:
    client = httpx.Client(transport=httpx.MockTransport(responder))
    return FirestoreDocumentStore(CONFIG, client=client)


def test_encode_typed_values() -> None:
    encoded = encode_fields(
        {"level": 2, "progress": 1.5, "done": True, "name": "Read", "missing": None, "tags": ["a"], "nested": {"x": 1}}
    )

    assert encoded["level"] == {"integerValue": "2"}
    assert encoded["progress"] == {"doubleValue": 1.5}
    assert encoded["done"] == {"booleanValue": True}
    assert encoded["name"] == {"stringValue": "Read"}
    assert encoded["missing"] == {"nullValue": None}
    assert encoded["tags"] == {"arrayValue": {"values": [{"stringValue": "a"}]}}
    assert encoded["nested"] == {"mapValue": {"fields": {"x": {"integerValue": "1"}}}}


def test_decode_typed_values_and_timestamps() -> None:
    decoded = decode_fields(
        {
            "streakCount": {"integerValue": "4"},
            "updatedAt": {"timestampValue": "2026-10-17T08:15:30.123456789Z"},
            "habits": {"arrayValue": {}},
        }
    )

    assert decoded["streakCount"] == 4
    assert decoded["updatedAt"] == datetime(2026, 10, 17, 8, 15, 30, 123456, tzinfo=timezone.utc)
    assert decoded["habits"] == []


def test_encode_rejects_unknown_types() -> None:
    with pytest.raises(TypeError):
        encode_value(object())
    with pytest.raises(RemoteStoreError):
        decode_value({"geoPointValue": {}})


def test_get_returns_decoded_document() -> None:
    seen: list[httpx.Request] = []

    def _responder(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"name": "doc", "fields": {"totalXP": {"integerValue": "120"}}})

    document = _store(_responder).get("uid-1", id_token="token-1")

    assert document == {"totalXP": 120}
    assert seen[0].url.path == DOCUMENT_PATH
    assert seen[0].headers["Authorization"] == "Bearer token-1"
    assert seen[0].url.params["key"] == "api-key"


def test_get_missing_document_returns_none() -> None:
    assert _store(lambda _: httpx.Response(404, json={"error": {"message": "not found"}})).get("uid-1") is None


def test_put_merges_fields_and_sets_server_timestamp() -> None:
    bodies: list[dict[str, object]] = []

    def _responder(request: httpx.Request) -> httpx.Response:
        assert request.url.path.endswith("/documents:commit")
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"writeResults": [{}]})

    _store(_responder).put("uid-1", {"totalXP": 10, "level": 1, "updatedAt": "ignored"})

    write = bodies[0]["writes"][0]  # type: ignore[index]
    assert write["update"]["name"].endswith("/documents/users/uid-1")
    assert write["updateMask"] == {"fieldPaths": ["level", "totalXP"]}
    assert write["updateTransforms"] == [{"fieldPath": "updatedAt", "setToServerValue": "REQUEST_TIME"}]


def test_http_errors_become_remote_store_errors() -> None:
    def _denied(_: httpx.Request) -> httpx.Response:
        return httpx.Response(403, json={"error": {"message": "Missing or insufficient permissions."}})

    def _offline(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("offline", request=request)

    with pytest.raises(RemoteStoreError, match="insufficient permissions"):
        _store(_denied).put("uid-1", {"level": 1})
    with pytest.raises(RemoteStoreError):
        _store(_offline).get("uid-1")


def test_missing_project_is_rejected() -> None:
    with pytest.raises(RemoteStoreError):
        FirestoreDocumentStore(FirebaseConfig(api_key="key", project_id=None))
