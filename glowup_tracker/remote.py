from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Protocol

import httpx

from glowup_tracker.config import FirebaseConfig
from glowup_tracker.constants import DEFAULT_REMOTE_TIMEOUT_SECONDS, REMOTE_COLLECTION

LOGGER = logging.getLogger(__name__)

FIRESTORE_BASE_URL = "https://firestore.googleapis.com/v1"
SERVER_TIMESTAMP_FIELD = "updatedAt"
_FRACTION_PATTERN = re.compile(r"\.(\d{6})\d+")


class RemoteStoreError(RuntimeError):
    """Raised when the remote document store cannot be reached or rejects a request."""


class DocumentStore(Protocol):
    """Remote documents keyed by user id."""

    def get(self, user_id: str, *, id_token: str | None = None) -> dict[str, Any] | None:
        """Return the stored document or ``None`` when absent."""

    def put(self, user_id: str, document: Mapping[str, Any], *, id_token: str | None = None) -> None:
        """Upsert ``document``; fields not present in it are left untouched."""


def encode_value(value: Any) -> dict[str, Any]:
    """Encode a JSON-like Python value as a Firestore typed value."""

    if value is None:
        return {"nullValue": None}
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, datetime):
        aware = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
        return {"timestampValue": aware.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")}
    if isinstance(value, Mapping):
        return {"mapValue": {"fields": encode_fields(value)}}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(item) for item in value]}}
    raise TypeError(f"Cannot store value of type {type(value).__name__} remotely.")


def encode_fields(document: Mapping[str, Any]) -> dict[str, Any]:
    return {str(key): encode_value(item) for key, item in document.items()}


def _parse_timestamp(raw: str) -> datetime:
    normalized = _FRACTION_PATTERN.sub(r".\1", raw.replace("Z", "+00:00"))
    return datetime.fromisoformat(normalized).astimezone(timezone.utc)


def decode_value(payload: Mapping[str, Any]) -> Any:
    if "nullValue" in payload:
        return None
    if "booleanValue" in payload:
        return bool(payload["booleanValue"])
    if "integerValue" in payload:
        return int(payload["integerValue"])
    if "doubleValue" in payload:
        return float(payload["doubleValue"])
    if "stringValue" in payload:
        return payload["stringValue"]
    if "timestampValue" in payload:
        return _parse_timestamp(payload["timestampValue"])
    if "mapValue" in payload:
        return decode_fields(payload["mapValue"].get("fields", {}))
    if "arrayValue" in payload:
        return [decode_value(item) for item in payload["arrayValue"].get("values", [])]
    raise RemoteStoreError(f"Unsupported Firestore value: {sorted(payload)}")


def decode_fields(fields: Mapping[str, Any]) -> dict[str, Any]:
    return {key: decode_value(item) for key, item in fields.items()}


def _extract_error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return f"Firestore request failed (status {response.status_code})."
    if isinstance(payload, list) and payload:
        payload = payload[0]
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict):
            message = error.get("message")
            if isinstance(message, str) and message:
                return f"Firestore request failed: {message}"
    return f"Firestore request failed (status {response.status_code})."


class FirestoreDocumentStore:
    """Store one document per user in a Firestore collection over the REST API."""

    def __init__(
        self,
        config: FirebaseConfig,
        *,
        collection: str = REMOTE_COLLECTION,
        client: Optional[httpx.Client] = None,
        timeout: float = DEFAULT_REMOTE_TIMEOUT_SECONDS,
    ) -> None:
        if not config.project_id:
            raise RemoteStoreError("Firestore is not configured: GLOWUP_FIREBASE_PROJECT_ID is missing.")
        self.config = config
        self.collection = collection
        self._client = client or httpx.Client(timeout=timeout)
        self._database = f"projects/{config.project_id}/databases/(default)"

    def _document_name(self, user_id: str) -> str:
        return f"{self._database}/documents/{self.collection}/{user_id}"

    def _headers(self, id_token: str | None) -> dict[str, str]:
        headers = {"accept": "application/json"}
        if id_token:
            headers["Authorization"] = f"Bearer {id_token}"
        return headers

    def _params(self) -> dict[str, str]:
        return {"key": self.config.api_key} if self.config.api_key else {}

    def get(self, user_id: str, *, id_token: str | None = None) -> dict[str, Any] | None:
        try:
            response = self._client.get(
                f"{FIRESTORE_BASE_URL}/{self._document_name(user_id)}",
                headers=self._headers(id_token),
                params=self._params(),
            )
        except httpx.HTTPError as exc:
            raise RemoteStoreError("Firestore request failed.") from exc

        if response.status_code == 404:
            return None
        if response.status_code >= 400:
            raise RemoteStoreError(_extract_error_message(response))

        payload = response.json()
        if not isinstance(payload, dict):
            raise RemoteStoreError("Firestore returned an unexpected response.")
        return decode_fields(payload.get("fields", {}))

    def put(self, user_id: str, document: Mapping[str, Any], *, id_token: str | None = None) -> None:
        fields = encode_fields({key: value for key, value in document.items() if key != SERVER_TIMESTAMP_FIELD})
        write = {
            "update": {"name": self._document_name(user_id), "fields": fields},
            "updateMask": {"fieldPaths": sorted(fields)},
            "updateTransforms": [{"fieldPath": SERVER_TIMESTAMP_FIELD, "setToServerValue": "REQUEST_TIME"}],
        }
        try:
            response = self._client.post(
                f"{FIRESTORE_BASE_URL}/{self._database}/documents:commit",
                headers=self._headers(id_token),
                params=self._params(),
                json={"writes": [write]},
            )
        except httpx.HTTPError as exc:
            raise RemoteStoreError("Firestore request failed.") from exc

        if response.status_code >= 400:
            raise RemoteStoreError(_extract_error_message(response))
        LOGGER.debug("Stored remote document for %s", user_id)


__all__ = [
    "DocumentStore",
    "FIRESTORE_BASE_URL",
    "FirestoreDocumentStore",
    "RemoteStoreError",
    "decode_fields",
    "decode_value",
    "encode_fields",
    "encode_value",
]
