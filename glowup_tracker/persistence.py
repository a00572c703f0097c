from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Literal, Mapping, Optional

from pydantic import ValidationError
from pydantic_core import to_jsonable_python

from glowup_tracker.badges import attach_badges
from glowup_tracker.config import AppSettings
from glowup_tracker.constants import LOCAL_CACHE_NAMESPACE
from glowup_tracker.engine import recompute_totals
from glowup_tracker.models import AuthUser, UserData
from glowup_tracker.remote import DocumentStore, FirestoreDocumentStore, RemoteStoreError
from glowup_tracker.storage import KeyValueStore, build_local_store, cache_key
from glowup_tracker.xp import XpMode

LOGGER = logging.getLogger(__name__)

LoadSource = Literal["local", "remote"]


class PersistenceError(RuntimeError):
    """Raised when a stored copy cannot be written or read back."""


class DataIntegrityError(PersistenceError):
    """Raised when a stored document belongs to a different user."""


@dataclass(frozen=True)
class SessionContext:
    """Identity every persistence call runs under."""

    uid: str
    id_token: str | None = None

    @classmethod
    def from_user(cls, user: AuthUser) -> "SessionContext":
        return cls(uid=user.uid, id_token=user.id_token)


@dataclass(frozen=True)
class SaveReport:
    state: UserData
    local_ok: bool
    remote_ok: Optional[bool]

    @property
    def degraded(self) -> bool:
        return not self.local_ok or self.remote_ok is False


@dataclass(frozen=True)
class LoadReport:
    data: UserData | None
    source: LoadSource | None
    remote_ok: Optional[bool]


def hydrate_user_data(document: Mapping[str, Any], mode: XpMode = XpMode.TARGET) -> UserData:
    """Build the aggregate from a stored document.

    Badge rules are re-attached from the registry and every derived value is
    recomputed, so stale caches in the document never leak into the session.
    """

    data = UserData.model_validate(dict(document))
    data = data.model_copy(update={"badges": attach_badges(data.badges)})
    return recompute_totals(data, mode)


def _check_owner(data: UserData, context: SessionContext, *, source: LoadSource) -> None:
    if data.user_id is not None and data.user_id != context.uid:
        raise DataIntegrityError(f"{source} document belongs to {data.user_id!r}, session user is {context.uid!r}")


def _is_newer(candidate: UserData, reference: UserData) -> bool:
    if candidate.last_saved is None:
        return False
    if reference.last_saved is None:
        return True
    return candidate.last_saved > reference.last_saved


class PersistenceGateway:
    """Mirror the aggregate to the local cache and the remote document store.

    The local copy is always written first. Remote failures are logged and
    reported, never raised: the in-memory state stays authoritative. Two
    devices editing the same account resolve by last write.
    """

    def __init__(
        self,
        local_store: KeyValueStore,
        remote_store: DocumentStore | None = None,
        *,
        namespace: str = LOCAL_CACHE_NAMESPACE,
        xp_mode: XpMode = XpMode.TARGET,
    ) -> None:
        self.local_store = local_store
        self.remote_store = remote_store
        self.namespace = namespace
        self.xp_mode = xp_mode

    def _key(self, context: SessionContext) -> str:
        return cache_key(self.namespace, context.uid)

    def save(self, context: SessionContext, data: UserData) -> SaveReport:
        stamped = data.model_copy(update={"user_id": context.uid, "last_saved": datetime.now(timezone.utc)})
        document = stamped.to_document()

        local_ok = True
        try:
            self._write_local(context, document)
        except PersistenceError as exc:
            local_ok = False
            LOGGER.warning("Local save failed for %s: %s", context.uid, exc)

        remote_ok = self._write_remote(context, document)
        return SaveReport(state=stamped, local_ok=local_ok, remote_ok=remote_ok)

    def load(self, context: SessionContext) -> LoadReport:
        local = self._read_local(context)
        if self.remote_store is None:
            return LoadReport(data=local, source="local" if local is not None else None, remote_ok=None)

        try:
            remote_document = self.remote_store.get(context.uid, id_token=context.id_token)
        except RemoteStoreError as exc:
            LOGGER.warning("Remote load failed for %s, using local copy: %s", context.uid, exc)
            return LoadReport(data=local, source="local" if local is not None else None, remote_ok=False)

        remote = self._validated(remote_document, context, source="remote") if remote_document else None
        if remote is None:
            if local is not None:
                LOGGER.info("No remote data for %s, migrating local copy", context.uid)
                migrated = self._write_remote(context, local.to_document())
                return LoadReport(data=local, source="local", remote_ok=migrated)
            return LoadReport(data=None, source=None, remote_ok=True)

        if local is not None and _is_newer(local, remote):
            LOGGER.info("Local copy for %s is newer than remote, using it", context.uid)
            return LoadReport(data=local, source="local", remote_ok=True)
        return LoadReport(data=remote, source="remote", remote_ok=True)

    def clear_local(self, context: SessionContext) -> None:
        try:
            self.local_store.remove_item(self._key(context))
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("Could not clear local data for %s: %s", context.uid, exc)

    def _write_local(self, context: SessionContext, document: Mapping[str, Any]) -> None:
        try:
            serialized = json.dumps(document, default=to_jsonable_python, ensure_ascii=False, sort_keys=True)
            self.local_store.set_item(self._key(context), serialized)
        except Exception as exc:  # noqa: BLE001
            raise PersistenceError(str(exc)) from exc

    def _write_remote(self, context: SessionContext, document: Mapping[str, Any]) -> Optional[bool]:
        if self.remote_store is None:
            return None
        try:
            self.remote_store.put(context.uid, document, id_token=context.id_token)
        except RemoteStoreError as exc:
            LOGGER.warning("Remote save failed for %s, local copy kept: %s", context.uid, exc)
            return False
        return True

    def _read_local(self, context: SessionContext) -> UserData | None:
        try:
            raw = self.local_store.get_item(self._key(context))
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("Local load failed for %s: %s", context.uid, exc)
            return None
        if not raw:
            return None
        try:
            document = json.loads(raw)
        except ValueError as exc:
            LOGGER.warning("Discarding unreadable local data for %s: %s", context.uid, exc)
            return None
        return self._validated(document, context, source="local")

    def _validated(self, document: Any, context: SessionContext, *, source: LoadSource) -> UserData | None:
        if not isinstance(document, Mapping):
            LOGGER.warning("Discarding %s data for %s: not a document", source, context.uid)
            return None
        try:
            data = hydrate_user_data(document, self.xp_mode)
            _check_owner(data, context, source=source)
        except ValidationError as exc:
            LOGGER.warning("Discarding invalid %s data for %s: %s", source, context.uid, exc)
            return None
        except DataIntegrityError as exc:
            LOGGER.error("Rejecting %s data: %s", source, exc)
            return None
        return data


def build_gateway(settings: AppSettings) -> PersistenceGateway:
    """Wire the configured local cache and, when a project is set, Firestore."""

    remote_store: DocumentStore | None = None
    if settings.firebase.project_id:
        remote_store = FirestoreDocumentStore(settings.firebase, timeout=settings.remote_timeout_seconds)
    else:
        LOGGER.info("No Firebase project configured, keeping data on this device only")
    return PersistenceGateway(
        build_local_store(settings),
        remote_store,
        namespace=settings.cache_namespace,
        xp_mode=settings.xp_mode,
    )


__all__ = [
    "DataIntegrityError",
    "LoadReport",
    "PersistenceError",
    "PersistenceGateway",
    "SaveReport",
    "SessionContext",
    "build_gateway",
    "hydrate_user_data",
]
