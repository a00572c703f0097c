from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

import streamlit as st
from streamlit.errors import StreamlitSecretNotFoundError

from glowup_tracker.constants import (
    DEFAULT_REMOTE_TIMEOUT_SECONDS,
    LOCAL_CACHE_NAMESPACE,
    MAX_REMOTE_TIMEOUT_SECONDS,
    MIN_REMOTE_TIMEOUT_SECONDS,
)
from glowup_tracker.xp import XpMode

LOGGER = logging.getLogger(__name__)

DEFAULT_DATA_DIR = Path(".data") / "GlowUp"


class CacheBackend(str, Enum):
    FILE = "file"
    SQLITE = "sqlite"


@dataclass(frozen=True)
class FirebaseConfig:
    api_key: str | None
    project_id: str | None

    @property
    def is_complete(self) -> bool:
        return bool(self.api_key and self.project_id)


@dataclass(frozen=True)
class AppSettings:
    firebase: FirebaseConfig
    data_dir: Path
    cache_backend: CacheBackend = CacheBackend.FILE
    cache_namespace: str = LOCAL_CACHE_NAMESPACE
    xp_mode: XpMode = XpMode.TARGET
    remote_timeout_seconds: float = DEFAULT_REMOTE_TIMEOUT_SECONDS


def _get_secret(name: str) -> str | None:
    try:
        value = st.secrets.get(name)
        if value:
            return str(value)
    except StreamlitSecretNotFoundError:
        value = None
    return os.getenv(name)


def _parse_enum(raw: str | None, enum_type: type[Enum], default: Enum, *, name: str) -> Enum:
    if not raw:
        return default
    try:
        return enum_type(raw.strip().lower())
    except ValueError:
        LOGGER.warning("Ignoring invalid %s=%r, using %s", name, raw, default.value)
        return default


def _parse_timeout(raw: str | None) -> float:
    if not raw:
        return DEFAULT_REMOTE_TIMEOUT_SECONDS
    try:
        value = float(raw)
    except ValueError:
        LOGGER.warning("Ignoring invalid GLOWUP_REMOTE_TIMEOUT=%r", raw)
        return DEFAULT_REMOTE_TIMEOUT_SECONDS
    return min(MAX_REMOTE_TIMEOUT_SECONDS, max(MIN_REMOTE_TIMEOUT_SECONDS, value))


def load_firebase_config() -> FirebaseConfig:
    return FirebaseConfig(
        api_key=_get_secret("GLOWUP_FIREBASE_API_KEY"),
        project_id=_get_secret("GLOWUP_FIREBASE_PROJECT_ID"),
    )


def load_settings() -> AppSettings:
    """Read settings from Streamlit secrets, falling back to environment variables."""

    data_dir_raw = _get_secret("GLOWUP_DATA_DIR")
    return AppSettings(
        firebase=load_firebase_config(),
        data_dir=Path(data_dir_raw).expanduser() if data_dir_raw else DEFAULT_DATA_DIR,
        cache_backend=_parse_enum(  # type: ignore[arg-type]
            _get_secret("GLOWUP_CACHE_BACKEND"), CacheBackend, CacheBackend.FILE, name="GLOWUP_CACHE_BACKEND"
        ),
        cache_namespace=_get_secret("GLOWUP_CACHE_NAMESPACE") or LOCAL_CACHE_NAMESPACE,
        xp_mode=_parse_enum(  # type: ignore[arg-type]
            _get_secret("GLOWUP_XP_MODE"), XpMode, XpMode.TARGET, name="GLOWUP_XP_MODE"
        ),
        remote_timeout_seconds=_parse_timeout(_get_secret("GLOWUP_REMOTE_TIMEOUT")),
    )


__all__ = ["AppSettings", "CacheBackend", "DEFAULT_DATA_DIR", "FirebaseConfig", "load_firebase_config", "load_settings"]
