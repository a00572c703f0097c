from __future__ import annotations

import logging
from typing import Any, Callable

import streamlit as st

from glowup_tracker.auth import IdentityClient
from glowup_tracker.constants import SS_AUTH_USER, SS_SYNC_DEGRADED, SS_USER_DATA
from glowup_tracker.dates import day_key
from glowup_tracker.defaults import new_user_data
from glowup_tracker.engine import UpdateResult, add_progress, update_progress, update_target
from glowup_tracker.models import AuthUser, Badge, UserData
from glowup_tracker.persistence import PersistenceGateway, SessionContext
from glowup_tracker.reset import reconcile
from glowup_tracker.xp import XpMode

LOGGER = logging.getLogger(__name__)

SESSION_KEYS: tuple[str, ...] = (SS_USER_DATA, SS_AUTH_USER, SS_SYNC_DEGRADED)

_gateway: PersistenceGateway | None = None


class SessionNotStartedError(RuntimeError):
    """Raised when user data is requested before a session was started."""


def configure_gateway(gateway: PersistenceGateway | None) -> None:
    """Register the persistence gateway used for all session writes."""

    global _gateway
    _gateway = gateway


def _xp_mode() -> XpMode:
    return _gateway.xp_mode if _gateway is not None else XpMode.TARGET


def _context() -> SessionContext:
    raw_user = st.session_state.get(SS_AUTH_USER)
    if raw_user is None:
        raise SessionNotStartedError("No signed-in user in this session.")
    user = raw_user if isinstance(raw_user, AuthUser) else AuthUser.model_validate(raw_user)
    return SessionContext.from_user(user)


def _notify_sync(degraded: bool) -> None:
    was_degraded = bool(st.session_state.get(SS_SYNC_DEGRADED, False))
    st.session_state[SS_SYNC_DEGRADED] = degraded
    if degraded and not was_degraded:
        st.toast("Cloud sync is unavailable right now. Your progress is kept on this device.", icon="⚠️")
    elif was_degraded and not degraded:
        st.toast("Cloud sync restored.", icon="✅")


def _persist(data: UserData) -> UserData:
    if _gateway is None:
        return data
    report = _gateway.save(_context(), data)
    _notify_sync(report.degraded)
    return report.state


def _store(data: UserData) -> UserData:
    st.session_state[SS_USER_DATA] = data
    saved = _persist(data)
    st.session_state[SS_USER_DATA] = saved
    return saved


def start_session(user: AuthUser, *, today: str | None = None) -> UserData:
    """Load, reconcile with today and persist the signed-in user's data.

    A user without stored data starts with the default habits.
    """

    st.session_state[SS_AUTH_USER] = user
    today = today or day_key()

    loaded: UserData | None = None
    if _gateway is not None:
        report = _gateway.load(SessionContext.from_user(user))
        loaded = report.data
        _notify_sync(report.remote_ok is False)
        LOGGER.info("Session for %s started from %s data", user.uid, report.source or "fresh")

    if loaded is None:
        data = new_user_data(user.uid, today=today)
    else:
        data = reconcile(loaded, today, mode=_xp_mode())
    return _store(data)


def get_user_data() -> UserData:
    raw = st.session_state.get(SS_USER_DATA)
    if raw is None:
        raise SessionNotStartedError("Start a session before reading user data.")
    if isinstance(raw, UserData):
        return raw
    data = UserData.model_validate(raw)
    st.session_state[SS_USER_DATA] = data
    return data


def _apply(reducer: Callable[..., UpdateResult], habit_id: str, value: Any, **kwargs: Any) -> UpdateResult:
    result = reducer(get_user_data(), habit_id, value, mode=_xp_mode(), **kwargs)
    saved = _store(result.state)
    for badge in result.newly_unlocked:
        _announce_badge(badge)
    return UpdateResult(state=saved, newly_unlocked=result.newly_unlocked)


def _announce_badge(badge: Badge) -> None:
    st.toast(f"Badge unlocked: {badge.name}", icon=badge.icon or "🏅")


def apply_progress(habit_id: str, new_progress: Any, *, today: str | None = None) -> UpdateResult:
    return _apply(update_progress, habit_id, new_progress, today=today or day_key())


def apply_quick_add(habit_id: str, amount: Any, *, today: str | None = None) -> UpdateResult:
    return _apply(add_progress, habit_id, amount, today=today or day_key())


def apply_target(habit_id: str, new_target: Any) -> UpdateResult:
    return _apply(update_target, habit_id, new_target)


def end_session(*, clear_local: bool = False) -> None:
    """Drop the session copy; the remote copy is never touched here."""

    if clear_local and _gateway is not None and st.session_state.get(SS_AUTH_USER) is not None:
        _gateway.clear_local(_context())
    for key in SESSION_KEYS:
        if key in st.session_state:
            del st.session_state[key]


def sign_out(identity: IdentityClient, *, clear_local: bool = False) -> None:
    end_session(clear_local=clear_local)
    identity.sign_out()


__all__ = [
    "SESSION_KEYS",
    "SessionNotStartedError",
    "apply_progress",
    "apply_quick_add",
    "apply_target",
    "configure_gateway",
    "end_session",
    "get_user_data",
    "sign_out",
    "start_session",
]
