from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Optional

import httpx

from glowup_tracker.config import FirebaseConfig
from glowup_tracker.models import AuthUser

LOGGER = logging.getLogger(__name__)

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"

AuthListener = Callable[[Optional[AuthUser]], None]
Unsubscribe = Callable[[], None]


class AuthErrorKind(str, Enum):
    UNKNOWN_ACCOUNT = "unknown-account"
    WRONG_CREDENTIAL = "wrong-credential"
    MALFORMED_EMAIL = "malformed-email"
    RATE_LIMITED = "rate-limited"
    NETWORK_UNREACHABLE = "network-unreachable"
    CONFIGURATION_INVALID = "configuration-invalid"
    EMAIL_IN_USE = "email-in-use"
    WEAK_PASSWORD = "weak-password"
    GENERIC_FAILURE = "generic-failure"

    @property
    def message(self) -> str:
        return _MESSAGES[self]


_MESSAGES: dict[AuthErrorKind, str] = {
    AuthErrorKind.UNKNOWN_ACCOUNT: "No account found with this email address",
    AuthErrorKind.WRONG_CREDENTIAL: "Incorrect email or password",
    AuthErrorKind.MALFORMED_EMAIL: "Invalid email address",
    AuthErrorKind.RATE_LIMITED: "Too many failed attempts. Please try again later",
    AuthErrorKind.NETWORK_UNREACHABLE: "Network error. Please check your internet connection",
    AuthErrorKind.CONFIGURATION_INVALID: "Authentication is not configured correctly. Please check the project settings",
    AuthErrorKind.EMAIL_IN_USE: "An account with this email already exists",
    AuthErrorKind.WEAK_PASSWORD: "Password should be at least 6 characters",
    AuthErrorKind.GENERIC_FAILURE: "Authentication failed",
}

_ERROR_CODES: dict[str, AuthErrorKind] = {
    "EMAIL_NOT_FOUND": AuthErrorKind.UNKNOWN_ACCOUNT,
    "USER_DISABLED": AuthErrorKind.UNKNOWN_ACCOUNT,
    "INVALID_PASSWORD": AuthErrorKind.WRONG_CREDENTIAL,
    "INVALID_LOGIN_CREDENTIALS": AuthErrorKind.WRONG_CREDENTIAL,
    "MISSING_PASSWORD": AuthErrorKind.WRONG_CREDENTIAL,
    "INVALID_EMAIL": AuthErrorKind.MALFORMED_EMAIL,
    "MISSING_EMAIL": AuthErrorKind.MALFORMED_EMAIL,
    "TOO_MANY_ATTEMPTS_TRY_LATER": AuthErrorKind.RATE_LIMITED,
    "EMAIL_EXISTS": AuthErrorKind.EMAIL_IN_USE,
    "WEAK_PASSWORD": AuthErrorKind.WEAK_PASSWORD,
    "CONFIGURATION_NOT_FOUND": AuthErrorKind.CONFIGURATION_INVALID,
    "PROJECT_NOT_FOUND": AuthErrorKind.CONFIGURATION_INVALID,
    "OPERATION_NOT_ALLOWED": AuthErrorKind.CONFIGURATION_INVALID,
    "API_KEY_INVALID": AuthErrorKind.CONFIGURATION_INVALID,
}


class AuthError(RuntimeError):
    """Sign-in or sign-up failure with a message safe to show to the user."""

    def __init__(self, kind: AuthErrorKind, detail: str | None = None) -> None:
        super().__init__(kind.message)
        self.kind = kind
        self.detail = detail

    @property
    def message(self) -> str:
        return self.kind.message


def classify_error_code(raw_message: str) -> AuthErrorKind:
    """Map an Identity Toolkit error message (``"WEAK_PASSWORD : ..."``) to a kind."""

    code = raw_message.split(":", 1)[0].strip().upper()
    if code in _ERROR_CODES:
        return _ERROR_CODES[code]
    if "API KEY NOT VALID" in raw_message.upper():
        return AuthErrorKind.CONFIGURATION_INVALID
    return AuthErrorKind.GENERIC_FAILURE


def _error_from_response(response: httpx.Response) -> AuthError:
    try:
        payload = response.json()
    except ValueError:
        return AuthError(AuthErrorKind.GENERIC_FAILURE, f"status {response.status_code}")
    error = payload.get("error") if isinstance(payload, dict) else None
    message = error.get("message") if isinstance(error, dict) else None
    if not isinstance(message, str) or not message:
        return AuthError(AuthErrorKind.GENERIC_FAILURE, f"status {response.status_code}")
    return AuthError(classify_error_code(message), message)


class IdentityClient:
    """Email/password accounts via the Identity Toolkit REST API.

    Holds the signed-in user for the session and notifies listeners whenever
    it changes.
    """

    def __init__(self, config: FirebaseConfig, *, client: Optional[httpx.Client] = None, timeout: float = 10.0) -> None:
        self.config = config
        self._client = client or httpx.Client(timeout=timeout)
        self._current_user: AuthUser | None = None
        self._listeners: list[AuthListener] = []

    @property
    def current_user(self) -> AuthUser | None:
        return self._current_user

    def sign_in(self, email: str, password: str) -> AuthUser:
        return self._authenticate("accounts:signInWithPassword", email, password)

    def sign_up(self, email: str, password: str) -> AuthUser:
        return self._authenticate("accounts:signUp", email, password)

    def sign_out(self) -> None:
        if self._current_user is None:
            return
        LOGGER.info("Signing out %s", self._current_user.uid)
        self._set_user(None)

    def on_auth_state_change(self, callback: AuthListener) -> Unsubscribe:
        self._listeners.append(callback)
        callback(self._current_user)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _authenticate(self, endpoint: str, email: str, password: str) -> AuthUser:
        if not self.config.api_key:
            raise AuthError(AuthErrorKind.CONFIGURATION_INVALID, "GLOWUP_FIREBASE_API_KEY is missing")

        try:
            response = self._client.post(
                f"{IDENTITY_TOOLKIT_URL}/{endpoint}",
                params={"key": self.config.api_key},
                json={"email": email.strip(), "password": password, "returnSecureToken": True},
            )
        except httpx.HTTPError as exc:
            LOGGER.warning("Identity request %s failed: %s", endpoint, exc)
            raise AuthError(AuthErrorKind.NETWORK_UNREACHABLE, str(exc)) from exc

        if response.status_code >= 400:
            error = _error_from_response(response)
            LOGGER.warning("Identity request %s rejected: %s", endpoint, error.detail)
            raise error

        payload = response.json()
        uid = payload.get("localId") if isinstance(payload, dict) else None
        if not uid:
            raise AuthError(AuthErrorKind.GENERIC_FAILURE, "response without localId")

        user = AuthUser(
            uid=uid,
            email=payload.get("email"),
            display_name=payload.get("displayName") or None,
            id_token=payload.get("idToken"),
            refresh_token=payload.get("refreshToken"),
        )
        self._set_user(user)
        return user

    def _set_user(self, user: AuthUser | None) -> None:
        self._current_user = user
        for listener in list(self._listeners):
            listener(user)


__all__ = [
    "AuthError",
    "AuthErrorKind",
    "AuthListener",
    "IdentityClient",
    "Unsubscribe",
    "classify_error_code",
]
