"""Session state derived from the stored bearer token, plus auth API calls.

The token payload is decoded locally without verifying its signature. That is
only good enough for showing who is logged in and guessing when the token
runs out; the backend remains the only authority on what a token may do.
"""
from __future__ import annotations

import base64
import json
import threading
import time
from typing import Any, Callable

import requests

from jobboard.errors import ApiError, ValidationError
from jobboard.events import LOGGED_OUT, UNAUTHENTICATED, EventBus
from jobboard.http_client import ApiClient
from jobboard.log import get_logger
from jobboard.models import AuthSession
from jobboard.token_store import TokenStore

log = get_logger(__name__)

TOKEN_GRACE_SECONDS = 30

Listener = Callable[[AuthSession | None], None]


def _json_object(response: requests.Response, what: str) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError as exc:
        raise ApiError(f"Invalid {what} response", status=response.status_code) from exc
    if not isinstance(data, dict):
        raise ApiError(f"Unexpected {what} response", status=response.status_code)
    return data


def decode_token_payload(token: str) -> dict[str, Any] | None:
    """Middle segment of a JWT as a dict, or None when malformed."""
    try:
        segment = token.split(".")[1]
        padded = segment + "=" * (-len(segment) % 4)
        payload = json.loads(base64.urlsafe_b64decode(padded).decode("utf-8"))
    except (IndexError, ValueError, UnicodeDecodeError) as exc:
        log.debug("Could not decode token payload: %s", exc)
        return None
    return payload if isinstance(payload, dict) else None


def is_token_expired(
    token: str,
    *,
    now: float | None = None,
    grace_seconds: float = TOKEN_GRACE_SECONDS,
) -> bool:
    payload = decode_token_payload(token)
    if not payload or not payload.get("exp"):
        return True
    now = time.time() if now is None else now
    try:
        return float(payload["exp"]) <= now + grace_seconds
    except (TypeError, ValueError):
        return True


class SessionController:
    """Observable authentication state.

    Listens for ``UNAUTHENTICATED`` and ``LOGGED_OUT`` on the event bus and
    notifies subscribers whenever the session changes.
    """

    def __init__(
        self,
        store: TokenStore,
        events: EventBus,
        *,
        grace_seconds: float = TOKEN_GRACE_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.events = events
        self.grace_seconds = grace_seconds
        self.clock = clock
        self._session: AuthSession | None = None
        self._listeners: list[Listener] = []
        self._lock = threading.Lock()
        self.is_loading = True
        events.subscribe(UNAUTHENTICATED, self._on_signed_out)
        events.subscribe(LOGGED_OUT, self._on_signed_out)

    # ── observation ─────────────────────────────────────────────────────

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _set(self, session: AuthSession | None) -> None:
        with self._lock:
            changed = session != self._session
            self._session = session
            listeners = list(self._listeners)
        if changed:
            for listener in listeners:
                listener(session)

    # ── state ───────────────────────────────────────────────────────────

    def _expired(self, token: str) -> bool:
        return is_token_expired(token, now=self.clock(), grace_seconds=self.grace_seconds)

    def initialize(self) -> AuthSession | None:
        """Build the session from storage; an expired token is cleared."""
        creds = self.store.get()
        session: AuthSession | None = None
        if creds is not None:
            if self._expired(creds.token):
                log.info("Stored token expired, clearing session")
                self.store.clear()
            else:
                session = self._session_from(creds.token, creds.user_id, creds.email)
        self.is_loading = False
        self._set(session)
        return session

    def _session_from(self, token: str, user_id: str, email: str) -> AuthSession | None:
        payload = decode_token_payload(token)
        if payload is None:
            return None
        return AuthSession(
            user_id=str(payload.get("id") or user_id),
            email=str(payload.get("email") or email),
            token=token,
            expires_at=float(payload.get("exp") or 0),
        )

    @property
    def session(self) -> AuthSession | None:
        current = self._session
        if current is not None and self._expired(current.token):
            log.info("Session token expired")
            self.store.clear()
            self._set(None)
            return None
        return current

    @property
    def is_authenticated(self) -> bool:
        return self.session is not None

    def _on_signed_out(self, **_: Any) -> None:
        log.info("Signed out")
        self._set(None)

    # ── actions ─────────────────────────────────────────────────────────

    def login(self, client: ApiClient, email: str, password: str) -> AuthSession:
        response = client.post("/api/auth/login", json={"email": email, "password": password})
        data = _json_object(response, "login")
        token = data.get("accessToken") or ""
        session = self._session_from(token, str(data.get("id") or ""), data.get("email") or email)
        if session is None:
            raise ValidationError("Login response did not contain a usable token")
        self.store.set(token, session.user_id, session.email)
        self._set(session)
        log.info("Logged in as %s", session.email)
        return session

    def logout(self) -> None:
        self.store.clear()
        self.events.emit(LOGGED_OUT)


def register_user(client: ApiClient, form: dict[str, str]) -> Any:
    if form.get("password") != form.get("confirmPassword"):
        raise ValidationError("Passwords do not match.")
    response = client.post("/api/auth/register", json=form)
    try:
        return response.json()
    except ValueError:
        return response.text


def confirm_email(client: ApiClient, user_id: str, token: str) -> Any:
    if not user_id or not token:
        raise ValidationError("Invalid confirmation link.")
    response = client.post("/api/auth/confirm-email", json={"userId": user_id, "token": token})
    try:
        return response.json()
    except ValueError:
        return response.text
