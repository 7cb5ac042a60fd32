"""
Unit tests for the HTTP client's 401 handling, the session controller,
route guard, token store and event bus.
"""

import time
from unittest.mock import MagicMock

import pytest

from jobboard.auth import (
    SessionController,
    confirm_email,
    decode_token_payload,
    is_token_expired,
    register_user,
)
from jobboard.errors import ApiError, UnauthorizedError, ValidationError
from jobboard.events import LOGGED_OUT, UNAUTHENTICATED, EventBus
from jobboard.guard import GuardDecision, Navigator, RouteGuard


class TestApiClient:
    """Tests for ApiClient error mapping."""

    def test_401_clears_session_and_redirects(self, client, http, store, events, logged_in, make_response):
        """A 401 anywhere drops the token, the session and sends the user to login."""
        session = SessionController(store, events)
        session.initialize()
        assert session.is_authenticated
        redirects = []
        navigator = Navigator(events, on_navigate=redirects.append)
        navigator.current_path = "/map"
        http.request.return_value = make_response(401, {"message": "Token expired"})

        with pytest.raises(UnauthorizedError):
            client.get("/api/favorites/check/1")

        assert store.get() is None
        assert session.is_authenticated is False
        assert redirects == ["/login"]
        assert navigator.current_path == "/login"
        assert RouteGuard(session).check("/") == GuardDecision(False, "/login", "/")

    def test_401_on_login_page_does_not_redirect(self, client, http, events, make_response):
        redirects = []
        navigator = Navigator(events, on_navigate=redirects.append)
        navigator.current_path = "/login"
        http.request.return_value = make_response(401)

        with pytest.raises(UnauthorizedError):
            client.post("/api/auth/login", json={})

        assert redirects == []

    def test_error_message_from_json_body(self, client, http, make_response):
        http.request.return_value = make_response(400, {"message": "Invalid country"})

        with pytest.raises(ApiError, match="Invalid country") as exc_info:
            client.get("/api/Adzuna/companies")

        assert exc_info.value.status == 400

    def test_error_message_from_string_body(self, client, http, make_response):
        http.request.return_value = make_response(409, "Email already registered")

        with pytest.raises(ApiError, match="Email already registered"):
            client.post("/api/auth/register", json={})

    def test_get_json_empty_body(self, client, http, make_response):
        http.request.return_value = make_response(204)

        assert client.get_json("/api/Adzuna/countries") is None

    def test_get_json_invalid_body(self, client, http, make_response):
        http.request.return_value = make_response(200, content=b"<html>")

        with pytest.raises(ApiError, match="Invalid JSON"):
            client.get_json("/api/Adzuna/countries")


class TestTokenExpiry:
    """Tests for token decoding and the expiry grace window."""

    def test_decode_payload(self, make_token):
        payload = decode_token_payload(make_token(id="7"))

        assert payload["id"] == "7"

    def test_malformed_token(self):
        assert decode_token_payload("not-a-jwt") is None
        assert is_token_expired("not-a-jwt") is True

    def test_grace_window(self, make_token):
        """Tokens expiring within 30 seconds already count as expired."""
        now = time.time()

        assert is_token_expired(make_token(exp_offset=20), now=now) is True
        assert is_token_expired(make_token(exp_offset=120), now=now) is False
        assert is_token_expired(make_token(exp_offset=20), now=now, grace_seconds=0) is False

    def test_missing_exp_is_expired(self, make_token):
        token = make_token()
        payload_only = token.replace(token.split(".")[1], "eyJpZCI6IDF9")

        assert is_token_expired(payload_only) is True


class TestSessionController:
    """Tests for SessionController."""

    def test_initialize_with_valid_token(self, store, events, logged_in):
        session = SessionController(store, events)

        current = session.initialize()

        assert session.is_loading is False
        assert current.user_id == "7"
        assert current.email == "ana@example.com"

    def test_initialize_clears_expired_token(self, store, events, make_token):
        store.set(make_token(exp_offset=-10), "7", "ana@example.com")
        session = SessionController(store, events)

        assert session.initialize() is None
        assert store.get() is None

    def test_session_expires_while_running(self, store, events, logged_in):
        now = [time.time()]
        session = SessionController(store, events, clock=lambda: now[0])
        session.initialize()

        now[0] += 3600

        assert session.session is None
        assert store.get() is None

    def test_login_stores_credentials(self, client, http, store, events, make_response, make_token):
        token = make_token(id="7", email="ana@example.com")
        http.request.return_value = make_response(
            200, {"accessToken": token, "id": "7", "email": "ana@example.com"},
        )
        session = SessionController(store, events)
        listener = MagicMock()
        session.subscribe(listener)

        current = session.login(client, "ana@example.com", "secret")

        assert current.token == token
        assert store.get().user_id == "7"
        listener.assert_called_once_with(current)
        assert http.request.call_args.kwargs["json"] == {"email": "ana@example.com", "password": "secret"}

    def test_login_without_token(self, client, http, store, events, make_response):
        http.request.return_value = make_response(200, {"id": "7"})
        session = SessionController(store, events)

        with pytest.raises(ValidationError):
            session.login(client, "ana@example.com", "secret")
        assert store.get() is None

    @pytest.mark.parametrize(
        "content,message",
        [(b"<html>ok</html>", "Invalid login response"), (b"[1, 2]", "Unexpected login response")],
    )
    def test_login_malformed_reply(self, client, http, store, events, make_response, content, message):
        """A 200 that is not a JSON object surfaces as an ApiError, not a crash."""
        http.request.return_value = make_response(200, content=content)
        session = SessionController(store, events)

        with pytest.raises(ApiError, match=message):
            session.login(client, "ana@example.com", "secret")
        assert store.get() is None
        assert session.session is None

    def test_logout(self, store, events, logged_in):
        session = SessionController(store, events)
        session.initialize()
        listener = MagicMock()
        session.subscribe(listener)
        seen = []
        events.subscribe(LOGGED_OUT, lambda **_: seen.append("logout"))

        session.logout()

        assert store.get() is None
        assert session.session is None
        listener.assert_called_once_with(None)
        assert seen == ["logout"]

    def test_unsubscribe(self, store, events, logged_in):
        session = SessionController(store, events)
        listener = MagicMock()
        unsubscribe = session.subscribe(listener)
        unsubscribe()

        session.initialize()

        listener.assert_not_called()


class TestAuthCalls:
    """Tests for register_user and confirm_email."""

    def test_register_password_mismatch(self, client, http):
        form = {"email": "a@b.c", "password": "one", "confirmPassword": "two"}

        with pytest.raises(ValidationError, match="Passwords do not match."):
            register_user(client, form)
        http.request.assert_not_called()

    def test_register(self, client, http, make_response):
        http.request.return_value = make_response(200, {"email": "a@b.c"})
        form = {
            "email": "a@b.c", "password": "pw", "confirmPassword": "pw",
            "name": "Ana", "surname": "Lima", "phoneNumber": "123",
        }

        assert register_user(client, form) == {"email": "a@b.c"}
        assert http.request.call_args.kwargs["json"] == form

    def test_confirm_email_requires_both_parts(self, client, http):
        with pytest.raises(ValidationError, match="Invalid confirmation link."):
            confirm_email(client, "7", "")
        http.request.assert_not_called()

    def test_confirm_email_plain_text_reply(self, client, http, make_response):
        http.request.return_value = make_response(200, content=b"Email confirmed successfully.")

        assert confirm_email(client, "7", "tok") == "Email confirmed successfully."
        assert http.request.call_args.kwargs["json"] == {"userId": "7", "token": "tok"}


class TestRouteGuard:
    """Tests for RouteGuard."""

    def test_public_paths_always_allowed(self, store, events):
        guard = RouteGuard(SessionController(store, events))

        for path in ("/login", "/register", "/confirm-email"):
            assert guard.check(path).allowed

    def test_private_path_requires_login(self, store, events):
        guard = RouteGuard(SessionController(store, events))

        decision = guard.check("/job-details")

        assert decision.allowed is False
        assert decision.redirect_to == "/login"
        assert decision.from_path == "/job-details"

    def test_authenticated_user_passes(self, store, events, logged_in):
        session = SessionController(store, events)
        session.initialize()

        assert RouteGuard(session).check("/map").allowed

    def test_post_login_target(self, store, events):
        guard = RouteGuard(SessionController(store, events))

        assert guard.post_login_target("/map") == "/map"
        assert guard.post_login_target(None) == "/"
        assert guard.post_login_target("/login") == "/"


class TestTokenStore:
    """Tests for TokenStore."""

    def test_set_get_clear(self, store):
        store.set("abc", "7", "ana@example.com")

        creds = store.get()
        assert (creds.token, creds.user_id, creds.email) == ("abc", "7", "ana@example.com")
        assert store.get_token() == "abc"

        store.clear()
        store.clear()
        assert store.get() is None

    def test_corrupt_file_reads_as_empty(self, store):
        store.path.write_text("{not json", encoding="utf-8")

        assert store.get() is None


class TestEventBus:
    """Tests for EventBus."""

    def test_failing_handler_does_not_stop_others(self):
        bus = EventBus()
        seen = []
        bus.subscribe(UNAUTHENTICATED, MagicMock(side_effect=RuntimeError("boom")))
        bus.subscribe(UNAUTHENTICATED, lambda **payload: seen.append(payload))

        bus.emit(UNAUTHENTICATED, path="/x")

        assert seen == [{"path": "/x"}]

    def test_unsubscribe(self):
        bus = EventBus()
        handler = MagicMock()
        unsubscribe = bus.subscribe(LOGGED_OUT, handler)
        unsubscribe()

        bus.emit(LOGGED_OUT)

        handler.assert_not_called()
