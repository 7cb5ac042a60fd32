"""Route gating on authentication state, and the 401 redirect."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from jobboard.auth import SessionController
from jobboard.events import UNAUTHENTICATED, EventBus
from jobboard.log import get_logger

log = get_logger(__name__)

LOGIN_PATH = "/login"
PUBLIC_PATHS: frozenset[str] = frozenset({"/login", "/register", "/confirm-email"})


@dataclass(frozen=True)
class GuardDecision:
    allowed: bool
    redirect_to: str | None = None
    from_path: str | None = None


class RouteGuard:
    def __init__(
        self,
        session: SessionController,
        *,
        login_path: str = LOGIN_PATH,
        public_paths: frozenset[str] = PUBLIC_PATHS,
    ) -> None:
        self.session = session
        self.login_path = login_path
        self.public_paths = public_paths

    def check(self, path: str) -> GuardDecision:
        if path in self.public_paths:
            return GuardDecision(allowed=True)
        if self.session.is_authenticated:
            return GuardDecision(allowed=True)
        log.debug("Guard: %s requires login", path)
        return GuardDecision(allowed=False, redirect_to=self.login_path, from_path=path)

    def post_login_target(self, from_path: str | None) -> str:
        """Where to land after login: the page originally asked for, else home."""
        if not from_path or from_path in self.public_paths:
            return "/"
        return from_path


class Navigator:
    """Tracks the current view and sends the user to login on a 401."""

    def __init__(
        self,
        events: EventBus,
        *,
        login_path: str = LOGIN_PATH,
        on_navigate: Callable[[str], None] | None = None,
    ) -> None:
        self.login_path = login_path
        self.current_path = "/"
        self.on_navigate = on_navigate
        events.subscribe(UNAUTHENTICATED, self._on_unauthenticated)

    def navigate(self, path: str) -> None:
        self.current_path = path
        if self.on_navigate is not None:
            self.on_navigate(path)

    def _on_unauthenticated(self, **_: Any) -> None:
        if self.current_path != self.login_path:
            log.info("Redirecting %s -> %s", self.current_path, self.login_path)
            self.navigate(self.login_path)
