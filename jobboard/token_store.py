"""Persist the bearer token and user identity in a JSON file with file locking."""
from __future__ import annotations

import fcntl
import json
import os
from dataclasses import dataclass
from pathlib import Path

from jobboard.log import get_logger

log = get_logger(__name__)

TOKEN_KEY = "token"
USER_ID_KEY = "userId"
EMAIL_KEY = "email"


@dataclass(frozen=True)
class StoredCredentials:
    token: str
    user_id: str = ""
    email: str = ""


def _lock(f, exclusive: bool = True) -> None:
    """Advisory file lock (Unix fcntl)."""
    try:
        op = fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH
        fcntl.flock(f.fileno(), op)
    except (OSError, AttributeError):
        pass


def _unlock(f) -> None:
    try:
        fcntl.flock(f.fileno(), fcntl.LOCK_UN)
    except (OSError, AttributeError):
        pass


class TokenStore:
    """Key-value storage for ``token``, ``userId`` and ``email``.

    Writes go to a temp file that replaces the real one, so readers never see
    a half-written session. ``clear`` is idempotent.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                _lock(f, exclusive=False)
                try:
                    data = json.load(f)
                finally:
                    _unlock(f)
        except (OSError, json.JSONDecodeError) as exc:
            log.warning("Unreadable session file %s: %s", self.path.name, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def get(self) -> StoredCredentials | None:
        data = self._read()
        token = str(data.get(TOKEN_KEY) or "")
        if not token:
            return None
        return StoredCredentials(
            token=token,
            user_id=str(data.get(USER_ID_KEY) or ""),
            email=str(data.get(EMAIL_KEY) or ""),
        )

    def get_token(self) -> str | None:
        creds = self.get()
        return creds.token if creds else None

    def set(self, token: str, user_id: str = "", email: str = "") -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {TOKEN_KEY: token, USER_ID_KEY: str(user_id), EMAIL_KEY: email}
        tmp = self.path.with_suffix(".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            _lock(f)
            json.dump(payload, f)
            f.flush()
            _unlock(f)
        os.replace(tmp, self.path)
        log.debug("Stored session for %s", email or user_id or "<unknown>")

    def clear(self) -> None:
        if self.path.exists():
            log.debug("Clearing stored session")
        self.path.unlink(missing_ok=True)
