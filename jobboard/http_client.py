"""Configured request layer: base URL, bearer token, global 401 handling."""
from __future__ import annotations

from typing import Any, Iterable, Mapping

import requests

from jobboard.errors import ApiError, UnauthorizedError
from jobboard.events import UNAUTHENTICATED, EventBus
from jobboard.log import get_logger
from jobboard.token_store import TokenStore

log = get_logger(__name__)

DEFAULT_TIMEOUT = 30

Params = Mapping[str, Any] | Iterable[tuple[str, Any]] | None


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    if isinstance(body, str) and body:
        return body
    return (response.text or response.reason or "").strip()[:300]


class ApiClient:
    """Thin wrapper over ``requests.Session`` for the job board backend.

    Every request carries ``Authorization: Bearer <token>`` when a token is
    stored. A 401 from any call clears the stored session, emits
    ``UNAUTHENTICATED`` on the event bus and raises ``UnauthorizedError``.
    Other non-2xx responses and transport failures raise ``ApiError``.
    """

    def __init__(
        self,
        base_url: str,
        store: TokenStore,
        events: EventBus,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.store = store
        self.events = events
        self.timeout = timeout
        self.session = session or requests.Session()

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        token = self.store.get_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def request(
        self,
        method: str,
        path: str,
        *,
        params: Params = None,
        json: Any = None,
        timeout: float | None = None,
    ) -> requests.Response:
        url = f"{self.base_url}/{path.lstrip('/')}"
        log.debug("%s %s params=%s", method, path, params)
        try:
            response = self.session.request(
                method,
                url,
                params=params,
                json=json,
                headers=self._headers(),
                timeout=timeout or self.timeout,
            )
        except requests.RequestException as exc:
            log.warning("%s %s transport error: %s", method, path, exc)
            raise ApiError(f"Request failed: {exc}") from exc

        if response.status_code == 401:
            log.warning("%s %s -> 401, clearing session", method, path)
            self.store.clear()
            self.events.emit(UNAUTHENTICATED, path=path)
            raise UnauthorizedError(_error_message(response) or "Unauthorized")

        if response.status_code >= 400:
            message = _error_message(response)
            log.warning("%s %s -> %d %s", method, path, response.status_code, message)
            raise ApiError(message or f"HTTP {response.status_code}", status=response.status_code)

        return response

    def get(self, path: str, **kwargs: Any) -> requests.Response:
        return self.request("GET", path, **kwargs)

    def post(self, path: str, **kwargs: Any) -> requests.Response:
        return self.request("POST", path, **kwargs)

    def delete(self, path: str, **kwargs: Any) -> requests.Response:
        return self.request("DELETE", path, **kwargs)

    def get_json(self, path: str, **kwargs: Any) -> Any:
        response = self.get(path, **kwargs)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise ApiError(f"Invalid JSON from {path}", status=response.status_code) from exc
