"""
Shared fixtures for the job board tests.

No test talks to a real backend: ``http`` is a MagicMock standing in for
``requests.Session`` and every response is a real ``requests.Response``
built by ``make_response``.
"""

import base64
import json
import time
from unittest.mock import MagicMock, patch

import pytest
import requests

from jobboard.events import EventBus
from jobboard.http_client import ApiClient
from jobboard.token_store import TokenStore

BASE_URL = "https://api.test"


def _response(status=200, json_body=None, *, content=None, headers=None):
    response = requests.Response()
    response.status_code = status
    if content is None:
        content = b"" if json_body is None else json.dumps(json_body).encode("utf-8")
    response._content = content
    response.encoding = "utf-8"
    response.headers.update(headers or {})
    return response


def _token(exp_offset=3600, **claims):
    payload = {"exp": int(time.time()) + exp_offset, **claims}
    body = base64.urlsafe_b64encode(json.dumps(payload).encode("utf-8")).rstrip(b"=").decode("ascii")
    return f"eyJhbGciOiJIUzI1NiJ9.{body}.signature"


@pytest.fixture(autouse=True)
def no_sleep():
    """Retry backoff never actually waits."""
    with patch("jobboard.retry.time.sleep") as sleep:
        yield sleep


@pytest.fixture
def make_response():
    return _response


@pytest.fixture
def make_token():
    return _token


@pytest.fixture
def events():
    return EventBus()


@pytest.fixture
def store(tmp_path):
    return TokenStore(tmp_path / "session.json")


@pytest.fixture
def http():
    """Stand-in for requests.Session; set ``request.return_value`` or ``side_effect``."""
    session = MagicMock(spec=requests.Session)
    session.request.return_value = _response(200, {})
    return session


@pytest.fixture
def client(http, store, events):
    return ApiClient(BASE_URL, store, events, session=http)


@pytest.fixture
def logged_in(store):
    """A stored, unexpired session for user 7."""
    token = _token(id="7", email="ana@example.com")
    store.set(token, "7", "ana@example.com")
    return token
