"""
Unit tests for the favorites controller.
"""

import pytest

from jobboard.auth import SessionController
from jobboard.favorites import LOGIN_REQUIRED, FavoritesController

BASE = "https://api.test"


@pytest.fixture
def signed_in(store, events, logged_in):
    session = SessionController(store, events)
    session.initialize()
    return session


@pytest.fixture
def signed_out(store, events):
    session = SessionController(store, events)
    session.initialize()
    return session


class TestFavoritesController:
    """Tests for FavoritesController."""

    def test_toggle_requires_login(self, client, http, signed_out):
        """Anonymous toggles make no request and leave the mark alone."""
        favorites = FavoritesController(client, signed_out)

        outcome = favorites.toggle(5)

        assert outcome.ok is False
        assert outcome.is_favorite is False
        assert outcome.notice == LOGIN_REQUIRED
        http.request.assert_not_called()

    def test_is_favorite_anonymous(self, client, http, signed_out):
        assert FavoritesController(client, signed_out).is_favorite(5) is False
        http.request.assert_not_called()

    def test_is_favorite_is_checked_once(self, client, http, signed_in, make_response):
        http.request.return_value = make_response(200, {"isFavorite": True})
        favorites = FavoritesController(client, signed_in)

        assert favorites.is_favorite(5) is True
        assert favorites.is_favorite(5) is True

        http.request.assert_called_once()
        assert http.request.call_args.args == ("GET", BASE + "/api/favorites/check/5")

    def test_check_failure_reads_as_not_favorite(self, client, http, signed_in, make_response):
        http.request.return_value = make_response(500)

        assert FavoritesController(client, signed_in).is_favorite(5) is False

    def test_add(self, client, http, signed_in, make_response):
        http.request.side_effect = [make_response(200, {"isFavorite": False}), make_response(200)]
        favorites = FavoritesController(client, signed_in)

        outcome = favorites.toggle(5)

        assert outcome.ok is True
        assert outcome.is_favorite is True
        assert favorites.marks[5] is True
        method, url = http.request.call_args.args
        assert (method, url) == ("POST", BASE + "/api/favorites/add-to-favorites")
        assert http.request.call_args.kwargs["json"] == [5]

    def test_remove(self, client, http, signed_in, make_response):
        http.request.side_effect = [make_response(200, {"isFavorite": True}), make_response(200)]
        favorites = FavoritesController(client, signed_in)

        outcome = favorites.toggle(5)

        assert outcome.is_favorite is False
        method, url = http.request.call_args.args
        assert (method, url) == ("DELETE", BASE + "/api/favorites/remove-from-favorites")
        assert http.request.call_args.kwargs["json"] == [5]

    def test_failed_toggle_rolls_back(self, client, http, signed_in, make_response):
        """The optimistic flip is undone when the backend refuses."""
        http.request.side_effect = [make_response(200, {"isFavorite": False}), make_response(500)]
        favorites = FavoritesController(client, signed_in)

        outcome = favorites.toggle(5)

        assert outcome.ok is False
        assert outcome.is_favorite is False
        assert outcome.notice
        assert favorites.marks[5] is False

    def test_forget(self, client, http, signed_in, make_response):
        http.request.return_value = make_response(200, {"isFavorite": True})
        favorites = FavoritesController(client, signed_in)
        favorites.is_favorite(1)
        favorites.is_favorite(2)

        favorites.forget(1)
        assert set(favorites.marks) == {2}

        favorites.forget()
        assert favorites.marks == {}
