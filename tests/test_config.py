"""
Unit tests for settings loading and backend URL resolution.
"""

import pytest

from jobboard import config


@pytest.fixture(autouse=True)
def no_url_override(monkeypatch):
    monkeypatch.delenv("JOBBOARD_API_BASE_URL", raising=False)


class TestLoadSettings:
    def test_missing_file_uses_defaults(self, tmp_path):
        settings = config.load_settings(tmp_path / "missing.yaml")

        assert settings == config.DEFAULTS
        assert settings is not config.DEFAULTS

    def test_file_overrides_defaults(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("board:\n  page_size: 25\n", encoding="utf-8")

        settings = config.load_settings(path)

        assert settings["board"]["page_size"] == 25
        assert settings["board"]["geocode_limit"] == 20
        assert settings["api"]["export_timeout"] == 600


class TestResolveBaseUrl:
    SETTINGS = {"api": {"base_url": "https://deployed.example/", "local_base_url": "https://localhost:7017"}}

    def test_local_host(self):
        assert config.resolve_base_url("localhost:8501", self.SETTINGS) == "https://localhost:7017"
        assert config.resolve_base_url("127.0.0.1", self.SETTINGS) == "https://localhost:7017"

    def test_deployed_host(self):
        assert config.resolve_base_url("jobs.example.com", self.SETTINGS) == "https://deployed.example"
        assert config.resolve_base_url(None, self.SETTINGS) == "https://deployed.example"

    def test_env_override_wins(self, monkeypatch):
        monkeypatch.setenv("JOBBOARD_API_BASE_URL", " https://staging.example/ ")

        assert config.resolve_base_url("localhost", self.SETTINGS) == "https://staging.example"


def test_get_env_trims(monkeypatch):
    monkeypatch.setenv("JOBBOARD_HOST", "  localhost ")

    assert config.get_env("JOBBOARD_HOST") == "localhost"
    assert config.get_env("JOBBOARD_NOT_SET", "fallback") == "fallback"
