"""Load settings.yaml and env configuration."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from jobboard.log import get_logger

log = get_logger(__name__)

load_dotenv()

ROOT_DIR: Path = Path(__file__).resolve().parent.parent
CONFIG_DIR: Path = ROOT_DIR / "config"
SETTINGS_PATH: Path = CONFIG_DIR / "settings.yaml"
DATA_DIR: Path = Path(os.environ.get("JOBBOARD_DATA_DIR") or ROOT_DIR / "data")
EXPORTS_DIR: Path = DATA_DIR / "exports"
SESSION_PATH: Path = DATA_DIR / "session.json"

LOCAL_HOSTS: frozenset[str] = frozenset({"localhost", "127.0.0.1"})

DEFAULTS: dict[str, Any] = {
    "api": {
        "base_url": "https://peria-pulse-be-dev-audxeahdbuhqbjah.westeurope-01.azurewebsites.net",
        "local_base_url": "https://localhost:7017",
        "request_timeout": 30,
        "export_timeout": 600,
    },
    "board": {
        "page_size": 10,
        "token_grace_seconds": 30,
        "geocode_limit": 20,
    },
}


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_settings(path: Path | None = None) -> dict[str, Any]:
    """settings.yaml layered over the built-in defaults."""
    path = path or SETTINGS_PATH
    if not path.exists():
        log.debug("No settings file at %s, using defaults", path)
        return _merge(DEFAULTS, {})
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return _merge(DEFAULTS, data)


def get_env(key: str, default: str = "") -> str:
    return os.environ.get(key, default).strip()


def resolve_base_url(host: str | None = None, settings: dict[str, Any] | None = None) -> str:
    """Backend URL: explicit env override, else local vs. deployed by host name."""
    override = get_env("JOBBOARD_API_BASE_URL")
    if override:
        return override.rstrip("/")
    api = (settings or load_settings())["api"]
    if host and host.split(":")[0] in LOCAL_HOSTS:
        return str(api["local_base_url"]).rstrip("/")
    return str(api["base_url"]).rstrip("/")


def ensure_dirs() -> None:
    for d in (DATA_DIR, EXPORTS_DIR):
        d.mkdir(parents=True, exist_ok=True)
