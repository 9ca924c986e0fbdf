"""Filesystem paths for config and state."""

from __future__ import annotations

import os
from pathlib import Path

APP_NAME = "autoencode"

# Directory keys and the environment variables that override them.
DIRECTORY_ENV = {
    "watch": "AE_WATCH_DIR",
    "staging": "AE_EXTRACT_DIR",
    "output": "AE_OUTPUT_DIR",
    "movies": "AE_MOVIES_DIR",
    "tv": "AE_TV_DIR",
}

DOCKER_DIRECTORIES = {
    "watch": "/watch",
    "staging": "/extract",
    "output": "/output",
    "movies": "/movies",
    "tv": "/tv",
}


def _xdg_dir(env_key: str, fallback: str) -> Path:
    base = os.environ.get(env_key)
    if base:
        return Path(base).expanduser()
    return Path(fallback).expanduser()


def config_dir() -> Path:
    return _xdg_dir("XDG_CONFIG_HOME", "~/.config") / APP_NAME


def state_dir() -> Path:
    return _xdg_dir("XDG_STATE_HOME", "~/.local/state") / APP_NAME


def cache_dir() -> Path:
    return _xdg_dir("XDG_CACHE_HOME", "~/.cache") / APP_NAME


def config_path() -> Path:
    override = os.environ.get("AUTOENCODE_CONFIG")
    if override:
        return Path(override).expanduser()
    return config_dir() / "config.yaml"


def secrets_path() -> Path:
    override = os.environ.get("AUTOENCODE_SECRETS")
    if override:
        return Path(override).expanduser()
    return config_dir() / "secrets.yaml"


def database_path() -> Path:
    return state_dir() / "files.db"


def directory_overrides() -> dict[str, str]:
    """Directories forced by the environment.

    Inside a container (``DOCKER`` set) the fixed mount points win; otherwise
    each ``AE_*_DIR`` variable that is set replaces the configured value.
    """
    if os.environ.get("DOCKER"):
        return dict(DOCKER_DIRECTORIES)
    overrides: dict[str, str] = {}
    for key, env_key in DIRECTORY_ENV.items():
        value = os.environ.get(env_key)
        if value:
            overrides[key] = value
    return overrides


def ensure_dir(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path
