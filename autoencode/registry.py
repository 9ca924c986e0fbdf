"""Catalog provider registry and validation helpers."""

from __future__ import annotations

from typing import Any


def builtin_provider_registry() -> dict[str, dict[str, Any]]:
    return {
        "tvmaze": {
            "type": "catalog",
            "name": "tvmaze",
            "media_types": ["tv"],
            "auth": {"scheme": "none"},
            "required_keys": ["catalog.tvmaze.url"],
            "optional_keys": ["catalog.tvmaze.timeout"],
            "rate_limit": {"requests_per_minute": 100},
            "capabilities": {"search": True, "episodes": True},
        },
        "tmdb": {
            "type": "catalog",
            "name": "tmdb",
            "media_types": ["movie"],
            "auth": {"scheme": "api_key", "key_path": "catalog.tmdb.api_key"},
            "required_keys": ["catalog.tmdb.url", "catalog.tmdb.api_key"],
            "optional_keys": ["catalog.tmdb.image_url", "catalog.tmdb.poster_size"],
            "rate_limit": {"requests_per_minute": 40},
            "capabilities": {"search": True},
        },
        "thexem": {
            "type": "mapping",
            "name": "thexem",
            "media_types": ["tv"],
            "auth": {"scheme": "none"},
            "required_keys": ["catalog.thexem.url"],
            "optional_keys": [],
            "rate_limit": {"requests_per_minute": 30},
            "capabilities": {"scene_numbering": True},
        },
    }


def merge_provider_registry(config: dict[str, Any]) -> dict[str, dict[str, Any]]:
    registry = dict(builtin_provider_registry())
    custom = config.get("provider_registry")
    if isinstance(custom, dict):
        for key, value in custom.items():
            if not isinstance(value, dict):
                continue
            merged = dict(registry.get(key, {}))
            merged.update(value)
            registry[key] = merged
    return registry


def iter_active_providers(config: dict[str, Any]) -> list[str]:
    """Providers the placement step will call with this config."""
    active: list[str] = []
    paths = config.get("paths", {}) or {}
    catalog = config.get("catalog", {}) or {}
    if paths.get("tv"):
        if catalog.get("tvmaze") is not None:
            active.append("tvmaze")
        if catalog.get("thexem") is not None:
            active.append("thexem")
    if paths.get("movies") and catalog.get("tmdb") is not None:
        active.append("tmdb")
    return active


def _get_path(obj: dict[str, Any], path: str) -> Any:
    cur: Any = obj
    for part in path.split("."):
        if isinstance(cur, dict) and part in cur:
            cur = cur[part]
        else:
            return None
    return cur


def is_missing_value(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        if value.strip() == "" or value.strip().upper() == "CHANGE_ME":
            return True
    return False


def validate_registry_requirements(config: dict[str, Any]) -> tuple[list[str], list[str]]:
    errors: list[str] = []
    warnings: list[str] = []
    registry = merge_provider_registry(config)
    for provider_key in iter_active_providers(config):
        entry = registry.get(provider_key)
        if not entry:
            warnings.append(f"provider registry missing definition: {provider_key}")
            continue
        for key_path in entry.get("required_keys") or []:
            if is_missing_value(_get_path(config, key_path)):
                # Missing catalog keys degrade placement to the output folder.
                warnings.append(f"{provider_key}: missing config {key_path}; files will not be sorted")
    return errors, warnings


def provider_rate_limit(config: dict[str, Any], provider_key: str) -> int | None:
    overrides = config.get("rate_limits", {}) or {}
    if isinstance(overrides, dict) and provider_key in overrides:
        raw = overrides.get(provider_key)
        if isinstance(raw, dict):
            raw = raw.get("requests_per_minute")
        try:
            return int(raw)
        except (TypeError, ValueError):
            return None
    entry = merge_provider_registry(config).get(provider_key) or {}
    rate = entry.get("rate_limit") or {}
    try:
        return int(rate.get("requests_per_minute"))
    except (TypeError, ValueError):
        return None
