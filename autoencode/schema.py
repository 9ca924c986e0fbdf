"""Config schema validation."""

from __future__ import annotations

from typing import Any

from jsonschema import Draft7Validator

_OPTIONAL_PATH = {"type": ["string", "null"]}
_PARAMS = {"type": ["object", "null"], "additionalProperties": True}
_PROVIDER = {
    "type": ["object", "null"],
    "additionalProperties": True,
    "properties": {
        "url": {"type": "string"},
        "api_key": {"type": ["string", "null"]},
        "timeout": {"type": ["number", "null"]},
    },
}


def config_schema() -> dict[str, Any]:
    return {
        "type": "object",
        "additionalProperties": True,
        "properties": {
            "paths": {
                "type": "object",
                "additionalProperties": False,
                "properties": {
                    "watch": _OPTIONAL_PATH,
                    "staging": _OPTIONAL_PATH,
                    "output": _OPTIONAL_PATH,
                    "movies": _OPTIONAL_PATH,
                    "tv": _OPTIONAL_PATH,
                },
            },
            "preferred_language": {"type": ["string", "null"]},
            "min_duration_seconds": {"type": ["number", "null"], "minimum": 0},
            "delete_after_extracting": {"type": "boolean"},
            "delete_after_encoding": {"type": "boolean"},
            "overwrite": {"type": "boolean"},
            "output_format": {"type": "string"},
            "encoding": {
                "type": "object",
                "additionalProperties": False,
                "properties": {
                    "base": _PARAMS,
                    "sd": _PARAMS,
                    "surround": _PARAMS,
                    "tv": _PARAMS,
                    "movie": _PARAMS,
                },
            },
            "handbrake": {
                "type": "object",
                "additionalProperties": True,
                "properties": {
                    "bin": {"type": "string"},
                    "timeout": {"type": ["number", "null"]},
                },
            },
            "pipeline": {"type": "array", "items": {"type": "string"}},
            "ingest": {
                "type": "object",
                "additionalProperties": True,
                "properties": {
                    "concurrency": {"type": "integer", "minimum": 1},
                    "retries": {"type": "integer", "minimum": 0},
                    "retry_backoff_seconds": {"type": "number", "minimum": 0},
                    "max_backoff_seconds": {"type": "number", "minimum": 0},
                    "rescan_interval_seconds": {"type": "number", "minimum": 0},
                    "database": _OPTIONAL_PATH,
                },
            },
            "catalog": {
                "type": "object",
                "additionalProperties": True,
                "properties": {
                    "tvmaze": _PROVIDER,
                    "tmdb": _PROVIDER,
                    "thexem": _PROVIDER,
                    "cache": {"type": "object", "additionalProperties": True},
                },
            },
            "matching": {
                "type": "object",
                "additionalProperties": True,
                "properties": {
                    "threshold": {"type": "number"},
                    "weights": {"type": "object", "additionalProperties": {"type": "number"}},
                },
            },
            "lookup_cache_size": {"type": "integer", "minimum": 1},
            "text_replacements": {
                "type": "array",
                "items": {
                    "type": "object",
                    "required": ["find", "replace"],
                    "properties": {
                        "find": {
                            "oneOf": [
                                {"type": "string"},
                                {
                                    "type": "object",
                                    "required": ["regexp"],
                                    "properties": {
                                        "regexp": {"type": "string"},
                                        "flags": {"type": "string"},
                                    },
                                },
                            ]
                        },
                        "replace": {"type": "string"},
                    },
                },
            },
            "provider_registry": {"type": "object", "additionalProperties": True},
            "retries": {"type": "object", "additionalProperties": True},
            "rate_limits": {"type": "object", "additionalProperties": True},
            "logging": {"type": "object", "additionalProperties": True},
        },
    }


def validate_config_schema(config: dict[str, Any]) -> list[str]:
    validator = Draft7Validator(config_schema())
    errors = []
    for error in sorted(validator.iter_errors(config), key=lambda e: [str(p) for p in e.path]):
        path = ".".join(str(part) for part in error.path)
        prefix = f"{path}: " if path else ""
        errors.append(prefix + error.message)
    return errors
