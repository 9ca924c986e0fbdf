"""Config loading, defaults and the typed settings view."""

from __future__ import annotations

import sys
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError
from .paths import config_path, database_path, directory_overrides, ensure_dir, secrets_path
from .registry import validate_registry_requirements
from .schema import validate_config_schema
from .util import deep_merge, resolve_env_values

# HandBrake parameters that only make sense when an audio track is encoded.
AUDIO_KEYS = frozenset(
    {
        "audio-lang-list",
        "all-audio",
        "first-audio",
        "audio",
        "aencoder",
        "audio-copy-mask",
        "audio-fallback",
        "ab",
        "aq",
        "ac",
        "mixdown",
        "normalize-mix",
        "arate",
        "drc",
        "gain",
        "adither",
        "aname",
    }
)


def default_config() -> dict[str, Any]:
    aac = "ca_aac" if sys.platform == "darwin" else "av_aac"
    return {
        "paths": {
            "watch": "~/Downloads/complete",
            "staging": None,
            "output": "~/Videos/encoded",
            "movies": None,
            "tv": None,
        },
        "preferred_language": "eng",
        "min_duration_seconds": 120,
        "delete_after_extracting": False,
        "delete_after_encoding": True,
        "overwrite": False,
        "output_format": ".mp4",
        "encoding": {
            "base": {
                "quality": 22,
                "encoder": "x264",
                "audio": "%t",
                "aencoder": aac,
                "mixdown": "stereo",
                "ab": "192",
            },
            "sd": {},
            "surround": {},
            "tv": {},
            "movie": {},
        },
        "handbrake": {"bin": "HandBrakeCLI", "timeout": None},
        "pipeline": ["extract", "encode", "sort"],
        "ingest": {
            "concurrency": 1,
            "retries": 2,
            "retry_backoff_seconds": 30,
            "max_backoff_seconds": 300,
            "rescan_interval_seconds": 900,
            "database": None,
        },
        "catalog": {
            "tvmaze": {"url": "https://api.tvmaze.com", "timeout": 20},
            "tmdb": {
                "url": "https://api.themoviedb.org/3",
                "api_key": "${ENV:MDB_API}",
                "image_url": "https://image.tmdb.org/t/p",
                "poster_size": "w500",
                "timeout": 20,
            },
            "thexem": {"url": "http://thexem.de", "timeout": 20},
            "cache": {"enabled": True, "ttl_seconds": 86400},
        },
        "matching": {
            "threshold": 0.75,
            "weights": {
                "exact": 6500,
                "alpha": 4000,
                "alias_exact": 6500,
                "alias_alpha": 4000,
                "popularity": 10,
                "search_score": 8,
                "year": 2000,
                "recency": 4,
            },
        },
        "lookup_cache_size": 300,
        "text_replacements": [],
        "retries": {"retries": 2, "retry_backoff_seconds": 1.0, "max_backoff_seconds": 60.0},
        "rate_limits": {},
        "logging": {"verbose": True, "silly": False, "path": None},
    }


def load_config(path: Path | None = None) -> dict[str, Any]:
    cfg_path = path or config_path()
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config not found at {cfg_path}")
    with cfg_path.open("r", encoding="utf-8") as handle:
        config = yaml.safe_load(handle) or {}
    if not isinstance(config, dict):
        raise ConfigError(f"{cfg_path} does not contain a mapping", hint="Run `autoencode init --force`.")
    secrets = {}
    secrets_file = secrets_path()
    if secrets_file.exists():
        with secrets_file.open("r", encoding="utf-8") as handle:
            secrets = yaml.safe_load(handle) or {}
    merged = deep_merge(default_config(), deep_merge(config, secrets))
    merged = resolve_env_values(merged)
    overrides = directory_overrides()
    if overrides:
        merged["paths"] = deep_merge(merged.get("paths") or {}, overrides)
    return merged


def save_default_config(path: Path | None = None, overwrite: bool = False) -> Path:
    cfg_path = path or config_path()
    ensure_dir(cfg_path.parent)
    if cfg_path.exists() and not overwrite:
        return cfg_path
    with cfg_path.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(default_config(), handle, sort_keys=False)
    return cfg_path


def save_default_secrets(path: Path | None = None, overwrite: bool = False) -> Path:
    cfg_path = path or secrets_path()
    ensure_dir(cfg_path.parent)
    if cfg_path.exists() and not overwrite:
        return cfg_path
    with cfg_path.open("w", encoding="utf-8") as handle:
        yaml.safe_dump({}, handle, sort_keys=False)
    return cfg_path


def resolve_config_path(path_str: str | None) -> Path:
    if path_str:
        return Path(path_str).expanduser()
    return config_path()


def ensure_config_exists(path_str: str | None = None) -> Path:
    cfg_path = resolve_config_path(path_str)
    if not cfg_path.exists():
        cfg_path = save_default_config(cfg_path, overwrite=False)
    return cfg_path


def validate_config(config: dict[str, Any], steps: list[str]) -> tuple[list[str], list[str]]:
    errors = validate_config_schema(config)
    warnings: list[str] = []

    for step_name in config.get("pipeline", []) or []:
        if step_name not in steps:
            errors.append(f"pipeline references unknown step {step_name}")

    paths = config.get("paths", {}) or {}
    if not paths.get("output"):
        errors.append("paths.output is required")
    if not paths.get("watch"):
        warnings.append("paths.watch is not set; only `autoencode process` will work")
    if not paths.get("tv") and not paths.get("movies"):
        warnings.append("neither paths.tv nor paths.movies is set; encoded files stay in paths.output")

    threshold = (config.get("matching", {}) or {}).get("threshold")
    if threshold is not None and not 0 <= float(threshold) <= 1:
        errors.append("matching.threshold must be between 0 and 1")

    reg_errors, reg_warnings = validate_registry_requirements(config)
    errors.extend(reg_errors)
    warnings.extend(reg_warnings)
    return errors, warnings


def _optional_dir(value: Any) -> Path | None:
    if not value:
        return None
    return Path(str(value)).expanduser().resolve()


@dataclass
class Directories:
    output: Path
    staging: Path
    watch: Path | None = None
    movies: Path | None = None
    tv: Path | None = None

    def all(self) -> list[Path]:
        return [p for p in (self.output, self.staging, self.watch, self.movies, self.tv) if p is not None]


@dataclass
class EncodingProfiles:
    base: dict[str, Any] = field(default_factory=dict)
    sd: dict[str, Any] = field(default_factory=dict)
    surround: dict[str, Any] = field(default_factory=dict)
    tv: dict[str, Any] = field(default_factory=dict)
    movie: dict[str, Any] = field(default_factory=dict)

    def build(
        self,
        *,
        sd: bool = False,
        surround: bool = False,
        category: str | None = None,
        audio_track: int | None = None,
    ) -> dict[str, Any]:
        """Merge overlays in order base, sd, surround, category.

        ``audio_track`` is 1-based; when it is None every audio parameter is
        left out so the encode runs video-only. ``format`` is always dropped
        because the container follows the output extension.
        """
        params: dict[str, Any] = dict(self.base)
        if sd:
            params.update(self.sd)
        if surround:
            params.update(self.surround)
        if category == "tv":
            params.update(self.tv)
        elif category == "movie":
            params.update(self.movie)
        if audio_track is None:
            params = {k: v for k, v in params.items() if k not in AUDIO_KEYS}
        elif isinstance(params.get("audio"), str):
            params["audio"] = params["audio"].replace("%t", str(audio_track))
        return {k: v for k, v in params.items() if k != "format"}


@dataclass
class IngestSettings:
    concurrency: int = 1
    retries: int = 2
    retry_backoff_seconds: float = 30.0
    max_backoff_seconds: float = 300.0
    rescan_interval_seconds: float = 900.0
    database: Path = field(default_factory=database_path)


@dataclass
class Settings:
    directories: Directories
    encoding: EncodingProfiles
    ingest: IngestSettings
    preferred_language: str | None = "eng"
    min_duration_seconds: float | None = 120
    delete_after_extracting: bool = False
    delete_after_encoding: bool = True
    overwrite: bool = False
    output_format: str = ".mp4"
    handbrake_bin: str = "HandBrakeCLI"
    handbrake_timeout: float | None = None
    pipeline: list[str] = field(default_factory=lambda: ["extract", "encode", "sort"])
    match_threshold: float = 0.75
    lookup_cache_size: int = 300
    text_replacements: list[dict[str, Any]] = field(default_factory=list)
    raw: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "Settings":
        paths = config.get("paths", {}) or {}
        output = _optional_dir(paths.get("output"))
        if output is None:
            raise ConfigError(
                "Missing output directory (paths.output or AE_OUTPUT_DIR)",
                hint="Set paths.output in the config file.",
            )
        staging = _optional_dir(paths.get("staging")) or Path(tempfile.gettempdir()) / "autoencode"
        directories = Directories(
            output=output,
            staging=staging,
            watch=_optional_dir(paths.get("watch")),
            movies=_optional_dir(paths.get("movies")),
            tv=_optional_dir(paths.get("tv")),
        )
        enc = config.get("encoding", {}) or {}
        encoding = EncodingProfiles(
            base=dict(enc.get("base") or {}),
            sd=dict(enc.get("sd") or {}),
            surround=dict(enc.get("surround") or {}),
            tv=dict(enc.get("tv") or {}),
            movie=dict(enc.get("movie") or {}),
        )
        ing = config.get("ingest", {}) or {}
        ingest = IngestSettings(
            concurrency=max(1, int(ing.get("concurrency", 1))),
            retries=max(0, int(ing.get("retries", 2))),
            retry_backoff_seconds=float(ing.get("retry_backoff_seconds", 30)),
            max_backoff_seconds=float(ing.get("max_backoff_seconds", 300)),
            rescan_interval_seconds=float(ing.get("rescan_interval_seconds", 900)),
            database=_optional_dir(ing.get("database")) or database_path(),
        )
        output_format = str(config.get("output_format") or ".mp4")
        if not output_format.startswith("."):
            output_format = "." + output_format
        handbrake = config.get("handbrake", {}) or {}
        timeout = handbrake.get("timeout")
        min_duration = config.get("min_duration_seconds")
        return cls(
            directories=directories,
            encoding=encoding,
            ingest=ingest,
            preferred_language=config.get("preferred_language"),
            min_duration_seconds=float(min_duration) if min_duration else None,
            delete_after_extracting=bool(config.get("delete_after_extracting", False)),
            delete_after_encoding=bool(config.get("delete_after_encoding", True)),
            overwrite=bool(config.get("overwrite", False)),
            output_format=output_format,
            handbrake_bin=str(handbrake.get("bin") or "HandBrakeCLI"),
            handbrake_timeout=float(timeout) if timeout else None,
            pipeline=list(config.get("pipeline") or ["extract", "encode", "sort"]),
            match_threshold=float((config.get("matching", {}) or {}).get("threshold", 0.75)),
            lookup_cache_size=int(config.get("lookup_cache_size", 300)),
            text_replacements=list(config.get("text_replacements") or []),
            raw=config,
        )

    def category_for(self, target: Path | None) -> str | None:
        if target is None:
            return None
        if self.directories.tv and _is_under(target, self.directories.tv):
            return "tv"
        if self.directories.movies and _is_under(target, self.directories.movies):
            return "movie"
        return None


def _is_under(path: Path, root: Path) -> bool:
    try:
        path.relative_to(root)
    except ValueError:
        return False
    return True


def prepare_directories(settings: Settings) -> None:
    """Create every configured directory; a failure here is fatal."""
    try:
        for directory in settings.directories.all():
            ensure_dir(directory)
        ensure_dir(settings.ingest.database.parent)
    except OSError as exc:
        raise ConfigError(
            f"One or more directories couldn't be made/accessed: {exc}",
            hint="Check paths.* in the config file and their permissions.",
        ) from exc
