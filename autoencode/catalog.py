"""HTTP clients for the TV, movie and scene-numbering catalogs."""

from __future__ import annotations

import logging
import re
import time
from threading import Lock
from typing import Any

from .errors import MissingInfoError, NoResultError
from .model import CandidateMatch, Episode
from .registry import is_missing_value, provider_rate_limit
from .util import cache_key, read_cache, request_with_retry, write_cache

logger = logging.getLogger(__name__)

_TAGS = re.compile(r"<[^>]+>")


class CatalogClient:
    """Shared request plumbing: retries, a request-rate throttle and a disk cache."""

    provider = ""

    def __init__(self, config: dict[str, Any]) -> None:
        catalog_cfg = config.get("catalog", {}) or {}
        self.cfg = catalog_cfg.get(self.provider, {}) or {}
        self.base_url = str(self.cfg.get("url") or "").rstrip("/")
        self.timeout = float(self.cfg.get("timeout", 20))
        retries_cfg = config.get("retries", {}) or {}
        self.retries = int(self.cfg.get("retries", retries_cfg.get("retries", 1)))
        self.backoff = float(retries_cfg.get("retry_backoff_seconds", 0.5))
        self.max_backoff = float(retries_cfg.get("max_backoff_seconds", 8.0))
        cache_cfg = catalog_cfg.get("cache", {}) or {}
        self.cache_enabled = bool(cache_cfg.get("enabled", False))
        self.cache_ttl = cache_cfg.get("ttl_seconds")
        rpm = provider_rate_limit(config, self.provider)
        self._interval = 60.0 / rpm if rpm else 0.0
        self._last_request = 0.0
        self._lock = Lock()

    def _throttle(self) -> None:
        if not self._interval:
            return
        with self._lock:
            wait = self._last_request + self._interval - time.monotonic()
            if wait > 0:
                time.sleep(wait)
            self._last_request = time.monotonic()

    def get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        if not self.base_url:
            raise MissingInfoError(f"catalog.{self.provider}.url is not configured")
        url = f"{self.base_url}{path}"
        key = cache_key({"provider": self.provider, "url": url, "params": params or {}})
        if self.cache_enabled:
            cached = read_cache("catalog", key, self.cache_ttl)
            if cached is not None:
                return cached
        self._throttle()
        logger.debug("GET %s", url)
        response = request_with_retry(
            "GET",
            url,
            params=params,
            timeout=self.timeout,
            retries=self.retries,
            backoff_seconds=self.backoff,
            max_backoff_seconds=self.max_backoff,
        )
        if response.status_code == 404:
            raise NoResultError(f"{self.provider}: nothing at {path}")
        response.raise_for_status()
        payload = response.json()
        if self.cache_enabled:
            write_cache("catalog", key, payload)
        return payload


def _strip_html(text: str | None) -> str | None:
    if not text:
        return text
    return _TAGS.sub("", text).strip()


class TVMazeClient(CatalogClient):
    provider = "tvmaze"

    @staticmethod
    def normalize_series(raw: dict[str, Any]) -> CandidateMatch:
        score = raw.get("score")
        show = raw.get("show") or raw
        externals = show.get("externals") or {}
        image = show.get("image") or {}
        tvdb = externals.get("thetvdb")
        return CandidateMatch(
            id=show.get("id"),
            title=show.get("name") or "",
            kind="tv",
            aliases=[a.get("name") for a in (show.get("_embedded") or {}).get("akas", []) if a.get("name")],
            popularity=float(show.get("weight") or 0),
            search_score=float(score or 0),
            release_date=show.get("premiered"),
            description=_strip_html(show.get("summary")),
            poster=image.get("original"),
            tvdb_id=int(tvdb) if tvdb else None,
            imdb_id=externals.get("imdb"),
        )

    @staticmethod
    def normalize_episode(raw: dict[str, Any]) -> Episode:
        return Episode(
            id=raw.get("id"),
            title=raw.get("name") or "",
            season=int(raw.get("season") or 0),
            episode=int(raw.get("number") or 0),
            air_date=raw.get("airdate"),
        )

    def search(self, title: str) -> list[CandidateMatch]:
        results = self.get_json("/search/shows", {"q": title.strip()})
        if not isinstance(results, list):
            return []
        return [self.normalize_series(item) for item in results]

    def show(self, show_id: Any) -> CandidateMatch:
        return self.normalize_series(self.get_json(f"/shows/{show_id}"))

    def episodes(self, show_id: Any) -> list[Episode]:
        results = self.get_json(f"/shows/{show_id}/episodes", {"specials": 1})
        if not isinstance(results, list):
            return []
        episodes = [self.normalize_episode(item) for item in results]
        episodes.sort(key=lambda e: (e.season, e.episode))
        return episodes


class TMDBClient(CatalogClient):
    provider = "tmdb"

    def __init__(self, config: dict[str, Any]) -> None:
        super().__init__(config)
        self.api_key = self.cfg.get("api_key")
        self.image_url = str(self.cfg.get("image_url") or "").rstrip("/")
        self.poster_size = str(self.cfg.get("poster_size") or "w500")

    def _params(self, extra: dict[str, Any] | None = None) -> dict[str, Any]:
        if is_missing_value(self.api_key):
            raise MissingInfoError(
                "TMDB API key was not specified",
                hint="Set catalog.tmdb.api_key or the MDB_API environment variable.",
            )
        params = {"api_key": self.api_key}
        params.update(extra or {})
        return params

    def normalize_movie(self, raw: dict[str, Any]) -> CandidateMatch:
        title = raw.get("title") or raw.get("name") or ""
        aliases = []
        original = raw.get("original_title")
        if original and original != title:
            aliases.append(original)
        poster = None
        if raw.get("poster_path") and self.image_url:
            poster = f"{self.image_url}/{self.poster_size}{raw['poster_path']}"
        return CandidateMatch(
            id=raw.get("id"),
            title=title,
            kind="movie",
            aliases=aliases,
            popularity=min(float(raw.get("popularity") or 0), 100.0),
            release_date=raw.get("release_date") or None,
            description=raw.get("overview"),
            poster=poster,
            imdb_id=raw.get("imdb_id"),
        )

    def search(self, title: str, year: int | None = None) -> list[CandidateMatch]:
        if not title:
            raise MissingInfoError("Movie title was not specified")
        extra: dict[str, Any] = {"query": title}
        if year:
            extra["year"] = year
        payload = self.get_json("/search/movie", self._params(extra)) or {}
        return [self.normalize_movie(item) for item in payload.get("results") or []]

    def movie(self, movie_id: Any) -> CandidateMatch:
        if not movie_id:
            raise MissingInfoError("TMDB id was not specified")
        return self.normalize_movie(self.get_json(f"/movie/{movie_id}", self._params()))


class XEMClient(CatalogClient):
    provider = "thexem"

    def mapping(self, tvdb_id: int) -> list[dict[str, Any]]:
        payload = self.get_json("/map/all", {"id": int(tvdb_id), "origin": "tvdb"}) or {}
        if payload.get("result") != "success":
            raise MissingInfoError(f"series {tvdb_id} does not exist on TheXEM")
        return list(payload.get("data") or [])
