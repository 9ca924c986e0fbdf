"""Catalog lookups: ranked series/movie options and episode resolution."""

from __future__ import annotations

import logging
from typing import Any

from .cache import BoundedCache
from .catalog import TMDBClient, TVMazeClient, XEMClient
from .errors import MissingInfoError, NoResultError
from .files import clear_file_extension
from .matching import MatchWeights, rank_candidates
from .model import CandidateMatch, Episode, SeriesInfo

logger = logging.getLogger(__name__)


class MediaLookup:
    def __init__(
        self,
        tvmaze: TVMazeClient | None,
        tmdb: TMDBClient | None,
        xem: XEMClient | None = None,
        *,
        weights: MatchWeights | None = None,
        cache_size: int = 300,
    ) -> None:
        self.tvmaze = tvmaze
        self.tmdb = tmdb
        self.xem = xem
        self.weights = weights or MatchWeights()
        self._series_cache = BoundedCache(cache_size)
        self._xem_cache = BoundedCache(cache_size)

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "MediaLookup":
        catalog = config.get("catalog", {}) or {}
        matching = config.get("matching", {}) or {}
        return cls(
            TVMazeClient(config) if catalog.get("tvmaze") is not None else None,
            TMDBClient(config) if catalog.get("tmdb") is not None else None,
            XEMClient(config) if catalog.get("thexem") is not None else None,
            weights=MatchWeights.from_config(matching.get("weights")),
            cache_size=int(config.get("lookup_cache_size", 300)),
        )

    def tv_series_options(self, title: str, year: int | None = None) -> list[CandidateMatch]:
        if self.tvmaze is None:
            raise MissingInfoError("TV catalog is not configured")
        if not title or not title.strip():
            raise MissingInfoError("Series title was not specified")
        results = self.tvmaze.search(title)
        return rank_candidates(results, title, year, self.weights)

    def tv_series_info(self, show_id: Any) -> SeriesInfo:
        if self.tvmaze is None:
            raise MissingInfoError("TV catalog is not configured")
        client = self.tvmaze

        def _fetch() -> SeriesInfo:
            series = client.show(show_id)
            episodes = client.episodes(show_id)
            if not episodes:
                raise NoResultError(f"No episodes were found for {series.title}")
            return SeriesInfo(series=series, episodes=episodes)

        return self._series_cache.get_or_compute(("tv", show_id), _fetch)

    def best_tv_series(self, title: str, year: int | None = None) -> SeriesInfo:
        options = self.tv_series_options(title, year)
        if not options:
            raise NoResultError(f"No TV series matches for {title}")
        return self.tv_series_info(options[0].id)

    def xem_mapping(self, tvdb_id: int) -> list[dict[str, Any]]:
        if self.xem is None:
            raise MissingInfoError("Scene numbering service is not configured")
        client = self.xem
        return self._xem_cache.get_or_compute(("xem", tvdb_id), lambda: client.mapping(tvdb_id))

    def tv_episode(self, info: SeriesInfo, season: int, episode: int) -> Episode:
        """Find an episode, translating scene numbering through TheXEM when needed."""
        found = info.find_episode(int(season), int(episode))
        if found:
            return found
        label = f"Episode {season}x{episode} was not found for {info.series.title}"
        if not info.series.tvdb_id:
            raise NoResultError(label)
        try:
            mapping = self.xem_mapping(info.series.tvdb_id)
        except (MissingInfoError, NoResultError) as exc:
            raise NoResultError(label) from exc
        for entry in mapping:
            scene = entry.get("scene") or {}
            tvdb = entry.get("tvdb") or {}
            try:
                scene_match = int(scene.get("season")) == int(season) and int(scene.get("episode")) == int(episode)
            except (TypeError, ValueError):
                continue
            if not scene_match:
                continue
            try:
                mapped = info.find_episode(int(tvdb.get("season")), int(tvdb.get("episode")))
            except (TypeError, ValueError):
                mapped = None
            if mapped:
                logger.debug("Scene %sx%s maps to %sx%s", season, episode, mapped.season, mapped.episode)
                return mapped
            break
        raise NoResultError(label)

    def movie_options(self, title: str, year: int | None = None) -> list[CandidateMatch]:
        if self.tmdb is None:
            raise MissingInfoError("Movie catalog is not configured")
        if not title or not title.strip():
            raise MissingInfoError("Movie title was not specified")
        query = clear_file_extension(title)
        results = self.tmdb.search(query, year)
        return rank_candidates(results, query, year, self.weights)

    def movie_info(self, movie_id: Any) -> CandidateMatch:
        if self.tmdb is None:
            raise MissingInfoError("Movie catalog is not configured")
        client = self.tmdb
        return self._series_cache.get_or_compute(("movie", movie_id), lambda: client.movie(movie_id))

    def best_movie(self, title: str, year: int | None = None) -> CandidateMatch:
        options = self.movie_options(title, year)
        if not options:
            raise NoResultError(f"No results for {year} - {title}")
        return self.movie_info(options[0].id)
