"""Library placement: from a release filename to its final path."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import requests
from guessit import guessit
from unidecode import unidecode

from .cache import BoundedCache
from .config import Settings
from .errors import CatalogError, NoResultError
from .files import is_media, is_sample_name
from .lookup import MediaLookup
from .matching import accept_candidates
from .model import CandidateMatch, Episode, SeriesInfo

logger = logging.getLogger(__name__)

_TRAILING_YEAR = re.compile(r"[0-9]{4}$")
_REGEX_FLAGS = {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL}
_JS_GROUP = re.compile(r"\$(\d+|&)")


@dataclass
class ReleaseInfo:
    title: str
    year: int | None = None
    season: int | None = None
    episode: int | None = None


def _first_int(value: Any) -> int | None:
    if isinstance(value, list):
        value = value[0] if value else None
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def parse_release(stem: str) -> ReleaseInfo:
    guess = guessit(stem)
    title = str(guess.get("title") or stem).strip()
    year = _first_int(guess.get("year"))
    if year is None:
        match = _TRAILING_YEAR.search(title)
        if match:
            year = int(match.group(0))
    return ReleaseInfo(
        title=title,
        year=year,
        season=_first_int(guess.get("season")),
        episode=_first_int(guess.get("episode")),
    )


def _group_reference(match: re.Match[str]) -> str:
    group = match.group(1)
    return r"\g<0>" if group == "&" else rf"\g<{group}>"


def apply_replacements(text: str, replacements: list[dict[str, Any]]) -> str:
    """Apply ``text_replacements`` rules in order.

    A string ``find`` replaces its first occurrence. A ``{regexp, flags}`` find
    takes ``$1``-style group references in ``replace``, and ``g`` replaces every
    match.
    """
    for rule in replacements or []:
        find = rule.get("find")
        replace = str(rule.get("replace", ""))
        if isinstance(find, dict) and find.get("regexp"):
            flags_text = str(find.get("flags") or "")
            flags = 0
            for char in flags_text:
                flags |= _REGEX_FLAGS.get(char, 0)
            count = 0 if "g" in flags_text else 1
            template = _JS_GROUP.sub(_group_reference, replace.replace("\\", "\\\\"))
            text = re.sub(find["regexp"], template, text, count=count, flags=flags)
        elif isinstance(find, str) and find:
            text = text.replace(find, replace, 1)
    return text


def clean_name(name: str) -> str:
    """Make a catalog title safe and tidy as a file or folder name."""
    text = unidecode(name)
    text = re.sub(r"(\S):\s", r"\1 - ", text)
    text = re.sub(r"\s&\s", " and ", text)
    text = re.sub(r'[/><:"\\|?*]', "", text)
    text = text.replace("...", "…")
    text = re.sub(r"^[^a-zA-Z0-9]+", "", text)
    text = re.sub(r"[^a-zA-Z0-9)…]+$", "", text)
    return text


def _with_year(name: str, candidate: CandidateMatch, others: list[CandidateMatch]) -> str:
    if candidate.year and any(clean_name(o.title) == name for o in others):
        return f"{name} ({candidate.year})"
    return name


class PlacementResolver:
    def __init__(self, settings: Settings, lookup: MediaLookup) -> None:
        self.settings = settings
        self.lookup = lookup
        self.cache = BoundedCache(settings.lookup_cache_size)

    def fallback_path(self, path: Path) -> Path:
        return self.settings.directories.output / f"{path.stem}{self.settings.output_format}"

    def resolve(self, path: Path) -> Path:
        """Final library path for ``path``, memoized by filename stem."""
        return self.cache.get_or_compute(path.stem, lambda: self._resolve(path))

    def admit(self, path: Path) -> Path | None:
        """Resolved target when ``path`` should be processed, otherwise None."""
        if not is_media(path):
            logger.debug("Not a media file: %s", path.name)
            return None
        if is_sample_name(path):
            logger.info("Ignoring %s: likely a sample", path.name)
            return None
        target = self.resolve(path)
        if target.exists() and not self.settings.overwrite:
            logger.info("Ignoring %s: %s already exists", path.name, target)
            return None
        return target

    def _resolve(self, path: Path) -> Path:
        fallback = self.fallback_path(path)
        info = parse_release(path.stem)
        title = apply_replacements(info.title, self.settings.text_replacements)
        dirs = self.settings.directories
        try:
            if info.season is not None and info.episode is not None and dirs.tv:
                return self._resolve_tv(dirs.tv, info, title) or fallback
            if dirs.movies:
                return self._resolve_movie(dirs.movies, info, title) or fallback
        except CatalogError as exc:
            logger.warning("Catalog lookup failed for %s: %s", path.name, exc)
        except requests.RequestException as exc:
            logger.warning("Catalog request failed for %s: %s", path.name, exc)
        return fallback

    def _resolve_tv(self, root: Path, info: ReleaseInfo, title: str) -> Path | None:
        options = self.lookup.tv_series_options(title, info.year)
        if not options:
            logger.warning("No TV series matches for %s", title)
            return None
        probable = accept_candidates(options, self.settings.match_threshold)
        if not probable:
            logger.warning("No confident TV series match for %s", title)
            return None
        series, others = probable[0], probable[1:]
        series_info = self.lookup.tv_series_info(series.id)
        episode = self._find_episode(series_info, info.season, info.episode, info.year)
        if episode is None:
            logger.warning("No TV episode matches for %s %sx%s", title, info.season, info.episode)
            return None
        series_name = _with_year(clean_name(series.title), series, others)
        episode_name = clean_name(episode.title)
        filename = f"{episode.season}x{episode.episode:02d} - {episode_name}{self.settings.output_format}"
        return root / series_name / f"Season {episode.season}" / filename

    def _find_episode(self, series_info: SeriesInfo, season: int, episode: int, year: int | None) -> Episode | None:
        try:
            return self.lookup.tv_episode(series_info, season, episode)
        except NoResultError:
            if not year:
                return None
        # Date-numbered seasons: the year stands in for the season.
        try:
            return self.lookup.tv_episode(series_info, year, episode)
        except NoResultError:
            return None

    def _resolve_movie(self, root: Path, info: ReleaseInfo, title: str) -> Path | None:
        options = self.lookup.movie_options(title, info.year)
        if not options:
            logger.warning("No movie matches for %s", title)
            return None
        probable = accept_candidates(options, self.settings.match_threshold)
        if not probable:
            logger.warning("No confident movie match for %s", title)
            return None
        movie, others = probable[0], probable[1:]
        name = _with_year(clean_name(movie.title), movie, others)
        return root / f"{name}{self.settings.output_format}"
