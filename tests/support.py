"""Shared fakes for the step and placement tests."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from autoencode.config import Settings, default_config
from autoencode.errors import NoResultError
from autoencode.lookup import MediaLookup
from autoencode.model import CandidateMatch, Episode, ProbeResult, TrackDescriptor
from autoencode.pipeline import Context
from autoencode.placement import PlacementResolver
from autoencode.util import deep_merge


def make_config(root: Path, **overrides: Any) -> dict[str, Any]:
    config = default_config()
    config["paths"] = {
        "watch": str(root / "watch"),
        "staging": str(root / "staging"),
        "output": str(root / "output"),
        "movies": str(root / "Movies"),
        "tv": str(root / "TV"),
    }
    config["ingest"]["database"] = str(root / "state" / "files.db")
    config["catalog"]["cache"]["enabled"] = False
    return deep_merge(config, overrides)


def make_settings(root: Path, **overrides: Any) -> Settings:
    settings = Settings.from_config(make_config(root, **overrides))
    for directory in settings.directories.all():
        directory.mkdir(parents=True, exist_ok=True)
    return settings


class FakeTVMaze:
    def __init__(self, shows: list[CandidateMatch], episodes: dict[Any, list[Episode]]) -> None:
        self.shows = shows
        self._episodes = episodes
        self.searches: list[str] = []

    def search(self, title: str) -> list[CandidateMatch]:
        self.searches.append(title)
        return [CandidateMatch(**vars(show)) for show in self.shows]

    def show(self, show_id: Any) -> CandidateMatch:
        for show in self.shows:
            if show.id == show_id:
                return show
        raise NoResultError(f"no show {show_id}")

    def episodes(self, show_id: Any) -> list[Episode]:
        return list(self._episodes.get(show_id, []))


class FakeTMDB:
    def __init__(self, movies: list[CandidateMatch]) -> None:
        self.movies = movies

    def search(self, title: str, year: int | None = None) -> list[CandidateMatch]:
        return [CandidateMatch(**vars(movie)) for movie in self.movies]

    def movie(self, movie_id: Any) -> CandidateMatch:
        for movie in self.movies:
            if movie.id == movie_id:
                return movie
        raise NoResultError(f"no movie {movie_id}")


class FakeXEM:
    def __init__(self, data: dict[int, list[dict[str, Any]]]) -> None:
        self.data = data
        self.calls = 0

    def mapping(self, tvdb_id: int) -> list[dict[str, Any]]:
        self.calls += 1
        if tvdb_id not in self.data:
            raise NoResultError(f"no mapping for {tvdb_id}")
        return self.data[tvdb_id]


def show_lookup() -> MediaLookup:
    show = CandidateMatch(id=1, title="Show Name", release_date="2010-01-01", tvdb_id=99)
    episodes = [
        Episode(id=11, title="Pilot", season=1, episode=1),
        Episode(id=12, title="Episode Title", season=1, episode=2),
    ]
    movie = CandidateMatch(id=7, title="Some Movie", kind="movie", release_date="2001-05-01")
    return MediaLookup(FakeTVMaze([show], {1: episodes}), FakeTMDB([movie]), FakeXEM({}))


def probe_result(
    duration: float = 1800.0,
    height: int = 1080,
    channels: int = 2,
    with_audio: bool = True,
) -> ProbeResult:
    video = [TrackDescriptor(index=0, width=height * 16 // 9, height=height)]
    audio = [TrackDescriptor(index=0, language="eng", channel_count=channels, is_default=True)] if with_audio else []
    return ProbeResult(duration_seconds=duration, video=video, audio=audio)


class FakeEncoder:
    """Writes a placeholder output file and remembers the parameters it got."""

    def __init__(self) -> None:
        self.calls: list[tuple[Path, Path, dict[str, Any]]] = []

    def encode(self, source: Path, output: Path, params: dict[str, Any], progress=None) -> Path:
        self.calls.append((source, output, dict(params)))
        if progress:
            progress(50.0)
            progress(100.0)
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_bytes(b"encoded")
        return output


def make_context(settings: Settings, lookup: MediaLookup | None = None, probe=None, encoder=None) -> Context:
    return Context(
        settings=settings,
        placement=PlacementResolver(settings, lookup or show_lookup()),
        probe=probe or (lambda path: probe_result()),
        encoder=encoder or FakeEncoder(),
        config={},
    )
