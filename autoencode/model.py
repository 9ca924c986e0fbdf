"""Records shared between the pipeline steps."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


ORIGIN_RAR = "rar"
ORIGIN_ZIP = "zip"
ORIGIN_FILE = "file"


@dataclass
class WorkItem:
    source_path: Path
    current_path: Path
    origin_kind: str = ORIGIN_FILE
    resolved_target_path: Path | None = None

    @classmethod
    def from_path(cls, path: str | Path) -> "WorkItem":
        source = Path(path)
        return cls(source_path=source, current_path=source)


@dataclass(frozen=True)
class TrackDescriptor:
    index: int
    language: str | None = None
    channel_count: int = 0
    is_default: bool = False
    is_forced: bool = False
    width: int = 0
    height: int = 0

    @property
    def area(self) -> int:
        return self.width * self.height


@dataclass
class ProbeResult:
    duration_seconds: float | None
    video: list[TrackDescriptor] = field(default_factory=list)
    audio: list[TrackDescriptor] = field(default_factory=list)
    text: list[TrackDescriptor] = field(default_factory=list)


@dataclass
class CandidateMatch:
    id: Any
    title: str
    kind: str = "tv"
    aliases: list[str] = field(default_factory=list)
    popularity: float = 0.0
    search_score: float = 0.0
    release_date: str | None = None
    description: str | None = None
    poster: str | None = None
    tvdb_id: int | None = None
    imdb_id: str | None = None
    match_ranking: float = 0.0
    match_probability: float = 0.0

    @property
    def year(self) -> int | None:
        if not self.release_date or len(self.release_date) < 4:
            return None
        try:
            return int(self.release_date[:4])
        except ValueError:
            return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "kind": self.kind,
            "year": self.year,
            "popularity": self.popularity,
            "search_score": self.search_score,
            "match_ranking": self.match_ranking,
            "match_probability": self.match_probability,
        }


@dataclass(frozen=True)
class Episode:
    id: Any
    title: str
    season: int
    episode: int
    air_date: str | None = None


@dataclass
class SeriesInfo:
    series: CandidateMatch
    episodes: list[Episode] = field(default_factory=list)

    def find_episode(self, season: int, episode: int) -> Episode | None:
        for entry in self.episodes:
            if entry.season == season and entry.episode == episode:
                return entry
        return None
