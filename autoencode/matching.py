"""Scoring catalog candidates against a title guessed from a filename."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable

from .model import CandidateMatch

DEFAULT_THRESHOLD = 0.75

_YEAR_SUFFIX = re.compile(r" ?\([0-9]+\)$")
_NON_LETTERS = re.compile(r"[^a-z]+")
_RECENCY_OFFSET = 1577923200
_SCALE_FACTORS = (500, 100, 50, 10, 5)


@dataclass(frozen=True)
class MatchWeights:
    exact: float = 6500
    alpha: float = 4000
    alias_exact: float = 6500
    alias_alpha: float = 4000
    popularity: float = 10
    search_score: float = 8
    year: float = 2000
    recency: float = 4

    @classmethod
    def from_config(cls, raw: dict[str, Any] | None) -> "MatchWeights":
        if not raw:
            return cls()
        known = {k: float(v) for k, v in raw.items() if k in cls.__dataclass_fields__}
        return cls(**known)


def strip_year_suffix(name: str) -> str:
    return _YEAR_SUFFIX.sub("", name)


def letters_only(name: str) -> str:
    return _NON_LETTERS.sub("", name.lower())


def compare_names(a: str, b: str) -> bool:
    return letters_only(a) == letters_only(b)


def _release_timestamp(release_date: str | None) -> float | None:
    if not release_date:
        return None
    try:
        parsed = datetime.strptime(release_date[:10], "%Y-%m-%d")
    except ValueError:
        return None
    return parsed.replace(tzinfo=timezone.utc).timestamp()


def recent_rating(release_date: str | None) -> int:
    timestamp = _release_timestamp(release_date)
    if timestamp is None:
        return 0
    days = int((_RECENCY_OFFSET + timestamp) / 86400)
    return int(days / 60)


def result_ceiling(value: float) -> float:
    """Round ``value`` up to a clean number slightly above it.

    Below 10000 the step is picked from 500/100/50/10/5 scaled to the
    magnitude; above that the decimal scale shrinks until the remainder is
    significant. The result is never below ``value``.
    """
    if value <= 0:
        return 1.0
    scale = 10 ** math.floor(math.log10(value))
    start = scale
    if scale > 1000:
        while scale > 1 and value % scale < scale / 2.1:
            scale = scale / 10
    else:
        index = 0
        while (
            value % scale < scale / 2.1
            and index < len(_SCALE_FACTORS)
            and _SCALE_FACTORS[index] > start / 11
        ):
            scale = _SCALE_FACTORS[index]
            index += 1
    return math.ceil(value / scale) * scale


def score_candidate(
    candidate: CandidateMatch,
    title: str,
    year: int | None,
    weights: MatchWeights,
) -> float:
    query = title.strip().lower()
    rating = 1.0
    name = strip_year_suffix(candidate.title or "")
    if name.lower() == query:
        rating += weights.exact
    elif compare_names(name, query):
        rating += weights.alpha
    aliases = [strip_year_suffix(str(alias)) for alias in candidate.aliases or []]
    if any(alias.lower() == query for alias in aliases):
        rating += weights.alias_exact
    elif any(compare_names(alias, query) for alias in aliases):
        rating += weights.alias_alpha
    if candidate.popularity:
        rating += candidate.popularity * weights.popularity
    if candidate.search_score:
        rating += candidate.search_score * weights.search_score
    if candidate.release_date:
        if year and candidate.year == int(year):
            rating += weights.year
        rating += recent_rating(candidate.release_date) * weights.recency
    return rating


def rank_candidates(
    candidates: Iterable[CandidateMatch],
    title: str,
    year: int | None = None,
    weights: MatchWeights | None = None,
) -> list[CandidateMatch]:
    """Score, normalize and sort candidates, best first."""
    weights = weights or MatchWeights()
    ranked = [c for c in candidates if c.title]
    if not ranked:
        return []
    for candidate in ranked:
        candidate.match_ranking = score_candidate(candidate, title, year, weights)
    ceiling = result_ceiling(max(c.match_ranking for c in ranked))
    for candidate in ranked:
        candidate.match_probability = round(candidate.match_ranking / ceiling, 4)
    ranked.sort(key=lambda c: c.match_ranking, reverse=True)
    return ranked


def accept_candidates(
    ranked: Iterable[CandidateMatch],
    threshold: float = DEFAULT_THRESHOLD,
) -> list[CandidateMatch]:
    accepted = [c for c in ranked if c.match_probability > threshold]
    accepted.sort(key=lambda c: c.match_ranking, reverse=True)
    return accepted
