"""Best stream selection."""

from __future__ import annotations

from typing import Iterable

from .model import TrackDescriptor


def best_video(tracks: Iterable[TrackDescriptor]) -> TrackDescriptor | None:
    best: TrackDescriptor | None = None
    for track in tracks:
        if best is None or track.area > best.area:
            best = track
    return best


def _language_matches(track: TrackDescriptor, preferred: str | None) -> bool:
    if not preferred or not track.language:
        return False
    return track.language.lower() == preferred.lower()


def _prefer_audio(candidate: TrackDescriptor, best: TrackDescriptor, preferred: str | None) -> bool:
    candidate_lang = _language_matches(candidate, preferred)
    best_lang = _language_matches(best, preferred)
    more_channels = candidate.channel_count > best.channel_count
    if candidate_lang and candidate.is_default and not best.is_default:
        return True
    if candidate_lang and not best.is_default and more_channels:
        return True
    if candidate_lang and not best_lang:
        return True
    if more_channels and not best_lang:
        return True
    return False


def best_audio(tracks: Iterable[TrackDescriptor], preferred_language: str | None) -> TrackDescriptor | None:
    """Pick the audio stream to encode.

    Rules are checked in order against the running best; the first that
    applies replaces it: preferred language flagged default over a
    non-default best, preferred language with more channels over a
    non-default best, preferred language over another language, then more
    channels over a best that is not in the preferred language.
    """
    best: TrackDescriptor | None = None
    for track in tracks:
        if best is None:
            best = track
            continue
        if _prefer_audio(track, best, preferred_language):
            best = track
    return best
