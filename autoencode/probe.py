"""Stream metadata via MediaInfo."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from pymediainfo import MediaInfo

from .model import ProbeResult, TrackDescriptor

logger = logging.getLogger(__name__)


def _safe_int(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, (int, float)):
        return int(value)
    text = str(value).strip().split(" ")[0].split("/")[0]
    try:
        return int(float(text))
    except ValueError:
        return 0


def _flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() in {"yes", "true", "1"}


def _language(track: Any) -> str | None:
    """Three-letter language code, falling back to whatever MediaInfo reports."""
    for candidate in getattr(track, "other_language", None) or []:
        text = str(candidate)
        if len(text) == 3 and text.isalpha() and text.islower():
            return text
    language = getattr(track, "language", None)
    return str(language) if language else None


def _descriptor(track: Any, index: int) -> TrackDescriptor:
    return TrackDescriptor(
        index=index,
        language=_language(track),
        channel_count=_safe_int(getattr(track, "channel_s", None) or getattr(track, "channels", None)),
        is_default=_flag(getattr(track, "default", None)),
        is_forced=_flag(getattr(track, "forced", None)),
        width=_safe_int(getattr(track, "width", None)),
        height=_safe_int(getattr(track, "height", None)),
    )


def parse_tracks(tracks: list[Any]) -> ProbeResult | None:
    duration_ms: float | None = None
    video: list[TrackDescriptor] = []
    audio: list[TrackDescriptor] = []
    text: list[TrackDescriptor] = []
    for track in tracks:
        kind = getattr(track, "track_type", None)
        if kind == "General":
            raw = getattr(track, "duration", None)
            try:
                duration_ms = float(raw) if raw is not None else None
            except (TypeError, ValueError):
                duration_ms = None
        elif kind == "Video":
            video.append(_descriptor(track, len(video)))
        elif kind == "Audio":
            audio.append(_descriptor(track, len(audio)))
        elif kind == "Text":
            text.append(_descriptor(track, len(text)))
    if duration_ms is None and not video and not audio:
        return None
    duration = duration_ms / 1000 if duration_ms is not None else None
    return ProbeResult(duration_seconds=duration, video=video, audio=audio, text=text)


def probe(path: Path) -> ProbeResult | None:
    """Return stream metadata for ``path``, or None when it cannot be read."""
    try:
        info = MediaInfo.parse(str(path))
    except (OSError, RuntimeError) as exc:
        logger.error("MediaInfo failed for %s: %s", path.name, exc)
        return None
    return parse_tracks(list(info.tracks))
