"""Encode step: probe, choose streams, run HandBrake."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from ..errors import UnacceptableMediaError
from ..model import WorkItem
from ..pipeline import Context, Step
from ..tracks import best_audio, best_video

logger = logging.getLogger(__name__)

_PROGRESS_MARKS = (0, 20, 40, 60, 80)


def _discard(path: Path, reason: str) -> None:
    logger.warning("Deleting %s (%s)", path.name, reason)
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        logger.warning("Could not delete %s: %s", path, exc)


def _progress_logger(name: str):
    marks = list(_PROGRESS_MARKS)

    def report(percent: float) -> None:
        while marks and percent > marks[0]:
            logger.info("Encoding %s: %d%%", name, marks.pop(0))

    return report


def encode_item(context: Context, item: WorkItem) -> WorkItem:
    settings = context.settings
    source = item.current_path
    info = context.probe(source)
    if info is None:
        raise UnacceptableMediaError("no media info")
    if settings.min_duration_seconds and (info.duration_seconds or 0) < settings.min_duration_seconds:
        raise UnacceptableMediaError("too short, likely a sample")
    video = best_video(info.video)
    if video is None:
        raise UnacceptableMediaError("no video tracks")
    audio = best_audio(info.audio, settings.preferred_language)
    params = settings.encoding.build(
        sd=video.height < 720,
        surround=audio is not None and audio.channel_count > 2,
        category=settings.category_for(item.resolved_target_path),
        audio_track=audio.index + 1 if audio is not None else None,
    )
    output = settings.directories.output / f"{source.stem}{settings.output_format}"
    logger.debug("Starting encode for %s", source.name)
    context.encoder.encode(source, output, params, progress=_progress_logger(source.stem))
    logger.info("Encoding %s: Done.", source.stem)
    if output != source:
        source.unlink(missing_ok=True)
    item.current_path = output
    return item


def build_encode(context: Context) -> Step:
    async def encode(items: list[WorkItem]) -> list[WorkItem]:
        encoded: list[WorkItem] = []
        for item in items:
            try:
                encoded.append(await asyncio.to_thread(encode_item, context, item))
            except UnacceptableMediaError as exc:
                _discard(item.current_path, str(exc))
        return encoded

    return encode
