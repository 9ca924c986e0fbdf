"""Extract step: archives and bare files into the staging directory."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from ..archives import open_archive
from ..errors import TransientIOError
from ..files import archive_kind, is_extractable, is_media, remove_source
from ..model import ORIGIN_FILE, WorkItem
from ..pipeline import Context, Step
from ..util import copy_file, move_file

logger = logging.getLogger(__name__)


def _entry_basename(name: str) -> str:
    return name.replace("\\", "/").rsplit("/", 1)[-1]


def _cleanup(context: Context, path: Path) -> None:
    try:
        removed = remove_source(path, context.settings.directories.watch)
    except OSError as exc:
        logger.warning("Could not delete source %s: %s", path, exc)
        return
    if removed:
        logger.debug("Deleted source %s", removed)


def _discard_partial(items: list[WorkItem]) -> None:
    """Drop entries already staged from an archive whose extraction failed."""
    for item in items:
        logger.debug("Removing partially extracted %s", item.current_path.name)
        item.current_path.unlink(missing_ok=True)


def extract_archive(context: Context, item: WorkItem, kind: str) -> list[WorkItem]:
    staging = context.settings.directories.staging
    results: list[WorkItem] = []
    with open_archive(item.current_path, kind) as archive:
        entries = [e for e in archive.entries() if not e.is_dir and is_media(e.name)]
        logger.debug("%s holds %d media entries", item.current_path.name, len(entries))
        for entry in entries:
            destination = staging / _entry_basename(entry.name)
            target = context.placement.admit(destination)
            if target is None:
                continue
            logger.info("Extracting %s", destination.name)
            try:
                archive.extract_to(entry.name, destination)
            except TransientIOError:
                _discard_partial(results)
                raise
            results.append(
                WorkItem(
                    source_path=item.source_path,
                    current_path=destination,
                    origin_kind=kind,
                    resolved_target_path=target,
                )
            )
    if context.settings.delete_after_extracting:
        _cleanup(context, item.current_path)
    return results


def stage_file(context: Context, item: WorkItem) -> list[WorkItem]:
    source = item.current_path
    destination = context.settings.directories.staging / source.name
    target = context.placement.admit(destination)
    if target is None:
        logger.debug("Skipped %s", source.name)
        return []
    try:
        if context.settings.delete_after_extracting:
            logger.info("Moving %s", source.name)
            move_file(source, destination)
        else:
            logger.info("Copying %s", source.name)
            copy_file(source, destination)
    except OSError as exc:
        raise TransientIOError(f"cannot stage {source.name}: {exc}") from exc
    if context.settings.delete_after_extracting:
        _cleanup(context, source)
    return [
        WorkItem(
            source_path=item.source_path,
            current_path=destination,
            origin_kind=ORIGIN_FILE,
            resolved_target_path=target,
        )
    ]


def build_extract(context: Context) -> Step:
    async def extract(items: list[WorkItem]) -> list[WorkItem]:
        accepted = [item for item in items if is_extractable(item.current_path)]
        logger.debug("%d of %d items are extractable", len(accepted), len(items))
        results: list[WorkItem] = []
        for item in accepted:
            kind = archive_kind(item.current_path)
            if kind:
                results.extend(await asyncio.to_thread(extract_archive, context, item, kind))
            else:
                results.extend(await asyncio.to_thread(stage_file, context, item))
        return results

    return extract
