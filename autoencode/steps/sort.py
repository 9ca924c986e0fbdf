"""Sort step: move encoded files into the library."""

from __future__ import annotations

import asyncio
import logging

from ..errors import TransientIOError
from ..model import WorkItem
from ..pipeline import Context, Step
from ..util import copy_file, move_file

logger = logging.getLogger(__name__)


def sort_item(context: Context, item: WorkItem) -> WorkItem:
    target = item.resolved_target_path or context.placement.resolve(item.current_path)
    if target == item.current_path:
        logger.info("Not sorting %s", item.current_path.name)
        return item
    try:
        if context.settings.delete_after_encoding:
            move_file(item.current_path, target)
        else:
            copy_file(item.current_path, target)
    except OSError as exc:
        raise TransientIOError(f"cannot place {item.current_path.name} at {target}: {exc}") from exc
    item.current_path = target
    logger.info("Sorted %s", target.name)
    return item


def build_sort(context: Context) -> Step:
    async def sort(items: list[WorkItem]) -> list[WorkItem]:
        return [await asyncio.to_thread(sort_item, context, item) for item in items]

    return sort
