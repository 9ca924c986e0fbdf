"""Filesystem discovery: live watchdog events plus a periodic rescan."""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import Callable, Iterator

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

logger = logging.getLogger(__name__)


def _is_hidden(path: Path) -> bool:
    return path.name.startswith(".")


def iter_files(root: Path) -> Iterator[Path]:
    """Every visible file under ``root``, skipping hidden files and folders."""
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
        for name in sorted(filenames):
            if not name.startswith("."):
                yield Path(dirpath) / name


class WatchHandler(FileSystemEventHandler):
    """Forward created and moved-in files to the event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop, emit: Callable[[Path], None]) -> None:
        super().__init__()
        self.loop = loop
        self.emit = emit

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._forward(Path(os.fsdecode(event.src_path)))

    def on_moved(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._forward(Path(os.fsdecode(event.dest_path)))

    def _forward(self, path: Path) -> None:
        if _is_hidden(path):
            return
        logger.debug("Discovered %s", path)
        self.loop.call_soon_threadsafe(self.emit, path)


class DirectoryWatcher:
    def __init__(self, root: Path, emit: Callable[[Path], None], rescan_interval: float = 900.0) -> None:
        self.root = root
        self.emit = emit
        self.rescan_interval = rescan_interval
        self.observer: Observer | None = None

    async def rescan(self) -> int:
        paths = await asyncio.to_thread(lambda: list(iter_files(self.root)))
        for path in paths:
            self.emit(path)
        logger.debug("Rescan of %s emitted %d path(s)", self.root, len(paths))
        return len(paths)

    def start(self, loop: asyncio.AbstractEventLoop) -> None:
        observer = Observer()
        observer.schedule(WatchHandler(loop, self.emit), str(self.root), recursive=True)
        observer.start()
        self.observer = observer
        logger.info("Watching %s", self.root)

    def stop(self) -> None:
        if self.observer:
            self.observer.stop()
            self.observer.join()
            self.observer = None

    async def rescan_forever(self) -> None:
        while True:
            await self.rescan()
            if self.rescan_interval <= 0:
                return
            await asyncio.sleep(self.rescan_interval)
