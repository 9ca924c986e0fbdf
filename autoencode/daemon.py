"""Wiring of settings, pipeline, record store and watcher into a running service."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any

from .config import Settings, prepare_directories
from .encoder import HandBrakeEncoder
from .errors import ConfigError
from .ingest import IngestionQueue, RetryPolicy
from .lookup import MediaLookup
from .pipeline import Context, Pipeline
from .placement import PlacementResolver
from .probe import probe
from .steps.builtin import BUILTINS
from .store import RecordStore
from .watcher import DirectoryWatcher

logger = logging.getLogger(__name__)


def build_context(config: dict[str, Any], settings: Settings | None = None) -> Context:
    settings = settings or Settings.from_config(config)
    lookup = MediaLookup.from_config(config)
    return Context(
        settings=settings,
        placement=PlacementResolver(settings, lookup),
        probe=probe,
        encoder=HandBrakeEncoder(settings.handbrake_bin, settings.handbrake_timeout),
        config=config,
    )


class AutoEncodeDaemon:
    def __init__(self, config: dict[str, Any], context: Context | None = None) -> None:
        self.config = config
        self.context = context or build_context(config)
        self.settings = self.context.settings
        prepare_directories(self.settings)
        self.pipeline = Pipeline.from_context(self.context, BUILTINS)
        self.store = RecordStore(self.settings.ingest.database)
        self.queue = IngestionQueue(
            self.store,
            self.pipeline.run,
            concurrency=self.settings.ingest.concurrency,
            retry=RetryPolicy.from_settings(self.settings.ingest),
            config=config,
        )

    async def process(self, paths: list[Path]) -> None:
        """Submit ``paths`` once and wait for every admitted run to finish."""
        for path in paths:
            await self.queue.submit(path)
        await self.queue.join()

    async def run(self) -> None:
        watch = self.settings.directories.watch
        if watch is None:
            raise ConfigError("paths.watch is required to run the daemon", hint="Set paths.watch or AE_WATCH_DIR.")
        logger.info("Starting daemon: pipeline %s", " -> ".join(self.pipeline.names))
        watcher = DirectoryWatcher(watch, self.queue.put, self.settings.ingest.rescan_interval_seconds)
        consumer = asyncio.create_task(self.queue.consume())
        rescanner = asyncio.create_task(watcher.rescan_forever())
        watcher.start(asyncio.get_running_loop())
        try:
            await asyncio.gather(consumer, rescanner)
        except asyncio.CancelledError:
            logger.info("Daemon stopping")
        finally:
            watcher.stop()
            for task in (consumer, rescanner):
                task.cancel()
            await asyncio.gather(consumer, rescanner, return_exceptions=True)
