"""Deduplicating, retrying front door for discovered paths."""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable

from .config import IngestSettings
from .model import WorkItem
from .pipeline import append_log
from .store import RecordStore
from .util import backoff_delay, classify_exception, redact_payload

logger = logging.getLogger(__name__)

Runner = Callable[[list[WorkItem]], Awaitable[list[WorkItem]]]
Sleeper = Callable[[float], Awaitable[Any]]


@dataclass(frozen=True)
class RetryPolicy:
    retries: int = 2
    backoff_seconds: float = 30.0
    max_backoff_seconds: float = 300.0

    @classmethod
    def from_settings(cls, settings: IngestSettings) -> "RetryPolicy":
        return cls(
            retries=settings.retries,
            backoff_seconds=settings.retry_backoff_seconds,
            max_backoff_seconds=settings.max_backoff_seconds,
        )

    def delay(self, attempt: int) -> float:
        return backoff_delay(attempt, self.backoff_seconds, self.max_backoff_seconds)


class IngestionQueue:
    """Admit each path once and run it through the pipeline.

    ``submit`` records the path in the store before scheduling it, so a path
    already recorded (in flight or finished) is ignored. Runs are bounded by a
    semaphore. A run that still fails after the retry policy is exhausted
    removes its record, which lets a later discovery try again.
    """

    def __init__(
        self,
        store: RecordStore,
        runner: Runner,
        *,
        concurrency: int = 1,
        retry: RetryPolicy | None = None,
        config: dict[str, Any] | None = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self.store = store
        self.runner = runner
        self.retry = retry or RetryPolicy()
        self.config = config or {}
        self.events: asyncio.Queue[Path] = asyncio.Queue()
        self._semaphore = asyncio.Semaphore(max(1, concurrency))
        self._inflight: dict[str, asyncio.Task[list[WorkItem] | None]] = {}
        self._sleep = sleep

    @staticmethod
    def key_for(path: str | Path) -> str:
        return str(Path(path).expanduser().absolute())

    def put(self, path: str | Path) -> None:
        """Hand a discovered path to the consumer; safe to call from the loop thread only."""
        self.events.put_nowait(Path(path))

    async def consume(self) -> None:
        while True:
            path = await self.events.get()
            try:
                await self.submit(path)
            except Exception:
                logger.exception("Could not admit %s", path)
            finally:
                self.events.task_done()

    async def submit(self, path: str | Path) -> asyncio.Task[list[WorkItem] | None] | None:
        key = self.key_for(path)
        existing = self._inflight.get(key)
        if existing is not None:
            logger.debug("%s is already in flight", key)
            return existing
        admitted = await asyncio.to_thread(self.store.add, key)
        if not admitted:
            logger.debug("%s was already processed", key)
            return None
        logger.info("Queued %s", Path(key).name)
        task = asyncio.create_task(self._execute(key))
        self._inflight[key] = task
        return task

    async def _execute(self, key: str) -> list[WorkItem] | None:
        run_id = uuid.uuid4().hex
        attempt = 0
        try:
            while True:
                started = time.monotonic()
                try:
                    async with self._semaphore:
                        result = await self.runner([WorkItem.from_path(key)])
                except Exception as exc:
                    code, hint = classify_exception(exc)
                    message = str(redact_payload(str(exc)))
                    logger.error(
                        "Processing %s failed (attempt %d of %d) [%s]: %s",
                        Path(key).name,
                        attempt + 1,
                        self.retry.retries + 1,
                        code,
                        message,
                    )
                    if hint:
                        logger.info("Hint: %s", hint)
                    append_log(
                        self.config,
                        {
                            "run_id": run_id,
                            "path": key,
                            "phase": "submission",
                            "status": "error",
                            "attempt": attempt + 1,
                            "duration_s": time.monotonic() - started,
                            "ts": time.time(),
                            "error": {"code": code, "message": message},
                        },
                    )
                    if attempt >= self.retry.retries:
                        break
                    delay = self.retry.delay(attempt)
                    attempt += 1
                    logger.info("Retrying %s in %.0fs", Path(key).name, delay)
                    await self._sleep(delay)
                    continue
                append_log(
                    self.config,
                    {
                        "run_id": run_id,
                        "path": key,
                        "phase": "submission",
                        "status": "ok",
                        "attempt": attempt + 1,
                        "outputs": [str(item.current_path) for item in result],
                        "duration_s": time.monotonic() - started,
                        "ts": time.time(),
                    },
                )
                logger.info("Finished %s: %d output(s)", Path(key).name, len(result))
                return result
        finally:
            self._inflight.pop(key, None)
        await asyncio.to_thread(self.store.remove, key)
        logger.error("Giving up on %s; it will be retried when rediscovered", Path(key).name)
        return None

    async def join(self) -> None:
        """Wait until queued events are admitted and every admitted run is done."""
        await self.events.join()
        while self._inflight:
            await asyncio.gather(*list(self._inflight.values()), return_exceptions=True)
