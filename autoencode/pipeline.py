"""Ordered step runner over a batch of work items."""

from __future__ import annotations

import json
import logging
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable

from .config import Settings
from .encoder import HandBrakeEncoder
from .errors import AutoencodeError
from .model import ProbeResult, WorkItem
from .paths import ensure_dir
from .placement import PlacementResolver
from .util import classify_exception, redact_payload

logger = logging.getLogger(__name__)

Step = Callable[[list[WorkItem]], Awaitable[list[WorkItem]]]
Prober = Callable[[Path], "ProbeResult | None"]


class StepError(AutoencodeError):
    default_code = "STEP_ERROR"


@dataclass
class Context:
    settings: Settings
    placement: PlacementResolver
    probe: Prober
    encoder: HandBrakeEncoder
    config: dict[str, Any] = field(default_factory=dict)


StepFactory = Callable[[Context], Step]


def append_log(config: dict[str, Any], entry: dict[str, Any]) -> None:
    """Append one JSON line to ``logging.path`` when it is configured."""
    log_cfg = config.get("logging", {}) or {}
    path = log_cfg.get("path")
    if not path:
        return
    try:
        log_path = ensure_dir(Path(path).expanduser().parent) / Path(path).name
        with log_path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(redact_payload(entry), ensure_ascii=True, default=str) + "\n")
    except OSError as exc:
        logger.warning("Cannot write run log %s: %s", path, exc)


def _safe_error_message(exc: Exception) -> str:
    return str(redact_payload(str(exc)))


class Pipeline:
    def __init__(self, steps: list[tuple[str, Step]], config: dict[str, Any] | None = None) -> None:
        self.steps = list(steps)
        self.config = config or {}

    @classmethod
    def from_context(
        cls,
        context: Context,
        builtins: dict[str, StepFactory],
        names: list[str] | None = None,
    ) -> "Pipeline":
        steps = []
        for name in names or context.settings.pipeline:
            factory = builtins.get(name)
            if factory is None:
                raise StepError(f"unknown pipeline step: {name}", code="UNKNOWN_STEP")
            steps.append((name, factory(context)))
        return cls(steps, context.config)

    @property
    def names(self) -> list[str]:
        return [name for name, _ in self.steps]

    async def run(self, items: list[WorkItem], run_id: str | None = None) -> list[WorkItem]:
        """Thread ``items`` through every step; an empty batch ends the run early."""
        run_id = run_id or uuid.uuid4().hex
        for name, step in self.steps:
            if not items:
                logger.debug("Batch is empty before %s; stopping", name)
                return []
            start_mono = time.monotonic()
            append_log(
                self.config,
                {"run_id": run_id, "step": name, "phase": "start", "items": len(items), "ts": time.time()},
            )
            try:
                items = await step(items)
            except Exception as exc:
                code, hint = classify_exception(exc)
                safe_message = _safe_error_message(exc)
                logger.error("Step %s failed: %s", name, safe_message)
                append_log(
                    self.config,
                    {
                        "run_id": run_id,
                        "step": name,
                        "phase": "end",
                        "status": "error",
                        "duration_s": time.monotonic() - start_mono,
                        "ts": time.time(),
                        "error": {"code": code, "message": safe_message, "hint": hint},
                    },
                )
                raise
            append_log(
                self.config,
                {
                    "run_id": run_id,
                    "step": name,
                    "phase": "end",
                    "status": "ok",
                    "items": len(items),
                    "duration_s": time.monotonic() - start_mono,
                    "ts": time.time(),
                },
            )
        return items
