"""HandBrakeCLI invocation."""

from __future__ import annotations

import logging
import re
import subprocess
import threading
import time
from pathlib import Path
from typing import Any, Callable

from .errors import EncodeError

logger = logging.getLogger(__name__)

_PROGRESS = re.compile(r"Encoding: task (\d+) of (\d+), (\d+(?:\.\d+)?) %")

ProgressCallback = Callable[[float], None]


def build_arguments(params: dict[str, Any]) -> list[str]:
    args: list[str] = []
    for key, value in params.items():
        if value is None or value is False:
            continue
        flag = f"--{key}"
        if value is True:
            args.append(flag)
        elif isinstance(value, (list, tuple)):
            args.extend([flag, ",".join(str(v) for v in value)])
        else:
            args.extend([flag, str(value)])
    return args


def parse_progress(line: str) -> float | None:
    """Overall completion in percent from a HandBrakeCLI status line."""
    match = _PROGRESS.search(line)
    if not match:
        return None
    task, total, percent = int(match.group(1)), int(match.group(2)), float(match.group(3))
    if total <= 0:
        return percent
    return ((task - 1) * 100.0 + percent) / total


class HandBrakeEncoder:
    def __init__(self, binary: str = "HandBrakeCLI", timeout: float | None = None) -> None:
        self.binary = binary
        self.timeout = timeout

    def encode(
        self,
        source: Path,
        output: Path,
        params: dict[str, Any],
        progress: ProgressCallback | None = None,
    ) -> Path:
        settings = dict(params)
        settings["input"] = str(source)
        settings["output"] = str(output)
        cmd = [self.binary, *build_arguments(settings)]
        logger.debug("Running %s", " ".join(cmd))
        started = time.monotonic()
        try:
            proc = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
            )
        except OSError as exc:
            raise EncodeError(
                f"cannot start {self.binary}: {exc}",
                hint="Install HandBrakeCLI or set handbrake.bin.",
            ) from exc
        expired = threading.Event()

        def _expire() -> None:
            expired.set()
            proc.kill()

        timer = threading.Timer(self.timeout, _expire) if self.timeout else None
        if timer:
            timer.daemon = True
            timer.start()
        tail: list[str] = []
        try:
            for line in proc.stdout or []:
                value = parse_progress(line)
                if value is not None:
                    if progress:
                        progress(value)
                    continue
                stripped = line.strip()
                if stripped:
                    tail = (tail + [stripped])[-20:]
            returncode = proc.wait()
        finally:
            if timer:
                timer.cancel()
        logger.debug("%s finished in %.0fs", self.binary, time.monotonic() - started)
        if expired.is_set():
            raise EncodeError(
                f"encode of {source.name} timed out after {self.timeout}s",
                code="TIMEOUT",
                hint="Increase handbrake.timeout.",
            )
        if returncode != 0:
            raise EncodeError(
                f"{self.binary} exited with {returncode} for {source.name}: {' | '.join(tail[-3:])}",
                hint="Check HandBrakeCLI output and encoding settings.",
            )
        if not output.exists():
            raise EncodeError(f"{self.binary} reported success but wrote no output for {source.name}")
        return output
