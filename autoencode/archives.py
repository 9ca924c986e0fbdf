"""Read-only access to zip and rar containers."""

from __future__ import annotations

import shutil
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Iterator

import rarfile

from .errors import TransientIOError

_CHUNK_SIZE = 1024 * 1024


@dataclass(frozen=True)
class ArchiveEntry:
    name: str
    is_dir: bool
    size: int = 0


class Archive:
    def __init__(self, path: Path, handle: zipfile.ZipFile | rarfile.RarFile) -> None:
        self.path = path
        self._handle = handle

    def __enter__(self) -> "Archive":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def close(self) -> None:
        self._handle.close()

    def entries(self) -> Iterator[ArchiveEntry]:
        for info in self._handle.infolist():
            yield ArchiveEntry(name=info.filename, is_dir=info.is_dir(), size=info.file_size)

    def open(self, name: str) -> IO[bytes]:
        return self._handle.open(name)

    def extract_to(self, name: str, destination: Path) -> Path:
        try:
            with self.open(name) as source, destination.open("wb") as target:
                shutil.copyfileobj(source, target, _CHUNK_SIZE)
        except (OSError, zipfile.BadZipFile, rarfile.Error) as exc:
            destination.unlink(missing_ok=True)
            raise TransientIOError(
                f"failed to extract {name} from {self.path.name}: {exc}",
                hint="The archive may be incomplete; it will be retried when rediscovered.",
            ) from exc
        return destination


def open_archive(path: Path, kind: str) -> Archive:
    try:
        if kind == "zip":
            return Archive(path, zipfile.ZipFile(path))
        if kind == "rar":
            return Archive(path, rarfile.RarFile(str(path)))
    except (OSError, zipfile.BadZipFile, rarfile.Error) as exc:
        raise TransientIOError(
            f"cannot open {kind} archive {path.name}: {exc}",
            hint="Check that every volume has finished downloading.",
        ) from exc
    raise ValueError(f"unsupported archive kind: {kind}")
