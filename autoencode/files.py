"""File classification and source cleanup."""

from __future__ import annotations

import logging
import re
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)

MEDIA_EXTENSIONS = {
    "3g2", "3gp", "3gpp", "asf", "avi", "divx", "f4v", "flv", "h264", "ifo",
    "m2ts", "m4v", "mkv", "mod", "mov", "mp4", "mpeg", "mpg", "mswmm", "mts",
    "mxf", "ogv", "rm", "srt", "swf", "ts", "vep", "vob", "webm", "wlmp", "wmv",
}

_VOLUME_PATTERN = re.compile(r"\.?part(\d+)$", re.IGNORECASE)
_SAMPLE_PATTERN = re.compile(r"(^sample-|-sample$)", re.IGNORECASE)
_SIDECAR_PATTERN = re.compile(r"\.(nfo|sfv|jpg|txt)$", re.IGNORECASE)
_JUNK_PREFIX_PATTERN = re.compile(r"^(proof|sample|cover|subs|screens|readme)", re.IGNORECASE)


def _extension(path: str | Path) -> str:
    return Path(path).suffix.lower().lstrip(".")


def is_media(path: str | Path) -> bool:
    return _extension(path) in MEDIA_EXTENSIONS


def clear_file_extension(title: str) -> str:
    """Drop a trailing media extension from a title."""
    head, dot, ext = title.rpartition(".")
    if dot and ext.lower() in MEDIA_EXTENSIONS:
        return head
    return title


def volume_number(path: str | Path) -> int | None:
    """Return N for ``name.partN.rar``, or None when there is no part marker."""
    match = _VOLUME_PATTERN.search(Path(path).stem)
    if not match:
        return None
    return int(match.group(1))


def archive_kind(path: str | Path) -> str | None:
    ext = _extension(path)
    if ext in {"rar", "zip"}:
        return ext
    return None


def is_extractable(path: str | Path) -> bool:
    """Whether the extract step should open ``path``.

    Non-first volumes of a multi-volume rar set are skipped; they are read
    through the first volume.
    """
    if is_media(path):
        return True
    kind = archive_kind(path)
    if kind == "zip":
        return True
    if kind == "rar":
        number = volume_number(path)
        return number is None or number == 1
    return False


def is_sample_name(path: str | Path) -> bool:
    return bool(_SAMPLE_PATTERN.search(Path(path).stem))


def base_name(path: str | Path) -> str:
    """File name without extension, and without ``.partN`` for rar volumes."""
    p = Path(path)
    stem = p.stem
    if _extension(p) == "rar":
        stem = _VOLUME_PATTERN.sub("", stem)
    return stem


def is_related(sibling: str, source_base: str) -> bool:
    if _SIDECAR_PATTERN.search(sibling):
        return True
    if _JUNK_PREFIX_PATTERN.match(sibling):
        return True
    return base_name(sibling) == source_base


def _strictly_inside(path: Path, root: Path | None) -> bool:
    if root is None:
        return False
    resolved = path.resolve()
    resolved_root = Path(root).resolve()
    return resolved != resolved_root and resolved.is_relative_to(resolved_root)


def remove_source(path: Path, watch_root: Path | None = None) -> Path | None:
    """Delete a processed source, taking its release folder with it when safe.

    The whole parent directory goes when every remaining entry belongs to the
    release and the parent lies strictly inside ``watch_root``; otherwise only
    ``path`` is removed. Returns whatever was deleted.
    """
    parent = path.parent
    source_base = base_name(path)
    unrelated = []
    if parent.is_dir():
        unrelated = [
            entry.name
            for entry in parent.iterdir()
            if entry.name != path.name and not is_related(entry.name, source_base)
        ]
    if not unrelated and _strictly_inside(parent, watch_root) and parent.is_dir():
        logger.debug("Removing release folder %s", parent)
        shutil.rmtree(parent, ignore_errors=True)
        return parent
    if path.exists():
        logger.debug("Removing %s", path)
        path.unlink()
        return path
    return None
