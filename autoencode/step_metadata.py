"""Step metadata for built-in pipeline steps."""

from __future__ import annotations

from typing import Any


STEP_METADATA: dict[str, dict[str, Any]] = {
    "extract": {
        "side_effect": True,
        "requires": ["paths.staging"],
        "emits": ["item.current_path", "item.origin_kind", "item.resolved_target_path"],
        "description": "Unpack rar/zip archives and stage bare media files; skips samples and existing targets.",
    },
    "encode": {
        "side_effect": True,
        "requires": ["paths.output", "handbrake.bin"],
        "emits": ["item.current_path"],
        "description": "Probe streams, drop unacceptable media, and transcode with HandBrakeCLI.",
    },
    "sort": {
        "side_effect": True,
        "requires": ["paths.tv|paths.movies"],
        "emits": ["item.current_path"],
        "description": "Move or copy encoded files to their TV or movie library path.",
    },
}
