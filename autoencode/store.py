"""Persistent record of paths admitted for processing."""

from __future__ import annotations

import sqlite3
import time
from contextlib import closing
from pathlib import Path

from .errors import ConfigError
from .paths import ensure_dir

_SCHEMA = """
CREATE TABLE IF NOT EXISTS files (
    path TEXT PRIMARY KEY,
    added_at REAL NOT NULL
)
"""


class RecordStore:
    """Key-unique set of absolute source paths backed by SQLite.

    Each call opens its own connection so the store can be used from worker
    threads; admission relies on the primary-key constraint.
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        try:
            ensure_dir(self.db_path.parent)
            with closing(self._connect()) as conn:
                conn.execute(_SCHEMA)
                conn.commit()
        except (OSError, sqlite3.Error) as exc:
            raise ConfigError(
                f"record store unavailable at {self.db_path}: {exc}",
                hint="Check ingest.database and its directory permissions.",
            ) from exc

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path, check_same_thread=False, timeout=30)

    def add(self, path: str) -> bool:
        """Record ``path``; False when it was already present."""
        with closing(self._connect()) as conn:
            try:
                conn.execute("INSERT INTO files (path, added_at) VALUES (?, ?)", (path, time.time()))
                conn.commit()
            except sqlite3.IntegrityError:
                conn.rollback()
                return False
        return True

    def remove(self, path: str) -> None:
        with closing(self._connect()) as conn:
            conn.execute("DELETE FROM files WHERE path = ?", (path,))
            conn.commit()

    def contains(self, path: str) -> bool:
        with closing(self._connect()) as conn:
            row = conn.execute("SELECT 1 FROM files WHERE path = ?", (path,)).fetchone()
        return row is not None

    def count(self) -> int:
        with closing(self._connect()) as conn:
            row = conn.execute("SELECT COUNT(*) FROM files").fetchone()
        return int(row[0]) if row else 0
