"""SQLite key-value store -- the single local persistence layer.

Each record is one JSON document under a well-known key. Records that fail
to decode or validate are reported and treated as absent, so callers always
fall back to their documented default instead of crashing on bad state.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


class Store:
    """Key-value records in `state.sqlite` under the home directory."""

    def __init__(self, home: Path) -> None:
        self._home = home
        self._db_path = home / "state.sqlite"
        self._db: sqlite3.Connection | None = None
        self._init_sqlite()

    def _init_sqlite(self) -> None:
        """Open the database and create the table if needed."""
        self._home.mkdir(parents=True, exist_ok=True)
        self._db = sqlite3.connect(str(self._db_path))
        self._db.row_factory = sqlite3.Row
        self._db.execute("PRAGMA journal_mode=WAL")

        self._db.executescript("""
            CREATE TABLE IF NOT EXISTS kv_state (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );
        """)
        self._db.commit()
        logger.info("SQLite initialized at %s", self._db_path)

    @property
    def db(self) -> sqlite3.Connection:
        if self._db is None:
            raise RuntimeError("Store not initialized")
        return self._db

    @property
    def path(self) -> Path:
        return self._db_path

    def close(self) -> None:
        """Close the SQLite connection."""
        if self._db:
            self._db.close()
            self._db = None

    # ------------------------------------------------------------------
    # Raw JSON values
    # ------------------------------------------------------------------

    def get_raw(self, key: str) -> Any | None:
        """Return the decoded JSON value for `key`, or None if absent or malformed."""
        row = self.db.execute(
            "SELECT value FROM kv_state WHERE key = ?", (key,)
        ).fetchone()
        if row is None:
            return None
        try:
            return json.loads(row["value"])
        except json.JSONDecodeError:
            logger.warning("Discarding malformed JSON stored under '%s'", key)
            return None

    def put_raw(self, key: str, value: Any) -> None:
        self.db.execute(
            """INSERT OR REPLACE INTO kv_state (key, value, updated_at)
               VALUES (?, ?, ?)""",
            (key, json.dumps(value), datetime.now(timezone.utc).isoformat()),
        )
        self.db.commit()

    # ------------------------------------------------------------------
    # Pydantic models
    # ------------------------------------------------------------------

    def get_model(self, key: str, model_class: type[T]) -> T | None:
        """Read `key` and validate it as `model_class`; invalid records read as None."""
        data = self.get_raw(key)
        if data is None:
            return None
        try:
            return model_class.model_validate(data)
        except ValidationError as exc:
            logger.warning(
                "Discarding invalid %s stored under '%s': %d error(s)",
                model_class.__name__, key, exc.error_count(),
            )
            return None

    def put_model(self, key: str, model: BaseModel) -> None:
        self.put_raw(key, model.model_dump(mode="json"))

    # ------------------------------------------------------------------
    # Housekeeping
    # ------------------------------------------------------------------

    def delete(self, key: str) -> bool:
        """Delete a record. Returns True if it existed."""
        cursor = self.db.execute("DELETE FROM kv_state WHERE key = ?", (key,))
        self.db.commit()
        return cursor.rowcount > 0

    def keys(self) -> list[str]:
        rows = self.db.execute("SELECT key FROM kv_state ORDER BY key").fetchall()
        return [row["key"] for row in rows]

    def clear_all(self) -> None:
        """Remove every record."""
        self.db.execute("DELETE FROM kv_state")
        self.db.commit()
        logger.info("Cleared all stored state")
