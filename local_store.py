import json
import logging
import os
import sqlite3
import time
from pathlib import Path
from typing import Any, Optional

from constants import STORAGE_KEYS
from db import APP_DIR

LOCAL_STORE_PATH = Path(os.environ.get("FUSION_LOCAL_STORE", str(APP_DIR / "data" / "local_store.db")))


class LocalStore:
    """Key-value store for player-side persisted state, backed by SQLite.

    Keys are the logical names in ``constants.STORAGE_KEYS``; raw storage names
    are also accepted. Values are stored as text; JSON helpers wrap the
    structured ones.
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        target = LOCAL_STORE_PATH if path is None else path
        if str(target) != ":memory:":
            Path(target).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(target), timeout=30, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS local_storage (
              key TEXT PRIMARY KEY,
              value TEXT NOT NULL,
              updated_at REAL NOT NULL
            )
            """
        )
        self._conn.commit()

    @staticmethod
    def _key(name: str) -> str:
        return STORAGE_KEYS.get(name, name)

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        row = self._conn.execute(
            "SELECT value FROM local_storage WHERE key=?", (self._key(name),)
        ).fetchone()
        return str(row["value"]) if row else default

    def set(self, name: str, value: str) -> None:
        self._conn.execute(
            """
            INSERT INTO local_storage (key, value, updated_at) VALUES (?,?,?)
            ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at
            """,
            (self._key(name), str(value), time.time()),
        )
        self._conn.commit()

    def delete(self, name: str) -> None:
        self._conn.execute("DELETE FROM local_storage WHERE key=?", (self._key(name),))
        self._conn.commit()

    def get_json(self, name: str, default: Any = None) -> Any:
        raw = self.get(name)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logging.warning("Ignoring corrupt local value for %s", self._key(name))
            return default

    def set_json(self, name: str, value: Any) -> None:
        self.set(name, json.dumps(value, separators=(",", ":")))

    def get_float(self, name: str, default: float = 0.0) -> float:
        raw = self.get(name)
        try:
            return float(raw) if raw is not None else default
        except ValueError:
            return default

    def get_bool(self, name: str, default: bool = False) -> bool:
        raw = self.get(name)
        if raw is None:
            return default
        return raw.strip().lower() in ("1", "true", "yes", "on")

    def close(self) -> None:
        self._conn.close()
