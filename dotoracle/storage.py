"""SQLite-backed key-value store with JSON values.

Keys are namespaced by concern and, where the record is per day, by date:
`draw:2026-01-31`, `spreads:2026-01-31`, `gating:2026-01-31`, `rewards`,
`character`, `rate-limit:<identity>`.
"""

import json
import os
import sqlite3
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

DRAW_PREFIX = "draw:"
SPREADS_PREFIX = "spreads:"
GATING_PREFIX = "gating:"
RATE_LIMIT_PREFIX = "rate-limit:"
REWARDS_KEY = "rewards"
CHARACTER_KEY = "character"


def draw_key(date_key: str) -> str:
    return f"{DRAW_PREFIX}{date_key}"


def spreads_key(date_key: str) -> str:
    return f"{SPREADS_PREFIX}{date_key}"


def gating_key(date_key: str) -> str:
    return f"{GATING_PREFIX}{date_key}"


def rate_limit_key(identity: str) -> str:
    return f"{RATE_LIMIT_PREFIX}{identity}"


def date_from_key(key: str) -> Optional[str]:
    """Extract the date from a draw/spreads/gating key, or None for other keys."""
    for prefix in (DRAW_PREFIX, SPREADS_PREFIX, GATING_PREFIX):
        if key.startswith(prefix):
            return key[len(prefix):]
    return None


class KeyValueStore:
    """JSON documents keyed by string, one row per key."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._locks: Dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()
        self.init_db()

    def init_db(self) -> None:
        directory = os.path.dirname(self.db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            """)
            conn.commit()

    @contextmanager
    def locked(self, key: str) -> Iterator[None]:
        """Serialize read-modify-write sequences against one key."""
        with self._locks_guard:
            lock = self._locks.setdefault(key, threading.RLock())
        with lock:
            yield

    def get(self, key: str) -> Optional[Any]:
        with sqlite3.connect(self.db_path) as conn:
            row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
        if row is None:
            return None
        return json.loads(row[0])

    def set(self, key: str, value: Any) -> None:
        payload = json.dumps(value, ensure_ascii=False)
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                INSERT INTO kv_store (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
            """, (key, payload))
            conn.commit()

    def remove(self, key: str) -> None:
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
            conn.commit()

    def keys(self, prefix: str = "") -> List[str]:
        # LIKE would treat "_" and "%" in keys as wildcards
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute(
                "SELECT key FROM kv_store WHERE substr(key, 1, ?) = ? ORDER BY key",
                (len(prefix), prefix),
            )
            return [row[0] for row in cursor.fetchall()]

    def clear(self) -> None:
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("DELETE FROM kv_store")
            conn.commit()
