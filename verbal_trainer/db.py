"""Profile persistence: whole-record load/save keyed by learner id."""
from __future__ import annotations

import copy
import json
import sqlite3
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path

SCHEMA = """
CREATE TABLE IF NOT EXISTS profiles (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL UNIQUE COLLATE NOCASE,
    created_at TEXT NOT NULL,
    data_json TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS meta (
    key TEXT PRIMARY KEY,
    value TEXT
);
"""

ACTIVE_PROFILE_KEY = "active_profile"

ProfileUpdate = Callable[[dict], dict]


class ProfileStore(ABC):
    """Load-whole / save-whole storage for profile records (plain dicts)."""

    @abstractmethod
    def load(self, profile_id: str) -> dict | None:
        ...

    @abstractmethod
    def save(self, profile: dict) -> None:
        ...

    @abstractmethod
    def delete(self, profile_id: str) -> bool:
        ...

    @abstractmethod
    def list_profiles(self) -> list[dict]:
        ...

    @abstractmethod
    def update(self, profile_id: str, fn: ProfileUpdate) -> dict | None:
        """Read-modify-write one profile as a single transaction.

        Returns the saved record, or None if the profile does not exist.
        """

    @abstractmethod
    def get_active_profile_id(self) -> str | None:
        ...

    @abstractmethod
    def set_active_profile_id(self, profile_id: str | None) -> None:
        ...

    def close(self) -> None:
        pass


class Database(ProfileStore):
    def __init__(self, db_path: Path):
        self.db_path = db_path
        self.conn = sqlite3.connect(str(db_path), check_same_thread=False, isolation_level=None)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA journal_mode=WAL")
        self._lock = threading.RLock()
        self._init_schema()

    def _init_schema(self) -> None:
        self.conn.executescript(SCHEMA)

    def close(self) -> None:
        self.conn.close()

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            self.conn.execute("BEGIN IMMEDIATE")
            try:
                yield self.conn
            except BaseException:
                self.conn.execute("ROLLBACK")
                raise
            self.conn.execute("COMMIT")

    # ── Profiles ──────────────────────────────────────────────────────────

    def _read(self, conn: sqlite3.Connection, profile_id: str) -> dict | None:
        row = conn.execute(
            "SELECT data_json FROM profiles WHERE id = ?", (profile_id,)
        ).fetchone()
        return json.loads(row["data_json"]) if row else None

    def _write(self, conn: sqlite3.Connection, profile: dict) -> None:
        conn.execute(
            "INSERT INTO profiles (id, name, created_at, data_json) VALUES (?, ?, ?, ?) "
            "ON CONFLICT(id) DO UPDATE SET name = excluded.name, data_json = excluded.data_json",
            (profile["id"], profile["name"], profile["created_at"], json.dumps(profile)),
        )

    def load(self, profile_id: str) -> dict | None:
        with self._lock:
            return self._read(self.conn, profile_id)

    def save(self, profile: dict) -> None:
        with self._transaction() as conn:
            self._write(conn, profile)

    def delete(self, profile_id: str) -> bool:
        with self._transaction() as conn:
            cur = conn.execute("DELETE FROM profiles WHERE id = ?", (profile_id,))
            return cur.rowcount > 0

    def list_profiles(self) -> list[dict]:
        with self._lock:
            rows = self.conn.execute(
                "SELECT data_json FROM profiles ORDER BY created_at"
            ).fetchall()
        return [json.loads(r["data_json"]) for r in rows]

    def update(self, profile_id: str, fn: ProfileUpdate) -> dict | None:
        with self._transaction() as conn:
            current = self._read(conn, profile_id)
            if current is None:
                return None
            updated = fn(current)
            self._write(conn, updated)
            return updated

    # ── Active profile ────────────────────────────────────────────────────

    def get_active_profile_id(self) -> str | None:
        with self._lock:
            row = self.conn.execute(
                "SELECT value FROM meta WHERE key = ?", (ACTIVE_PROFILE_KEY,)
            ).fetchone()
        return row["value"] if row else None

    def set_active_profile_id(self, profile_id: str | None) -> None:
        with self._transaction() as conn:
            if profile_id is None:
                conn.execute("DELETE FROM meta WHERE key = ?", (ACTIVE_PROFILE_KEY,))
            else:
                conn.execute(
                    "INSERT OR REPLACE INTO meta (key, value) VALUES (?, ?)",
                    (ACTIVE_PROFILE_KEY, profile_id),
                )


class MemoryStore(ProfileStore):
    """In-process store with the same semantics as :class:`Database`."""

    def __init__(self):
        self._profiles: dict[str, dict] = {}
        self._active: str | None = None
        self._lock = threading.RLock()

    def load(self, profile_id: str) -> dict | None:
        with self._lock:
            p = self._profiles.get(profile_id)
            return copy.deepcopy(p) if p is not None else None

    def save(self, profile: dict) -> None:
        with self._lock:
            for other in self._profiles.values():
                if other["id"] != profile["id"] and other["name"].lower() == profile["name"].lower():
                    raise sqlite3.IntegrityError(f"UNIQUE constraint failed: profiles.name ({profile['name']})")
            self._profiles[profile["id"]] = copy.deepcopy(profile)

    def delete(self, profile_id: str) -> bool:
        with self._lock:
            return self._profiles.pop(profile_id, None) is not None

    def list_profiles(self) -> list[dict]:
        with self._lock:
            rows = sorted(self._profiles.values(), key=lambda p: p["created_at"])
            return copy.deepcopy(rows)

    def update(self, profile_id: str, fn: ProfileUpdate) -> dict | None:
        with self._lock:
            current = self.load(profile_id)
            if current is None:
                return None
            updated = fn(current)
            self.save(updated)
            return copy.deepcopy(updated)

    def get_active_profile_id(self) -> str | None:
        return self._active

    def set_active_profile_id(self, profile_id: str | None) -> None:
        self._active = profile_id
