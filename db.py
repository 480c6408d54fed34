import json
import logging
import sqlite3
from contextlib import contextmanager
from typing import List, Tuple

from config import YamlConfig
from models import (
    StoreDocument,
    WorkoutSession,
    decode_document,
    empty_document,
    is_supported_version,
)
from settings_schema import DEFAULT_SETTINGS, SettingsSchema, validate_settings
from tools import now_iso

logger = logging.getLogger(__name__)

STORAGE_KEY = "hal-lab-workout-store"


class Database:
    """Provides SQLite connection management and schema initialization."""

    _TABLE_DEFINITIONS = {
        "kv_store": (
            """CREATE TABLE kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT
                );""",
            ["key", "value", "updated_at"],
        ),
        "settings": (
            """CREATE TABLE settings (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                );""",
            ["key", "value"],
        ),
    }

    def __init__(self, db_path: str = "workout.db") -> None:
        self._db_path = db_path
        self._ensure_schema()
        self._init_settings()

    @contextmanager
    def _connection(self):
        connection = sqlite3.connect(self._db_path)
        try:
            yield connection
            connection.commit()
        finally:
            connection.close()

    def _ensure_schema(self) -> None:
        with self._connection() as conn:
            for table, (sql, columns) in self._TABLE_DEFINITIONS.items():
                self._ensure_table(conn, table, sql, columns)

    def _ensure_table(
        self, conn: sqlite3.Connection, table: str, sql: str, columns: List[str]
    ) -> None:
        cur = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?;", (table,)
        )
        if cur.fetchone() is None:
            conn.execute(sql)
            return

        cur = conn.execute(f"PRAGMA table_info({table});")
        existing_cols = [row[1] for row in cur.fetchall()]
        if existing_cols == columns:
            return

        conn.execute(f"DROP TABLE IF EXISTS {table}_old;")
        conn.execute(f"ALTER TABLE {table} RENAME TO {table}_old;")
        conn.execute(sql)

        common = [c for c in existing_cols if c in columns]
        if common:
            cols = ", ".join(common)
            conn.execute(f"INSERT INTO {table} ({cols}) SELECT {cols} FROM {table}_old;")
        conn.execute(f"DROP TABLE {table}_old;")

    def _init_settings(self) -> None:
        with self._connection() as conn:
            for key, value in DEFAULT_SETTINGS.items():
                conn.execute(
                    "INSERT OR IGNORE INTO settings (key, value) VALUES (?, ?);",
                    (key, _to_text(value)),
                )


class BaseRepository(Database):
    """Base repository providing helper methods."""

    def execute(self, query: str, params: Tuple = ()) -> int:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.lastrowid

    def fetch_all(self, query: str, params: Tuple = ()) -> List[Tuple]:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.fetchall()


class DocumentRepository(BaseRepository):
    """Stores the whole workout document as one JSON blob under a single key."""

    def __init__(self, db_path: str = "workout.db", storage_key: str = STORAGE_KEY) -> None:
        super().__init__(db_path)
        self.storage_key = storage_key

    def load(self) -> StoreDocument:
        """Return the stored document, or an empty one if it is missing or unusable."""
        try:
            rows = self.fetch_all(
                "SELECT value FROM kv_store WHERE key = ?;", (self.storage_key,)
            )
        except sqlite3.DatabaseError as e:
            logger.warning("could not read stored document: %s", e)
            return empty_document()
        if not rows:
            logger.debug("no stored document under %r", self.storage_key)
            return empty_document()
        raw = rows[0][0]
        try:
            data = json.loads(raw)
        except (ValueError, RecursionError) as e:
            logger.warning("stored document is not valid JSON: %s", e)
            self._quarantine(raw)
            return empty_document()
        if not isinstance(data, dict) or not is_supported_version(data.get("version")):
            logger.warning("stored document has unsupported version, starting empty")
            self._quarantine(raw)
            return empty_document()
        try:
            doc = decode_document(data)
        except ValueError as e:
            logger.warning("stored document failed validation: %s", e)
            self._quarantine(raw)
            return empty_document()
        sessions = self.dedupe_sessions(doc.sessions)
        dropped = len(doc.sessions) - len(sessions)
        if dropped:
            logger.info("discarded %d duplicate session(s) on load", dropped)
            doc = doc.model_copy(update={"sessions": sessions})
        return doc

    def save(self, doc: StoreDocument) -> None:
        payload = json.dumps(doc.to_wire(), ensure_ascii=False)
        self.execute(
            "INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at;",
            (self.storage_key, payload, now_iso()),
        )

    def reset(self) -> None:
        self.execute("DELETE FROM kv_store WHERE key = ?;", (self.storage_key,))

    @property
    def quarantine_key(self) -> str:
        return f"{self.storage_key}:corrupt"

    def fetch_raw(self, key: str | None = None) -> str | None:
        rows = self.fetch_all(
            "SELECT value FROM kv_store WHERE key = ?;", (key or self.storage_key,)
        )
        return rows[0][0] if rows else None

    def _quarantine(self, raw: str) -> None:
        """Keep an unreadable blob under a side key so a later save cannot erase it."""
        self.execute(
            "INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at;",
            (self.quarantine_key, raw, now_iso()),
        )

    @staticmethod
    def dedupe_sessions(sessions: List[WorkoutSession]) -> List[WorkoutSession]:
        """Keep one session per id: the one with the greatest updatedAt (or createdAt).

        ISO-8601 timestamps sort lexicographically in time order. On a tie the
        later-listed session wins. First-seen position is preserved.
        """
        by_id: dict[str, WorkoutSession] = {}
        for session in sessions:
            prev = by_id.get(session.id)
            if prev is None:
                by_id[session.id] = session
                continue
            prev_ts = prev.updated_at or prev.created_at or ""
            cur_ts = session.updated_at or session.created_at or ""
            if cur_ts >= prev_ts:
                by_id[session.id] = session
        return list(by_id.values())


def _to_text(value) -> str:
    if isinstance(value, bool):
        return "1" if value else "0"
    return str(value)


class SettingsRepository(BaseRepository):
    """Repository for general application settings synchronized with YAML."""

    def __init__(
        self, db_path: str = "workout.db", yaml_path: str = "settings.yaml"
    ) -> None:
        super().__init__(db_path)
        self._yaml = YamlConfig(yaml_path)
        self._sync_from_yaml()
        self._sync_to_yaml()

    def _raw_all_settings(self) -> dict:
        rows = self.fetch_all("SELECT key, value FROM settings ORDER BY key;")
        return {k: v for k, v in rows}

    def all_settings(self) -> dict:
        return SettingsSchema(**self._raw_all_settings()).model_dump()

    def _sync_from_yaml(self) -> None:
        data = self._yaml.load()
        if not data:
            return
        validate_settings(data)
        with self._connection() as conn:
            for key, value in data.items():
                conn.execute(
                    "INSERT INTO settings (key, value) VALUES (?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value=excluded.value;",
                    (key, _to_text(value)),
                )

    def _sync_to_yaml(self) -> None:
        self._yaml.save(self.all_settings())

    def get_text(self, key: str, default: str) -> str:
        self._sync_from_yaml()
        rows = self.fetch_all("SELECT value FROM settings WHERE key = ?;", (key,))
        return rows[0][0] if rows else default

    def get_int(self, key: str, default: int) -> int:
        try:
            return int(float(self.get_text(key, str(default))))
        except ValueError:
            return default

    def get_bool(self, key: str, default: bool) -> bool:
        return self.get_text(key, "1" if default else "0") in {
            "1",
            "true",
            "True",
            "1.0",
        }

    def set_text(self, key: str, value: str) -> None:
        validate_settings({**self._raw_all_settings(), key: value})
        self.execute(
            "INSERT INTO settings (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value=excluded.value;",
            (key, value),
        )
        self._sync_to_yaml()

    def set_int(self, key: str, value: int) -> None:
        self.set_text(key, str(value))

    def set_bool(self, key: str, value: bool) -> None:
        self.set_text(key, "1" if value else "0")
