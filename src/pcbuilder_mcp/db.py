"""SQLite catalog store for components and builds.

Records are stored as JSON documents keyed by id, with the columns the
queries filter on (category, timestamps) pulled out alongside. Every
sqlite3 failure surfaces as StorageError.
"""

import json
import logging
import sqlite3
import threading
from pathlib import Path
from typing import Any

from .config import CANDIDATE_LIMIT, DEFAULT_DB_PATH
from .models import Build, Component

logger = logging.getLogger(__name__)

__all__ = [
    "CatalogDatabase",
    "StorageError",
    "get_db",
    "close_db",
]

_SCHEMA = """
CREATE TABLE IF NOT EXISTS components (
    id TEXT PRIMARY KEY,
    category TEXT NOT NULL,
    name TEXT NOT NULL,
    data TEXT NOT NULL,
    last_updated TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_components_category ON components(category, last_updated);

CREATE TABLE IF NOT EXISTS builds (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    data TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
"""


class StorageError(Exception):
    """Catalog storage failed (I/O, corruption or an unreadable record)."""


class CatalogDatabase:
    """SQLite store behind the catalog and build collaborators.

    Thread safety: Uses WAL mode + check_same_thread=False.
    The _conn_lock protects lazy initialization of the connection and
    _write_lock serializes writes on the shared connection.
    """

    def __init__(self, db_path: Path | None = None):
        self.db_path = Path(db_path) if db_path else DEFAULT_DB_PATH
        self._conn: sqlite3.Connection | None = None
        self._conn_lock = threading.Lock()  # Protects _conn initialization
        self._write_lock = threading.Lock()

    def _ensure_db(self) -> sqlite3.Connection:
        """Open the database and create tables if missing. Thread-safe."""
        if self._conn is not None:
            return self._conn

        with self._conn_lock:
            # Double-check after acquiring lock
            if self._conn is not None:
                return self._conn
            try:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
                conn = sqlite3.connect(self.db_path, check_same_thread=False)
                conn.row_factory = sqlite3.Row
                conn.execute("PRAGMA journal_mode=WAL")
                conn.executescript(_SCHEMA)
            except (sqlite3.Error, OSError) as e:
                raise StorageError(f"Cannot open catalog database at {self.db_path}: {e}") from e
            logger.info(f"Catalog database ready at {self.db_path}")
            self._conn = conn
            return conn

    def close(self) -> None:
        """Close database connection. Thread-safe."""
        with self._conn_lock:
            if self._conn:
                self._conn.close()
                self._conn = None

    def _read(self, sql: str, params: tuple[Any, ...]) -> list[sqlite3.Row]:
        conn = self._ensure_db()
        try:
            return conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"Catalog read failed: {e}") from e

    def _write(self, sql: str, params: tuple[Any, ...]) -> int:
        conn = self._ensure_db()
        with self._write_lock:
            try:
                with conn:
                    cursor = conn.execute(sql, params)
                return cursor.rowcount
            except sqlite3.Error as e:
                raise StorageError(f"Catalog write failed: {e}") from e

    @staticmethod
    def _decode(row: sqlite3.Row) -> dict[str, Any]:
        try:
            return json.loads(row["data"])
        except (TypeError, ValueError) as e:
            raise StorageError(f"Corrupt record {row['id']}: {e}") from e

    # --- Components ---

    def find_component(self, component_id: str) -> Component | None:
        rows = self._read("SELECT id, data FROM components WHERE id = ?", (component_id,))
        if not rows:
            return None
        return Component.from_dict(self._decode(rows[0]))

    def upsert_component(self, component: Component) -> None:
        """Insert or replace a component by id."""
        self._write(
            """
            INSERT INTO components (id, category, name, data, last_updated)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                category = excluded.category,
                name = excluded.name,
                data = excluded.data,
                last_updated = excluded.last_updated
            """,
            (
                component.id,
                component.category,
                component.name,
                json.dumps(component.to_dict()),
                component.last_updated,
            ),
        )

    def find_components(self, category: str | None = None, limit: int = CANDIDATE_LIMIT) -> list[Component]:
        """Most recently updated components, optionally restricted to one category."""
        if category:
            rows = self._read(
                "SELECT id, data FROM components WHERE category = ? ORDER BY last_updated DESC LIMIT ?",
                (category, limit),
            )
        else:
            rows = self._read("SELECT id, data FROM components ORDER BY last_updated DESC LIMIT ?", (limit,))
        return [Component.from_dict(self._decode(row)) for row in rows]

    def find_similar_by_category(self, category: str, limit: int = CANDIDATE_LIMIT) -> list[Component]:
        """Dedup candidates: the most recently updated components in a category."""
        return self.find_components(category, limit)

    def count_components(self, category: str | None = None) -> int:
        if category:
            rows = self._read("SELECT COUNT(*) AS n FROM components WHERE category = ?", (category,))
        else:
            rows = self._read("SELECT COUNT(*) AS n FROM components", ())
        return int(rows[0]["n"])

    # --- Builds ---

    def find_build(self, build_id: str) -> Build | None:
        rows = self._read("SELECT id, data FROM builds WHERE id = ?", (build_id,))
        if not rows:
            return None
        return Build.from_record(self._decode(rows[0]))

    def save_build(self, build: Build) -> None:
        """Persist a build's selections. Derived totals and reports are never stored."""
        self._write(
            """
            INSERT INTO builds (id, name, data, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                name = excluded.name,
                data = excluded.data,
                updated_at = excluded.updated_at
            """,
            (
                build.id,
                build.name,
                json.dumps(build.to_record()),
                build.created_at,
                build.updated_at,
            ),
        )

    def delete_build(self, build_id: str) -> bool:
        """Delete a build. Returns False if it did not exist."""
        return self._write("DELETE FROM builds WHERE id = ?", (build_id,)) > 0

    def list_builds(self, limit: int = 50) -> list[Build]:
        """Most recently updated builds first."""
        rows = self._read("SELECT id, data FROM builds ORDER BY updated_at DESC LIMIT ?", (limit,))
        return [Build.from_record(self._decode(row)) for row in rows]


# Process-wide store shared by the server lifespan and tools
_catalog: CatalogDatabase | None = None
_catalog_lock = threading.Lock()


def get_db(db_path: Path | None = None) -> CatalogDatabase:
    """The process-wide catalog store, created on first use.

    db_path only applies to that first call; later calls return the open store.
    """
    global _catalog
    with _catalog_lock:
        if _catalog is None:
            _catalog = CatalogDatabase(db_path)
        return _catalog


def close_db() -> None:
    """Close the process-wide store. The next get_db() opens a fresh one."""
    global _catalog
    with _catalog_lock:
        store, _catalog = _catalog, None
    if store is not None:
        store.close()
