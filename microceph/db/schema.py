"""The cluster database, its schema and status errors."""

from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from http import HTTPStatus
from typing import Iterator

_INTERNAL_SCHEMA = """
CREATE TABLE IF NOT EXISTS internal_cluster_members (
  id       INTEGER  PRIMARY KEY AUTOINCREMENT NOT NULL,
  name     TEXT     NOT NULL,
  address  TEXT     NOT NULL,
  UNIQUE(name)
);
"""

_SCHEMA_UPDATE_1 = """
CREATE TABLE config (
  id                            INTEGER  PRIMARY KEY AUTOINCREMENT NOT NULL,
  key                           TEXT     NOT  NULL,
  value                         TEXT     NOT  NULL,
  UNIQUE(key)
);

CREATE TABLE disks (
  id                            INTEGER  PRIMARY KEY AUTOINCREMENT NOT NULL,
  member_id                     INTEGER  NOT  NULL,
  path                          TEXT     NOT  NULL,
  osd                           INTEGER  NOT  NULL,
  FOREIGN KEY (member_id) REFERENCES "internal_cluster_members" (id),
  UNIQUE(member_id, path),
  UNIQUE(osd)
);

CREATE TABLE services (
  id                            INTEGER  PRIMARY KEY AUTOINCREMENT NOT NULL,
  member_id                     INTEGER  NOT  NULL,
  service                       TEXT     NOT  NULL,
  FOREIGN KEY (member_id) REFERENCES "internal_cluster_members" (id),
  UNIQUE(member_id, service)
);
"""

# Each entry raises the schema version by one.
SCHEMA_EXTENSIONS: dict[int, str] = {1: _SCHEMA_UPDATE_1}


class StatusError(Exception):
    """A database error carrying an HTTP status, such as not found or conflict."""

    def __init__(self, status: HTTPStatus | int, message: str) -> None:
        super().__init__(message)
        self.status = HTTPStatus(status)
        self.message = message


def apply_schema(conn: sqlite3.Connection) -> int:
    """Apply the schema updates not yet applied and return the schema version."""
    current = conn.execute("PRAGMA user_version").fetchone()[0]
    for version in sorted(SCHEMA_EXTENSIONS):
        if version <= current:
            continue
        conn.executescript(SCHEMA_EXTENSIONS[version])
        conn.execute(f"PRAGMA user_version = {int(version)}")
        current = version
    return current


class Database:
    """An SQLite cluster database with transactional access."""

    def __init__(self, path: str = ":memory:") -> None:
        self._conn: sqlite3.Connection | None = sqlite3.connect(
            path, isolation_level=None, check_same_thread=False
        )
        self._lock = threading.RLock()
        self._conn.execute("PRAGMA foreign_keys = ON")
        self._conn.executescript(_INTERNAL_SCHEMA)
        apply_schema(self._conn)

    def __enter__(self) -> Database:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def is_open(self) -> bool:
        return self._conn is not None

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection inside a transaction; roll back if the body raises."""
        with self._lock:
            conn = self._conn
            if conn is None:
                raise RuntimeError("Database is not open")
            conn.execute("BEGIN")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")

    def add_member(self, name: str, address: str) -> int:
        """Register a cluster member and return its id."""
        with self.transaction() as tx:
            cursor = tx.execute(
                "INSERT INTO internal_cluster_members (name, address) VALUES (?, ?)",
                (name, address),
            )
            return int(cursor.lastrowid)