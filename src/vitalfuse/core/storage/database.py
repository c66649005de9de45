"""SQLite database for the VitalFuse session store.

Two tables: ``documents`` holds encrypted JSON documents addressed by
(collection, key), ``audit_log`` holds PHI-free audit events. Both are
created on first open; every write goes through :meth:`transaction`.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

logger = logging.getLogger(__name__)

TABLES = ("documents", "audit_log")

_SCHEMA = """
CREATE TABLE IF NOT EXISTS documents (
    collection  TEXT NOT NULL,
    doc_key     TEXT NOT NULL,
    body_enc    TEXT NOT NULL,
    created_at  TEXT NOT NULL,
    updated_at  TEXT NOT NULL,
    PRIMARY KEY (collection, doc_key)
);

CREATE INDEX IF NOT EXISTS idx_documents_updated ON documents(collection, updated_at);

CREATE TABLE IF NOT EXISTS audit_log (
    id              TEXT PRIMARY KEY,
    timestamp       TEXT NOT NULL,
    action          TEXT NOT NULL,
    tool_name       TEXT,
    tool_input_hash TEXT,
    privacy_mode    TEXT,
    llm_provider    TEXT,
    llm_disclosed   INTEGER NOT NULL DEFAULT 0,
    session_id      TEXT,
    duration_ms     REAL,
    status          TEXT NOT NULL,
    error_type      TEXT,
    metadata_json   TEXT
);

CREATE INDEX IF NOT EXISTS idx_audit_action  ON audit_log(action, timestamp);
CREATE INDEX IF NOT EXISTS idx_audit_session ON audit_log(session_id);
"""


class DatabaseError(Exception):
    """Raised when the database is used before it is opened."""


class BiosignalDatabase:
    """Connection owner for the session store and audit trail.

    ``":memory:"`` gives a private in-process database (tests, offline
    runs); any other path is a file, created with its parent directories.

    Usage::

        with BiosignalDatabase("~/.vitalfuse/sessions.db") as db:
            with db.transaction() as conn:
                conn.execute("DELETE FROM documents WHERE collection = ?", ("scratch",))
    """

    def __init__(self, db_path: str = ":memory:") -> None:
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None

    @property
    def path(self) -> str:
        return self._db_path

    @property
    def is_memory(self) -> bool:
        return self._db_path == ":memory:"

    @property
    def connection(self) -> sqlite3.Connection:
        """The open connection.

        Raises:
            DatabaseError: :meth:`initialize` has not been called.
        """
        if self._conn is None:
            raise DatabaseError("Database not initialized. Call initialize() first.")
        return self._conn

    def initialize(self) -> None:
        """Open the connection and create missing tables. Idempotent."""
        if self._conn is not None:
            return

        if self.is_memory:
            conn = sqlite3.connect(":memory:")
        else:
            db_file = Path(self._db_path).expanduser()
            db_file.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(db_file))
            conn.execute("PRAGMA journal_mode=WAL")

        conn.row_factory = sqlite3.Row
        conn.executescript(_SCHEMA)
        self._conn = conn
        logger.info("Session database ready: %s", self._db_path)

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Commit the enclosed statements together, or roll them all back.

        The sqlite3 error that caused a rollback is re-raised unchanged.
        """
        conn = self.connection
        try:
            yield conn
        except sqlite3.Error:
            conn.rollback()
            raise
        conn.commit()

    def table_counts(self) -> dict[str, int]:
        """Row count per table, for status reporting."""
        return {
            table: self.connection.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
            for table in TABLES
        }

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.info("Session database closed: %s", self._db_path)

    def __enter__(self) -> BiosignalDatabase:
        self.initialize()
        return self

    def __exit__(self, *args) -> None:
        self.close()
