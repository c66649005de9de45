"""Encrypted document repository — the SQLite-backed DocumentStore.

Mediates between JSON documents (session metadata, time-series chunks,
analysis results) and the ``documents`` table, encrypting every body with
DocumentEncryptor.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from typing import Any

from vitalfuse.core.storage.database import BiosignalDatabase
from vitalfuse.core.storage.documents import StorageError
from vitalfuse.core.storage.encryption import DocumentEncryptor, EncryptionError

logger = logging.getLogger(__name__)


class EncryptedDocumentRepository:
    """DocumentStore over SQLite with Fernet-encrypted bodies.

    Usage::

        db = BiosignalDatabase(":memory:")
        db.initialize()
        repo = EncryptedDocumentRepository(db, DocumentEncryptor(key="..."))

        repo.put("processed_timeseries", "s-1_processed", {...})
        repo.get("processed_timeseries", "s-1_processed")
    """

    def __init__(self, database: BiosignalDatabase, encryptor: DocumentEncryptor) -> None:
        self._db = database
        self._enc = encryptor

    @staticmethod
    def _now_iso() -> str:
        return datetime.now(timezone.utc).isoformat()

    def put(self, collection: str, key: str, document: dict[str, Any]) -> None:
        """Insert or overwrite one document.

        Raises:
            StorageError: Serialization, encryption or SQLite failure.
        """
        try:
            body = self._enc.encrypt(document)
        except EncryptionError as exc:
            raise StorageError(f"Cannot encrypt {collection}/{key}: {exc}") from exc

        now = self._now_iso()
        try:
            with self._db.transaction() as conn:
                conn.execute(
                    """INSERT INTO documents (collection, doc_key, body_enc, created_at, updated_at)
                       VALUES (?, ?, ?, ?, ?)
                       ON CONFLICT(collection, doc_key) DO UPDATE SET
                           body_enc = excluded.body_enc,
                           updated_at = excluded.updated_at""",
                    (collection, key, body, now, now),
                )
        except sqlite3.Error as exc:
            raise StorageError(f"Write failed for {collection}/{key}: {exc}") from exc
        logger.debug("Stored document %s/%s", collection, key)

    def get(self, collection: str, key: str) -> dict[str, Any] | None:
        """Fetch and decrypt one document, or None when absent.

        Raises:
            StorageError: SQLite failure or an undecryptable body.
        """
        try:
            row = self._db.connection.execute(
                "SELECT body_enc FROM documents WHERE collection = ? AND doc_key = ?",
                (collection, key),
            ).fetchone()
        except sqlite3.Error as exc:
            raise StorageError(f"Read failed for {collection}/{key}: {exc}") from exc

        if row is None:
            return None
        try:
            return self._enc.decrypt(row["body_enc"])
        except EncryptionError as exc:
            raise StorageError(f"Cannot decrypt {collection}/{key}: {exc}") from exc

    def list_keys(self, collection: str, *, limit: int = 100) -> list[str]:
        """Most recently updated document keys in a collection."""
        rows = self._db.connection.execute(
            "SELECT doc_key FROM documents WHERE collection = ? "
            "ORDER BY updated_at DESC, doc_key LIMIT ?",
            (collection, limit),
        ).fetchall()
        return [row["doc_key"] for row in rows]

    def count(self, collection: str | None = None) -> int:
        conn = self._db.connection
        if collection is None:
            row = conn.execute("SELECT COUNT(*) FROM documents").fetchone()
        else:
            row = conn.execute(
                "SELECT COUNT(*) FROM documents WHERE collection = ?", (collection,)
            ).fetchone()
        return row[0]

    def delete(self, collection: str, key: str) -> bool:
        """Delete one document. Returns True if it existed.

        Raises:
            StorageError: SQLite failure.
        """
        try:
            with self._db.transaction() as conn:
                cursor = conn.execute(
                    "DELETE FROM documents WHERE collection = ? AND doc_key = ?",
                    (collection, key),
                )
        except sqlite3.Error as exc:
            raise StorageError(f"Delete failed for {collection}/{key}: {exc}") from exc
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Deleted document %s/%s", collection, key)
        return deleted
