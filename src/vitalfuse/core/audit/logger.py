"""Audit logger — session access logging and inference disclosure tracking.

Every session save/load and every integration run leaves one PHI-free row
in ``audit_log``:

* ``tool_input_hash``: SHA-256 of canonical JSON, never the raw input.
* ``llm_disclosed``: whether derived health data was sent to an external model.
* ``privacy_mode``: which context filter was active for that disclosure.
"""

from __future__ import annotations

import hashlib
import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from vitalfuse.core.storage.database import BiosignalDatabase

logger = logging.getLogger(__name__)


def hash_input(data: Any) -> str:
    """SHA-256 hex digest of canonical JSON, or "" when not serializable."""
    try:
        canonical = json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)
        return hashlib.sha256(canonical.encode()).hexdigest()
    except (TypeError, ValueError):
        return ""


@dataclass
class AuditEvent:
    """A single audit log entry."""

    action: str                          # 'tool_invocation' | 'data_access' | 'integration'
    tool_name: str = ""
    tool_input_hash: str = ""
    privacy_mode: str | None = None      # 'strict' | 'standard' | 'explicit'
    llm_provider: str | None = None      # 'anthropic' | 'openai' | 'mock' | None (offline)
    llm_disclosed: bool = False
    session_id: str | None = None
    duration_ms: float | None = None
    status: str = "success"              # 'success' | 'failure' | 'not_found'
    error_type: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class AuditLogger:
    """Records audit events to the ``audit_log`` SQLite table.

    Writes are committed immediately. A failed audit write is logged and
    never breaks the operation being audited.

    Usage::

        audit = AuditLogger(db)
        audit.log_data_access("save", session_id="s-1", tool_name="save_session_timeseries")
        audit.log_integration(
            session_id="s-1",
            tool_input={"age": 34},
            llm_provider="anthropic",
            llm_disclosed=True,
            privacy_mode="strict",
            duration_ms=812.0,
        )
    """

    def __init__(self, database: BiosignalDatabase) -> None:
        self._db = database

    def log_event(self, event: AuditEvent) -> str:
        """Insert an audit event and return its UUID ("" if the write failed)."""
        event_id = str(uuid.uuid4())
        now = datetime.now(timezone.utc).isoformat()

        metadata_json = (
            json.dumps(event.metadata, separators=(",", ":"), default=str)
            if event.metadata
            else None
        )

        try:
            with self._db.transaction() as conn:
                conn.execute(
                    """INSERT INTO audit_log
                       (id, timestamp, action, tool_name, tool_input_hash,
                        privacy_mode, llm_provider, llm_disclosed, session_id,
                        duration_ms, status, error_type, metadata_json)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                    (
                        event_id,
                        now,
                        event.action,
                        event.tool_name or None,
                        event.tool_input_hash or None,
                        event.privacy_mode,
                        event.llm_provider,
                        1 if event.llm_disclosed else 0,
                        event.session_id,
                        event.duration_ms,
                        event.status,
                        event.error_type,
                        metadata_json,
                    ),
                )
        except Exception:
            logger.exception("Failed to write audit event; event lost")
            return ""

        return event_id

    def log_data_access(
        self,
        operation: str,
        *,
        session_id: str,
        tool_name: str = "",
        status: str = "success",
        error_type: str | None = None,
        duration_ms: float | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        """Log a session save or load.

        Args:
            operation: 'save' or 'load'.
            session_id: The session whose documents were touched.
        """
        return self.log_event(AuditEvent(
            action="data_access",
            tool_name=tool_name,
            session_id=session_id,
            duration_ms=duration_ms,
            status=status,
            error_type=error_type,
            metadata={**(metadata or {}), "operation": operation},
        ))

    def log_integration(
        self,
        *,
        session_id: str | None = None,
        tool_input: Any = None,
        tool_name: str = "integrated_health_analysis",
        privacy_mode: str | None = None,
        llm_provider: str | None = None,
        llm_disclosed: bool = False,
        duration_ms: float | None = None,
        status: str = "success",
        error_type: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        """Log one integration run and whether data left the device.

        ``tool_input`` is hashed, never stored.
        """
        return self.log_event(AuditEvent(
            action="integration",
            tool_name=tool_name,
            tool_input_hash=hash_input(tool_input) if tool_input else "",
            privacy_mode=privacy_mode,
            llm_provider=llm_provider,
            llm_disclosed=llm_disclosed,
            session_id=session_id,
            duration_ms=duration_ms,
            status=status,
            error_type=error_type,
            metadata=metadata or {},
        ))

    def get_events(
        self,
        *,
        action: str | None = None,
        session_id: str | None = None,
        limit: int = 50,
    ) -> list[dict[str, Any]]:
        """Query audit events, newest first."""
        conditions: list[str] = []
        params: list[Any] = []

        if action:
            conditions.append("action = ?")
            params.append(action)
        if session_id:
            conditions.append("session_id = ?")
            params.append(session_id)

        where = (" WHERE " + " AND ".join(conditions)) if conditions else ""
        query = f"SELECT * FROM audit_log{where} ORDER BY timestamp DESC LIMIT ?"
        params.append(limit)

        rows = self._db.connection.execute(query, params).fetchall()
        return [dict(row) for row in rows]

    def count_events(self, *, action: str | None = None) -> int:
        if action:
            row = self._db.connection.execute(
                "SELECT COUNT(*) FROM audit_log WHERE action = ?", (action,)
            ).fetchone()
        else:
            row = self._db.connection.execute("SELECT COUNT(*) FROM audit_log").fetchone()
        return row[0]

    def count_disclosures(self) -> int:
        """How many integration runs sent derived health data to an external model."""
        row = self._db.connection.execute(
            "SELECT COUNT(*) FROM audit_log WHERE llm_disclosed = 1"
        ).fetchone()
        return row[0]
