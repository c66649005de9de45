"""MCP tools for storing processed sessions and reading their analysis bundle."""

from __future__ import annotations

import json
import logging
import time
from typing import TYPE_CHECKING, Any

from fastmcp import FastMCP

from vitalfuse.core.privacy.policy import PRIVACY_MODES, PrivacyMode, build_llm_data_context
from vitalfuse.domains.biosignal.domain_logic.subject import SubjectProfile
from vitalfuse.domains.biosignal.storage.timeseries_store import (
    TimeSeriesStore,
    session_from_request,
)

if TYPE_CHECKING:
    from vitalfuse.core.audit.logger import AuditLogger

logger = logging.getLogger(__name__)


def validate_privacy_mode(value: str | None, default: PrivacyMode = "strict") -> PrivacyMode:
    """Validate and default a privacy_mode parameter."""
    if value in (None, ""):
        return default
    if value not in PRIVACY_MODES:
        raise ValueError("privacy_mode must be one of: strict | standard | explicit")
    return value  # type: ignore[return-value]


def register_session_tools(
    mcp: FastMCP,
    store: TimeSeriesStore,
    audit_logger: AuditLogger | None = None,
    *,
    default_privacy_mode: PrivacyMode = "strict",
) -> None:
    """Register session storage tools on the MCP server."""

    @mcp.tool
    def save_session_timeseries(session: dict[str, Any]) -> str:
        """Store one processed measurement session (per-second EEG/PPG/ACC series).

        Re-saving a session id replaces the stored copy.

        Args:
            session: Session object with session_id, measurement_id,
                start_time/end_time (ISO 8601 with offset), duration (s),
                optional eeg/ppg/acc modality objects ({channels, categorical,
                extras, timestamps}), optional fused_metrics ({channels}),
                and metadata ({sampling_rate, processing_version, quality_score}).
        """
        start_time = time.monotonic()
        session_id = str(session.get("session_id", ""))
        try:
            parsed = session_from_request(session)
            key = store.save(parsed)
        except Exception as exc:
            if audit_logger is not None:
                audit_logger.log_data_access(
                    "save",
                    session_id=session_id,
                    tool_name="save_session_timeseries",
                    status="failure",
                    error_type=type(exc).__name__,
                    duration_ms=(time.monotonic() - start_time) * 1000,
                )
            raise

        elapsed_ms = (time.monotonic() - start_time) * 1000
        chunks = [name for name in parsed.modalities()]
        if parsed.fused_metrics is not None:
            chunks.append("fused")
        if audit_logger is not None:
            audit_logger.log_data_access(
                "save",
                session_id=parsed.session_id,
                tool_name="save_session_timeseries",
                duration_ms=elapsed_ms,
                metadata={"chunks": chunks},
            )
        return json.dumps({
            "status": "saved",
            "session_key": key,
            "chunks": chunks,
            "duration_ms": round(elapsed_ms, 1),
        })

    @mcp.tool
    def get_session_analysis_bundle(
        session_id: str,
        privacy_mode: str | None = None,
        subject: dict[str, Any] | None = None,
    ) -> str:
        """Return the analysis view of a stored session.

        Args:
            session_id: Session id used when the session was saved.
            privacy_mode: 'strict' (default) returns session info and
                per-channel statistics; 'standard' adds downsampled headline
                series; 'explicit' returns the full-resolution bundle.
            subject: Optional subject profile ({age, gender, occupation,
                lifestyle}) to include in the session info.
        """
        start_time = time.monotonic()
        mode = validate_privacy_mode(privacy_mode, default_privacy_mode)
        profile = SubjectProfile.from_dict(subject) if subject else None
        if profile is not None:
            profile.validate()

        bundle = store.load_for_analysis(session_id, profile)
        elapsed_ms = (time.monotonic() - start_time) * 1000
        if audit_logger is not None:
            audit_logger.log_data_access(
                "load",
                session_id=session_id,
                tool_name="get_session_analysis_bundle",
                status="success" if bundle is not None else "not_found",
                duration_ms=elapsed_ms,
                metadata={"privacy_mode": mode},
            )

        if bundle is None:
            return json.dumps({"status": "not_found", "session_id": session_id})
        return json.dumps({
            "status": "ok",
            "privacy_mode": mode,
            "bundle": build_llm_data_context(bundle, mode),
        })
