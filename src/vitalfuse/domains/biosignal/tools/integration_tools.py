"""MCP tool for the integrated EEG + PPG health analysis."""

from __future__ import annotations

import json
import logging
import time
from typing import TYPE_CHECKING, Any

from fastmcp import FastMCP

from vitalfuse.core.privacy.policy import PrivacyMode, build_llm_data_context
from vitalfuse.domains.biosignal.domain_logic.subject import SubjectProfile
from vitalfuse.domains.biosignal.errors import ValidationError
from vitalfuse.domains.biosignal.integration.engine import IntegrationEngine
from vitalfuse.domains.biosignal.integration.models import MeasurementContext, ModalityAnalysis
from vitalfuse.domains.biosignal.tools.session_tools import validate_privacy_mode

if TYPE_CHECKING:
    from vitalfuse.core.audit.logger import AuditLogger
    from vitalfuse.domains.biosignal.storage.timeseries_store import TimeSeriesStore

logger = logging.getLogger(__name__)


def register_integration_tools(
    mcp: FastMCP,
    engine: IntegrationEngine,
    store: TimeSeriesStore | None = None,
    audit_logger: AuditLogger | None = None,
    *,
    default_privacy_mode: PrivacyMode = "strict",
) -> None:
    """Register the integration tool on the MCP server."""

    @mcp.tool
    async def integrated_health_analysis(
        subject: dict[str, Any],
        eeg_analysis: dict[str, Any] | None = None,
        ppg_analysis: dict[str, Any] | None = None,
        session_id: str | None = None,
        measurement_duration_s: float | None = None,
        measured_at: str = "",
        privacy_mode: str | None = None,
    ) -> str:
        """Combine EEG and PPG sub-analyses into one integrated health report.

        Aggregate scores are arithmetic means of the given dimension scores.
        Without a configured inference provider the report is produced by a
        deterministic offline generator with the same shape.

        Args:
            subject: {age, gender ('male'|'female'|'other'), occupation?, lifestyle?}.
            eeg_analysis: EEG dimensions under "dimensions": emotional_balance,
                brain_focus, brain_arousal, stress_level (0-100 each).
            ppg_analysis: PPG dimensions under "dimensions": stress_health,
                autonomic_health, hrv_health (0-100 each).
            session_id: Optional stored session whose statistics are added
                as context (filtered by privacy_mode).
            measurement_duration_s: Measurement length in seconds; taken from
                the stored session when omitted.
            measured_at: ISO 8601 time of the measurement.
            privacy_mode: What part of the stored session reaches the
                inference prompt: 'strict' (default), 'standard', 'explicit'.
        """
        start_time = time.monotonic()
        mode = validate_privacy_mode(privacy_mode, default_privacy_mode)

        try:
            profile = SubjectProfile.from_dict(subject)
            eeg = ModalityAnalysis.from_dict("eeg", eeg_analysis) if eeg_analysis else None
            ppg = ModalityAnalysis.from_dict("ppg", ppg_analysis) if ppg_analysis else None
        except ValidationError as exc:
            logger.warning("Rejected integration input: %s", exc)
            envelope = engine.error_summary_result(exc, start_time)
        else:
            analysis_context: dict[str, Any] | None = None
            duration = measurement_duration_s
            if session_id and store is not None:
                bundle = store.load_for_analysis(session_id, profile)
                if bundle is None:
                    raise ValueError(f"No stored session with id {session_id!r}")
                analysis_context = build_llm_data_context(bundle, mode)
                if duration is None:
                    duration = bundle["session_info"]["duration"]
                    measured_at = measured_at or bundle["session_info"]["start_time"]

            context = MeasurementContext(
                duration_seconds=float(duration or 0.0),
                measured_at=measured_at,
                session_id=session_id,
            )

            envelope = await engine.analyze(eeg, ppg, profile, context, analysis_context)

        elapsed_ms = (time.monotonic() - start_time) * 1000
        if audit_logger is not None:
            disclosed = (
                envelope.ok
                and engine.uses_inference
                and engine.provider_name not in (None, "mock")
            )
            audit_logger.log_integration(
                session_id=session_id,
                tool_input={"subject": subject, "eeg": eeg_analysis, "ppg": ppg_analysis},
                privacy_mode=mode,
                llm_provider=engine.provider_name,
                llm_disclosed=disclosed,
                duration_ms=elapsed_ms,
                status="success" if envelope.ok else "failure",
                error_type=envelope.error.split(":", 1)[0] if envelope.error else None,
                metadata={"data_quality": (envelope.raw_data or {}).get("metadata", {}).get("data_quality")},
            )

        return json.dumps(envelope.to_dict(), ensure_ascii=False)
