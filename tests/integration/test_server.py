"""Integration tests for the VitalFuse MCP server."""

from __future__ import annotations

import asyncio
import json

import pytest
from cryptography.fernet import Fernet
from fastmcp import Client
from fastmcp.exceptions import ToolError

from vitalfuse.core.audit.logger import AuditLogger
from vitalfuse.core.llm.client import InferenceClient
from vitalfuse.core.llm.providers.mock import MockProvider
from vitalfuse.core.server.app import create_app


def _run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio required)."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def _payload(result) -> dict:
    return json.loads(result.content[0].text)


ALL_EXPECTED_TOOLS = [
    "health_check",
    "save_session_timeseries",
    "get_session_analysis_bundle",
    "integrated_health_analysis",
]

SUBJECT = {"age": 34, "gender": "female", "occupation": "software engineer"}
EEG = {"dimensions": {"emotional_balance": 100, "brain_focus": 100, "brain_arousal": 94, "stress_level": 100}}
PPG = {"dimensions": {"stress_health": 70, "autonomic_health": 83, "hrv_health": 80}}


@pytest.fixture
def client():
    """MCP client connected to a fresh in-memory server."""
    return Client(create_app())


# ---------------------------------------------------------------------------
# Server surface
# ---------------------------------------------------------------------------

def test_server_starts_and_lists_tools(client):
    async def _check():
        async with client:
            tools = await client.list_tools()
            tool_names = [t.name for t in tools]
            for expected in ALL_EXPECTED_TOOLS:
                assert expected in tool_names, f"Missing tool: {expected}"
    _run(_check())


def test_health_check_returns_ok(client):
    async def _check():
        async with client:
            status = _payload(await client.call_tool("health_check", {}))
            assert status["status"] == "ok"
            assert status["inference"] == "offline"
            assert status["storage_backend"] == "memory"
            assert status["audit_enabled"] is False
            assert status["sessions_stored"] == 0
    _run(_check())


def test_prompt_registered(client):
    async def _check():
        async with client:
            prompts = await client.list_prompts()
            assert "integrated_report_prompt" in [p.name for p in prompts]
    _run(_check())


# ---------------------------------------------------------------------------
# Session tools
# ---------------------------------------------------------------------------

def test_save_then_bundle(client, session):
    async def _check():
        async with client:
            saved = _payload(await client.call_tool(
                "save_session_timeseries", {"session": session.to_dict()}))
            assert saved["status"] == "saved"
            assert saved["session_key"] == "test-session-123_processed"
            assert saved["chunks"] == ["eeg", "ppg", "acc", "fused"]

            strict = _payload(await client.call_tool(
                "get_session_analysis_bundle", {"session_id": "test-session-123"}))
            assert strict["status"] == "ok"
            assert strict["privacy_mode"] == "strict"
            assert set(strict["bundle"]) == {"session_info", "statistics"}

            standard = _payload(await client.call_tool(
                "get_session_analysis_bundle",
                {"session_id": "test-session-123", "privacy_mode": "standard",
                 "subject": SUBJECT},
            ))
            assert "downsampled" in standard["bundle"]
            assert standard["bundle"]["session_info"]["subject"]["age"] == 34

            status = _payload(await client.call_tool("health_check", {}))
            assert status["sessions_stored"] == 1
    _run(_check())


def test_bundle_for_unknown_session(client):
    async def _check():
        async with client:
            result = _payload(await client.call_tool(
                "get_session_analysis_bundle", {"session_id": "ghost"}))
            assert result == {"status": "not_found", "session_id": "ghost"}
    _run(_check())


def test_invalid_session_rejected(client, session):
    data = session.to_dict()
    data["eeg"]["channels"]["focus_index"] = data["eeg"]["channels"]["focus_index"][:10]

    async def _check():
        async with client:
            with pytest.raises(ToolError, match="eeg.focus_index"):
                await client.call_tool("save_session_timeseries", {"session": data})
    _run(_check())


def test_invalid_privacy_mode_rejected(client):
    async def _check():
        async with client:
            with pytest.raises(ToolError, match="privacy_mode"):
                await client.call_tool(
                    "get_session_analysis_bundle", {"session_id": "x", "privacy_mode": "open"})
    _run(_check())


# ---------------------------------------------------------------------------
# Integration tool
# ---------------------------------------------------------------------------

def test_integrated_analysis_offline(client):
    async def _check():
        async with client:
            envelope = _payload(await client.call_tool(
                "integrated_health_analysis",
                {"subject": SUBJECT, "eeg_analysis": EEG, "ppg_analysis": PPG,
                 "measurement_duration_s": 300},
            ))
            assert "error" not in envelope
            assert envelope["overall_score"] == pytest.approx(88.0833333)
            assert envelope["raw_data"]["eeg_summary"]["overall_score"] == pytest.approx(98.5)
            assert envelope["raw_data"]["metadata"]["data_quality"] == "excellent"
    _run(_check())


def test_integrated_analysis_error_envelope(client):
    async def _check():
        async with client:
            envelope = _payload(await client.call_tool(
                "integrated_health_analysis", {"subject": SUBJECT}))
            assert envelope["error"].startswith("InsufficientInputError")
            assert envelope["overall_score"] == 0.0
            assert envelope["insights"]["recommendations"] == []
    _run(_check())


def test_integrated_analysis_malformed_subject_returns_envelope(client):
    async def _check():
        async with client:
            envelope = _payload(await client.call_tool(
                "integrated_health_analysis",
                {"subject": {**SUBJECT, "lifestyle": "active"}, "eeg_analysis": EEG},
            ))
            assert envelope["error"].startswith("ValidationError")
            assert "subject.lifestyle" in envelope["error"]
            assert envelope["overall_score"] == 0.0
    _run(_check())


def test_integrated_analysis_unknown_session(client):
    async def _check():
        async with client:
            with pytest.raises(ToolError, match="No stored session"):
                await client.call_tool(
                    "integrated_health_analysis",
                    {"subject": SUBJECT, "eeg_analysis": EEG, "session_id": "ghost"},
                )
    _run(_check())


def test_integrated_analysis_with_session_context(session):
    live_document = {
        "overall_summary": {"health_score": 1, "main_findings": ["Stable."]},
        "improvement_plan": {"immediate": ["Hydrate."]},
    }
    provider = MockProvider(response_content=json.dumps(live_document))
    mcp = create_app(inference_client_override=InferenceClient(provider, provider_name="mock"))

    async def _check():
        async with Client(mcp) as client:
            await client.call_tool("save_session_timeseries", {"session": session.to_dict()})
            envelope = _payload(await client.call_tool(
                "integrated_health_analysis",
                {"subject": SUBJECT, "ppg_analysis": PPG, "session_id": "test-session-123",
                 "privacy_mode": "standard"},
            ))
            assert envelope["overall_score"] == pytest.approx(77.6666667)
            assert envelope["insights"]["recommendations"] == ["Hydrate."]
    _run(_check())

    assert "[Measurement data context]" in provider.last_user_message
    assert '"downsampled"' in provider.last_user_message
    assert '"eeg_time_series"' not in provider.last_user_message


# ---------------------------------------------------------------------------
# Encrypted storage + audit
# ---------------------------------------------------------------------------

def test_encrypted_store_and_audit(monkeypatch, tmp_path, session):
    monkeypatch.setenv("ENCRYPTION_KEY", Fernet.generate_key().decode())
    monkeypatch.setenv("DB_PATH", str(tmp_path / "sessions.db"))
    mcp = create_app()

    async def _check():
        async with Client(mcp) as client:
            status = _payload(await client.call_tool("health_check", {}))
            assert status["storage_backend"] == "sqlite"
            assert status["audit_enabled"] is True

            await client.call_tool("save_session_timeseries", {"session": session.to_dict()})
            bundle = _payload(await client.call_tool(
                "get_session_analysis_bundle", {"session_id": "test-session-123"}))
            assert bundle["status"] == "ok"
    _run(_check())

    assert (tmp_path / "sessions.db").exists()


def test_audit_logger_override_records_events(audit_logger, session):
    mcp = create_app(audit_logger_override=audit_logger)

    async def _check():
        async with Client(mcp) as client:
            await client.call_tool("save_session_timeseries", {"session": session.to_dict()})
            await client.call_tool("get_session_analysis_bundle", {"session_id": "missing"})
            await client.call_tool(
                "integrated_health_analysis", {"subject": SUBJECT, "eeg_analysis": EEG})
    _run(_check())

    assert audit_logger.count_events(action="data_access") == 2
    statuses = {e["status"] for e in audit_logger.get_events(action="data_access")}
    assert statuses == {"success", "not_found"}
    integration = audit_logger.get_events(action="integration")[0]
    assert integration["llm_disclosed"] == 0
    assert integration["tool_input_hash"]
    assert isinstance(audit_logger, AuditLogger)
