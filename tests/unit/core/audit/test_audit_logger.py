"""Tests for the AuditLogger and related utilities."""

from __future__ import annotations

import json

from vitalfuse.core.audit.logger import AuditEvent, AuditLogger, hash_input
from vitalfuse.core.storage.database import BiosignalDatabase


# ---------------------------------------------------------------------------
# hash_input tests
# ---------------------------------------------------------------------------

class TestHashInput:
    def test_hashes_dict(self):
        h = hash_input({"key": "value"})
        assert isinstance(h, str)
        assert len(h) == 64  # SHA-256 hex

    def test_deterministic(self):
        data = {"a": 1, "b": 2}
        assert hash_input(data) == hash_input(data)

    def test_order_independent(self):
        assert hash_input({"z": 1, "a": 2}) == hash_input({"a": 2, "z": 1})

    def test_different_inputs_differ(self):
        assert hash_input({"a": 1}) != hash_input({"a": 2})

    def test_non_json_values_use_str(self):
        assert len(hash_input({"obj": object})) == 64


# ---------------------------------------------------------------------------
# log_event
# ---------------------------------------------------------------------------

class TestLogEvent:
    def test_returns_uuid(self, audit_logger):
        eid = audit_logger.log_event(AuditEvent(action="tool_invocation", tool_name="health_check"))
        assert len(eid) == 36

    def test_metadata_stored_as_json(self, audit_logger):
        audit_logger.log_event(AuditEvent(action="data_access", metadata={"chunks": ["eeg"]}))
        event = audit_logger.get_events()[0]
        assert json.loads(event["metadata_json"]) == {"chunks": ["eeg"]}

    def test_write_failure_is_swallowed(self):
        db = BiosignalDatabase(":memory:")
        db.initialize()
        audit = AuditLogger(db)
        db.close()
        assert audit.log_event(AuditEvent(action="data_access")) == ""


# ---------------------------------------------------------------------------
# Session access and integration events
# ---------------------------------------------------------------------------

class TestDataAccess:
    def test_save_event(self, audit_logger):
        audit_logger.log_data_access(
            "save", session_id="s-1", tool_name="save_session_timeseries", duration_ms=4.2
        )
        event = audit_logger.get_events(action="data_access")[0]
        assert event["session_id"] == "s-1"
        assert event["tool_name"] == "save_session_timeseries"
        assert event["status"] == "success"
        assert json.loads(event["metadata_json"])["operation"] == "save"

    def test_failure_event(self, audit_logger):
        audit_logger.log_data_access(
            "save", session_id="s-2", status="failure", error_type="ValidationError"
        )
        event = audit_logger.get_events(session_id="s-2")[0]
        assert event["status"] == "failure"
        assert event["error_type"] == "ValidationError"


class TestIntegration:
    def test_disclosure_recorded(self, audit_logger):
        audit_logger.log_integration(
            session_id="s-1",
            tool_input={"subject": {"age": 34}},
            privacy_mode="strict",
            llm_provider="anthropic",
            llm_disclosed=True,
            duration_ms=812.0,
        )
        event = audit_logger.get_events(action="integration")[0]
        assert event["llm_disclosed"] == 1
        assert event["privacy_mode"] == "strict"
        assert event["tool_name"] == "integrated_health_analysis"
        assert event["tool_input_hash"] == hash_input({"subject": {"age": 34}})
        assert audit_logger.count_disclosures() == 1

    def test_raw_input_never_stored(self, audit_logger):
        audit_logger.log_integration(tool_input={"subject": {"occupation": "astronaut"}})
        event = audit_logger.get_events()[0]
        assert "astronaut" not in json.dumps(event)

    def test_offline_run_is_not_a_disclosure(self, audit_logger):
        audit_logger.log_integration(tool_input={"a": 1}, llm_provider=None)
        assert audit_logger.count_disclosures() == 0


class TestQueries:
    def test_filters_and_counts(self, audit_logger):
        audit_logger.log_data_access("save", session_id="a")
        audit_logger.log_data_access("load", session_id="a")
        audit_logger.log_integration(session_id="b")
        assert audit_logger.count_events() == 3
        assert audit_logger.count_events(action="data_access") == 2
        assert len(audit_logger.get_events(session_id="a")) == 2
        assert len(audit_logger.get_events(limit=1)) == 1
