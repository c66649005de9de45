"""Unit tests for the privacy policy module."""

from __future__ import annotations

import pytest

from vitalfuse.core.privacy.policy import PRIVACY_MODES, build_llm_data_context


# ---------------------------------------------------------------------------
# Shared test data
# ---------------------------------------------------------------------------

def _make_bundle() -> dict:
    """A small analysis bundle in the shape TimeSeriesStore produces."""
    return {
        "session_info": {"session_id": "s-1", "duration": 60.0, "quality_score": 85.0},
        "eeg_time_series": {
            "mental_states": {"focus": [70.123456, 71.0]},
            "timestamps": [1, 2],
        },
        "statistics": {
            "eeg": {"focus_index": {"mean": 70.5617283, "std": 0.4382716}},
        },
        "downsampled": {"eeg": {"focus_index": [70.123456, 71.987654]}},
    }


class TestBuildLlmDataContext:
    def test_modes(self):
        assert PRIVACY_MODES == ("strict", "standard", "explicit")

    def test_strict_has_no_series(self):
        ctx = build_llm_data_context(_make_bundle(), "strict")
        assert set(ctx) == {"session_info", "statistics"}
        assert ctx["statistics"]["eeg"]["focus_index"]["mean"] == 70.5617

    def test_standard_adds_rounded_downsampled(self):
        ctx = build_llm_data_context(_make_bundle(), "standard")
        assert set(ctx) == {"session_info", "statistics", "downsampled"}
        assert ctx["downsampled"]["eeg"]["focus_index"] == [70.12, 71.99]
        assert "eeg_time_series" not in ctx

    def test_explicit_is_full_bundle(self):
        bundle = _make_bundle()
        ctx = build_llm_data_context(bundle, "explicit")
        assert ctx == bundle
        assert ctx["eeg_time_series"]["mental_states"]["focus"][0] == 70.123456

    def test_bundle_not_modified(self):
        bundle = _make_bundle()
        build_llm_data_context(bundle, "standard")
        assert bundle == _make_bundle()

    def test_session_info_copied(self):
        bundle = _make_bundle()
        ctx = build_llm_data_context(bundle, "strict")
        ctx["session_info"]["session_id"] = "changed"
        assert bundle["session_info"]["session_id"] == "s-1"

    def test_unknown_mode(self):
        with pytest.raises(ValueError, match="Unknown privacy mode"):
            build_llm_data_context(_make_bundle(), "lenient")

    def test_empty_bundle(self):
        assert build_llm_data_context({}, "strict") == {"session_info": {}, "statistics": {}}
