"""Tests for integration prompt rendering."""

from __future__ import annotations

from vitalfuse.domains.biosignal.domain_logic.subject import SubjectProfile
from vitalfuse.domains.biosignal.prompts.integration_prompts import (
    INTEGRATION_TASK_INSTRUCTIONS,
    RESPONSE_SCHEMA,
    build_integration_prompt,
)


def test_prompt_lists_subject_and_scores(subject, eeg_analysis, ppg_analysis):
    prompt = build_integration_prompt(subject, eeg_analysis, ppg_analysis)
    assert "- Age: 34" in prompt
    assert "- Occupation: software engineer" in prompt
    assert "- Sleep: 6.5 hours" in prompt
    assert "- brain_arousal: 94 (normal, normal)" in prompt
    assert "- hrv_health: 80 (normal, normal)" in prompt
    assert prompt.endswith(RESPONSE_SCHEMA)


def test_missing_modality_is_stated(subject, eeg_analysis):
    prompt = build_integration_prompt(subject, eeg_analysis, None)
    assert "[PPG analysis: three axes]\nNo analysis available." in prompt


def test_minimal_subject():
    prompt = build_integration_prompt(
        SubjectProfile(age=61, gender="other"), None, None
    )
    assert "- Occupation: not provided" in prompt
    assert "Sleep" not in prompt


def test_analysis_context_included(subject, eeg_analysis):
    context = {"session_info": {"session_id": "s-9"}, "statistics": {}}
    prompt = build_integration_prompt(subject, eeg_analysis, None, context)
    assert "[Measurement data context]" in prompt
    assert '"session_id": "s-9"' in prompt


def test_task_instructions_state_the_aggregate_rule():
    assert "88.08" in INTEGRATION_TASK_INSTRUCTIONS
