"""Integration prompt construction and the MCP prompt template."""

from __future__ import annotations

import json
from typing import Any

from fastmcp import FastMCP

from vitalfuse.domains.biosignal.domain_logic.subject import SubjectProfile
from vitalfuse.domains.biosignal.integration.models import ModalityAnalysis

INTEGRATION_TASK_INSTRUCTIONS = """\
## Task: Integrated EEG + PPG Report

Aggregate scores are computed exactly as:
1. eeg_summary.overall_score = (emotional_balance + brain_focus + brain_arousal + stress_level) / 4
2. ppg_summary.overall_score = (stress_health + autonomic_health + hrv_health) / 3
3. overall_summary.health_score = (eeg_summary.overall_score + ppg_summary.overall_score) / 2
   (or the single modality score when only one analysis is present)

Example: EEG 100, 100, 94, 100 -> 98.5; PPG 70, 83, 80 -> 77.67; overall 88.08.
"""

RESPONSE_SCHEMA = """\
{
  "overall_summary": {
    "health_score": <number>,
    "main_findings": ["3-5 main findings"],
    "urgent_issues": ["issues needing prompt attention"],
    "positive_aspects": ["positive indicators"]
  },
  "eeg_summary": {
    "overall_score": <number>,
    "key_findings": ["findings per EEG dimension"],
    "dimension_scores": {"emotional_balance": <n>, "brain_focus": <n>, "brain_arousal": <n>, "stress_level": <n>}
  },
  "ppg_summary": {
    "overall_score": <number>,
    "key_findings": ["findings per PPG axis"],
    "dimension_scores": {"stress_health": <n>, "autonomic_health": <n>, "hrv_health": <n>}
  },
  "personalized_analysis": {
    "age_gender_analysis": {"comparison": "...", "risks": ["..."], "recommendations": ["..."]},
    "occupation_analysis": {"work_stress_impact": "...", "occupational_risks": ["..."], "work_life_balance": ["..."]}
  },
  "improvement_plan": {
    "immediate": [{"category": "lifestyle|exercise|mental|medical|work", "action": "...",
                   "expected_benefit": "...", "priority": "high|medium|low", "timeframe": "..."}],
    "short_term": [<same shape, 1-4 weeks>],
    "long_term": [<same shape, 1-3 months>]
  },
  "medical_recommendations": {"consultation_needed": <bool>, "specialties": ["..."], "urgency": "immediate|soon|routine"}
}"""


def _subject_lines(subject: SubjectProfile) -> list[str]:
    lines = [
        f"- Age: {subject.age}",
        f"- Gender: {subject.gender}",
        f"- Occupation: {subject.occupation or 'not provided'}",
    ]
    if subject.lifestyle is not None:
        lifestyle = subject.lifestyle
        lines += [
            f"- Sleep: {lifestyle.sleep_hours if lifestyle.sleep_hours is not None else 'not provided'} hours",
            f"- Exercise frequency: {lifestyle.exercise_frequency or 'not provided'}",
            f"- Self-reported stress: {lifestyle.stress_level or 'not provided'}",
        ]
    return lines


def _analysis_lines(title: str, analysis: ModalityAnalysis | None) -> list[str]:
    if analysis is None or not analysis.is_usable:
        return [f"[{title}]", "No analysis available."]
    lines = [f"[{title}]"]
    for name in analysis.scores():
        dim = analysis.dimensions[name]
        lines.append(
            f"- {name}: {dim.score:g} ({dim.level or 'unlabelled'}, {dim.clinical_significance})"
        )
        if dim.interpretation:
            lines.append(f"  interpretation: {dim.interpretation}")
    if analysis.overall_summary:
        lines.append(f"Summary: {analysis.overall_summary}")
    if analysis.key_findings:
        lines.append("Key findings: " + "; ".join(analysis.key_findings))
    if analysis.primary_concerns:
        lines.append("Concerns: " + "; ".join(analysis.primary_concerns))
    return lines


def build_integration_prompt(
    subject: SubjectProfile,
    eeg: ModalityAnalysis | None,
    ppg: ModalityAnalysis | None,
    analysis_context: dict[str, Any] | None = None,
) -> str:
    """Render the user message for one integration call."""
    lines = ["[Subject]", *_subject_lines(subject), ""]
    lines += _analysis_lines("EEG analysis: four dimensions", eeg) + [""]
    lines += _analysis_lines("PPG analysis: three axes", ppg) + [""]
    if analysis_context:
        lines += [
            "[Measurement data context]",
            json.dumps(analysis_context, sort_keys=True, default=str),
            "",
        ]
    lines += ["Respond with one JSON object in this shape:", RESPONSE_SCHEMA]
    return "\n".join(lines)


def register_integration_prompts(mcp: FastMCP) -> None:
    """Register biosignal MCP prompts."""

    @mcp.prompt()
    def integrated_report_prompt(session_id: str = "", focus: str = "overall wellbeing") -> str:
        """Prompt template for requesting an integrated EEG + PPG health report."""
        session_line = f" for measurement session {session_id}" if session_id else ""
        return f"""I'd like an integrated health report{session_line}. Please:

1. Combine my EEG (brain-wave) and PPG (heart-rhythm) results into one picture
2. Explain each score in plain language, with attention to {focus}
3. Point out anything that needs attention soon
4. Give me a concrete improvement plan: this week, the next month, the next three months

Use the integrated_health_analysis tool and keep the scores exactly as computed."""
