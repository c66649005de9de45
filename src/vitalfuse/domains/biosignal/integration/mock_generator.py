"""Deterministic stand-in for the inference collaborator.

Used whenever no inference client is configured. Produces a document with
exactly the schema a live response has, seeded only by the subject's age and
the input scores, so repeated calls with the same input agree.
"""

from __future__ import annotations

from typing import Any

from vitalfuse.domains.biosignal.domain_logic.subject import SubjectProfile
from vitalfuse.domains.biosignal.integration.models import ModalityAnalysis

BASE_SCORE = 75
YOUNG_AGE = 30
SENIOR_AGE = 50
AGE_ADJUSTMENT = 5


def age_seeded_score(age: int) -> float:
    """Base health score adjusted by age band and clamped to [0, 100]."""
    modifier = 0
    if age < YOUNG_AGE:
        modifier = AGE_ADJUSTMENT
    elif age > SENIOR_AGE:
        modifier = -AGE_ADJUSTMENT
    return float(max(0, min(100, BASE_SCORE + modifier)))


def _percentile_phrase(score: float) -> str:
    if score >= 80:
        return "the top 30%"
    if score >= 70:
        return "the middle range"
    return "the lower range"


def generate_mock_document(
    subject: SubjectProfile,
    eeg: ModalityAnalysis | None,
    ppg: ModalityAnalysis | None,
) -> dict[str, Any]:
    """Build a schema-complete result document without calling any service."""
    seed_score = age_seeded_score(subject.age)
    has_eeg = eeg is not None and eeg.is_usable
    has_ppg = ppg is not None and ppg.is_usable

    document: dict[str, Any] = {
        "overall_summary": {
            "health_score": seed_score,
            "main_findings": [
                "Brain-wave activity is broadly stable." if has_eeg else "No EEG analysis available.",
                "Heart rate variability is within the normal range." if has_ppg else "No PPG analysis available.",
                "Stress is within a manageable range.",
            ],
            "urgent_issues": [],
            "positive_aspects": [
                "Overall condition is sound.",
                "Mental resilience is good.",
            ],
        },
        "personalized_analysis": {
            "age_gender_analysis": {
                "comparison": (
                    f"Compared with the average {subject.age}-year-old {subject.gender} person, "
                    f"this result sits in {_percentile_phrase(seed_score)}."
                ),
                "risks": [
                    "Cardiovascular care becomes more important with age."
                    if subject.age > 40 else "No notable age-related risk.",
                ],
                "recommendations": [
                    "Regular aerobic exercise.",
                    "Consistent, sufficient sleep.",
                    "Learn a stress management technique.",
                ],
            },
        },
        "improvement_plan": {
            "immediate": [
                {
                    "category": "lifestyle",
                    "action": "Establish a regular sleep schedule.",
                    "expected_benefit": "Better overall recovery.",
                    "priority": "high",
                    "timeframe": "1 week",
                },
            ],
            "short_term": [
                {
                    "category": "exercise",
                    "action": "30 minutes of aerobic exercise three times a week.",
                    "expected_benefit": "Cardiovascular health and lower stress.",
                    "priority": "medium",
                    "timeframe": "4 weeks",
                },
            ],
            "long_term": [
                {
                    "category": "medical",
                    "action": "Schedule a routine health check-up.",
                    "expected_benefit": "Early detection through monitoring.",
                    "priority": "low",
                    "timeframe": "3 months",
                },
            ],
        },
        "medical_recommendations": {
            "consultation_needed": False,
            "specialties": [],
            "urgency": "routine",
        },
    }

    if subject.occupation:
        document["personalized_analysis"]["occupation_analysis"] = {
            "work_stress_impact": f"Work as a {subject.occupation} may carry a sustained mental load.",
            "occupational_risks": [
                "Reduced circulation from long sedentary periods.",
                "Accumulated mental fatigue.",
            ],
            "work_life_balance": [
                "Balance work blocks with rest breaks.",
                "Keep a regular stress-relief activity.",
            ],
        }

    for key, analysis in (("eeg_summary", eeg), ("ppg_summary", ppg)):
        if analysis is None or not analysis.is_usable:
            continue
        document[key] = {
            "overall_score": seed_score,
            "key_findings": [
                f"{name.replace('_', ' ')}: {score:g}"
                for name, score in analysis.scores().items()
            ],
            "dimension_scores": {},
        }

    return document
