"""Aggregate score rules and deterministic summary synthesis.

Aggregates are plain arithmetic means with no rounding or weighting:

    eeg_overall   = mean(present EEG dimension scores)
    ppg_overall   = mean(present PPG dimension scores)
    overall       = mean(eeg_overall, ppg_overall), or the single one present

Whatever a generator (live or fallback) put in those fields is overwritten
by ``apply_score_correction``.
"""

from __future__ import annotations

import copy
import statistics
from dataclasses import dataclass
from typing import Any

from vitalfuse.domains.biosignal.errors import InsufficientInputError
from vitalfuse.domains.biosignal.integration.models import (
    EEG_DIMENSIONS,
    PPG_DIMENSIONS,
    IntegratedResult,
    ModalityAnalysis,
)

BANDS = ((90, "excellent"), (80, "good"), (70, "fair"), (60, "marginal"))

DIMENSION_LABELS = {
    "emotional_balance": "emotional balance",
    "brain_focus": "brain focus",
    "brain_arousal": "brain arousal",
    "stress_level": "EEG stress resilience",
    "stress_health": "cardiac stress health",
    "autonomic_health": "autonomic balance",
    "hrv_health": "heart rate variability",
}


@dataclass(frozen=True)
class AggregateScores:
    eeg_overall: float | None
    ppg_overall: float | None
    overall: float


def aggregate_scores(
    eeg_scores: dict[str, float] | None,
    ppg_scores: dict[str, float] | None,
) -> AggregateScores:
    """Compute the three aggregates from dimension scores.

    Raises:
        InsufficientInputError: neither modality has a score.
    """
    eeg_overall = statistics.fmean(eeg_scores.values()) if eeg_scores else None
    ppg_overall = statistics.fmean(ppg_scores.values()) if ppg_scores else None

    present = [s for s in (eeg_overall, ppg_overall) if s is not None]
    if not present:
        raise InsufficientInputError("No EEG or PPG dimension scores to aggregate")
    overall = statistics.fmean(present) if len(present) > 1 else present[0]
    return AggregateScores(eeg_overall=eeg_overall, ppg_overall=ppg_overall, overall=overall)


def apply_score_correction(
    document: dict[str, Any],
    eeg: ModalityAnalysis | None,
    ppg: ModalityAnalysis | None,
) -> dict[str, Any]:
    """Return a copy of ``document`` with aggregates and score maps recomputed.

    Summaries for modalities without input are removed; summaries the
    generator omitted for present modalities are created.
    """
    eeg_scores = eeg.scores() if eeg is not None else {}
    ppg_scores = ppg.scores() if ppg is not None else {}
    aggregates = aggregate_scores(eeg_scores, ppg_scores)

    corrected = copy.deepcopy(document)
    overall = corrected.get("overall_summary")
    if not isinstance(overall, dict):
        overall = corrected["overall_summary"] = {}
    overall["health_score"] = aggregates.overall

    for key, scores, score in (
        ("eeg_summary", eeg_scores, aggregates.eeg_overall),
        ("ppg_summary", ppg_scores, aggregates.ppg_overall),
    ):
        if score is None:
            corrected.pop(key, None)
            continue
        summary = corrected.get(key)
        if not isinstance(summary, dict):
            summary = corrected[key] = {"key_findings": []}
        summary["overall_score"] = score
        summary["dimension_scores"] = dict(scores)
    return corrected


def band(score: float) -> str:
    for threshold, label in BANDS:
        if score >= threshold:
            return label
    return "poor"


def _fmt(score: float) -> str:
    return f"{round(score, 1):g}"


def synthesize_summary(result: IntegratedResult) -> str:
    """Narrative paragraph built only from the scores of ``result``.

    Identical scores always give identical text.
    """
    overall = result.overall_summary.health_score
    parts = [f"Overall health score is {_fmt(overall)}, which is {band(overall)}."]

    for summary, names, title in (
        (result.eeg_summary, EEG_DIMENSIONS, "Brain-wave (EEG)"),
        (result.ppg_summary, PPG_DIMENSIONS, "Heart-rhythm (PPG)"),
    ):
        if summary is None:
            continue
        clauses = [
            f"{DIMENSION_LABELS[name]} {_fmt(summary.dimension_scores[name])} "
            f"({band(summary.dimension_scores[name])})"
            for name in names
            if name in summary.dimension_scores
        ]
        line = f"{title} score {_fmt(summary.overall_score)} ({band(summary.overall_score)})"
        if clauses:
            line += ": " + ", ".join(clauses)
        parts.append(line + ".")

    eeg_dims = result.eeg_summary.dimension_scores if result.eeg_summary else {}
    ppg_dims = result.ppg_summary.dimension_scores if result.ppg_summary else {}
    recommendations = []
    if eeg_dims.get("stress_level", 100) < 70 or ppg_dims.get("stress_health", 100) < 70:
        recommendations.append("join a stress management program")
    if eeg_dims.get("brain_focus", 100) < 70:
        recommendations.append("practice focus training")
    if ppg_dims.get("autonomic_health", 100) < 70:
        recommendations.append("build a routine of regular exercise and breathing practice")
    if recommendations:
        parts.append("Recommended: " + "; ".join(recommendations) + ".")

    return " ".join(parts)
