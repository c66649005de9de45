"""Integration input and result models.

Inputs (``ModalityAnalysis``, ``DimensionScore``, ``MeasurementContext``) are
read-only. ``IntegratedResult`` is built once per integration call from its
document form and never mutated afterwards.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from typing import Any

from vitalfuse.domains.biosignal.errors import ValidationError

# ---------------------------------------------------------------------------
# Domain constants
# ---------------------------------------------------------------------------

EEG_DIMENSIONS = ("emotional_balance", "brain_focus", "brain_arousal", "stress_level")
PPG_DIMENSIONS = ("stress_health", "autonomic_health", "hrv_health")
MODALITY_DIMENSIONS = {"eeg": EEG_DIMENSIONS, "ppg": PPG_DIMENSIONS}

CLINICAL_SIGNIFICANCE = ("normal", "mild", "moderate", "severe")
ACTION_CATEGORIES = ("lifestyle", "exercise", "mental", "medical", "work")
PRIORITIES = ("high", "medium", "low")
URGENCIES = ("immediate", "soon", "routine")
DATA_QUALITY_TIERS = ("excellent", "good", "fair", "poor")

# Alternate field names accepted from upstream sub-analysis payloads
_DIMENSION_CONTAINERS = ("dimensions", "four_dimension_analysis", "three_axis_analysis")


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DimensionScore:
    """One scored dimension of an EEG or PPG sub-analysis."""

    name: str
    score: float
    level: str = ""
    clinical_significance: str = "normal"
    interpretation: str = ""
    recommendations: tuple[str, ...] = ()

    def validate(self, modality: str) -> None:
        path = f"{modality}.{self.name}"
        if isinstance(self.score, bool) or not isinstance(self.score, (int, float)):
            raise ValidationError(f"score must be a number, got {self.score!r}", field=path)
        if not math.isfinite(self.score) or not 0 <= self.score <= 100:
            raise ValidationError(f"score must be within [0, 100], got {self.score}", field=path)
        if self.clinical_significance not in CLINICAL_SIGNIFICANCE:
            raise ValidationError(
                f"clinical_significance must be one of {CLINICAL_SIGNIFICANCE}",
                field=path,
            )

    @classmethod
    def from_value(cls, name: str, value: Any) -> DimensionScore:
        """Accept a bare number or a mapping with at least ``score``."""
        if isinstance(value, DimensionScore):
            return value
        if not isinstance(value, dict):
            return cls(name=name, score=value)
        return cls(
            name=name,
            score=value.get("score"),
            level=value.get("level") or "",
            clinical_significance=value.get("clinical_significance") or "normal",
            interpretation=value.get("interpretation") or "",
            recommendations=tuple(value.get("recommendations") or ()),
        )


@dataclass(frozen=True)
class ModalityAnalysis:
    """An independently produced EEG or PPG sub-analysis.

    Only recognized dimension names are kept; others are ignored.
    """

    modality: str
    dimensions: dict[str, DimensionScore] = field(default_factory=dict)
    overall_summary: str = ""
    key_findings: tuple[str, ...] = ()
    primary_concerns: tuple[str, ...] = ()

    @property
    def is_usable(self) -> bool:
        return bool(self.dimensions)

    def scores(self) -> dict[str, float]:
        """Dimension scores in canonical order."""
        return {
            name: self.dimensions[name].score
            for name in MODALITY_DIMENSIONS[self.modality]
            if name in self.dimensions
        }

    def validate(self) -> None:
        for dimension in self.dimensions.values():
            dimension.validate(self.modality)

    @classmethod
    def from_dict(cls, modality: str, data: dict[str, Any]) -> ModalityAnalysis:
        """Parse a sub-analysis payload.

        The dimension map may sit under ``dimensions``,
        ``four_dimension_analysis`` or ``three_axis_analysis``, at the top
        level or inside ``raw_data``.
        """
        if modality not in MODALITY_DIMENSIONS:
            raise ValidationError(f"unknown modality {modality!r}", field="modality")
        payload = data.get("raw_data") if isinstance(data.get("raw_data"), dict) else data

        raw_dimensions: dict[str, Any] = {}
        for container in _DIMENSION_CONTAINERS:
            if isinstance(payload.get(container), dict):
                raw_dimensions = payload[container]
                break

        known = MODALITY_DIMENSIONS[modality]
        dimensions: dict[str, DimensionScore] = {}
        for name, value in raw_dimensions.items():
            if name not in known:
                continue
            try:
                dimensions[name] = DimensionScore.from_value(name, value)
            except TypeError as exc:
                raise ValidationError(f"malformed dimension: {exc}", field=f"{modality}.{name}") from exc

        assessment = payload.get("comprehensive_assessment") or {}
        if not isinstance(assessment, dict):
            raise ValidationError(
                f"must be an object, got {type(assessment).__name__}",
                field=f"{modality}.comprehensive_assessment",
            )
        return cls(
            modality=modality,
            dimensions=dimensions,
            overall_summary=assessment.get("overall_summary") or payload.get("summary") or "",
            key_findings=tuple(assessment.get("key_findings") or ()),
            primary_concerns=tuple(assessment.get("primary_concerns") or ()),
        )


@dataclass(frozen=True)
class MeasurementContext:
    """Facts about the measurement the sub-analyses were computed from."""

    duration_seconds: float
    measured_at: str = ""
    session_id: str | None = None
    device_info: dict[str, Any] | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MeasurementContext:
        return cls(
            duration_seconds=float(data.get("duration_seconds", data.get("measurement_duration", 0))),
            measured_at=str(data.get("measured_at", data.get("measurement_time", ""))),
            session_id=data.get("session_id"),
            device_info=data.get("device_info"),
        )


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ActionItem:
    category: str
    action: str
    expected_benefit: str = ""
    priority: str = "medium"
    timeframe: str = ""

    @classmethod
    def coerce(cls, value: Any, *, default_timeframe: str = "") -> ActionItem:
        """Build an item from a mapping, or wrap a plain string as the action."""
        if isinstance(value, ActionItem):
            return value
        if isinstance(value, str):
            return cls(category="lifestyle", action=value, timeframe=default_timeframe)
        if not isinstance(value, dict):
            raise ValidationError(f"expected an object or string, got {type(value).__name__}",
                                  field="improvement_plan")
        category = value.get("category") or "lifestyle"
        priority = value.get("priority") or "medium"
        return cls(
            category=category if category in ACTION_CATEGORIES else "lifestyle",
            action=str(value.get("action") or ""),
            expected_benefit=str(value.get("expected_benefit") or ""),
            priority=priority if priority in PRIORITIES else "medium",
            timeframe=str(value.get("timeframe") or default_timeframe),
        )


@dataclass(frozen=True)
class ImprovementPlan:
    immediate: tuple[ActionItem, ...]
    short_term: tuple[ActionItem, ...] = ()
    long_term: tuple[ActionItem, ...] = ()


@dataclass(frozen=True)
class OverallSummary:
    health_score: float
    main_findings: tuple[str, ...]
    urgent_issues: tuple[str, ...] = ()
    positive_aspects: tuple[str, ...] = ()


@dataclass(frozen=True)
class ModalitySummary:
    overall_score: float
    key_findings: tuple[str, ...] = ()
    dimension_scores: dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class AgeGenderAnalysis:
    comparison: str = ""
    risks: tuple[str, ...] = ()
    recommendations: tuple[str, ...] = ()


@dataclass(frozen=True)
class OccupationAnalysis:
    work_stress_impact: str = ""
    occupational_risks: tuple[str, ...] = ()
    work_life_balance: tuple[str, ...] = ()


@dataclass(frozen=True)
class PersonalizedAnalysis:
    age_gender_analysis: AgeGenderAnalysis = field(default_factory=AgeGenderAnalysis)
    occupation_analysis: OccupationAnalysis | None = None


@dataclass(frozen=True)
class MedicalRecommendations:
    consultation_needed: bool = False
    specialties: tuple[str, ...] = ()
    urgency: str = "routine"


@dataclass(frozen=True)
class ResultMetadata:
    analysis_date: str
    engine_version: str
    processing_time_ms: float
    data_quality: str


def _strings(value: Any) -> tuple[str, ...]:
    return tuple(str(v) for v in value or ())


def _to_document(obj: Any) -> Any:
    """asdict() output with tuples turned into lists and None fields dropped."""
    if isinstance(obj, dict):
        return {k: _to_document(v) for k, v in obj.items() if v is not None}
    if isinstance(obj, (list, tuple)):
        return [_to_document(v) for v in obj]
    return obj


@dataclass(frozen=True)
class IntegratedResult:
    overall_summary: OverallSummary
    personalized_analysis: PersonalizedAnalysis
    improvement_plan: ImprovementPlan
    metadata: ResultMetadata
    eeg_summary: ModalitySummary | None = None
    ppg_summary: ModalitySummary | None = None
    medical_recommendations: MedicalRecommendations | None = None

    def to_document(self) -> dict[str, Any]:
        """JSON-representable form for the storage collaborator."""
        return _to_document(asdict(self))

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> IntegratedResult:
        """Build a result from its (already corrected and sanitized) document form.

        Raises:
            ValidationError: the document is missing required sections.
        """
        try:
            overall = doc["overall_summary"]
            plan = doc["improvement_plan"]
            meta = doc["metadata"]
        except KeyError as exc:
            raise ValidationError("is required", field=exc.args[0]) from exc

        personalized = doc.get("personalized_analysis") or {}
        age_gender = personalized.get("age_gender_analysis") or {}
        occupation = personalized.get("occupation_analysis")
        medical = doc.get("medical_recommendations")

        return cls(
            overall_summary=OverallSummary(
                health_score=overall["health_score"],
                main_findings=_strings(overall.get("main_findings")),
                urgent_issues=_strings(overall.get("urgent_issues")),
                positive_aspects=_strings(overall.get("positive_aspects")),
            ),
            eeg_summary=_modality_summary(doc.get("eeg_summary")),
            ppg_summary=_modality_summary(doc.get("ppg_summary")),
            personalized_analysis=PersonalizedAnalysis(
                age_gender_analysis=AgeGenderAnalysis(
                    comparison=str(age_gender.get("comparison") or ""),
                    risks=_strings(age_gender.get("risks")),
                    recommendations=_strings(age_gender.get("recommendations")),
                ),
                occupation_analysis=OccupationAnalysis(
                    work_stress_impact=str(occupation.get("work_stress_impact") or ""),
                    occupational_risks=_strings(occupation.get("occupational_risks")),
                    work_life_balance=_strings(occupation.get("work_life_balance")),
                ) if occupation else None,
            ),
            improvement_plan=ImprovementPlan(
                immediate=tuple(ActionItem.coerce(v, default_timeframe="now")
                                for v in plan.get("immediate") or ()),
                short_term=tuple(ActionItem.coerce(v, default_timeframe="1-4 weeks")
                                 for v in plan.get("short_term") or ()),
                long_term=tuple(ActionItem.coerce(v, default_timeframe="1-3 months")
                                for v in plan.get("long_term") or ()),
            ),
            medical_recommendations=MedicalRecommendations(
                consultation_needed=bool(medical.get("consultation_needed", False)),
                specialties=_strings(medical.get("specialties")),
                urgency=medical.get("urgency") if medical.get("urgency") in URGENCIES else "routine",
            ) if medical else None,
            metadata=ResultMetadata(
                analysis_date=str(meta.get("analysis_date", "")),
                engine_version=str(meta.get("engine_version", "")),
                processing_time_ms=float(meta.get("processing_time_ms", 0.0)),
                data_quality=str(meta.get("data_quality", "poor")),
            ),
        )


def _modality_summary(data: dict[str, Any] | None) -> ModalitySummary | None:
    if not data:
        return None
    return ModalitySummary(
        overall_score=data["overall_score"],
        key_findings=_strings(data.get("key_findings")),
        dimension_scores=dict(data.get("dimension_scores") or {}),
    )


# ---------------------------------------------------------------------------
# Envelope and pre-flight report
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Insights:
    summary: str
    detailed_analysis: str
    recommendations: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class SummaryResult:
    """Generic analysis envelope handed to presentation collaborators."""

    engine_id: str
    engine_version: str
    timestamp: str
    analysis_id: str
    overall_score: float
    stress_level: float
    focus_level: float
    insights: Insights
    processing_time_ms: float
    raw_data: dict[str, Any] | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        return _to_document(asdict(self))


@dataclass
class ValidationReport:
    is_valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    quality_score: float = 100.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
