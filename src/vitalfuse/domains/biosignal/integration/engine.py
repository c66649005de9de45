"""Integration engine: one health assessment from EEG and PPG sub-analyses.

Two paths produce the result document:

* live: prompt -> InferenceClient (bounded retry) -> first JSON object
* fallback: no client configured -> deterministic mock seeded by age

Both paths then go through the same score correction, sanitization and
shape checks, so consumers never see a different schema between them.
"""

from __future__ import annotations

import json
import logging
import statistics
import time
import uuid
from datetime import datetime, timezone
from typing import Any

from vitalfuse.core.llm.client import InferenceClient
from vitalfuse.core.llm.provider import InferenceResponseError
from vitalfuse.core.llm.response import extract_first_json_object, sanitize_document
from vitalfuse.domains.biosignal.domain_logic.subject import SubjectProfile
from vitalfuse.domains.biosignal.errors import InsufficientInputError, ValidationError
from vitalfuse.domains.biosignal.integration.mock_generator import generate_mock_document
from vitalfuse.domains.biosignal.integration.models import (
    Insights,
    IntegratedResult,
    MeasurementContext,
    ModalityAnalysis,
    SummaryResult,
    ValidationReport,
)
from vitalfuse.domains.biosignal.integration.scoring import (
    apply_score_correction,
    synthesize_summary,
)
from vitalfuse.domains.biosignal.prompts.integration_prompts import (
    INTEGRATION_TASK_INSTRUCTIONS,
    build_integration_prompt,
)

logger = logging.getLogger(__name__)

DEFAULT_STRESS_SCORE = 60.0
DEFAULT_FOCUS_SCORE = 75.0
MIN_RECOMMENDED_DURATION_S = 60
FULL_QUALITY_DURATION_S = 300


def _usable(analysis: ModalityAnalysis | None) -> ModalityAnalysis | None:
    return analysis if analysis is not None and analysis.is_usable else None


def _require_list(container: dict[str, Any], key: str, path: str, *, non_empty: bool = False) -> None:
    value = container.get(key)
    if value is None and not non_empty:
        container[key] = []
        return
    if not isinstance(value, list):
        raise InferenceResponseError(f"{path}.{key} must be a list, got {type(value).__name__}")
    if non_empty and not value:
        raise InferenceResponseError(f"{path}.{key} must not be empty")


def _require_section(document: dict[str, Any], key: str) -> dict[str, Any]:
    section = document.get(key)
    if not isinstance(section, dict):
        raise InferenceResponseError(f"{key} must be an object")
    return section


def _optional_section(container: dict[str, Any], key: str, path: str) -> dict[str, Any] | None:
    section = container.get(key)
    if section is None:
        return None
    if not isinstance(section, dict):
        raise InferenceResponseError(
            f"{path}.{key} must be an object, got {type(section).__name__}"
        )
    return section


def check_result_shape(document: dict[str, Any]) -> None:
    """Enforce the array fields of a result document (in place).

    Missing optional arrays become empty lists.

    Raises:
        InferenceResponseError: a required list is missing or empty, or an
            array field holds something else.
    """
    overall = _require_section(document, "overall_summary")
    _require_list(overall, "main_findings", "overall_summary", non_empty=True)
    _require_list(overall, "urgent_issues", "overall_summary")
    _require_list(overall, "positive_aspects", "overall_summary")

    plan = _require_section(document, "improvement_plan")
    _require_list(plan, "immediate", "improvement_plan", non_empty=True)
    _require_list(plan, "short_term", "improvement_plan")
    _require_list(plan, "long_term", "improvement_plan")
    for horizon in ("immediate", "short_term", "long_term"):
        for item in plan[horizon]:
            if not isinstance(item, (dict, str)):
                raise InferenceResponseError(
                    f"improvement_plan.{horizon} items must be objects or strings"
                )

    for key in ("eeg_summary", "ppg_summary"):
        if key in document:
            _require_list(_require_section(document, key), "key_findings", key)

    personalized = document.get("personalized_analysis")
    if personalized is None:
        personalized = document["personalized_analysis"] = {}
    elif not isinstance(personalized, dict):
        raise InferenceResponseError("personalized_analysis must be an object")

    age_gender = _optional_section(personalized, "age_gender_analysis", "personalized_analysis")
    if age_gender is None:
        personalized["age_gender_analysis"] = {}
    else:
        _require_list(age_gender, "risks", "personalized_analysis.age_gender_analysis")
        _require_list(age_gender, "recommendations", "personalized_analysis.age_gender_analysis")

    occupation = _optional_section(personalized, "occupation_analysis", "personalized_analysis")
    if occupation is not None:
        _require_list(occupation, "occupational_risks", "personalized_analysis.occupation_analysis")
        _require_list(occupation, "work_life_balance", "personalized_analysis.occupation_analysis")

    medical = document.get("medical_recommendations")
    if medical is not None:
        _require_list(_require_section(document, "medical_recommendations"), "specialties",
                      "medical_recommendations")


class IntegrationEngine:
    """Combines EEG and PPG dimension scores with a subject profile.

    Usage::

        engine = IntegrationEngine(InferenceClient(provider))   # live
        engine = IntegrationEngine()                            # deterministic fallback

        result = await engine.integrate(eeg, ppg, subject, context)
        envelope = await engine.analyze(eeg, ppg, subject, context)  # never raises
    """

    def __init__(
        self,
        inference_client: InferenceClient | None = None,
        *,
        engine_version: str = "1.0.0",
        engine_id: str = "integrated-advanced-v1",
    ) -> None:
        self._client = inference_client
        self.engine_version = engine_version
        self.engine_id = engine_id

    @property
    def uses_inference(self) -> bool:
        return self._client is not None

    @property
    def provider_name(self) -> str | None:
        return self._client.provider_name if self._client is not None else None

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    async def integrate(
        self,
        eeg_result: ModalityAnalysis | None,
        ppg_result: ModalityAnalysis | None,
        subject: SubjectProfile | None,
        session_meta: MeasurementContext,
        analysis_context: dict[str, Any] | None = None,
    ) -> IntegratedResult:
        """Produce one IntegratedResult.

        Raises:
            ValidationError: missing/invalid subject or an out-of-range score.
            InsufficientInputError: no sub-analysis has a recognized dimension.
            InferenceTransientError: the collaborator stayed unavailable.
            InferenceResponseError: the response held no usable JSON object.
        """
        started = time.monotonic()
        if subject is None:
            raise ValidationError("a subject profile is required", field="subject")
        subject.validate()

        eeg = _usable(eeg_result)
        ppg = _usable(ppg_result)
        if eeg is None and ppg is None:
            raise InsufficientInputError(
                "Integration needs an EEG or PPG analysis with at least one recognized dimension"
            )
        for analysis in (eeg, ppg):
            if analysis is not None:
                analysis.validate()

        if self._client is not None:
            document = await self._generate_live(subject, eeg, ppg, analysis_context)
            path = "live"
        else:
            document = generate_mock_document(subject, eeg, ppg)
            path = "fallback"

        corrected = apply_score_correction(document, eeg, ppg)
        corrected["metadata"] = {
            "analysis_date": datetime.now(timezone.utc).isoformat(),
            "engine_version": self.engine_version,
            "processing_time_ms": (time.monotonic() - started) * 1000.0,
            "data_quality": self.assess_data_quality(eeg, ppg, subject, session_meta),
        }
        sanitized = sanitize_document(corrected)
        check_result_shape(sanitized)
        result = IntegratedResult.from_document(sanitized)

        logger.info(
            "Integration complete: path=%s, overall=%.2f, eeg=%s, ppg=%s, quality=%s",
            path,
            result.overall_summary.health_score,
            eeg is not None,
            ppg is not None,
            result.metadata.data_quality,
        )
        return result

    async def _generate_live(
        self,
        subject: SubjectProfile,
        eeg: ModalityAnalysis | None,
        ppg: ModalityAnalysis | None,
        analysis_context: dict[str, Any] | None,
    ) -> dict[str, Any]:
        prompt = build_integration_prompt(subject, eeg, ppg, analysis_context)
        completion = await self._client.complete(prompt, INTEGRATION_TASK_INSTRUCTIONS)
        document = extract_first_json_object(completion.content)
        if document is None:
            raise InferenceResponseError(
                f"No JSON object in inference response ({len(completion.content)} chars)"
            )
        return document

    # ------------------------------------------------------------------
    # Envelope
    # ------------------------------------------------------------------

    def convert_to_summary_result(self, result: IntegratedResult, started_at: float) -> SummaryResult:
        """Project a result into the generic envelope.

        Args:
            started_at: ``time.monotonic()`` taken when the request began.
        """
        eeg_dims = result.eeg_summary.dimension_scores if result.eeg_summary else {}
        ppg_dims = result.ppg_summary.dimension_scores if result.ppg_summary else {}
        document = result.to_document()

        return SummaryResult(
            engine_id=self.engine_id,
            engine_version=self.engine_version,
            timestamp=datetime.now(timezone.utc).isoformat(),
            analysis_id=f"integrated-{uuid.uuid4().hex[:12]}",
            overall_score=result.overall_summary.health_score,
            stress_level=statistics.fmean([
                eeg_dims.get("stress_level", DEFAULT_STRESS_SCORE),
                ppg_dims.get("stress_health", DEFAULT_STRESS_SCORE),
            ]),
            focus_level=eeg_dims.get("brain_focus", DEFAULT_FOCUS_SCORE),
            insights=Insights(
                summary=synthesize_summary(result),
                detailed_analysis=json.dumps(document, indent=2, ensure_ascii=False),
                recommendations=tuple(item.action for item in result.improvement_plan.immediate),
                warnings=result.overall_summary.urgent_issues,
            ),
            processing_time_ms=(time.monotonic() - started_at) * 1000.0,
            raw_data=document,
        )

    def error_summary_result(self, exc: BaseException, started_at: float) -> SummaryResult:
        """Error-shaped envelope: zero scores, no recommendations."""
        return SummaryResult(
            engine_id=self.engine_id,
            engine_version=self.engine_version,
            timestamp=datetime.now(timezone.utc).isoformat(),
            analysis_id=f"integrated-error-{uuid.uuid4().hex[:12]}",
            overall_score=0.0,
            stress_level=0.0,
            focus_level=0.0,
            insights=Insights(
                summary="The integrated analysis could not be completed.",
                detailed_analysis=f"Error: {exc}",
                recommendations=(),
                warnings=("Analysis failed",),
            ),
            processing_time_ms=(time.monotonic() - started_at) * 1000.0,
            error=f"{type(exc).__name__}: {exc}",
        )

    async def analyze(
        self,
        eeg_result: ModalityAnalysis | None,
        ppg_result: ModalityAnalysis | None,
        subject: SubjectProfile | None,
        session_meta: MeasurementContext,
        analysis_context: dict[str, Any] | None = None,
    ) -> SummaryResult:
        """Integrate and convert. Failures come back as an error envelope."""
        started = time.monotonic()
        try:
            result = await self.integrate(eeg_result, ppg_result, subject, session_meta, analysis_context)
        except Exception as exc:
            logger.exception("Integrated analysis failed")
            return self.error_summary_result(exc, started)
        return self.convert_to_summary_result(result, started)

    # ------------------------------------------------------------------
    # Pre-flight checks
    # ------------------------------------------------------------------

    def validate_input(
        self,
        eeg_result: ModalityAnalysis | None,
        ppg_result: ModalityAnalysis | None,
        subject: SubjectProfile | None,
        session_meta: MeasurementContext | None,
    ) -> ValidationReport:
        """Report input problems without raising."""
        report = ValidationReport(is_valid=True)

        if subject is None:
            report.errors.append("A subject profile is required.")
            report.quality_score -= 50
        else:
            try:
                subject.validate()
            except ValidationError as exc:
                report.errors.append(str(exc))
                report.quality_score -= 20

        eeg = _usable(eeg_result)
        ppg = _usable(ppg_result)
        if eeg is None and ppg is None:
            report.errors.append("An EEG or PPG analysis with recognized dimensions is required.")
            report.quality_score -= 30
        for analysis in (eeg, ppg):
            if analysis is None:
                continue
            try:
                analysis.validate()
            except ValidationError as exc:
                report.errors.append(str(exc))
                report.quality_score -= 20

        if session_meta is not None and session_meta.duration_seconds < MIN_RECOMMENDED_DURATION_S:
            report.warnings.append(
                "Measurement is shorter than one minute; a longer measurement gives a more reliable analysis."
            )
            report.quality_score -= 10

        report.quality_score = max(0.0, report.quality_score)
        report.is_valid = not report.errors
        return report

    @staticmethod
    def assess_data_quality(
        eeg: ModalityAnalysis | None,
        ppg: ModalityAnalysis | None,
        subject: SubjectProfile,
        session_meta: MeasurementContext | None,
    ) -> str:
        """Tier the completeness of the input: excellent, good, fair or poor."""
        score = 0
        if _usable(eeg) is not None:
            score += 30
        if _usable(ppg) is not None:
            score += 30
        if subject.occupation:
            score += 10
        if subject.lifestyle is not None:
            score += 10
        if session_meta is not None and session_meta.duration_seconds >= FULL_QUALITY_DURATION_S:
            score += 20

        if score >= 80:
            return "excellent"
        if score >= 60:
            return "good"
        if score >= 40:
            return "fair"
        return "poor"
