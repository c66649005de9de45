"""Processed measurement session models and channel layout constants."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, TypeVar

from vitalfuse.domains.biosignal.errors import ValidationError

MODALITIES = ("eeg", "ppg", "acc")
CHUNK_TYPES = ("eeg", "ppg", "acc", "fused")

T = TypeVar("T")

# ---------------------------------------------------------------------------
# Channel layout: how per-second channels are grouped in the analysis bundle.
# Each group maps the bundle name to the stored channel name.
# ---------------------------------------------------------------------------

EEG_LAYOUT: dict[str, dict[str, str]] = {
    "band_powers": {
        "delta": "delta_power",
        "theta": "theta_power",
        "alpha": "alpha_power",
        "beta": "beta_power",
        "gamma": "gamma_power",
        "total": "total_power",
    },
    "mental_states": {
        "focus": "focus_index",
        "relaxation": "relaxation_index",
        "stress": "stress_index",
        "attention": "attention_level",
        "meditation": "meditation_level",
    },
    "cognitive_metrics": {
        "hemispheric_balance": "hemispheric_balance",
        "cognitive_load": "cognitive_load",
        "emotional_stability": "emotional_stability",
    },
    "quality": {
        "signal_quality": "signal_quality",
        "artifact_ratio": "artifact_ratio",
    },
}

PPG_LAYOUT: dict[str, dict[str, str]] = {
    "cardiac": {
        "heart_rate": "heart_rate",
        "hrv": "hrv",
        "rmssd": "rmssd",
        "pnn50": "pnn50",
        "pnn20": "pnn20",
        "sdnn": "sdnn",
        "sdsd": "sdsd",
        "avnn": "avnn",
        "hr_max": "hr_max",
        "hr_min": "hr_min",
    },
    "hrv_frequency_domain": {
        "vlf": "vlf",
        "lf": "lf",
        "hf": "hf",
        "lf_norm": "lf_norm",
        "hf_norm": "hf_norm",
        "lf_hf_ratio": "lf_hf_ratio",
        "total_power": "total_power",
    },
    "stress": {
        "stress_level": "stress_level",
        "recovery_index": "recovery_index",
        "autonomic_balance": "autonomic_balance",
        "cardiac_coherence": "cardiac_coherence",
    },
    "physiological": {
        "respiratory_rate": "respiratory_rate",
        "oxygen_saturation": "oxygen_saturation",
        "perfusion_index": "perfusion_index",
        "vascular_tone": "vascular_tone",
        "blood_pressure_systolic": "blood_pressure_systolic",
        "blood_pressure_diastolic": "blood_pressure_diastolic",
        "cardiac_efficiency": "cardiac_efficiency",
        "metabolic_rate": "metabolic_rate",
    },
    "quality": {
        "signal_quality": "signal_quality",
        "motion_artifact": "motion_artifact",
    },
}

ACC_LAYOUT: dict[str, dict[str, str]] = {
    "activity": {
        "level": "activity_level",
        "intensity": "movement_intensity",
        "step_count": "step_count",
        "step_rate": "step_rate",
        "movement_quality": "movement_quality",
        "energy_expenditure": "energy_expenditure",
    },
    "posture": {
        "states": "posture",
        "stability": "postural_stability",
        "transitions": "postural_transitions",
    },
    "quality": {
        "signal_quality": "signal_quality",
    },
}

LAYOUTS: dict[str, dict[str, dict[str, str]]] = {
    "eeg": EEG_LAYOUT,
    "ppg": PPG_LAYOUT,
    "acc": ACC_LAYOUT,
}

FUSED_CHANNELS = (
    "overall_stress",
    "cognitive_stress",
    "physical_stress",
    "fatigue_level",
    "alertness_level",
    "wellbeing_score",
)

# Series reduced to a fixed length for the compact analysis view
HEADLINE_CHANNELS: dict[str, tuple[str, ...]] = {
    "eeg": ("focus_index", "relaxation_index", "stress_index", "attention_level"),
    "ppg": ("heart_rate", "hrv", "stress_level", "lf_hf_ratio"),
    "acc": ("activity_level", "postural_stability"),
    "fused": FUSED_CHANNELS,
}

POSTURE_STATES = ("SITTING", "STANDING", "LYING", "MOVING")


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SamplingRate:
    """Per-modality sampling rates in Hz."""

    eeg: float = 1.0
    ppg: float = 1.0
    acc: float = 1.0
    fused: float = 1.0

    def for_chunk(self, chunk_type: str) -> float:
        return getattr(self, chunk_type)

    def to_dict(self) -> dict[str, float]:
        return {"eeg": self.eeg, "ppg": self.ppg, "acc": self.acc, "fused": self.fused}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SamplingRate:
        return cls(**{k: float(data[k]) for k in CHUNK_TYPES if k in data})


@dataclass(frozen=True)
class SessionMetadata:
    sampling_rate: SamplingRate = field(default_factory=SamplingRate)
    processing_version: str = "1.0.0"
    quality_score: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "sampling_rate": self.sampling_rate.to_dict(),
            "processing_version": self.processing_version,
            "quality_score": self.quality_score,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SessionMetadata:
        return cls(
            sampling_rate=SamplingRate.from_dict(data.get("sampling_rate", {})),
            processing_version=str(data.get("processing_version", "1.0.0")),
            quality_score=float(data.get("quality_score", 0.0)),
        )


@dataclass
class ModalityTimeSeries:
    """One sensor's per-second channels for a session.

    ``channels`` hold numeric samples, ``categorical`` hold per-sample labels
    (e.g. posture), ``extras`` hold data that is not one value per sample
    (RR-interval lists, movement events). All per-sample channels and
    ``timestamps`` share one length.
    """

    channels: dict[str, list[float]] = field(default_factory=dict)
    categorical: dict[str, list[str]] = field(default_factory=dict)
    extras: dict[str, Any] = field(default_factory=dict)
    timestamps: list[int] = field(default_factory=list)

    @property
    def has_data(self) -> bool:
        return any(self.channels.values()) or any(self.categorical.values())

    def to_dict(self) -> dict[str, Any]:
        return {
            "channels": {name: list(values) for name, values in self.channels.items()},
            "categorical": {name: list(values) for name, values in self.categorical.items()},
            "extras": dict(self.extras),
            "timestamps": list(self.timestamps),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ModalityTimeSeries:
        return cls(
            channels={name: list(values) for name, values in data.get("channels", {}).items()},
            categorical={
                name: list(values) for name, values in data.get("categorical", {}).items()
            },
            extras=dict(data.get("extras", {})),
            timestamps=[int(t) for t in data.get("timestamps", [])],
        )


@dataclass
class FusedMetrics:
    """Cross-modality derived channels (any subset of FUSED_CHANNELS)."""

    channels: dict[str, list[float]] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"channels": {name: list(values) for name, values in self.channels.items()}}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FusedMetrics:
        return cls(channels={name: list(v) for name, v in data.get("channels", {}).items()})


@dataclass(frozen=True)
class ProcessedSessionTimeSeries:
    """A complete processed measurement session, one sample per second by default."""

    session_id: str
    measurement_id: str
    start_time: datetime
    end_time: datetime
    duration: float
    eeg: ModalityTimeSeries | None = None
    ppg: ModalityTimeSeries | None = None
    acc: ModalityTimeSeries | None = None
    fused_metrics: FusedMetrics | None = None
    metadata: SessionMetadata = field(default_factory=SessionMetadata)

    def modalities(self) -> dict[str, ModalityTimeSeries]:
        """Present sensor modalities, in eeg/ppg/acc order."""
        present = {}
        for name in MODALITIES:
            series = getattr(self, name)
            if series is not None:
                present[name] = series
        return present

    def expected_length(self, chunk_type: str) -> int:
        """Samples per channel implied by the duration and sampling rate.

        Raises:
            ValidationError: duration * rate is not a whole number of samples.
        """
        rate = self.metadata.sampling_rate.for_chunk(chunk_type)
        samples = self.duration * rate
        rounded = round(samples)
        if not math.isclose(samples, rounded, abs_tol=1e-6):
            raise ValidationError(
                f"duration {self.duration}s at {rate} Hz is not a whole number of samples",
                field=f"metadata.sampling_rate.{chunk_type}",
            )
        return int(rounded)

    def validate(self) -> None:
        """Check the session invariants.

        Raises:
            ValidationError: naming the first offending field.
        """
        if not self.session_id:
            raise ValidationError("must not be empty", field="session_id")
        if not self.measurement_id:
            raise ValidationError("must not be empty", field="measurement_id")
        for name in ("start_time", "end_time"):
            if getattr(self, name).tzinfo is None:
                raise ValidationError("must be timezone-aware", field=name)
        if not self.duration > 0:
            raise ValidationError(f"must be positive, got {self.duration}", field="duration")
        elapsed = (self.end_time - self.start_time).total_seconds()
        if not math.isclose(elapsed, self.duration, abs_tol=1e-3):
            raise ValidationError(
                f"{self.duration}s does not match end_time - start_time ({elapsed}s)",
                field="duration",
            )
        if not 0 <= self.metadata.quality_score <= 100:
            raise ValidationError(
                f"must be within [0, 100], got {self.metadata.quality_score}",
                field="metadata.quality_score",
            )
        for chunk_type in CHUNK_TYPES:
            if not self.metadata.sampling_rate.for_chunk(chunk_type) > 0:
                raise ValidationError("must be positive", field=f"metadata.sampling_rate.{chunk_type}")

        present = self.modalities()
        if not any(series.has_data for series in present.values()):
            raise ValidationError("at least one of eeg, ppg, acc must carry data", field="modalities")

        for name, series in present.items():
            self._validate_modality(name, series)
        if self.fused_metrics is not None:
            self._validate_fused(self.fused_metrics)

    def _validate_modality(self, name: str, series: ModalityTimeSeries) -> None:
        if not series.has_data:
            raise ValidationError("modality is present but has no channels", field=name)
        expected = self.expected_length(name)
        for channel, values in series.channels.items():
            _check_numeric(values, expected, f"{name}.{channel}")
        for channel, labels in series.categorical.items():
            if len(labels) != expected:
                raise ValidationError(
                    f"has {len(labels)} samples, expected {expected}",
                    field=f"{name}.{channel}",
                )
        if len(series.timestamps) != expected:
            raise ValidationError(
                f"has {len(series.timestamps)} entries, expected {expected}",
                field=f"{name}.timestamps",
            )
        for prev, cur in zip(series.timestamps, series.timestamps[1:]):
            if cur <= prev:
                raise ValidationError("must be strictly increasing", field=f"{name}.timestamps")

    def _validate_fused(self, fused: FusedMetrics) -> None:
        expected = self.expected_length("fused")
        for channel, values in fused.channels.items():
            if channel not in FUSED_CHANNELS:
                raise ValidationError("unknown fused metric", field=f"fused_metrics.{channel}")
            _check_numeric(values, expected, f"fused_metrics.{channel}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "measurement_id": self.measurement_id,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "duration": self.duration,
            "eeg": self.eeg.to_dict() if self.eeg else None,
            "ppg": self.ppg.to_dict() if self.ppg else None,
            "acc": self.acc.to_dict() if self.acc else None,
            "fused_metrics": self.fused_metrics.to_dict() if self.fused_metrics else None,
            "metadata": self.metadata.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProcessedSessionTimeSeries:
        """Build a session from its plain-dict form (as produced by :meth:`to_dict`).

        Raises:
            ValidationError: required fields are missing or malformed.
        """
        try:
            start_time = _parse_time(data["start_time"])
            end_time = _parse_time(data["end_time"])
            kwargs: dict[str, Any] = {
                "session_id": str(data["session_id"]),
                "measurement_id": str(data["measurement_id"]),
                "start_time": start_time,
                "end_time": end_time,
                "duration": float(data.get("duration") or (end_time - start_time).total_seconds()),
            }
        except KeyError as exc:
            raise ValidationError("is required", field=exc.args[0]) from exc
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"malformed session: {exc}") from exc

        kwargs["metadata"] = _parse_section(
            SessionMetadata.from_dict, data.get("metadata") or {}, "metadata"
        )
        for name in MODALITIES:
            if data.get(name):
                kwargs[name] = _parse_section(ModalityTimeSeries.from_dict, data[name], name)
        if data.get("fused_metrics"):
            kwargs["fused_metrics"] = _parse_section(
                FusedMetrics.from_dict, data["fused_metrics"], "fused_metrics"
            )
        return cls(**kwargs)


def _parse_section(parse: Callable[[dict[str, Any]], T], value: Any, field_name: str) -> T:
    if not isinstance(value, dict):
        raise ValidationError(f"must be an object, got {type(value).__name__}", field=field_name)
    try:
        return parse(value)
    except (AttributeError, TypeError, ValueError) as exc:
        raise ValidationError(f"malformed: {exc}", field=field_name) from exc


def _parse_time(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def _check_numeric(values: list[float], expected: int, field_name: str) -> None:
    if len(values) != expected:
        raise ValidationError(f"has {len(values)} samples, expected {expected}", field=field_name)
    for v in values:
        if isinstance(v, bool) or not isinstance(v, (int, float)) or not math.isfinite(v):
            raise ValidationError(f"contains a non-finite or non-numeric sample {v!r}", field=field_name)
